from urllib.parse import urlparse

LOOPBACK_HOSTS = ("localhost", "127.0.0.1")
FILE_ORIGIN = "null"

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = "Content-Type"
MAX_AGE = "86400"


def _is_loopback(allowed: str) -> bool:
    try:
        host = urlparse(allowed).hostname
    except ValueError:
        return False
    return host in LOOPBACK_HOSTS


def origin_allowed(request_origin: str | None, allowed_origins) -> bool:
    """
    Exact match, any port/path under a configured loopback origin,
    or the literal "null" sent from file:// pages.
    """
    if not request_origin:
        return False
    for allowed in allowed_origins:
        if allowed == FILE_ORIGIN:
            if request_origin == FILE_ORIGIN:
                return True
            continue
        if request_origin == allowed:
            return True
        if _is_loopback(allowed) and request_origin.startswith(allowed):
            return True
    return False


def pick_cors_origin(request_origin: str | None, allowed_origins) -> str:
    """Echo the Origin back if allowed, else fall back to the wildcard."""
    if origin_allowed(request_origin, allowed_origins):
        return request_origin
    return "*"


def cors_headers(request_origin: str | None, allowed_origins) -> dict:
    return {
        "Access-Control-Allow-Origin": pick_cors_origin(request_origin, allowed_origins),
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Max-Age": MAX_AGE,
    }
