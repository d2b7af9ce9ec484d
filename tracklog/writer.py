import logging

from .records import (
    DEFAULT_SESSION,
    DEFAULT_TIMEZONE,
    LogKind,
    LogRecord,
    body_or_default,
    local_timestamp,
    parse_json_body,
    storage_key,
)
from .store import KVStore

logger = logging.getLogger(__name__)

# 1x1 GIF (tracking pixel), 35 bytes
PIXEL_BYTES = (
    b"GIF89a"
    b"\x01\x00\x01\x00"
    b"\x80"
    b"\x00"
    b"\x00"
    b"\x00\x00\x00"
    b"\xff\xff\xff"
    b"\x2c\x00\x00\x00\x00\x01\x00\x01\x00\x00"
    b"\x02\x02\x44\x01\x00"
    b"\x3b"
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store",
}


def client_ip(req) -> str | None:
    """
    Prefer the proxy-provided address, then the first forwarded hop,
    then the socket peer.
    """
    ip = req.headers.get("CF-Connecting-IP")
    if ip:
        return ip.strip()
    forwarded = req.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return req.remote_addr


def _optional_arg(args, name):
    value = args.get(name)
    return value if value else None


def _country(geo, ip):
    if geo is None:
        return None
    return geo.country_for_ip(ip)


def build_pixel_record(req, tz_name=DEFAULT_TIMEZONE, geo=None) -> LogRecord:
    ip = client_ip(req)
    return LogRecord(
        kind=LogKind.PIXEL,
        timestamp=local_timestamp(tz_name),
        client_ip=ip,
        user_agent=req.headers.get("User-Agent"),
        referer=req.headers.get("Referer"),
        session=_optional_arg(req.args, "session") or DEFAULT_SESSION,
        section=_optional_arg(req.args, "section"),
        action=_optional_arg(req.args, "action"),
        country=_country(geo, ip),
    )


def build_event_record(req, tz_name=DEFAULT_TIMEZONE, geo=None) -> LogRecord:
    """
    Script-event record. The body is kept verbatim; anything that does not
    parse as JSON is stored as an empty object.
    """
    parsed = parse_json_body(req.get_data(cache=True))
    ip = client_ip(req)
    return LogRecord(
        kind=LogKind.SCRIPT_EVENT,
        timestamp=local_timestamp(tz_name),
        client_ip=ip,
        user_agent=req.headers.get("User-Agent"),
        referer=req.headers.get("Referer"),
        origin=req.headers.get("Origin"),
        body=body_or_default(parsed),
        country=_country(geo, ip),
    )


def store_log(store: KVStore, record: LogRecord, millis: int | None = None) -> str:
    key = storage_key(millis)
    store.put(key, record.to_json())
    return key


def store_log_best_effort(store: KVStore, record: LogRecord) -> str | None:
    """
    Persist without letting a storage failure reach the caller.
    Returns the key, or None if the write failed.
    """
    try:
        key = store_log(store, record)
    except Exception:
        logger.exception("Failed to store %s log", record.kind.value)
        return None
    logger.debug("Stored %s log under %s", record.kind.value, key)
    return key
