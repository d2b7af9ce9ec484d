import json
import time
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo

KEY_PREFIX = "log:"
DEFAULT_SESSION = "unknown"
DEFAULT_TIMEZONE = "Europe/Berlin"


class LogKind(str, Enum):
    PIXEL = "pixel"
    SCRIPT_EVENT = "js"


# -----------------------------------------------------------------------------
# Keys / timestamps
# -----------------------------------------------------------------------------
def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def storage_key(millis: int | None = None) -> str:
    """
    `log:<epoch-ms>`. Two writes in the same millisecond share a key;
    the later one wins.
    """
    if millis is None:
        millis = epoch_millis()
    return f"{KEY_PREFIX}{millis}"


def local_timestamp(tz_name: str = DEFAULT_TIMEZONE, now: datetime | None = None) -> str:
    """
    Human readable wall-clock time, e.g. "2025-03-01 14:05:09 CET".
    Display only; ordering comes from the storage key.
    """
    tz = ZoneInfo(tz_name)
    if now is None:
        now = datetime.now(tz)
    else:
        now = now.astimezone(tz)
    return now.strftime("%Y-%m-%d %H:%M:%S %Z")


# -----------------------------------------------------------------------------
# Request bodies
# -----------------------------------------------------------------------------
class ParsedJson:
    def __init__(self, value):
        self.value = value


class ParseFailure:
    def __init__(self, error: str):
        self.error = error


def parse_json_body(raw: bytes | str):
    """Return ParsedJson or ParseFailure; never raises."""
    try:
        return ParsedJson(json.loads(raw))
    except (ValueError, TypeError, RecursionError) as e:
        return ParseFailure(str(e))


def body_or_default(parsed):
    if isinstance(parsed, ParsedJson):
        return parsed.value
    return {}


# -----------------------------------------------------------------------------
# Record
# -----------------------------------------------------------------------------
class LogRecord:
    """
    One stored beacon. Persisted as JSON with short field names
    (type, time, ip, ua, ...).
    """

    __slots__ = (
        "kind",
        "timestamp",
        "client_ip",
        "user_agent",
        "referer",
        "origin",
        "session",
        "section",
        "action",
        "body",
        "country",
    )

    def __init__(
        self,
        kind,
        timestamp,
        client_ip=None,
        user_agent=None,
        referer=None,
        origin=None,
        session=None,
        section=None,
        action=None,
        body=None,
        country=None,
    ):
        self.kind = LogKind(kind)
        self.timestamp = timestamp
        self.client_ip = client_ip
        self.user_agent = user_agent
        self.referer = referer
        self.origin = origin
        self.session = session
        self.section = section
        self.action = action
        self.body = body
        self.country = country

    def to_dict(self) -> dict:
        data = {
            "type": self.kind.value,
            "time": self.timestamp,
            "ip": self.client_ip,
            "ua": self.user_agent,
            "referer": self.referer,
            "country": self.country,
        }
        if self.kind is LogKind.PIXEL:
            data["session"] = self.session
            data["section"] = self.section
            data["action"] = self.action
        else:
            data["origin"] = self.origin
            data["body"] = self.body
            if self.session is not None:
                data["session"] = self.session
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict) -> "LogRecord":
        return cls(
            kind=data.get("type", LogKind.PIXEL.value),
            timestamp=data.get("time") or "",
            client_ip=data.get("ip"),
            user_agent=data.get("ua"),
            referer=data.get("referer"),
            origin=data.get("origin"),
            session=data.get("session"),
            section=data.get("section"),
            action=data.get("action"),
            body=data.get("body"),
            country=data.get("country"),
        )

    @classmethod
    def from_json(cls, raw: str) -> "LogRecord":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("stored log record is not a JSON object")
        return cls.from_dict(data)

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def body_compact(self) -> str:
        if not self.has_body:
            return ""
        return json.dumps(self.body, ensure_ascii=False, separators=(",", ":"))

    def body_pretty(self) -> str:
        if not self.has_body:
            return ""
        return json.dumps(self.body, ensure_ascii=False, indent=2)

    def searchable_text(self) -> str:
        """
        Lower-cased, space-joined haystack used by the dashboard filter.
        Not escaped; the template escapes it on interpolation.
        """
        parts = [
            self.kind.value,
            self.timestamp,
            self.session,
            self.action,
            self.section,
            self.client_ip,
            self.user_agent,
            self.referer,
            self.origin,
            self.body_compact(),
        ]
        return " ".join(p if isinstance(p, str) else ("" if p is None else str(p)) for p in parts).lower()

    def __eq__(self, other):
        if not isinstance(other, LogRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"LogRecord(kind={self.kind.value!r}, time={self.timestamp!r}, session={self.session!r})"
