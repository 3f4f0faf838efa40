import datetime
from typing import Any, Optional

from slogengine.errors import InvalidNameError

MIN_DATE = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def ensure_safe_name(value: str) -> str:
    """Reject values that would escape their directory when joined as a path."""
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise InvalidNameError(f"Invalid name: {value!r}")
    return value


def ensure_aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def coerce_datetime(value: Any) -> Optional[datetime.datetime]:
    """Turn a loosely typed header value into an aware datetime, or None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return ensure_aware(value)
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(
            value, datetime.time.min, tzinfo=datetime.timezone.utc
        )
    try:
        return ensure_aware(datetime.datetime.fromisoformat(str(value).strip()))
    except ValueError:
        return None


def coerce_str(value: Any) -> Optional[str]:
    """Turn a loosely typed header value into a string; blanks become None."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(item) for item in value if item is not None)
    text = str(value)
    return text if text.strip() else None


def format_datetime(value: datetime.datetime) -> str:
    return ensure_aware(value).isoformat(timespec="seconds")
