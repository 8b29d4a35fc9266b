import bleach
from datetime import datetime, timezone, timedelta


def utcnow():
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value):
    """Parse an ISO-8601 string into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    else:
        raise ValueError("A valid ISO date is required")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def extend_from_now(hours=0, minutes=0, now=None):
    now = now or utcnow()
    return now + timedelta(hours=int(hours or 0), minutes=int(minutes or 0))


def clean_text(value):
    """Strip every HTML tag from teacher-authored text."""
    if value is None:
        return None
    return bleach.clean(str(value), tags=[], strip=True).strip()


def parse_optional_int(value, field_name, minimum=None):
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer")
    if minimum is not None and number < minimum:
        raise ValueError(f"{field_name} must be at least {minimum}")
    return number


def format_duration(seconds):
    if seconds is None:
        return None
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"
