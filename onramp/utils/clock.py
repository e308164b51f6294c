from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how datetimes are stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() + "Z" if value else None
