from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC: SQLite hands datetimes back without tzinfo
    return datetime.now(timezone.utc).replace(tzinfo=None)
