from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime.

    Timestamp columns are TIMESTAMP WITH TIME ZONE; binding a naive value
    fails in current SQLModel/SQLAlchemy releases.
    """
    return datetime.now(timezone.utc)
