from datetime import UTC, datetime, timedelta


def utcnow_naive():
    """Return current UTC timestamp as naive datetime for DB timestamp columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def hours_from_now(hours):
    return utcnow_naive() + timedelta(hours=hours)


def isoformat_or_none(value):
    """Serialize a naive UTC timestamp the way the mobile client expects (``Z`` suffix)."""
    if value is None:
        return None
    return value.isoformat() + 'Z'
