from datetime import UTC


def as_utc(value):
    """Treat naive datetimes (as returned by some database providers) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
