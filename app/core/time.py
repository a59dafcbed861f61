from datetime import datetime, timezone


def utcnow() -> datetime:
    """UTC sin zona horaria, igual que se guardan las fechas de carrera."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
