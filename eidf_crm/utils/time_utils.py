"""Utilidades de fechas en UTC."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Fecha actual en UTC con zona horaria."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normaliza un datetime a UTC con zona horaria.

    SQLite devuelve datetimes sin tzinfo aunque se guarden en UTC,
    por lo que los naive se interpretan como UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """ISO 8601 de un datetime normalizado a UTC, o None."""
    value = ensure_utc(value)
    return value.isoformat() if value else None


def start_of_month(now: Optional[datetime] = None) -> datetime:
    """Primer instante del mes en curso (UTC)."""
    now = ensure_utc(now) if now else utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
