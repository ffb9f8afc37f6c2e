"""UTC 시간 헬퍼 — UTC time helpers shared by models and services."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """현재 UTC 시각 (Current timezone-aware UTC instant)."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """타임존 없는 값은 UTC로 간주합니다.

    Treat naive datetimes as UTC. SQLite hands back naive values for
    ``DateTime(timezone=True)`` columns; PostgreSQL returns aware ones.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
