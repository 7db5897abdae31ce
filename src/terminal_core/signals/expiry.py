"""Signal expiry — pure wall-clock rule, no stored state."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

DEFAULT_TTL = timedelta(minutes=15)


def as_utc(ts: datetime) -> datetime:
    """Treat naive timestamps (as SQLite returns them) as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def expires_at(
    created_at: datetime,
    explicit_expiry: datetime | None,
    default_ttl: timedelta = DEFAULT_TTL,
) -> datetime:
    """Explicit expiry when set, otherwise created_at + default_ttl."""
    if explicit_expiry is not None:
        return as_utc(explicit_expiry)
    return as_utc(created_at) + default_ttl


def is_expired(
    created_at: datetime,
    explicit_expiry: datetime | None,
    now: datetime,
    default_ttl: timedelta = DEFAULT_TTL,
) -> bool:
    """expired = now > (expires_at or created_at + ttl). Once true, stays true."""
    return as_utc(now) > expires_at(created_at, explicit_expiry, default_ttl)
