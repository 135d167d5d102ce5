from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    # Colunas DateTime são gravadas como UTC sem tzinfo (compatível com SQLite).
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
