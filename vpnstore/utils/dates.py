# vpnstore/utils/dates.py
from datetime import datetime


def utcnow() -> datetime:
    return datetime.utcnow()


def iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat() + "Z" if value.tzinfo is None else value.isoformat()
