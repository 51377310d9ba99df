"""Helpers de dates / Date helpers.

Les dates sont stockees en UTC naif (SQLite ne garde pas le fuseau).
Datetimes are stored as naive UTC (SQLite does not keep the timezone).
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Maintenant en UTC naif / Now as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Convertir une date avec fuseau en UTC naif / Convert an aware datetime to naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_hhmm(value: str) -> int:
    """Convertir HH:MM en minutes depuis minuit / Convert HH:MM to minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)
