# agency_api/utils/dates.py

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def bucket_key(value: datetime, group_by: str) -> str:
    """
    Key of the day / week / month bucket a timestamp belongs to.
    Weeks start on Monday, months are keyed YYYY-MM.
    """
    day = as_utc(value).date()
    if group_by == "week":
        return (day - timedelta(days=day.weekday())).isoformat()
    if group_by == "month":
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


def day_start(value: date) -> datetime:
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def day_end(value: date) -> datetime:
    return day_start(value) + timedelta(days=1) - timedelta(microseconds=1)
