"""Time-related utility functions."""

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from dateutil import tz


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def resolve_zone(name: str) -> tzinfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is empty or unknown
    """
    # gettz("") returns the machine's local zone, never what a caller wants here
    if not name:
        raise ValueError("Timezone name must not be empty")
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


def local_date(moment: datetime, zone: tzinfo) -> date:
    """Calendar date of an instant as seen in the given zone."""
    return moment.astimezone(zone).date()


def start_of_day(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)


def end_of_day(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.max, tzinfo=zone)


def iso_week_key(day: date) -> tuple[int, int]:
    """(ISO week-year, ISO week number) for a date."""
    iso = day.isocalendar()
    return iso[0], iso[1]


def iso_week_bounds(week_year: int, week_number: int) -> tuple[date, date]:
    """Monday and Sunday of an ISO week."""
    return (
        date.fromisocalendar(week_year, week_number, 1),
        date.fromisocalendar(week_year, week_number, 7),
    )


def iter_dates(first: date, last: date) -> Iterator[date]:
    """Yield every date from first to last, inclusive."""
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes between two aware instants, counted in UTC across DST changes."""
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds() / 60
