"""Shared utilities."""

from .time import (
    end_of_day,
    iso_week_bounds,
    iso_week_key,
    iter_dates,
    local_date,
    minutes_between,
    resolve_zone,
    start_of_day,
    utc_now,
)

__all__ = [
    "end_of_day",
    "iso_week_bounds",
    "iso_week_key",
    "iter_dates",
    "local_date",
    "minutes_between",
    "resolve_zone",
    "start_of_day",
    "utc_now",
]
