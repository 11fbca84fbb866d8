import itertools
from datetime import date, datetime, timedelta

import pytest
from dateutil import tz

from compliance.types import (
    DateRange,
    EffectivePolicy,
    EmployeeWithPolicy,
    RuleDetectionInput,
    ThresholdOverrides,
    WorkPeriod,
)

TIMEZONE = "Europe/Berlin"
ZONE = tz.gettz(TIMEZONE)
# Monday
WEEK_START = date(2026, 2, 9)


def local(day: date, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=ZONE)


@pytest.fixture
def employee():
    return EmployeeWithPolicy(
        id="emp-001",
        organization_id="org-001",
        timezone=TIMEZONE,
        first_name="Test",
        last_name="Employee",
        policy=EffectivePolicy(policy_id="policy-001", policy_name="Standard Policy"),
    )


@pytest.fixture
def make_period():
    """Factory to create completed WorkPeriod objects."""
    counter = itertools.count(1)

    def _make_period(
        start: datetime,
        minutes: float = 480,
        location: str | None = None,
        **overrides,
    ) -> WorkPeriod:
        values = dict(
            id=f"wp-{next(counter)}",
            employee_id="emp-001",
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            duration_minutes=minutes,
            is_active=False,
            work_location_type=location,
        )
        values.update(overrides)
        return WorkPeriod(**values)
    return _make_period


@pytest.fixture
def week_range():
    """Monday 00:00 to Sunday 23:59:59 of the test week."""
    return DateRange(
        start=local(WEEK_START),
        end=local(WEEK_START + timedelta(days=6), 23, 59) + timedelta(seconds=59),
    )


@pytest.fixture
def make_input(employee, week_range):
    """Factory to create RuleDetectionInput objects."""
    def _make_input(
        work_periods: list[WorkPeriod],
        date_range: DateRange | None = None,
        overrides: ThresholdOverrides | None = None,
        emp: EmployeeWithPolicy | None = None,
    ) -> RuleDetectionInput:
        return RuleDetectionInput(
            employee=emp or employee,
            work_periods=work_periods,
            date_range=date_range or week_range,
            threshold_overrides=overrides,
        )
    return _make_input
