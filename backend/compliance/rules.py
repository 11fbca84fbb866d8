"""Compliance rules for recorded work time."""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, timedelta, tzinfo
from typing import Optional

from utils.time import (
    end_of_day,
    iso_week_bounds,
    iso_week_key,
    local_date,
    minutes_between,
    start_of_day,
)

from .evidence import (
    ConsecutiveDaysExceededEvidence,
    MaxHoursDailyExceededEvidence,
    MaxHoursWeeklyExceededEvidence,
    RestPeriodInsufficientEvidence,
)
from .severity import calculate_severity, calculate_severity_for_shortfall
from .types import (
    ComplianceFindingResult,
    DateRange,
    FindingType,
    RuleDetectionInput,
    WorkPeriod,
)

logger = logging.getLogger(__name__)

DEFAULT_REST_PERIOD_MINUTES = 660  # 11h
DEFAULT_MAX_DAILY_MINUTES = 600  # 10h
DEFAULT_MAX_WEEKLY_MINUTES = 2880  # 48h
DEFAULT_MAX_CONSECUTIVE_DAYS = 6


def resolve_threshold(
    override: Optional[int],
    policy_value: Optional[int],
    default: int,
) -> int:
    """Pick the first configured value: override, then policy, then default."""
    if override is not None:
        return override
    if policy_value is not None:
        return policy_value
    return default


def completed_periods(periods: list[WorkPeriod]) -> list[WorkPeriod]:
    """Drop running and incomplete periods."""
    return [p for p in periods if p.is_completed]


def day_in_range(day: date, zone: tzinfo, date_range: DateRange) -> bool:
    """Whether the local start of ``day`` falls inside the window."""
    return date_range.contains(start_of_day(day, zone))


def group_by_local_date(periods: list[WorkPeriod], zone: tzinfo) -> dict[date, list[WorkPeriod]]:
    """Bucket periods by the calendar date they start on."""
    buckets: dict[date, list[WorkPeriod]] = defaultdict(list)
    for period in periods:
        buckets[local_date(period.start_time, zone)].append(period)
    return buckets


def total_minutes(periods: list[WorkPeriod]) -> float:
    return sum(p.duration_minutes or 0 for p in periods)


class BaseRule(ABC):
    """Base class for compliance rules.

    Rules hold no state between calls, so one instance can serve any number
    of employees concurrently.
    """

    name: str
    type: FindingType
    description: str
    input_type: type = RuleDetectionInput

    @abstractmethod
    async def detect_violations(
        self, detection_input: RuleDetectionInput
    ) -> list[ComplianceFindingResult]:
        """Return zero or more findings for one employee and window."""
        pass

    def _threshold(
        self,
        detection_input: RuleDetectionInput,
        override_field: str,
        policy_field: str,
        default: int,
    ) -> int:
        overrides = detection_input.threshold_overrides
        policy = detection_input.employee.policy
        return resolve_threshold(
            getattr(overrides, override_field) if overrides else None,
            getattr(policy, policy_field) if policy else None,
            default,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.type.value!r})"


class RestPeriodRule(BaseRule):
    """Detects gaps between consecutive work periods shorter than the minimum rest."""

    name = "rest_period"
    type = FindingType.REST_PERIOD_INSUFFICIENT
    description = "Detects insufficient rest between consecutive work periods"

    async def detect_violations(
        self, detection_input: RuleDetectionInput
    ) -> list[ComplianceFindingResult]:
        employee = detection_input.employee
        zone = employee.zone
        required = self._threshold(
            detection_input, "rest_period_minutes", "min_rest_period_minutes",
            DEFAULT_REST_PERIOD_MINUTES,
        )

        periods = sorted(
            completed_periods(detection_input.work_periods), key=lambda p: p.end_time
        )
        findings: list[ComplianceFindingResult] = []

        for current, following in zip(periods, periods[1:]):
            last_clock_out = current.end_time.astimezone(zone)
            next_clock_in = following.start_time.astimezone(zone)
            rest_minutes = minutes_between(last_clock_out, next_clock_in)

            if rest_minutes >= required:
                continue

            findings.append(ComplianceFindingResult(
                employee_id=employee.id,
                type=self.type,
                severity=calculate_severity_for_shortfall(rest_minutes, required),
                occurrence_date=next_clock_in,
                period_start=last_clock_out,
                period_end=next_clock_in,
                evidence=RestPeriodInsufficientEvidence(
                    last_clock_out_time=last_clock_out,
                    next_clock_in_time=next_clock_in,
                    actual_rest_minutes=rest_minutes,
                    required_rest_minutes=required,
                    shortfall_minutes=required - rest_minutes,
                ),
                work_policy_id=employee.work_policy_id,
            ))

        logger.debug(f"{self.name}: {len(findings)} finding(s) for employee {employee.id} (min {required} min)")
        return findings


class MaxDailyHoursRule(BaseRule):
    """Flags calendar days whose worked time exceeds the daily limit."""

    name = "max_hours_daily"
    type = FindingType.MAX_HOURS_DAILY_EXCEEDED
    description = "Detects days where worked time exceeds the daily maximum"

    async def detect_violations(
        self, detection_input: RuleDetectionInput
    ) -> list[ComplianceFindingResult]:
        employee = detection_input.employee
        zone = employee.zone
        limit = self._threshold(
            detection_input, "max_daily_minutes", "max_daily_minutes",
            DEFAULT_MAX_DAILY_MINUTES,
        )

        buckets = group_by_local_date(completed_periods(detection_input.work_periods), zone)
        findings: list[ComplianceFindingResult] = []

        for day in sorted(buckets):
            if not day_in_range(day, zone, detection_input.date_range):
                continue

            periods = buckets[day]
            worked = total_minutes(periods)
            if worked <= limit:
                continue

            day_start = start_of_day(day, zone)
            findings.append(ComplianceFindingResult(
                employee_id=employee.id,
                type=self.type,
                severity=calculate_severity(worked, limit),
                occurrence_date=day_start,
                period_start=day_start,
                period_end=end_of_day(day, zone),
                evidence=MaxHoursDailyExceededEvidence(
                    date=day,
                    worked_minutes=worked,
                    limit_minutes=limit,
                    exceedance_minutes=worked - limit,
                    work_period_ids=[p.id for p in periods],
                ),
                work_policy_id=employee.work_policy_id,
            ))

        logger.debug(f"{self.name}: {len(findings)} finding(s) for employee {employee.id} (limit {limit} min)")
        return findings


class MaxWeeklyHoursRule(BaseRule):
    """Flags ISO weeks whose worked time exceeds the weekly limit."""

    name = "max_hours_weekly"
    type = FindingType.MAX_HOURS_WEEKLY_EXCEEDED
    description = "Detects weeks where worked time exceeds the weekly maximum"

    async def detect_violations(
        self, detection_input: RuleDetectionInput
    ) -> list[ComplianceFindingResult]:
        employee = detection_input.employee
        zone = employee.zone
        date_range = detection_input.date_range
        limit = self._threshold(
            detection_input, "max_weekly_minutes", "max_weekly_minutes",
            DEFAULT_MAX_WEEKLY_MINUTES,
        )

        weeks: dict[tuple[int, int], list[WorkPeriod]] = defaultdict(list)
        for period in completed_periods(detection_input.work_periods):
            weeks[iso_week_key(local_date(period.start_time, zone))].append(period)

        findings: list[ComplianceFindingResult] = []

        for week_key in sorted(weeks):
            monday, sunday = iso_week_bounds(*week_key)
            week_start = start_of_day(monday, zone)
            week_end = end_of_day(sunday, zone)

            # Weeks that only partly overlap the window still count in full
            if week_end < date_range.start or week_start > date_range.end:
                continue

            periods = weeks[week_key]
            worked = total_minutes(periods)
            if worked <= limit:
                continue

            findings.append(ComplianceFindingResult(
                employee_id=employee.id,
                type=self.type,
                severity=calculate_severity(worked, limit),
                occurrence_date=week_end,
                period_start=week_start,
                period_end=week_end,
                evidence=MaxHoursWeeklyExceededEvidence(
                    week_start_date=monday,
                    week_end_date=sunday,
                    worked_minutes=worked,
                    limit_minutes=limit,
                    exceedance_minutes=worked - limit,
                    work_period_ids=[p.id for p in periods],
                ),
                work_policy_id=employee.work_policy_id,
            ))

        logger.debug(f"{self.name}: {len(findings)} finding(s) for employee {employee.id} (limit {limit} min)")
        return findings


def find_streaks(days: list[date]) -> list[list[date]]:
    """Split sorted, distinct dates into maximal runs of consecutive days."""
    streaks: list[list[date]] = []
    for day in days:
        if streaks and day - streaks[-1][-1] == timedelta(days=1):
            streaks[-1].append(day)
        else:
            streaks.append([day])
    return streaks


class ConsecutiveDaysRule(BaseRule):
    """Flags runs of consecutive working days longer than allowed."""

    name = "consecutive_days"
    type = FindingType.CONSECUTIVE_DAYS_EXCEEDED
    description = "Detects too many consecutive working days"

    async def detect_violations(
        self, detection_input: RuleDetectionInput
    ) -> list[ComplianceFindingResult]:
        employee = detection_input.employee
        zone = employee.zone
        max_days = self._threshold(
            detection_input, "max_consecutive_days", "max_consecutive_days",
            DEFAULT_MAX_CONSECUTIVE_DAYS,
        )

        work_dates = sorted({
            local_date(p.start_time, zone)
            for p in completed_periods(detection_input.work_periods)
        })
        findings: list[ComplianceFindingResult] = []

        for streak in find_streaks(work_dates):
            if len(streak) <= max_days:
                continue
            # A streak belongs to the window its last day falls in
            first_day, last_day = streak[0], streak[-1]
            if not day_in_range(last_day, zone, detection_input.date_range):
                continue

            findings.append(ComplianceFindingResult(
                employee_id=employee.id,
                type=self.type,
                severity=calculate_severity(len(streak), max_days),
                occurrence_date=start_of_day(last_day, zone),
                period_start=start_of_day(first_day, zone),
                period_end=end_of_day(last_day, zone),
                evidence=ConsecutiveDaysExceededEvidence(
                    consecutive_days=len(streak),
                    max_allowed_days=max_days,
                    start_date=first_day,
                    end_date=last_day,
                    work_dates=streak,
                ),
                work_policy_id=employee.work_policy_id,
            ))

        logger.debug(f"{self.name}: {len(findings)} finding(s) for employee {employee.id} (max {max_days} days)")
        return findings
