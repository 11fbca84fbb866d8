"""Compliance detection engine that runs the rule registry over employees."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from dateutil.relativedelta import relativedelta

from utils.log import setup_logging
from utils.time import end_of_day, iter_dates, local_date, start_of_day, utc_now

from . import config
from .registry import RuleRegistry, create_default_registry
from .rules import BaseRule
from .types import (
    AbsenceDay,
    ComplianceFindingResult,
    ComplianceSettings,
    DateRange,
    DetectionResult,
    DetectionStats,
    Enforcement,
    EmployeeWithPolicy,
    EvaluationPeriod,
    HolidayDay,
    PresenceConfig,
    PresenceRuleDetectionInput,
    RuleDetectionInput,
    WorkPeriod,
)

logger = logging.getLogger(__name__)


@dataclass
class PresenceDetectionData:
    """Presence configuration and calendars for one evaluation window."""
    config: PresenceConfig
    date_range: DateRange
    work_periods: list[WorkPeriod] = field(default_factory=list)
    absence_days: list[AbsenceDay] = field(default_factory=list)
    holiday_days: list[HolidayDay] = field(default_factory=list)


@dataclass
class EmployeeDetectionData:
    """Everything loaded for one employee before detection."""
    employee: EmployeeWithPolicy
    work_periods: list[WorkPeriod] = field(default_factory=list)
    presence: Optional[PresenceDetectionData] = None


class ComplianceEngine:
    """
    Main engine for running compliance detection.

    Runs every enabled rule for each employee and collects the findings.
    Persisting them is up to the caller.
    """

    def __init__(self, registry: Optional[RuleRegistry] = None):
        self.registry = registry if registry is not None else create_default_registry()

    async def detect_for_employee(
        self,
        data: EmployeeDetectionData,
        date_range: DateRange,
        settings: Optional[ComplianceSettings] = None,
    ) -> list[ComplianceFindingResult]:
        """
        Detect findings for a single employee.

        Args:
            data: The employee, their work periods and optional presence data
            date_range: Detection window for the work-time rules
            settings: Organization settings; defaults enable every rule

        Returns:
            Findings from every rule that ran successfully
        """
        settings = settings or ComplianceSettings()
        return await self._detect(data, date_range, settings, DetectionStats())

    async def detect_findings(
        self,
        batch: list[EmployeeDetectionData],
        date_range: DateRange,
        settings: Optional[ComplianceSettings] = None,
    ) -> DetectionResult:
        """
        Detect findings for a batch of employees.

        A failing rule is logged and skipped; the other rules and employees
        still run.

        Args:
            batch: Loaded data per employee
            date_range: Detection window for the work-time rules
            settings: Organization settings; defaults enable every rule

        Returns:
            DetectionResult with all findings and run statistics
        """
        settings = settings or ComplianceSettings()
        enabled_rules = self.registry.get_enabled_rules(settings.toggles())

        if not enabled_rules:
            logger.info("No compliance rules enabled, skipping detection")
            return DetectionResult()

        logger.info(
            f"Starting compliance detection for {len(batch)} employee(s), "
            f"{date_range.start.isoformat()} - {date_range.end.isoformat()}, "
            f"rules: {', '.join(rule.name for rule in enabled_rules)}"
        )

        result = DetectionResult()
        result.stats.rules_applied = len(enabled_rules)

        for data in batch:
            result.stats.employees_checked += 1
            findings = await self._detect(data, date_range, settings, result.stats)
            for finding in findings:
                result.findings.append(finding)
                result.stats.record(finding)

        logger.info(
            f"Compliance detection completed: {result.stats.findings_detected} finding(s) "
            f"for {result.stats.employees_checked} employee(s), "
            f"{result.stats.failed_rules} failed rule run(s)"
        )
        return result

    def _build_input(
        self,
        rule: BaseRule,
        data: EmployeeDetectionData,
        date_range: DateRange,
        settings: ComplianceSettings,
    ) -> Optional[RuleDetectionInput]:
        """
        Shape the detection input a rule declares through ``input_type``.

        Returns None when the employee has nothing for the rule to check.
        """
        employee = data.employee

        if issubclass(rule.input_type, PresenceRuleDetectionInput):
            # Presence runs on its own evaluation window, without overrides
            presence = data.presence
            if presence is None or not employee.work_policy_id:
                return None
            return rule.input_type(
                employee=employee,
                work_periods=presence.work_periods,
                date_range=presence.date_range,
                threshold_overrides=None,
                presence_config=presence.config,
                absence_days=presence.absence_days,
                holiday_days=presence.holiday_days,
            )

        if not data.work_periods:
            return None
        return rule.input_type(
            employee=employee,
            work_periods=data.work_periods,
            date_range=date_range,
            threshold_overrides=settings.threshold_overrides(),
        )

    async def _detect(
        self,
        data: EmployeeDetectionData,
        date_range: DateRange,
        settings: ComplianceSettings,
        stats: DetectionStats,
    ) -> list[ComplianceFindingResult]:
        findings: list[ComplianceFindingResult] = []

        for rule in self.registry.get_enabled_rules(settings.toggles()):
            try:
                rule_input = self._build_input(rule, data, date_range, settings)
                if rule_input is None:
                    continue
                findings.extend(await rule.detect_violations(rule_input))
            except Exception:
                stats.failed_rules += 1
                logger.exception(f"Rule {rule.name} failed for employee {data.employee.id}")

        return findings


def run_detection(
    batch: list[EmployeeDetectionData],
    date_range: DateRange,
    settings: Optional[ComplianceSettings] = None,
    registry: Optional[RuleRegistry] = None,
) -> DetectionResult:
    """
    Run a batch detection from synchronous code.

    Sets up console logging at the configured level and uses the
    environment-backed settings unless others are passed in. Must not be
    called from inside a running event loop.
    """
    setup_logging(config.LOG_LEVEL)
    settings = settings or ComplianceSettings.from_env()
    engine = ComplianceEngine(registry)
    return asyncio.run(engine.detect_findings(batch, date_range, settings))


def lookback_range(date_range: DateRange, days: int = 1) -> DateRange:
    """
    Widen a detection window for loading work periods.

    The extra day on each side lets the rest rule see gaps that cross the
    window boundary.
    """
    return DateRange(
        start=date_range.start - timedelta(days=days),
        end=date_range.end + timedelta(days=days),
    )


# ============================================================================
# Presence scheduling helpers
# ============================================================================

DAY_NAME_TO_WEEKDAY = {
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
    "sunday": 7,
}

# Stored enforcement values -> rule enforcement
ENFORCEMENT_MAP = {
    "block": Enforcement.HARD,
    "warn": Enforcement.SOFT,
    "none": Enforcement.NONE,
}

# Stored cadence -> evaluation period; biweekly still evaluates whole weeks
CADENCE_MAP = {
    "weekly": EvaluationPeriod.WEEK,
    "biweekly": EvaluationPeriod.WEEK,
    "monthly": EvaluationPeriod.MONTH,
}


@dataclass
class AbsenceRange:
    """An approved absence as stored, possibly spanning several days."""
    start_date: date
    end_date: date
    reason: str = "absence"


@dataclass
class HolidayRange:
    """A holiday as stored, possibly spanning several days."""
    start_date: date
    end_date: date
    name: Optional[str] = None


def is_presence_evaluation_day(
    cadence: str, zone: tzinfo, now: Optional[datetime] = None
) -> bool:
    """
    Whether presence should be evaluated today for the given cadence.

    "Today" is the calendar day in ``zone``, the employee's timezone.

    - weekly: every Monday
    - biweekly: Mondays of even ISO weeks
    - monthly: the 1st of each month
    """
    today = local_date(now or utc_now(), zone)
    if cadence == "weekly":
        return today.isoweekday() == 1
    if cadence == "biweekly":
        return today.isoweekday() == 1 and today.isocalendar()[1] % 2 == 0
    if cadence == "monthly":
        return today.day == 1
    return False


def get_presence_evaluation_range(
    cadence: str, zone: tzinfo, now: Optional[datetime] = None
) -> DateRange:
    """
    The completed window to evaluate, looking back from ``now``.

    Day bounds are local midnights in ``zone``, the employee's timezone.

    - weekly: previous full week (Mon-Sun)
    - biweekly: previous two full weeks
    - monthly: previous full month

    Unknown cadences fall back to the previous week.
    """
    today = local_date(now or utc_now(), zone)
    this_monday = today - timedelta(days=today.weekday())

    if cadence == "biweekly":
        first, last = this_monday - timedelta(weeks=2), this_monday - timedelta(days=1)
    elif cadence == "monthly":
        this_month = today.replace(day=1)
        first, last = this_month - relativedelta(months=1), this_month - timedelta(days=1)
    else:
        first, last = this_monday - timedelta(weeks=1), this_monday - timedelta(days=1)

    return DateRange(start=start_of_day(first, zone), end=end_of_day(last, zone))


def parse_fixed_days(raw) -> list[int]:
    """
    Convert stored fixed days (JSON array of day names) into weekday numbers.

    Unknown names are dropped; unreadable values are logged and yield no days.
    """
    if raw is None or raw == "":
        return []

    names = raw
    if isinstance(raw, str):
        try:
            names = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse fixed on-site days: {raw!r}")
            return []

    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        logger.warning(f"Fixed on-site days must be a list of day names, got {raw!r}")
        return []

    return [DAY_NAME_TO_WEEKDAY[n.lower()] for n in names if n.lower() in DAY_NAME_TO_WEEKDAY]


def build_presence_config(
    presence_mode: str,
    required_onsite_days: Optional[int] = None,
    required_onsite_fixed_days=None,
    location_id: Optional[str] = None,
    cadence: str = "weekly",
    enforcement: str = "none",
) -> PresenceConfig:
    """
    Build a PresenceConfig from stored policy values.

    Raises:
        ComplianceConfigError: If the presence mode is unknown
    """
    mapped_enforcement = ENFORCEMENT_MAP.get(enforcement)
    if mapped_enforcement is None:
        logger.warning(f"Unknown presence enforcement {enforcement!r}, treating as 'none'")
        mapped_enforcement = Enforcement.NONE

    return PresenceConfig(
        presence_mode=presence_mode,
        required_onsite_days=required_onsite_days or 0,
        required_onsite_fixed_days=parse_fixed_days(required_onsite_fixed_days),
        location_id=location_id,
        evaluation_period=CADENCE_MAP.get(cadence, EvaluationPeriod.WEEK),
        enforcement=mapped_enforcement,
    )


def _clipped_dates(
    start_date: date, end_date: date, window: DateRange, zone: tzinfo
) -> list[date]:
    first = max(start_date, local_date(window.start, zone))
    last = min(end_date, local_date(window.end, zone))
    return list(iter_dates(first, last))


def expand_absence_days(
    absences: list[AbsenceRange], window: DateRange, zone: tzinfo
) -> list[AbsenceDay]:
    """One AbsenceDay per absent date inside the window, in the employee's zone."""
    return [
        AbsenceDay(date=day, reason=absence.reason)
        for absence in absences
        for day in _clipped_dates(absence.start_date, absence.end_date, window, zone)
    ]


def expand_holiday_days(
    holidays: list[HolidayRange], window: DateRange, zone: tzinfo
) -> list[HolidayDay]:
    """One HolidayDay per holiday date inside the window, in the employee's zone."""
    return [
        HolidayDay(date=day)
        for holiday in holidays
        for day in _clipped_dates(holiday.start_date, holiday.end_date, window, zone)
    ]
