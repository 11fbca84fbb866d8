"""On-site presence requirement rule.

Supports two modes:

- ``minimum_count``: at least N on-site days per evaluation window
- ``fixed_days``: on-site on specific weekdays

Absences and holidays excuse days in both modes.
"""

import logging
from datetime import date

from utils.time import iter_dates, local_date, start_of_day

from .errors import ComplianceConfigError, PresenceInputError
from .evidence import PresenceRequirementEvidence
from .rules import BaseRule, completed_periods
from .severity import calculate_presence_severity
from .types import (
    ComplianceFindingResult,
    Enforcement,
    FindingType,
    PresenceMode,
    PresenceRuleDetectionInput,
    RuleDetectionInput,
    WorkPeriod,
)

logger = logging.getLogger(__name__)

ONSITE_LOCATION_TYPES = frozenset({"office", "field"})

WEEKDAY_NAMES = {
    1: "monday",
    2: "tuesday",
    3: "wednesday",
    4: "thursday",
    5: "friday",
    6: "saturday",
    7: "sunday",
}


def is_onsite(period: WorkPeriod) -> bool:
    """Office and field work count as on-site; home, other and untagged do not."""
    return period.work_location_type in ONSITE_LOCATION_TYPES


def weekday_dates(first: date, last: date) -> list[date]:
    """Monday-Friday dates between first and last, inclusive."""
    return [d for d in iter_dates(first, last) if d.isoweekday() <= 5]


class PresenceRequirementRule(BaseRule):
    """Detects when on-site presence requirements are not met."""

    name = "presence_requirement"
    type = FindingType.PRESENCE_REQUIREMENT
    description = "Detects when on-site presence requirements are not met"
    input_type = PresenceRuleDetectionInput

    async def detect_violations(
        self, detection_input: RuleDetectionInput
    ) -> list[ComplianceFindingResult]:
        if not isinstance(detection_input, PresenceRuleDetectionInput):
            raise PresenceInputError(
                f"{self.name} needs a PresenceRuleDetectionInput, got {type(detection_input).__name__}"
            )

        presence_config = detection_input.presence_config
        if presence_config.enforcement == Enforcement.NONE:
            return []

        employee = detection_input.employee
        zone = employee.zone

        # Excluded dates keep first-seen order; reasons run parallel to the inputs
        excluded_dates: dict[date, None] = {}
        excluded_reasons: list[str] = []
        for absence in detection_input.absence_days:
            excluded_dates[absence.date] = None
            excluded_reasons.append(absence.reason)
        for holiday in detection_input.holiday_days:
            excluded_dates[holiday.date] = None
            excluded_reasons.append("holiday")

        # Several clock segments on one day: one on-site day, every id kept
        onsite_dates: set[date] = set()
        onsite_work_period_ids: list[str] = []
        for period in completed_periods(detection_input.work_periods):
            if not is_onsite(period):
                continue
            onsite_dates.add(local_date(period.start_time, zone))
            onsite_work_period_ids.append(period.id)

        actual_onsite_days = len(onsite_dates)
        first_day = local_date(detection_input.date_range.start, zone)
        last_day = local_date(detection_input.date_range.end, zone)

        missed_days = None
        if presence_config.presence_mode == PresenceMode.MINIMUM_COUNT:
            available = [d for d in weekday_dates(first_day, last_day) if d not in excluded_dates]
            required_days = min(presence_config.required_onsite_days, len(available))
            if actual_onsite_days >= required_days:
                return []
            severity = calculate_presence_severity(actual_onsite_days, required_days)

        elif presence_config.presence_mode == PresenceMode.FIXED_DAYS:
            missed_days = []
            for weekday in presence_config.required_onsite_fixed_days:
                day_name = WEEKDAY_NAMES[weekday]
                for day in iter_dates(first_day, last_day):
                    if day.isoweekday() != weekday or day in excluded_dates:
                        continue
                    if day not in onsite_dates and day_name not in missed_days:
                        missed_days.append(day_name)
            if not missed_days:
                return []
            required_days = len(presence_config.required_onsite_fixed_days)
            severity = calculate_presence_severity(required_days - len(missed_days), required_days)

        else:
            raise ComplianceConfigError(f"Unknown presence mode: {presence_config.presence_mode!r}")

        logger.debug(
            f"{self.name}: employee {employee.id} on-site {actual_onsite_days}/{required_days} "
            f"({presence_config.presence_mode.value}), missed {missed_days}"
        )

        period_start = start_of_day(first_day, zone)
        period_end = start_of_day(last_day, zone)
        evidence = PresenceRequirementEvidence(
            mode=presence_config.presence_mode.value,
            evaluation_start=first_day,
            evaluation_end=last_day,
            required_days=required_days,
            actual_onsite_days=actual_onsite_days,
            missed_days=missed_days,
            excluded_days=list(excluded_dates),
            excluded_reasons=excluded_reasons,
            onsite_work_period_ids=onsite_work_period_ids,
            location_id=presence_config.location_id,
            # Resolving a display name is up to the caller
            location_name=None,
        )

        return [ComplianceFindingResult(
            employee_id=employee.id,
            type=self.type,
            severity=severity,
            occurrence_date=period_end,
            period_start=period_start,
            period_end=period_end,
            evidence=evidence,
            work_policy_id=employee.work_policy_id,
        )]
