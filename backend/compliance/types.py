"""Type definitions for the compliance module."""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any, Optional

from utils.time import resolve_zone

from . import config
from .errors import ComplianceConfigError, PresenceInputError
from .evidence import ComplianceFindingEvidence


class FindingType(str, Enum):
    """Kinds of compliance findings, one per rule."""
    REST_PERIOD_INSUFFICIENT = "rest_period_insufficient"
    MAX_HOURS_DAILY_EXCEEDED = "max_hours_daily_exceeded"
    MAX_HOURS_WEEKLY_EXCEEDED = "max_hours_weekly_exceeded"
    CONSECUTIVE_DAYS_EXCEEDED = "consecutive_days_exceeded"
    PRESENCE_REQUIREMENT = "presence_requirement"


class FindingSeverity(str, Enum):
    """Severity levels for findings."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class PresenceMode(str, Enum):
    MINIMUM_COUNT = "minimum_count"
    FIXED_DAYS = "fixed_days"


class Enforcement(str, Enum):
    NONE = "none"  # Detection disabled
    SOFT = "soft"
    HARD = "hard"


class EvaluationPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ComplianceConfigError(
            f"Invalid {field_name} {value!r} (expected one of: {allowed})"
        )


@dataclass
class WorkPeriod:
    """A recorded clock-in/clock-out segment."""
    id: str
    employee_id: str
    start_time: datetime
    end_time: Optional[datetime] = None  # None while the period is running
    duration_minutes: Optional[float] = None
    is_active: bool = False
    work_location_type: Optional[str] = None  # "office", "home", "field", "other"

    @property
    def is_completed(self) -> bool:
        """Only completed periods take part in detection."""
        return (
            self.end_time is not None
            and not self.is_active
            and self.duration_minutes is not None
        )


@dataclass
class EffectivePolicy:
    """Thresholds resolved from the work policy assigned to an employee."""
    policy_id: Optional[str] = None
    policy_name: Optional[str] = None
    max_daily_minutes: Optional[int] = None
    max_weekly_minutes: Optional[int] = None
    min_rest_period_minutes: Optional[int] = None
    max_consecutive_days: Optional[int] = None


@dataclass
class EmployeeWithPolicy:
    """Employee identity plus the timezone and policy used for detection."""
    id: str
    organization_id: str
    timezone: str = ""  # IANA name; empty means the configured default
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    policy: Optional[EffectivePolicy] = None

    @property
    def zone(self) -> tzinfo:
        """Timezone all calendar bucketing happens in."""
        name = self.timezone or config.DEFAULT_TIMEZONE
        try:
            return resolve_zone(name)
        except ValueError as e:
            raise ComplianceConfigError(f"Employee {self.id}: {e}") from e

    @property
    def work_policy_id(self) -> Optional[str]:
        return self.policy.policy_id if self.policy else None


@dataclass
class ThresholdOverrides:
    """Per-run thresholds that beat both the policy and the rule defaults."""
    rest_period_minutes: Optional[int] = None
    max_daily_minutes: Optional[int] = None
    max_weekly_minutes: Optional[int] = None
    max_consecutive_days: Optional[int] = None


ComplianceThresholds = ThresholdOverrides


@dataclass
class DateRange:
    """Inclusive detection window between two timezone-aware instants."""
    start: datetime
    end: datetime

    def __post_init__(self):
        for name, value in (("start", self.start), ("end", self.end)):
            if value.tzinfo is None or value.utcoffset() is None:
                raise ComplianceConfigError(f"DateRange.{name} must be timezone-aware")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class AbsenceDay:
    """A single day the employee was absent."""
    date: date
    reason: str

    def __post_init__(self):
        if isinstance(self.date, str):
            self.date = date.fromisoformat(self.date)


@dataclass
class HolidayDay:
    """A single public or company holiday."""
    date: date

    def __post_init__(self):
        if isinstance(self.date, str):
            self.date = date.fromisoformat(self.date)


@dataclass
class PresenceConfig:
    """On-site presence obligations for an employee."""
    presence_mode: PresenceMode
    required_onsite_days: int = 0  # minimum_count mode
    required_onsite_fixed_days: list[int] = field(default_factory=list)  # 1=Mon..7=Sun, fixed_days mode
    location_id: Optional[str] = None
    evaluation_period: EvaluationPeriod = EvaluationPeriod.WEEK
    enforcement: Enforcement = Enforcement.HARD

    def __post_init__(self):
        self.presence_mode = _coerce_enum(PresenceMode, self.presence_mode, "presence mode")
        self.evaluation_period = _coerce_enum(
            EvaluationPeriod, self.evaluation_period, "evaluation period"
        )
        self.enforcement = _coerce_enum(Enforcement, self.enforcement, "enforcement")

        if self.required_onsite_days < 0:
            raise ComplianceConfigError(
                f"required_onsite_days must not be negative, got {self.required_onsite_days}"
            )
        invalid = [d for d in self.required_onsite_fixed_days if not 1 <= d <= 7]
        if invalid:
            raise ComplianceConfigError(
                f"Fixed on-site days must be weekday numbers 1-7, got {invalid}"
            )


@dataclass
class RuleDetectionInput:
    """Everything a rule needs to check one employee over one window."""
    employee: EmployeeWithPolicy
    work_periods: list[WorkPeriod]
    date_range: DateRange
    threshold_overrides: Optional[ThresholdOverrides] = None


@dataclass(kw_only=True)
class PresenceRuleDetectionInput(RuleDetectionInput):
    """Detection input extended with presence configuration and calendars."""
    presence_config: PresenceConfig
    absence_days: list[AbsenceDay] = field(default_factory=list)
    holiday_days: list[HolidayDay] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.presence_config, PresenceConfig):
            raise PresenceInputError(
                f"presence_config must be a PresenceConfig, got {type(self.presence_config).__name__}"
            )


@dataclass
class ComplianceFindingResult:
    """A single detected violation."""
    employee_id: str
    type: FindingType
    severity: FindingSeverity
    occurrence_date: datetime
    period_start: datetime
    period_end: datetime
    evidence: ComplianceFindingEvidence
    work_policy_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the dictionary shape stored by the findings table."""
        return {
            "employeeId": self.employee_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "occurrenceDate": self.occurrence_date.isoformat(),
            "periodStart": self.period_start.isoformat(),
            "periodEnd": self.period_end.isoformat(),
            "evidence": self.evidence.to_dict(),
            "workPolicyId": self.work_policy_id,
        }


@dataclass
class RuleToggles:
    """Which rules an organization has switched on."""
    rest_period: bool = True
    max_hours_daily: bool = True
    max_hours_weekly: bool = True
    consecutive_days: bool = True
    presence_requirement: bool = True

    def is_enabled(self, finding_type: FindingType | str) -> bool:
        finding_type = FindingType(finding_type)
        return {
            FindingType.REST_PERIOD_INSUFFICIENT: self.rest_period,
            FindingType.MAX_HOURS_DAILY_EXCEEDED: self.max_hours_daily,
            FindingType.MAX_HOURS_WEEKLY_EXCEEDED: self.max_hours_weekly,
            FindingType.CONSECUTIVE_DAYS_EXCEEDED: self.consecutive_days,
            FindingType.PRESENCE_REQUIREMENT: self.presence_requirement,
        }[finding_type]


@dataclass
class ComplianceSettings:
    """Per-organization detection configuration."""
    detect_rest_period_violations: bool = True
    detect_max_hours_daily: bool = True
    detect_max_hours_weekly: bool = True
    detect_consecutive_days: bool = True
    detect_presence_requirement: bool = True

    # None = use the employee's work policy
    rest_period_minutes: Optional[int] = None
    max_daily_minutes: Optional[int] = None
    max_weekly_minutes: Optional[int] = None
    max_consecutive_days: Optional[int] = 6

    @classmethod
    def from_env(cls) -> "ComplianceSettings":
        """Create from the environment-backed config module."""
        return cls(
            detect_rest_period_violations=config.DETECT_REST_PERIOD,
            detect_max_hours_daily=config.DETECT_MAX_HOURS_DAILY,
            detect_max_hours_weekly=config.DETECT_MAX_HOURS_WEEKLY,
            detect_consecutive_days=config.DETECT_CONSECUTIVE_DAYS,
            detect_presence_requirement=config.DETECT_PRESENCE,
            rest_period_minutes=config.REST_PERIOD_MINUTES,
            max_daily_minutes=config.MAX_DAILY_MINUTES,
            max_weekly_minutes=config.MAX_WEEKLY_MINUTES,
            max_consecutive_days=config.MAX_CONSECUTIVE_DAYS,
        )

    def toggles(self) -> RuleToggles:
        return RuleToggles(
            rest_period=self.detect_rest_period_violations,
            max_hours_daily=self.detect_max_hours_daily,
            max_hours_weekly=self.detect_max_hours_weekly,
            consecutive_days=self.detect_consecutive_days,
            presence_requirement=self.detect_presence_requirement,
        )

    def threshold_overrides(self) -> ThresholdOverrides:
        return ThresholdOverrides(
            rest_period_minutes=self.rest_period_minutes,
            max_daily_minutes=self.max_daily_minutes,
            max_weekly_minutes=self.max_weekly_minutes,
            max_consecutive_days=self.max_consecutive_days,
        )


@dataclass
class DetectionStats:
    """Counters for one detection run."""
    employees_checked: int = 0
    rules_applied: int = 0
    findings_detected: int = 0
    failed_rules: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)

    def record(self, finding: ComplianceFindingResult) -> None:
        self.findings_detected += 1
        self.by_type[finding.type.value] = self.by_type.get(finding.type.value, 0) + 1
        self.by_severity[finding.severity.value] = self.by_severity.get(finding.severity.value, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "employees_checked": self.employees_checked,
            "rules_applied": self.rules_applied,
            "findings_detected": self.findings_detected,
            "failed_rules": self.failed_rules,
            "by_type": self.by_type,
            "by_severity": self.by_severity,
        }


@dataclass
class DetectionResult:
    """Findings and stats from a batch detection run."""
    findings: list[ComplianceFindingResult] = field(default_factory=list)
    stats: DetectionStats = field(default_factory=DetectionStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "stats": self.stats.to_dict(),
        }
