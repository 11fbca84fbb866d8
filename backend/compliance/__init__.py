"""Labor law compliance detection over recorded work time."""

from .types import (
    AbsenceDay,
    ComplianceFindingResult,
    ComplianceSettings,
    ComplianceThresholds,
    DateRange,
    DetectionResult,
    DetectionStats,
    EffectivePolicy,
    EmployeeWithPolicy,
    Enforcement,
    EvaluationPeriod,
    FindingSeverity,
    FindingType,
    HolidayDay,
    PresenceConfig,
    PresenceMode,
    PresenceRuleDetectionInput,
    RuleDetectionInput,
    RuleToggles,
    ThresholdOverrides,
    WorkPeriod,
)
from .errors import ComplianceConfigError, ComplianceError, PresenceInputError
from .evidence import parse_evidence
from .severity import (
    calculate_presence_severity,
    calculate_severity,
    calculate_severity_for_shortfall,
)
from .rules import (
    BaseRule,
    ConsecutiveDaysRule,
    MaxDailyHoursRule,
    MaxWeeklyHoursRule,
    RestPeriodRule,
)
from .presence import PresenceRequirementRule
from .registry import RuleRegistry, create_default_registry, create_default_rules
from .engine import (
    ComplianceEngine,
    EmployeeDetectionData,
    PresenceDetectionData,
    build_presence_config,
    get_presence_evaluation_range,
    is_presence_evaluation_day,
    lookback_range,
    run_detection,
)

__all__ = [
    "AbsenceDay",
    "ComplianceFindingResult",
    "ComplianceSettings",
    "ComplianceThresholds",
    "DateRange",
    "DetectionResult",
    "DetectionStats",
    "EffectivePolicy",
    "EmployeeWithPolicy",
    "Enforcement",
    "EvaluationPeriod",
    "FindingSeverity",
    "FindingType",
    "HolidayDay",
    "PresenceConfig",
    "PresenceMode",
    "PresenceRuleDetectionInput",
    "RuleDetectionInput",
    "RuleToggles",
    "ThresholdOverrides",
    "WorkPeriod",
    "ComplianceConfigError",
    "ComplianceError",
    "PresenceInputError",
    "parse_evidence",
    "calculate_presence_severity",
    "calculate_severity",
    "calculate_severity_for_shortfall",
    "BaseRule",
    "ConsecutiveDaysRule",
    "MaxDailyHoursRule",
    "MaxWeeklyHoursRule",
    "RestPeriodRule",
    "PresenceRequirementRule",
    "RuleRegistry",
    "create_default_registry",
    "create_default_rules",
    "ComplianceEngine",
    "EmployeeDetectionData",
    "PresenceDetectionData",
    "build_presence_config",
    "get_presence_evaluation_range",
    "is_presence_evaluation_day",
    "lookback_range",
    "run_detection",
]
