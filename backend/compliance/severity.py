"""Severity calculators shared by the compliance rules.

All boundaries are inclusive: a value sitting exactly on a threshold gets the
higher severity.
"""

from .types import FindingSeverity

CRITICAL_PERCENT = 25
WARNING_PERCENT = 10

PRESENCE_CRITICAL_PERCENT = 66
PRESENCE_WARNING_PERCENT = 33


def _classify(percent: float, critical: float, warning: float) -> FindingSeverity:
    if percent >= critical:
        return FindingSeverity.CRITICAL
    if percent >= warning:
        return FindingSeverity.WARNING
    return FindingSeverity.INFO


def calculate_severity(actual: float, threshold: float) -> FindingSeverity:
    """Severity from how far ``actual`` exceeds ``threshold``."""
    if threshold <= 0:
        return FindingSeverity.CRITICAL
    percent_over = (actual - threshold) / threshold * 100
    return _classify(percent_over, CRITICAL_PERCENT, WARNING_PERCENT)


def calculate_severity_for_shortfall(actual: float, required: float) -> FindingSeverity:
    """Severity from how far ``actual`` falls short of ``required``."""
    if required <= 0:
        return FindingSeverity.INFO
    shortfall_percent = (required - actual) / required * 100
    return _classify(shortfall_percent, CRITICAL_PERCENT, WARNING_PERCENT)


def calculate_presence_severity(actual_days: int, required_days: int) -> FindingSeverity:
    """Severity for missed on-site days, with wider bands than the hour rules."""
    if required_days <= 0:
        return FindingSeverity.INFO
    shortfall_percent = (required_days - actual_days) / required_days * 100
    return _classify(shortfall_percent, PRESENCE_CRITICAL_PERCENT, PRESENCE_WARNING_PERCENT)
