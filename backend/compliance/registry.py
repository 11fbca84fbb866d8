"""Lookup and filtering over the available compliance rules."""

from typing import Iterator, Optional

from .presence import PresenceRequirementRule
from .rules import (
    BaseRule,
    ConsecutiveDaysRule,
    MaxDailyHoursRule,
    MaxWeeklyHoursRule,
    RestPeriodRule,
)
from .types import FindingType, RuleToggles


def create_default_rules() -> list[BaseRule]:
    """Fresh instances of every built-in rule."""
    return [
        RestPeriodRule(),
        MaxDailyHoursRule(),
        MaxWeeklyHoursRule(),
        ConsecutiveDaysRule(),
        PresenceRequirementRule(),
    ]


class RuleRegistry:
    """An immutable set of rules, addressable by finding type."""

    def __init__(self, rules: Optional[list[BaseRule]] = None):
        rules = create_default_rules() if rules is None else list(rules)

        self._rules: dict[FindingType, BaseRule] = {}
        for rule in rules:
            if rule.type in self._rules:
                raise ValueError(f"Duplicate rule for type: {rule.type.value}")
            self._rules[rule.type] = rule

    @property
    def rules(self) -> list[BaseRule]:
        return list(self._rules.values())

    def __iter__(self) -> Iterator[BaseRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self._rules)

    def get_rule_by_type(self, rule_type: FindingType | str) -> Optional[BaseRule]:
        """Return the rule producing ``rule_type`` findings, or None."""
        try:
            rule_type = FindingType(rule_type)
        except ValueError:
            return None
        return self._rules.get(rule_type)

    def get_enabled_rules(self, toggles: RuleToggles) -> list[BaseRule]:
        """Rules switched on in ``toggles``, in registration order."""
        return [rule for rule in self._rules.values() if toggles.is_enabled(rule.type)]


def create_default_registry() -> RuleRegistry:
    return RuleRegistry(create_default_rules())
