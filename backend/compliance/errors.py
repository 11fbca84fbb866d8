"""Exceptions raised by the compliance rules."""


class ComplianceError(Exception):
    """Base class for compliance detection errors."""


class ComplianceConfigError(ComplianceError, ValueError):
    """Invalid presence, timezone or threshold configuration."""


class PresenceInputError(ComplianceError, TypeError):
    """The presence rule was called without its presence-specific input."""
