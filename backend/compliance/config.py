import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int | None = None) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {value!r}")


DEFAULT_TIMEZONE = os.getenv("COMPLIANCE_DEFAULT_TIMEZONE", "Europe/Berlin")
LOG_LEVEL = os.getenv("COMPLIANCE_LOG_LEVEL", "INFO")

DETECT_REST_PERIOD = _env_flag("COMPLIANCE_DETECT_REST_PERIOD")
DETECT_MAX_HOURS_DAILY = _env_flag("COMPLIANCE_DETECT_MAX_HOURS_DAILY")
DETECT_MAX_HOURS_WEEKLY = _env_flag("COMPLIANCE_DETECT_MAX_HOURS_WEEKLY")
DETECT_CONSECUTIVE_DAYS = _env_flag("COMPLIANCE_DETECT_CONSECUTIVE_DAYS")
DETECT_PRESENCE = _env_flag("COMPLIANCE_DETECT_PRESENCE")

# Unset thresholds fall through to the employee's policy
REST_PERIOD_MINUTES = _env_int("COMPLIANCE_REST_PERIOD_MINUTES")
MAX_DAILY_MINUTES = _env_int("COMPLIANCE_MAX_DAILY_MINUTES")
MAX_WEEKLY_MINUTES = _env_int("COMPLIANCE_MAX_WEEKLY_MINUTES")
MAX_CONSECUTIVE_DAYS = _env_int("COMPLIANCE_MAX_CONSECUTIVE_DAYS", 6)
