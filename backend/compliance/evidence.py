"""Evidence payloads attached to compliance findings.

Evidence is persisted verbatim, so the serialized keys (camelCase) and the
``type`` tag of each variant must stay stable.
"""

from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class EvidenceBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the stored (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


class RestPeriodInsufficientEvidence(EvidenceBase):
    type: Literal["rest_period_insufficient"] = "rest_period_insufficient"
    last_clock_out_time: datetime
    next_clock_in_time: datetime
    actual_rest_minutes: float
    required_rest_minutes: int
    shortfall_minutes: float


class MaxHoursDailyExceededEvidence(EvidenceBase):
    type: Literal["max_hours_daily_exceeded"] = "max_hours_daily_exceeded"
    date: date
    worked_minutes: float
    limit_minutes: int
    exceedance_minutes: float
    work_period_ids: list[str]


class MaxHoursWeeklyExceededEvidence(EvidenceBase):
    type: Literal["max_hours_weekly_exceeded"] = "max_hours_weekly_exceeded"
    week_start_date: date
    week_end_date: date
    worked_minutes: float
    limit_minutes: int
    exceedance_minutes: float
    work_period_ids: list[str]


class ConsecutiveDaysExceededEvidence(EvidenceBase):
    type: Literal["consecutive_days_exceeded"] = "consecutive_days_exceeded"
    consecutive_days: int
    max_allowed_days: int
    start_date: date
    end_date: date
    work_dates: list[date]


class PresenceRequirementEvidence(EvidenceBase):
    type: Literal["presence_requirement"] = "presence_requirement"
    mode: Literal["minimum_count", "fixed_days"]
    evaluation_start: date
    evaluation_end: date
    required_days: int
    actual_onsite_days: int
    missed_days: Optional[list[str]] = None  # fixed_days mode only
    excluded_days: list[date]
    excluded_reasons: list[str]
    onsite_work_period_ids: list[str]
    location_id: Optional[str] = None
    location_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.missed_days is None:
            data.pop("missedDays")
        return data


ComplianceFindingEvidence = Annotated[
    Union[
        RestPeriodInsufficientEvidence,
        MaxHoursDailyExceededEvidence,
        MaxHoursWeeklyExceededEvidence,
        ConsecutiveDaysExceededEvidence,
        PresenceRequirementEvidence,
    ],
    Field(discriminator="type"),
]

_evidence_adapter = TypeAdapter(ComplianceFindingEvidence)


def parse_evidence(data: dict[str, Any]) -> ComplianceFindingEvidence:
    """
    Validate stored evidence back into its typed variant.

    Raises:
        pydantic.ValidationError: If the tag is unknown or fields are missing
    """
    return _evidence_adapter.validate_python(data)
