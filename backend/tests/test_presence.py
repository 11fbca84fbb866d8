"""Tests for PresenceRequirementRule.

Covers minimum_count and fixed_days modes, excusing days through absences
and holidays, severity bands and configuration errors.
"""

import pytest
from datetime import timedelta

from compliance.errors import ComplianceConfigError, PresenceInputError
from compliance.presence import PresenceRequirementRule, weekday_dates
from compliance.types import (
    AbsenceDay,
    DateRange,
    Enforcement,
    FindingSeverity,
    HolidayDay,
    PresenceConfig,
    PresenceMode,
    PresenceRuleDetectionInput,
    RuleDetectionInput,
)

from conftest import WEEK_START, local


def day(offset: int):
    return WEEK_START + timedelta(days=offset)


@pytest.fixture
def rule():
    return PresenceRequirementRule()


@pytest.fixture
def make_config():
    def _make_config(**overrides) -> PresenceConfig:
        values = dict(
            presence_mode="minimum_count",
            required_onsite_days=3,
            required_onsite_fixed_days=[],
            location_id=None,
            evaluation_period="week",
            enforcement="hard",
        )
        values.update(overrides)
        return PresenceConfig(**values)
    return _make_config


@pytest.fixture
def make_presence_input(employee):
    """Presence input over Monday-Friday of the test week."""
    def _make_presence_input(work_periods, config, absence_days=None, holiday_days=None):
        return PresenceRuleDetectionInput(
            employee=employee,
            work_periods=work_periods,
            date_range=DateRange(start=local(day(0)), end=local(day(4))),
            threshold_overrides=None,
            presence_config=config,
            absence_days=absence_days or [],
            holiday_days=holiday_days or [],
        )
    return _make_presence_input


@pytest.fixture
def workweek(make_period):
    """One 09:00 period per weekday with the given location tags."""
    def _workweek(*locations):
        return [
            make_period(local(day(i), 9), location=loc)
            for i, loc in enumerate(locations)
            if loc != "-"
        ]
    return _workweek


# ============================================================================
# minimum_count
# ============================================================================


class TestMinimumCount:

    @pytest.mark.asyncio
    async def test_requirement_met(self, rule, workweek, make_config, make_presence_input):
        periods = workweek("office", "office", "office", "home", "home")
        findings = await rule.detect_violations(make_presence_input(periods, make_config()))
        assert findings == []

    @pytest.mark.asyncio
    async def test_requirement_missed(self, rule, workweek, make_config, make_presence_input):
        periods = workweek("office", "home", "home", "home", "home")

        findings = await rule.detect_violations(make_presence_input(periods, make_config()))

        assert len(findings) == 1
        finding = findings[0]
        assert finding.evidence.type == "presence_requirement"
        assert finding.evidence.mode == "minimum_count"
        assert finding.evidence.actual_onsite_days == 1
        assert finding.evidence.required_days == 3
        assert finding.evidence.missed_days is None
        # 66.7% short
        assert finding.severity == FindingSeverity.CRITICAL
        assert finding.period_start == local(day(0))
        assert finding.period_end == local(day(4))
        assert finding.occurrence_date == local(day(4))

    @pytest.mark.asyncio
    async def test_field_counts_and_other_tags_do_not(self, rule, workweek, make_config, make_presence_input):
        periods = workweek("field", "office", None, "other", "remote")

        findings = await rule.detect_violations(make_presence_input(periods, make_config()))

        assert len(findings) == 1
        assert findings[0].evidence.actual_onsite_days == 2
        assert findings[0].severity == FindingSeverity.WARNING

    @pytest.mark.asyncio
    async def test_absence_keeps_requirement_when_enough_days_remain(
        self, rule, workweek, make_config, make_presence_input
    ):
        periods = workweek("office", "office", "-", "home", "home")
        absences = [AbsenceDay(date=day(2), reason="sick")]

        findings = await rule.detect_violations(
            make_presence_input(periods, make_config(), absence_days=absences)
        )

        assert len(findings) == 1
        assert findings[0].evidence.required_days == 3
        assert findings[0].evidence.actual_onsite_days == 2
        assert findings[0].evidence.excluded_days == [day(2)]
        assert findings[0].evidence.excluded_reasons == ["sick"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("onsite,expected", [
        (("office", "office", "-", "-", "-"), 0),
        (("office", "home", "-", "-", "-"), 1),
    ])
    async def test_requirement_capped_to_available_days(
        self, rule, workweek, make_config, make_presence_input, onsite, expected
    ):
        periods = workweek(*onsite)
        absences = [
            AbsenceDay(date=day(2), reason="vacation"),
            AbsenceDay(date=day(3), reason="vacation"),
            AbsenceDay(date=day(4), reason="vacation"),
        ]

        findings = await rule.detect_violations(
            make_presence_input(periods, make_config(), absence_days=absences)
        )

        assert len(findings) == expected
        if expected:
            assert findings[0].evidence.required_days == 2
            assert findings[0].evidence.actual_onsite_days == 1

    @pytest.mark.asyncio
    async def test_fully_excused_window_never_violates(self, rule, make_config, make_presence_input):
        holidays = [HolidayDay(date=day(i)) for i in range(5)]

        findings = await rule.detect_violations(
            make_presence_input([], make_config(), holiday_days=holidays)
        )

        assert findings == []

    @pytest.mark.asyncio
    async def test_segments_on_one_day_count_once(self, rule, make_period, make_config, make_presence_input):
        periods = [
            make_period(local(day(0), 8), minutes=120, location="office"),
            make_period(local(day(0), 11), minutes=120, location="office"),
            make_period(local(day(0), 14), minutes=120, location="field"),
        ]

        findings = await rule.detect_violations(make_presence_input(periods, make_config()))

        assert len(findings) == 1
        assert findings[0].evidence.actual_onsite_days == 1
        assert findings[0].evidence.onsite_work_period_ids == [p.id for p in periods]

    @pytest.mark.asyncio
    async def test_running_period_does_not_count(self, rule, make_period, make_config, make_presence_input):
        periods = [
            make_period(local(day(0), 9), location="office"),
            make_period(local(day(1), 9), location="office"),
            make_period(local(day(2), 9), location="office", end_time=None, is_active=True),
        ]

        findings = await rule.detect_violations(make_presence_input(periods, make_config()))

        assert len(findings) == 1
        assert findings[0].evidence.actual_onsite_days == 2


# ============================================================================
# fixed_days
# ============================================================================


class TestFixedDays:

    @pytest.fixture
    def fixed_config(self, make_config):
        # Monday, Wednesday, Friday
        return make_config(presence_mode="fixed_days", required_onsite_fixed_days=[1, 3, 5])

    @pytest.mark.asyncio
    async def test_all_required_days_met(self, rule, workweek, fixed_config, make_presence_input):
        periods = workweek("office", "home", "office", "home", "field")
        assert await rule.detect_violations(make_presence_input(periods, fixed_config)) == []

    @pytest.mark.asyncio
    async def test_missed_day_is_named(self, rule, workweek, fixed_config, make_presence_input):
        periods = workweek("office", "office", "home", "office", "office")

        findings = await rule.detect_violations(make_presence_input(periods, fixed_config))

        assert len(findings) == 1
        evidence = findings[0].evidence
        assert evidence.mode == "fixed_days"
        assert evidence.missed_days == ["wednesday"]
        assert evidence.required_days == 3
        assert evidence.actual_onsite_days == 4
        # 2 of 3 met: 33.3% short
        assert findings[0].severity == FindingSeverity.WARNING
        assert findings[0].to_dict()["evidence"]["missedDays"] == ["wednesday"]

    @pytest.mark.asyncio
    async def test_holiday_excuses_required_day(self, rule, workweek, fixed_config, make_presence_input):
        periods = workweek("office", "home", "-", "home", "office")

        findings = await rule.detect_violations(
            make_presence_input(periods, fixed_config, holiday_days=[HolidayDay(date=day(2))])
        )

        assert findings == []

    @pytest.mark.asyncio
    async def test_absence_excuses_required_day(self, rule, workweek, fixed_config, make_presence_input):
        periods = workweek("office", "home", "home", "home", "office")

        findings = await rule.detect_violations(
            make_presence_input(
                periods, fixed_config, absence_days=[AbsenceDay(date="2026-02-11", reason="sick")]
            )
        )

        assert findings == []

    @pytest.mark.asyncio
    async def test_nothing_on_site_is_critical(self, rule, workweek, fixed_config, make_presence_input):
        periods = workweek("home", "home", "home", "home", "home")

        findings = await rule.detect_violations(make_presence_input(periods, fixed_config))

        assert findings[0].evidence.missed_days == ["monday", "wednesday", "friday"]
        assert findings[0].severity == FindingSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_missed_day_name_listed_once_across_weeks(self, rule, employee, make_config):
        config = make_config(presence_mode="fixed_days", required_onsite_fixed_days=[2])
        two_weeks = PresenceRuleDetectionInput(
            employee=employee,
            work_periods=[],
            date_range=DateRange(start=local(day(0)), end=local(day(13))),
            presence_config=config,
        )

        findings = await rule.detect_violations(two_weeks)

        assert findings[0].evidence.missed_days == ["tuesday"]


# ============================================================================
# Enforcement, evidence and input errors
# ============================================================================


class TestPresenceRuleContract:

    @pytest.mark.asyncio
    async def test_enforcement_none_skips_detection(self, rule, workweek, make_config, make_presence_input):
        config = make_config(enforcement="none")
        assert config.enforcement == Enforcement.NONE

        findings = await rule.detect_violations(
            make_presence_input(workweek("home", "home", "home", "home", "home"), config)
        )

        assert findings == []

    @pytest.mark.asyncio
    async def test_soft_and_hard_behave_the_same(self, rule, workweek, make_config, make_presence_input):
        periods = workweek("office", "home", "home", "home", "home")

        soft = await rule.detect_violations(make_presence_input(periods, make_config(enforcement="soft")))
        hard = await rule.detect_violations(make_presence_input(periods, make_config(enforcement="hard")))

        assert [f.to_dict() for f in soft] == [f.to_dict() for f in hard]

    @pytest.mark.asyncio
    async def test_evidence_wire_shape(self, rule, workweek, make_config, make_presence_input):
        config = make_config(location_id="loc-1")
        periods = workweek("office", "home", "home", "home", "home")

        findings = await rule.detect_violations(
            make_presence_input(periods, config, holiday_days=[HolidayDay(date=day(4))])
        )
        data = findings[0].to_dict()

        assert data["type"] == "presence_requirement"
        assert data["workPolicyId"] == "policy-001"
        assert data["evidence"] == {
            "type": "presence_requirement",
            "mode": "minimum_count",
            "evaluationStart": "2026-02-09",
            "evaluationEnd": "2026-02-13",
            "requiredDays": 3,
            "actualOnsiteDays": 1,
            "excludedDays": ["2026-02-13"],
            "excludedReasons": ["holiday"],
            "onsiteWorkPeriodIds": [periods[0].id],
            "locationId": "loc-1",
            "locationName": None,
        }

    @pytest.mark.asyncio
    async def test_plain_input_is_rejected(self, rule, employee):
        plain = RuleDetectionInput(
            employee=employee,
            work_periods=[],
            date_range=DateRange(start=local(day(0)), end=local(day(4))),
        )

        with pytest.raises(PresenceInputError):
            await rule.detect_violations(plain)

    def test_unknown_mode_is_a_config_error(self, make_config):
        with pytest.raises(ComplianceConfigError, match="presence mode"):
            make_config(presence_mode="hybrid")

    def test_unknown_enforcement_is_a_config_error(self, make_config):
        with pytest.raises(ComplianceConfigError):
            make_config(enforcement="strict")

    def test_weekday_numbers_are_validated(self, make_config):
        with pytest.raises(ComplianceConfigError):
            make_config(presence_mode="fixed_days", required_onsite_fixed_days=[0, 8])

    def test_mode_is_coerced_to_enum(self, make_config):
        assert make_config().presence_mode is PresenceMode.MINIMUM_COUNT

    def test_weekday_dates(self):
        assert weekday_dates(day(0), day(13)) == [day(i) for i in range(14) if i % 7 < 5]
