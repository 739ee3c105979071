"""
Tests for resolving library definitions against scenario overrides.
"""

import pytest
from finplanlab.core.errors import ConfigError
from finplanlab.core.events import EventDefinition, ScenarioEventRef
from finplanlab.core.resolver import (
    build_event_library_map,
    build_scenario_event_views,
    resolve_event_rule,
)
from finplanlab.core.rules import (
    UNSET,
    EventRuleOverrides,
    ParamsRule,
    ScheduleEntry,
    ScheduleRule,
)
from finplanlab.core.scenario import Scenario
from hypothesis import given
from hypothesis import strategies as st


def _rent(**rule_kwargs) -> EventDefinition:
    rule = ParamsRule(
        start_month="2024-01",
        end_month="2026-12",
        monthly_amount=1800,
        annual_growth_pct=3,
        **rule_kwargs,
    )
    return EventDefinition(id="rent", title="Rent", type="rent", rule=rule)


class TestResolveEventRule:
    def test_no_overrides_returns_definition_values(self):
        rule = resolve_event_rule(_rent(), ScenarioEventRef(ref_id="rent"))
        assert rule == _rent().rule

    def test_override_shadows_only_set_fields(self):
        ref = ScenarioEventRef(
            ref_id="rent", overrides=EventRuleOverrides(monthly_amount=2000)
        )
        rule = resolve_event_rule(_rent(), ref)
        assert rule.monthly_amount == 2000
        assert rule.start_month == "2024-01"
        assert rule.annual_growth_pct == 3

    def test_explicit_none_end_month_wins(self):
        """An explicit None end month makes the event open-ended."""
        ref = ScenarioEventRef(ref_id="rent", overrides=EventRuleOverrides(end_month=None))
        rule = resolve_event_rule(_rent(), ref)
        assert rule.end_month is None

    def test_unset_end_month_falls_back(self):
        ref = ScenarioEventRef(ref_id="rent", overrides=EventRuleOverrides())
        assert resolve_event_rule(_rent(), ref).end_month == "2026-12"

    def test_switch_to_schedule_uses_override_schedule(self):
        schedule = [ScheduleEntry("2024-03", 500), ScheduleEntry("2024-06", 700)]
        ref = ScenarioEventRef(
            ref_id="rent",
            overrides=EventRuleOverrides(mode="schedule", schedule=schedule),
        )
        rule = resolve_event_rule(_rent(), ref)
        assert isinstance(rule, ScheduleRule)
        assert rule.schedule == tuple(schedule)
        assert rule.start_month == "2024-01"

    def test_switch_to_schedule_without_schedule_falls_back_to_definition(self):
        definition = EventDefinition(
            id="bonus",
            title="Bonus",
            type="salary",
            rule=ScheduleRule(schedule=[ScheduleEntry("2024-12", 5000)]),
        )
        ref = ScenarioEventRef(ref_id="bonus", overrides=EventRuleOverrides(monthly_amount=1))
        rule = resolve_event_rule(definition, ref)
        assert isinstance(rule, ScheduleRule)
        assert rule.schedule == (ScheduleEntry("2024-12", 5000),)

        params_ref = ScenarioEventRef(
            ref_id="rent", overrides=EventRuleOverrides(mode="schedule")
        )
        assert resolve_event_rule(_rent(), params_ref).schedule == ()

    def test_switch_schedule_definition_to_params(self):
        definition = EventDefinition(
            id="bonus",
            title="Bonus",
            type="salary",
            rule=ScheduleRule(schedule=[ScheduleEntry("2024-12", 5000)], start_month="2024-12"),
        )
        ref = ScenarioEventRef(
            ref_id="bonus",
            overrides=EventRuleOverrides(mode="params", monthly_amount=400),
        )
        rule = resolve_event_rule(definition, ref)
        assert isinstance(rule, ParamsRule)
        assert rule.monthly_amount == 400
        assert rule.start_month == "2024-12"
        assert rule.one_time_amount is None

    def test_does_not_mutate_inputs(self):
        definition = _rent()
        overrides = EventRuleOverrides(monthly_amount=2500, end_month=None)
        ref = ScenarioEventRef(ref_id="rent", overrides=overrides)
        resolve_event_rule(definition, ref)
        assert definition.rule.monthly_amount == 1800
        assert definition.rule.end_month == "2026-12"
        assert ref.overrides.monthly_amount == 2500

    @given(
        amount=st.one_of(st.none(), st.floats(min_value=0, max_value=1e7)),
        growth=st.one_of(st.none(), st.floats(min_value=-50, max_value=50)),
        end_month=st.sampled_from([UNSET, None, "2025-06"]),
    )
    def test_idempotent(self, amount, growth, end_month):
        ref = ScenarioEventRef(
            ref_id="rent",
            overrides=EventRuleOverrides(
                monthly_amount=amount, annual_growth_pct=growth, end_month=end_month
            ),
        )
        assert resolve_event_rule(_rent(), ref) == resolve_event_rule(_rent(), ref)


def test_override_rejects_unknown_mode():
    with pytest.raises(ConfigError):
        EventRuleOverrides(mode="weekly")


def test_override_provided_lists_only_set_fields():
    overrides = EventRuleOverrides(end_month=None, monthly_amount=10)
    assert overrides.provided() == {"end_month": None, "monthly_amount": 10}
    assert overrides.is_set("end_month")
    assert not overrides.is_set("start_month")
    assert EventRuleOverrides().is_empty()


def test_scenario_event_views_skip_missing_definitions():
    library = [_rent()]
    scenario = Scenario(
        id="s1",
        event_refs=[
            ScenarioEventRef(ref_id="rent"),
            ScenarioEventRef(ref_id="ghost"),
            ScenarioEventRef(ref_id="rent", enabled=False),
        ],
    )
    views = build_scenario_event_views(scenario, library)
    assert [view.definition.id for view in views] == ["rent", "rent"]
    assert [view.ref.enabled for view in views] == [True, False]
    assert set(build_event_library_map(library)) == {"rent"}
