"""
Tests for duplicate detection, rule diffs and merge plans.
"""

import pytest
from finplanlab.core.errors import ConfigError
from finplanlab.core.events import EventDefinition, ScenarioEventRef
from finplanlab.core.resolver import resolve_event_rule
from finplanlab.core.rules import (
    EventRuleOverrides,
    ParamsRule,
    ScheduleEntry,
    ScheduleRule,
)
from finplanlab.core.scenario import Scenario
from finplanlab.duplicates import (
    DuplicateTolerances,
    apply_merge_plan,
    build_event_rule_overrides,
    build_fingerprint,
    build_merge_plan,
    find_duplicate_clusters,
    is_schedule_similar,
    is_title_similar,
    levenshtein,
    list_event_rule_differences,
    normalize_title,
)


def _definition(id, title, amount, type="rent", start="2024-01"):
    return EventDefinition(
        id=id,
        title=title,
        type=type,
        rule=ParamsRule(start_month=start, monthly_amount=amount),
    )


def _scenario(id, *refs):
    return Scenario(id=id, name=id.upper(), event_refs=[ScenarioEventRef(ref_id=r) for r in refs])


class TestTitles:
    def test_normalize_title(self):
        assert normalize_title("Monthly Rent - Flat") == "rentflat"
        assert normalize_title("rent ") == "rent"
        assert normalize_title("Annual fee") == ""

    def test_levenshtein(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3
        assert levenshtein("rent", "rent") == 0

    def test_title_similarity(self):
        assert is_title_similar("Rent", "rent ")
        assert is_title_similar("Rent", "Rent flat")
        assert is_title_similar("Daycare", "Day care!")
        assert not is_title_similar("Rent", "Salary")
        assert not is_title_similar("Monthly fee", "Annual fee")


class TestFindDuplicateClusters:
    def test_case_and_whitespace_titles_cluster(self):
        library = [_definition("rent", "Rent", 1800), _definition("rent-copy", "rent ", 1800)]
        clusters = find_duplicate_clusters(
            [_scenario("a", "rent"), _scenario("b", "rent-copy")], library
        )
        assert len(clusters) == 1
        cluster = clusters[0]
        assert cluster.ref_ids == ["rent", "rent-copy"]
        assert cluster.scenario_ids == ["a", "b"]
        assert cluster.id.startswith("cluster-")
        assert cluster.candidates[0].scenario_name == "A"
        assert cluster.candidates[0].title_key == "rent"

    def test_amounts_outside_band_do_not_cluster(self):
        library = [_definition("rent", "Rent", 1800), _definition("rent-copy", "Rent", 2100)]
        clusters = find_duplicate_clusters(
            [_scenario("a", "rent"), _scenario("b", "rent-copy")], library
        )
        assert clusters == []

    def test_single_reference_never_forms_a_cluster(self):
        library = [_definition("rent", "Rent", 1800)]
        scenarios = [_scenario("a", "rent"), _scenario("b", "rent")]
        assert find_duplicate_clusters(scenarios, library) == []

    def test_different_types_do_not_cluster(self):
        library = [
            _definition("rent", "Rent", 1800),
            _definition("rent-salary", "Rent", 1800, type="salary"),
        ]
        scenarios = [_scenario("a", "rent", "rent-salary")]
        assert find_duplicate_clusters(scenarios, library) == []

    def test_scenario_filter_and_disabled_refs(self):
        library = [_definition("rent", "Rent", 1800), _definition("rent-copy", "rent", 1800)]
        disabled = Scenario(
            id="c", event_refs=[ScenarioEventRef(ref_id="rent-copy", enabled=False)]
        )
        scenarios = [_scenario("a", "rent"), _scenario("b", "rent-copy"), disabled]

        assert find_duplicate_clusters(scenarios, library, scenario_ids=["a"]) == []
        assert find_duplicate_clusters([scenarios[0], disabled], library) == []
        assert len(find_duplicate_clusters(scenarios, library, scenario_ids=["a", "b"])) == 1

    def test_overrides_are_compared_not_definitions(self):
        library = [_definition("rent", "Rent", 1800), _definition("rent-copy", "Rent", 2500)]
        patched = Scenario(
            id="b",
            event_refs=[
                ScenarioEventRef(
                    ref_id="rent-copy", overrides=EventRuleOverrides(monthly_amount=1810)
                )
            ],
        )
        clusters = find_duplicate_clusters([_scenario("a", "rent"), patched], library)
        assert len(clusters) == 1

    def test_greedy_clustering_compares_with_first_member_only(self):
        library = [
            _definition("a", "Gym", 1000, type="custom"),
            _definition("b", "Gym", 1100, type="custom"),
            _definition("c", "Gym", 1200, type="custom"),
        ]
        clusters = find_duplicate_clusters([_scenario("s", "a", "b", "c")], library)
        assert [cluster.ref_ids for cluster in clusters] == [["a", "b"]]

    def test_ids_are_deterministic(self):
        library = [_definition("rent", "Rent", 1800), _definition("rent-copy", "rent ", 1800)]
        scenarios = [_scenario("a", "rent"), _scenario("b", "rent-copy")]
        first = find_duplicate_clusters(scenarios, library)
        second = find_duplicate_clusters(scenarios, library)
        assert [c.id for c in first] == [c.id for c in second]
        assert [x.id for x in first[0].candidates] == [x.id for x in second[0].candidates]

    def test_custom_tolerances(self):
        library = [_definition("rent", "Rent", 1800), _definition("rent-copy", "Rent", 1850)]
        scenarios = [_scenario("a", "rent"), _scenario("b", "rent-copy")]
        strict = DuplicateTolerances(amount_abs=10, amount_pct=0.01)
        assert find_duplicate_clusters(scenarios, library, tolerances=strict) == []
        assert len(find_duplicate_clusters(scenarios, library)) == 1


def test_schedule_similarity():
    a = [ScheduleEntry("2024-01", 1000), ScheduleEntry("2024-07", 1000)]
    b = [ScheduleEntry("2024-01", 1050), ScheduleEntry("2024-07", 980)]
    c = [ScheduleEntry("2024-01", 5000)]
    assert is_schedule_similar(a, b)
    assert not is_schedule_similar(a, c)
    assert is_schedule_similar([], None)


def test_fingerprint():
    rent = _definition("rent", "Monthly Rent", 1800)
    assert build_fingerprint(rent, rent.rule) == "rent|params|rent|1800:0:0.00:24288:na"

    bonus = EventDefinition(
        id="bonus",
        title="Bonus",
        type="salary",
        rule=ScheduleRule(schedule=[ScheduleEntry("2024-06", 2000), ScheduleEntry("2024-12", 4000)]),
    )
    assert build_fingerprint(bonus, bonus.rule) == "salary|schedule|bonus|2:6000:3000"


class TestRuleOverrides:
    BASE = ParamsRule(start_month="2024-01", monthly_amount=1000)

    def test_amount_change(self):
        target = ParamsRule(start_month="2024-01", monthly_amount=1200)
        assert build_event_rule_overrides(self.BASE, target) == EventRuleOverrides(
            monthly_amount=1200
        )

    def test_within_merge_tolerance_needs_no_override(self):
        target = ParamsRule(start_month="2024-01", monthly_amount=1005)
        assert build_event_rule_overrides(self.BASE, target) is None
        assert build_event_rule_overrides(self.BASE, self.BASE) is None

    def test_listed_differences(self):
        target = ParamsRule(
            start_month="2024-01", end_month="2030-12", monthly_amount=1000, annual_growth_pct=3
        )
        assert list_event_rule_differences(self.BASE, target) == [
            "end_month",
            "annual_growth_pct",
        ]

    def test_params_to_schedule(self):
        schedule = (ScheduleEntry("2024-06", 500),)
        target = ScheduleRule(schedule=schedule, start_month="2024-01")
        overrides = build_event_rule_overrides(self.BASE, target)
        assert overrides.mode == "schedule"
        assert overrides.schedule == schedule

    def test_schedule_to_params_clears_schedule(self):
        base = ScheduleRule(schedule=[ScheduleEntry("2024-06", 500)], start_month="2024-01")
        overrides = build_event_rule_overrides(base, self.BASE)
        assert overrides.mode == "params"
        assert overrides.schedule is None
        assert overrides.monthly_amount == 1000

    def test_override_round_trip_resolves_to_target(self):
        target = ParamsRule(
            start_month="2024-03", end_month=None, monthly_amount=1500, annual_growth_pct=2
        )
        base = EventDefinition(
            id="base",
            title="Base",
            type="rent",
            rule=ParamsRule(start_month="2024-01", end_month="2026-12", monthly_amount=1000),
        )
        overrides = build_event_rule_overrides(base.rule, target)
        resolved = resolve_event_rule(base, ScenarioEventRef(ref_id="base", overrides=overrides))
        assert resolved.start_month == "2024-03"
        assert resolved.end_month is None
        assert resolved.monthly_amount == 1500
        assert resolved.annual_growth_pct == 2


class TestMergePlan:
    LIBRARY = [_definition("rent", "Rent", 1800), _definition("rent-copy", "rent ", 1820)]

    def _cluster(self, scenarios):
        (cluster,) = find_duplicate_clusters(scenarios, self.LIBRARY)
        return cluster

    def test_plan_and_apply(self):
        other = Scenario(id="c", event_refs=[ScenarioEventRef(ref_id="rent")])
        scenarios = [_scenario("a", "rent"), _scenario("b", "rent-copy", "rent-copy")]
        cluster = self._cluster(scenarios)
        plan = build_merge_plan(cluster, "rent", self.LIBRARY)

        assert plan.cluster_id == cluster.id
        assert [(a.scenario_id, a.ref_id) for a in plan.assignments] == [
            ("a", "rent"),
            ("b", "rent-copy"),
        ]
        assert plan.assignments[0].overrides is None
        assert plan.assignments[1].overrides == EventRuleOverrides(monthly_amount=1820)

        merged = apply_merge_plan(scenarios + [other], plan)
        assert merged[2] is other
        assert [ref.ref_id for ref in merged[1].event_refs] == ["rent", "rent"]
        effective = resolve_event_rule(self.LIBRARY[0], merged[1].event_refs[0])
        assert effective.monthly_amount == 1820
        assert scenarios[1].event_refs[0].ref_id == "rent-copy"

    def test_unknown_base_definition(self):
        cluster = self._cluster([_scenario("a", "rent"), _scenario("b", "rent-copy")])
        with pytest.raises(ConfigError):
            build_merge_plan(cluster, "missing", self.LIBRARY)
