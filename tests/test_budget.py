"""
Tests for the budget rule compiler.
"""

import pandas as pd
import pytest
from finplanlab.budget import (
    LEDGER_COLUMNS,
    budget_ledger_frame,
    compile_all_budget_rules,
    compile_budget_rule,
    monthly_growth_factor,
    sum_by_month,
)
from finplanlab.core.scenario import AgeBand, Assumptions, BudgetRule, Member, Scenario
from hypothesis import given
from hypothesis import strategies as st


def _scenario(rules=(), members=(), base_month="2024-01", horizon=120) -> Scenario:
    return Scenario(
        id="family",
        assumptions=Assumptions(base_month=base_month, horizon_months=horizon),
        members=members,
        budget_rules=rules,
    )


KID = Member(id="kid", name="Kid", birth_month="2024-01")


class TestCompileBudgetRule:
    def test_age_gate_selects_band_months(self):
        rule = BudgetRule(
            id="school",
            name="School",
            monthly_amount=500,
            member_id="kid",
            category="education",
            age_band=AgeBand(from_years=3, to_years=6),
        )
        entries = compile_budget_rule(rule, _scenario([rule], [KID]))

        assert len(entries) == 36
        assert entries[0].month == "2027-01"
        assert entries[-1].month == "2029-12"
        assert all(e.amount_signed == -500 for e in entries)
        assert {e.member_id for e in entries} == {"kid"}
        assert {e.category for e in entries} == {"education"}

    def test_age_from_base_month_age(self):
        member = Member(id="dog", kind="pet", age_at_base_month=2)
        rule = BudgetRule(
            id="vet",
            name="Vet",
            monthly_amount=80,
            member_id="dog",
            age_band=AgeBand(from_years=0, to_years=3),
        )
        entries = compile_budget_rule(rule, _scenario([rule], [member]))
        assert [e.month for e in entries] == [
            f"2024-{m:02d}" for m in range(1, 13)
        ]

    def test_growth_compounds_monthly_from_rule_start(self):
        rule = BudgetRule(id="food", name="Food", monthly_amount=1000, annual_growth_pct=12)
        entries = compile_budget_rule(rule, _scenario([rule], horizon=24))
        assert entries[0].amount_signed == pytest.approx(-1000)
        assert entries[12].amount_signed == pytest.approx(-1120)
        assert entries[1].amount_signed == pytest.approx(-1000 * 1.12 ** (1 / 12))

    def test_growth_anchored_at_unclipped_start(self):
        rule = BudgetRule(
            id="food",
            name="Food",
            monthly_amount=1000,
            annual_growth_pct=12,
            start_month="2023-01",
        )
        entries = compile_budget_rule(rule, _scenario([rule], horizon=12))
        assert entries[0].month == "2024-01"
        assert entries[0].amount_signed == pytest.approx(-1120)

    def test_window_is_clipped_to_horizon(self):
        rule = BudgetRule(
            id="gym", name="Gym", monthly_amount=50, start_month="2024-06",
            end_month="2030-01",
        )
        entries = compile_budget_rule(rule, _scenario([rule], horizon=12))
        assert [e.month for e in entries][0] == "2024-06"
        assert entries[-1].month == "2024-12"

    def test_negative_amount_still_outflow(self):
        rule = BudgetRule(id="x", name="X", monthly_amount=-40)
        entries = compile_budget_rule(rule, _scenario([rule], horizon=2))
        assert [e.amount_signed for e in entries] == [-40, -40]

    @pytest.mark.parametrize(
        "rule",
        [
            BudgetRule(id="off", name="Off", monthly_amount=100, enabled=False),
            BudgetRule(id="zero", name="Zero", monthly_amount=0),
            BudgetRule(id="blank", name="Blank", monthly_amount=None),
            BudgetRule(id="orphan", name="Orphan", monthly_amount=100, member_id="ghost"),
            BudgetRule(
                id="late", name="Late", monthly_amount=100, start_month="2040-01"
            ),
            BudgetRule(
                id="early", name="Early", monthly_amount=100, end_month="2023-06"
            ),
            BudgetRule(id="bad", name="Bad", monthly_amount=100, start_month="2024-1"),
        ],
    )
    def test_rules_that_produce_nothing(self, rule):
        assert compile_budget_rule(rule, _scenario([rule], [KID])) == []

    def test_scenario_without_base_month_or_horizon(self):
        rule = BudgetRule(id="food", name="Food", monthly_amount=100)
        assert compile_budget_rule(rule, _scenario([rule], base_month=None)) == []
        assert compile_budget_rule(rule, _scenario([rule], horizon=0)) == []
        assert compile_budget_rule(rule, _scenario([rule], base_month="24-01")) == []

    @given(
        amount=st.floats(min_value=0.01, max_value=1e6),
        growth=st.floats(min_value=-20, max_value=20),
        horizon=st.integers(min_value=1, max_value=60),
    )
    def test_amounts_are_never_positive(self, amount, growth, horizon):
        rule = BudgetRule(id="r", name="R", monthly_amount=amount, annual_growth_pct=growth)
        entries = compile_budget_rule(rule, _scenario([rule], horizon=horizon))
        assert len(entries) == horizon
        assert all(e.amount_signed < 0 for e in entries)


def test_monthly_growth_factor():
    assert monthly_growth_factor(None) == 1.0
    assert monthly_growth_factor(12) ** 12 == pytest.approx(1.12)


def test_compile_all_and_sum_by_month():
    food = BudgetRule(id="food", name="Food", monthly_amount=600)
    daycare = BudgetRule(
        id="daycare",
        name="Daycare",
        monthly_amount=900,
        member_id="kid",
        age_band=AgeBand(from_years=0, to_years=0.25),
    )
    off = BudgetRule(id="off", name="Off", monthly_amount=50, enabled=False)
    scenario = _scenario([food, daycare, off], [KID], horizon=4)

    entries = compile_all_budget_rules(scenario)
    assert [e.source_rule_id for e in entries] == ["food"] * 4 + ["daycare"] * 3

    totals = sum_by_month(entries)
    assert totals == [
        ("2024-01", -1500),
        ("2024-02", -1500),
        ("2024-03", -1500),
        ("2024-04", -600),
    ]


def test_budget_ledger_frame_sorted_by_month_then_rule():
    b = BudgetRule(id="b", name="B", monthly_amount=10)
    a = BudgetRule(id="a", name="A", monthly_amount=20)
    entries = compile_all_budget_rules(_scenario([b, a], horizon=2))

    frame = budget_ledger_frame(entries)
    assert list(frame.columns) == LEDGER_COLUMNS
    assert list(frame["source_rule_id"]) == ["a", "b", "a", "b"]
    assert frame["amount_signed"].sum() == -60


def test_budget_ledger_frame_empty():
    frame = budget_ledger_frame([])
    assert isinstance(frame, pd.DataFrame)
    assert frame.empty
    assert list(frame.columns) == LEDGER_COLUMNS
