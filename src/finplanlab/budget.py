"""
Budget rule compiler.

Expands age-banded recurring budget rules into signed monthly entries for one
scenario. Budget rules are always outflows, so every emitted amount is
negative.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import asdict, dataclass

import pandas as pd

from finplanlab.core.members import get_member_age_years
from finplanlab.core.months import is_valid_month, month_index, month_range
from finplanlab.core.scenario import BudgetRule, Scenario

logger = logging.getLogger(__name__)

LEDGER_COLUMNS = [
    "month",
    "amount_signed",
    "source_rule_id",
    "member_id",
    "label",
    "category",
]


@dataclass(frozen=True, slots=True)
class BudgetEntry:
    """One month of one budget rule."""

    month: str
    amount_signed: float
    source_rule_id: str
    member_id: str | None
    label: str
    category: str


def monthly_growth_factor(annual_growth_pct: float | None) -> float:
    """
    Exact monthly compounding factor for a whole-percent annual growth.

    ``(1 + pct/100) ** (1/12)``, so twelve months of compounding at 12% give
    exactly ``1.12``, not ``1 + 12/100/12`` per month.
    """
    return (1 + (annual_growth_pct or 0.0) / 100) ** (1 / 12)


def compile_budget_rule(rule: BudgetRule, scenario: Scenario) -> list[BudgetEntry]:
    """
    Compile one budget rule into its monthly entries.

    Months outside the rule window, the projection horizon or the member's
    age band produce nothing. A disabled rule, a scenario without a base month
    or horizon, a zero or missing amount and a rule bound to a member that does not
    exist all yield an empty list.

    Args:
        rule: Budget rule to expand
        scenario: Scenario supplying base month, horizon and members

    Returns:
        Entries in month order; only included months are present

    **Example:**
        ```python
        rule = BudgetRule(id="school", name="School", monthly_amount=500,
                          annual_growth_pct=12)
        entries = compile_budget_rule(rule, scenario)
        entries[12].amount_signed  # -560.0 (== -500 * 1.12)
        ```
    """
    if not rule.enabled:
        return []

    base_month = scenario.assumptions.base_month
    horizon = scenario.assumptions.horizon_months or 0
    if not base_month or horizon <= 0:
        return []
    if not is_valid_month(base_month):
        logger.warning(
            "Budget rule %s skipped: scenario base month %r is malformed",
            rule.id,
            base_month,
        )
        return []

    if not rule.monthly_amount:
        return []

    start_index = month_index(base_month, rule.start_month or base_month)
    end_index = (
        month_index(base_month, rule.end_month)
        if rule.end_month
        else horizon - 1
    )
    if start_index is None or end_index is None:
        logger.warning(
            "Budget rule %s skipped: malformed month window (%r, %r)",
            rule.id,
            rule.start_month,
            rule.end_month,
        )
        return []

    range_start = max(start_index, 0)
    range_end = min(end_index, horizon - 1)
    if range_start > range_end:
        return []

    member = None
    if rule.member_id:
        member = scenario.find_member(rule.member_id)
        if member is None:
            logger.debug(
                "Budget rule %s references unknown member %s", rule.id, rule.member_id
            )
            return []

    base_amount = abs(rule.monthly_amount)
    factor = monthly_growth_factor(rule.annual_growth_pct)

    window = month_range(base_month, horizon)[range_start : range_end + 1]
    entries: list[BudgetEntry] = []
    for i, month in enumerate(window, start=range_start):
        if member is not None:
            age_years = get_member_age_years(member, month, base_month)
            if age_years is None or not rule.age_band.contains(age_years):
                continue
        entries.append(
            BudgetEntry(
                month=month,
                amount_signed=-base_amount * factor ** (i - start_index),
                source_rule_id=rule.id,
                member_id=rule.member_id,
                label=rule.name,
                category=rule.category,
            )
        )
    return entries


def compile_all_budget_rules(scenario: Scenario) -> list[BudgetEntry]:
    """Flat concatenation of every enabled rule's entries, in rule order."""
    entries: list[BudgetEntry] = []
    for rule in scenario.budget_rules:
        if rule.enabled:
            entries.extend(compile_budget_rule(rule, scenario))
    return entries


def sum_by_month(entries: Iterable[BudgetEntry]) -> list[tuple[str, float]]:
    """Total signed amount per month, sorted chronologically."""
    totals: dict[str, float] = defaultdict(float)
    for entry in entries:
        totals[entry.month] += entry.amount_signed
    return sorted(totals.items())


def budget_ledger_frame(entries: Iterable[BudgetEntry]) -> pd.DataFrame:
    """
    Budget entries as a DataFrame sorted by month then rule id.

    Columns follow :data:`LEDGER_COLUMNS`; an empty input gives an empty
    frame with the same columns.
    """
    rows = [asdict(entry) for entry in entries]
    if not rows:
        return pd.DataFrame(columns=LEDGER_COLUMNS)
    frame = pd.DataFrame(rows, columns=LEDGER_COLUMNS)
    return frame.sort_values(["month", "source_rule_id"], kind="stable").reset_index(
        drop=True
    )
