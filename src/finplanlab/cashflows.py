"""
Event cash-flow series compiler.

Turns resolved scenario events into signed monthly amounts over the
scenario's projection horizon, for previews that do not need the full
calculator.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass

import pandas as pd

from finplanlab.budget import monthly_growth_factor
from finplanlab.core.events import EventDefinition, ScenarioEventRef
from finplanlab.core.kinds import get_event_sign
from finplanlab.core.months import month_index, month_range
from finplanlab.core.resolver import build_scenario_event_views, resolve_event_rule
from finplanlab.core.rules import ScheduleRule
from finplanlab.core.scenario import Assumptions, Scenario

logger = logging.getLogger(__name__)

SignByType = Callable[[str], int]


@dataclass(frozen=True, slots=True)
class CashflowPoint:
    month: str
    amount: float
    source_event_id: str


@dataclass(frozen=True, slots=True)
class CashflowEntry:
    """One month of one scenario event, with display metadata."""

    month: str
    amount_signed: float
    source_event_id: str
    ref_id: str
    title: str
    category: str
    parent_id: str | None = None


def _signed(value: float | None, sign: int) -> float:
    magnitude = abs(value or 0.0)
    return sign * magnitude if magnitude else 0.0


def compile_event_to_monthly_series(
    definition: EventDefinition,
    ref: ScenarioEventRef,
    assumptions: Assumptions,
    sign_by_type: SignByType = get_event_sign,
) -> list[CashflowPoint]:
    """
    Signed monthly amounts of one event inside the projection horizon.

    Params rules yield ``sign * |monthly| * f**(i - start)`` for every month
    of the clipped window, plus ``sign * |one_time|`` in the start month.
    Schedule rules yield one point per scheduled month inside the horizon.
    Group definitions, disabled refs, params rules without a start month and
    malformed months yield nothing.

    Args:
        definition: Library definition
        ref: The scenario's reference to it
        assumptions: Supplies ``base_month`` and ``horizon_months``
        sign_by_type: Maps an event type to ``+1``/``-1``

    Returns:
        Points in month order
    """
    if not definition.is_cashflow or not ref.enabled:
        return []

    rule = resolve_event_rule(definition, ref)
    base_month = assumptions.base_month or rule.start_month
    horizon = assumptions.horizon_months or 0
    if not base_month or horizon <= 0:
        return []

    sign = sign_by_type(definition.type)

    if isinstance(rule, ScheduleRule):
        points = []
        for entry in rule.sorted_entries():
            offset = month_index(base_month, entry.month)
            if offset is None:
                logger.warning(
                    "Event %s: skipping schedule entry with malformed month %r",
                    definition.id,
                    entry.month,
                )
                continue
            if 0 <= offset < horizon and entry.amount:
                points.append(
                    CashflowPoint(entry.month, _signed(entry.amount, sign), definition.id)
                )
        return points

    if not rule.start_month:
        return []

    start_index = month_index(base_month, rule.start_month)
    end_index = (
        month_index(base_month, rule.end_month) if rule.end_month else horizon - 1
    )
    if start_index is None or end_index is None:
        logger.warning(
            "Event %s: malformed month window (%r, %r)",
            definition.id,
            rule.start_month,
            rule.end_month,
        )
        return []

    range_start = max(0, start_index)
    range_end = min(horizon - 1, end_index)
    if range_start > range_end:
        return []

    monthly = abs(rule.monthly_amount or 0.0)
    one_time = abs(rule.one_time_amount or 0.0)
    factor = monthly_growth_factor(rule.annual_growth_pct)

    window = month_range(base_month, horizon)[range_start : range_end + 1]
    points = []
    for i, month in enumerate(window, start=range_start):
        amount = _signed(monthly * factor ** (i - start_index), sign)
        if i == start_index and one_time:
            amount += _signed(one_time, sign)
        points.append(CashflowPoint(month, amount, definition.id))
    return points


def compile_scenario_cashflows(
    scenario: Scenario,
    event_library: Iterable[EventDefinition],
    sign_by_type: SignByType = get_event_sign,
) -> list[CashflowEntry]:
    """Cash-flow entries of every enabled cash-flow event in ``scenario``."""
    entries: list[CashflowEntry] = []
    for view in build_scenario_event_views(scenario, event_library):
        if not view.definition.is_cashflow:
            continue
        for point in compile_event_to_monthly_series(
            view.definition, view.ref, scenario.assumptions, sign_by_type
        ):
            entries.append(
                CashflowEntry(
                    month=point.month,
                    amount_signed=point.amount,
                    source_event_id=view.definition.id,
                    ref_id=view.ref.ref_id,
                    title=view.definition.title,
                    category=view.definition.type,
                    parent_id=view.definition.parent_id,
                )
            )
    return entries


def cashflow_frame(entries: Iterable[CashflowEntry]) -> pd.DataFrame:
    """
    Pivot entries into a month x event table of signed amounts.

    Missing month/event combinations are ``0.0``; a ``total`` column sums each
    row.
    """
    rows = [asdict(entry) for entry in entries]
    if not rows:
        return pd.DataFrame(columns=["total"], index=pd.Index([], name="month"))
    frame = pd.DataFrame(rows).pivot_table(
        index="month",
        columns="source_event_id",
        values="amount_signed",
        aggfunc="sum",
        fill_value=0.0,
    )
    frame.columns.name = None
    frame["total"] = frame.sum(axis=1)
    return frame.sort_index()
