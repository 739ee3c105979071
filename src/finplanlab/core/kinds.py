"""
FinPlanLab event type constants and catalog (group + cash direction).
"""

from __future__ import annotations

from dataclasses import dataclass


class E:
    # === Housing ===
    RENT = "rent"
    BUY_HOME = "buy_home"

    # === Income ===
    SALARY = "salary"

    # === Household expenses ===
    BABY = "baby"
    CAR = "car"
    TRAVEL = "travel"
    HELPER = "helper"
    CUSTOM = "custom"

    # === Insurance ===
    INSURANCE = "insurance"
    INSURANCE_PRODUCT = "insurance_product"  # template holder, expands to derived events
    INSURANCE_PREMIUM = "insurance_premium"
    INSURANCE_PAYOUT = "insurance_payout"
    TAX_BENEFIT = "tax_benefit"

    # === Investment ===
    INVESTMENT_CONTRIBUTION = "investment_contribution"
    INVESTMENT_WITHDRAWAL = "investment_withdrawal"

    # === Structural ===
    GROUP = "group"

    @classmethod
    def all_types(cls) -> list[str]:
        """Enumerate all known event types (for validation and docs)."""
        return list(EVENT_CATALOG)


# Definition kinds
KIND_CASHFLOW = "cashflow"
KIND_GROUP = "group"
DEFINITION_KINDS = (KIND_CASHFLOW, KIND_GROUP)

# Rule modes
MODE_PARAMS = "params"
MODE_SCHEDULE = "schedule"
RULE_MODES = (MODE_PARAMS, MODE_SCHEDULE)

INFLOW = 1
OUTFLOW = -1


@dataclass(frozen=True, slots=True)
class EventMeta:
    """Catalog entry for one event type."""

    group: str
    sign: int


EVENT_CATALOG: dict[str, EventMeta] = {
    E.RENT: EventMeta("housing", OUTFLOW),
    E.SALARY: EventMeta("income", INFLOW),
    E.BUY_HOME: EventMeta("housing", OUTFLOW),
    E.BABY: EventMeta("expense", OUTFLOW),
    E.CAR: EventMeta("expense", OUTFLOW),
    E.TRAVEL: EventMeta("expense", OUTFLOW),
    E.INSURANCE: EventMeta("insurance", OUTFLOW),
    E.INSURANCE_PRODUCT: EventMeta("insurance", OUTFLOW),
    E.INSURANCE_PREMIUM: EventMeta("insurance", OUTFLOW),
    E.INSURANCE_PAYOUT: EventMeta("insurance", INFLOW),
    E.HELPER: EventMeta("expense", OUTFLOW),
    E.INVESTMENT_CONTRIBUTION: EventMeta("investment", OUTFLOW),
    E.INVESTMENT_WITHDRAWAL: EventMeta("investment", INFLOW),
    E.TAX_BENEFIT: EventMeta("insurance", INFLOW),
    E.CUSTOM: EventMeta("expense", OUTFLOW),
    E.GROUP: EventMeta("expense", OUTFLOW),
}

_FALLBACK_META = EventMeta("income", INFLOW)


def get_event_meta(event_type: str) -> EventMeta:
    """Catalog entry for ``event_type`` (unknown types count as income)."""
    return EVENT_CATALOG.get(event_type, _FALLBACK_META)


def get_event_sign(event_type: str) -> int:
    """``+1`` for inflows, ``-1`` for outflows."""
    return get_event_meta(event_type).sign
