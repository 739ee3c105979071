"""
Input records for the projection calculator.

Everything here is already in calculator units: rates are decimals
(``0.04`` for 4%) and durations are month counts. Records are produced by
:func:`finplanlab.adapter.map_scenario_to_engine_input` and never read back
into a scenario.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


def _prune(value: Any) -> Any:
    """Drop ``None`` entries recursively so serialized inputs stay compact."""
    if isinstance(value, dict):
        return {k: _prune(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_prune(v) for v in value]
    return value


@dataclass(frozen=True, slots=True)
class EngineEvent:
    """
    One cash-flow stream for the calculator.

    Amounts are magnitudes; ``sign`` (``+1`` inflow, ``-1`` outflow) carries
    the direction from the event catalog.
    """

    id: str
    type: str
    sign: int
    start_month: str
    end_month: str | None = None
    monthly_amount: float = 0.0
    one_time_amount: float = 0.0
    annual_growth_rate: float = 0.0
    source_id: str | None = None
    enabled: bool = True

    @property
    def signed_monthly_amount(self) -> float:
        return self.sign * self.monthly_amount if self.monthly_amount else 0.0

    @property
    def signed_one_time_amount(self) -> float:
        return self.sign * self.one_time_amount if self.one_time_amount else 0.0


@dataclass(frozen=True, slots=True)
class EngineMortgage:
    principal: float
    annual_rate: float
    term_months: int


@dataclass(frozen=True, slots=True)
class EngineExistingHome:
    as_of_month: str
    market_value: float
    mortgage_balance: float
    remaining_term_months: int
    annual_rate: float


@dataclass(frozen=True, slots=True)
class EngineRental:
    rent_monthly: float
    rent_start_month: str
    rent_end_month: str | None = None
    rent_annual_growth: float = 0.0
    vacancy_rate: float = 0.0


@dataclass(frozen=True, slots=True)
class EngineHome:
    """Home position in calculator units (new purchase or existing)."""

    annual_appreciation: float
    id: str | None = None
    usage: str = "primary"
    mode: str = "new_purchase"
    purchase_price: float | None = None
    down_payment: float | None = None
    purchase_month: str | None = None
    mortgage: EngineMortgage | None = None
    fees_one_time: float | None = None
    holding_cost_monthly: float = 0.0
    holding_cost_annual_growth: float = 0.0
    existing: EngineExistingHome | None = None
    rental: EngineRental | None = None


@dataclass(frozen=True, slots=True)
class EngineLoan:
    start_month: str
    principal: float
    annual_interest_rate: float
    term_months: int
    id: str | None = None
    monthly_payment: float | None = None
    fees_one_time: float | None = None


@dataclass(frozen=True, slots=True)
class EngineInvestment:
    start_month: str
    initial_value: float
    annual_return_rate: float
    id: str | None = None
    asset_class: str | None = None
    monthly_contribution: float = 0.0
    monthly_withdrawal: float = 0.0
    fee_annual_rate: float = 0.0


@dataclass(frozen=True, slots=True)
class EngineCarLoan:
    principal: float
    annual_interest_rate: float
    term_months: int
    monthly_payment: float | None = None


@dataclass(frozen=True, slots=True)
class EngineCar:
    purchase_month: str
    purchase_price: float
    down_payment: float
    annual_depreciation_rate: float
    holding_cost_monthly: float
    holding_cost_annual_growth: float
    id: str | None = None
    loan: EngineCarLoan | None = None


@dataclass(frozen=True, slots=True)
class EngineInsurance:
    insurance_type: str
    premium_monthly: float
    id: str | None = None
    has_cash_value: bool = False
    cash_value: float = 0.0
    cash_value_annual_growth: float = 0.0


@dataclass(frozen=True, slots=True)
class PositionsInput:
    """
    Positions handed to the calculator.

    A kind with no valid entries (never provided, or every entry dropped
    by validation) is ``None``.
    """

    homes: tuple[EngineHome, ...] | None = None
    loans: tuple[EngineLoan, ...] | None = None
    investments: tuple[EngineInvestment, ...] | None = None
    cars: tuple[EngineCar, ...] | None = None
    insurances: tuple[EngineInsurance, ...] | None = None

    def is_empty(self) -> bool:
        return all(
            getattr(self, name) is None
            for name in ("homes", "loans", "investments", "cars", "insurances")
        )


@dataclass(frozen=True, slots=True)
class ProjectionInput:
    """
    Complete calculator input for one scenario.

    Attributes:
        base_month: First projected month
        horizon_months: Number of projected months (> 0)
        initial_cash: Opening cash balance
        events: Mapped cash-flow streams
        positions: Mapped positions, ``None`` when the scenario has none
    """

    base_month: str
    horizon_months: int
    initial_cash: float = 0.0
    events: tuple[EngineEvent, ...] = ()
    positions: PositionsInput | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form (``None`` fields omitted), suitable for JSON."""
        return _prune(asdict(self))
