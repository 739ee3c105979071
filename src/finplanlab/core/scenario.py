"""
Scenario aggregate for FinPlanLab.

A :class:`Scenario` owns its assumptions, household members, event
references, budget rules and positions. Records are frozen snapshots: the
compilers read them and build new output, they never modify them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigError
from .events import ScenarioEventRef

DEFAULT_HORIZON_MONTHS = 240

HOME_USAGES = ("primary", "investment")
HOME_MODES = ("new_purchase", "existing")
ASSET_CLASSES = ("equity", "bond", "fund", "crypto")
INSURANCE_TYPES = ("life", "savings", "accident", "medical")
PREMIUM_MODES = ("monthly", "annual")
MEMBER_KINDS = ("person", "pet")


@dataclass(frozen=True, slots=True)
class Assumptions:
    """
    Scenario-wide projection assumptions.

    Growth and rate knobs are whole percents (``3`` means 3% a year).
    """

    horizon_months: int = DEFAULT_HORIZON_MONTHS
    initial_cash: float = 0.0
    base_month: str | None = None
    inflation_rate: float | None = None
    salary_growth_rate: float | None = None
    rent_annual_growth_pct: float | None = None
    investment_return_assumptions: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self):
        horizon = self.horizon_months
        if horizon is not None:
            if (
                isinstance(horizon, bool)
                or not isinstance(horizon, (int, float))
                or not float(horizon).is_integer()
            ):
                raise ConfigError(f"horizon_months must be a whole number, got {horizon!r}")
            object.__setattr__(self, "horizon_months", int(horizon))
        object.__setattr__(
            self,
            "investment_return_assumptions",
            MappingProxyType(dict(self.investment_return_assumptions)),
        )


@dataclass(frozen=True, slots=True)
class Member:
    """Household member (person or pet) used for age-gated budget rules."""

    id: str
    name: str = ""
    kind: str = "person"
    birth_month: str | None = None
    age_at_base_month: float | None = None

    def __post_init__(self):
        if self.kind not in MEMBER_KINDS:
            raise ConfigError(
                f"Member {self.id!r}: kind must be one of {MEMBER_KINDS}, got {self.kind!r}"
            )


@dataclass(frozen=True, slots=True)
class AgeBand:
    """Half-open age interval ``[from_years, to_years)``."""

    from_years: float = 0.0
    to_years: float = 200.0

    def __post_init__(self):
        if self.from_years > self.to_years:
            raise ConfigError(
                f"Age band is inverted: from_years={self.from_years} > to_years={self.to_years}"
            )

    def contains(self, age_years: float) -> bool:
        return self.from_years <= age_years < self.to_years


@dataclass(frozen=True, slots=True)
class BudgetRule:
    """Age-banded recurring expense, independent of the event system."""

    id: str
    name: str
    monthly_amount: float = 0.0
    enabled: bool = True
    member_id: str | None = None
    category: str = "general"
    age_band: AgeBand = field(default_factory=AgeBand)
    start_month: str | None = None
    end_month: str | None = None
    annual_growth_pct: float | None = None


# --- Positions -------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExistingHomeDetails:
    as_of_month: str
    market_value: float
    mortgage_balance: float
    remaining_term_months: int
    annual_rate_pct: float


@dataclass(frozen=True, slots=True)
class RentalDetails:
    rent_monthly: float
    rent_start_month: str
    rent_end_month: str | None = None
    rent_annual_growth_pct: float | None = None
    vacancy_rate_pct: float | None = None


@dataclass(frozen=True, slots=True)
class HomePosition:
    """
    Home owned (``existing``) or bought during the plan (``new_purchase``).

    The mortgage principal of a new purchase is always
    ``purchase_price - down_payment``; it is never stored.
    """

    id: str | None = None
    usage: str = "primary"
    mode: str = "new_purchase"
    purchase_price: float | None = None
    down_payment: float | None = None
    purchase_month: str | None = None
    annual_appreciation_pct: float | None = None
    mortgage_rate_pct: float | None = None
    mortgage_term_years: float | None = None
    fees_one_time: float | None = None
    holding_cost_monthly: float | None = None
    holding_cost_annual_growth_pct: float | None = None
    existing: ExistingHomeDetails | None = None
    rental: RentalDetails | None = None

    @property
    def acquisition_month(self) -> str | None:
        if self.mode == "existing":
            return self.existing.as_of_month if self.existing else None
        return self.purchase_month


@dataclass(frozen=True, slots=True)
class LoanPosition:
    start_month: str
    principal: float
    annual_interest_rate_pct: float
    term_years: float
    id: str | None = None
    monthly_payment: float | None = None
    fees_one_time: float | None = None


@dataclass(frozen=True, slots=True)
class InvestmentPosition:
    start_month: str
    initial_value: float
    id: str | None = None
    asset_class: str | None = None
    expected_annual_return_pct: float | None = None
    monthly_contribution: float | None = None
    monthly_withdrawal: float | None = None
    fee_annual_rate_pct: float | None = None


@dataclass(frozen=True, slots=True)
class CarLoan:
    principal: float
    annual_interest_rate_pct: float
    term_years: float
    monthly_payment: float | None = None


@dataclass(frozen=True, slots=True)
class CarPosition:
    purchase_month: str
    purchase_price: float
    down_payment: float = 0.0
    annual_depreciation_rate_pct: float = 0.0
    holding_cost_monthly: float = 0.0
    holding_cost_annual_growth_pct: float = 0.0
    id: str | None = None
    loan: CarLoan | None = None


@dataclass(frozen=True, slots=True)
class InsurancePosition:
    insurance_type: str
    premium_mode: str
    premium_amount: float
    id: str | None = None
    has_cash_value: bool = False
    cash_value_as_of: float | None = None
    cash_value_annual_growth_pct: float | None = None


@dataclass(frozen=True, slots=True)
class Positions:
    """
    Asset and liability snapshots owned by a scenario.

    ``home`` is the legacy single-home shape; new documents use ``homes``.
    ``None`` means "not provided", an empty tuple means "provided, none".
    """

    home: HomePosition | None = None
    homes: tuple[HomePosition, ...] | None = None
    loans: tuple[LoanPosition, ...] | None = None
    investments: tuple[InvestmentPosition, ...] | None = None
    cars: tuple[CarPosition, ...] | None = None
    insurances: tuple[InsurancePosition, ...] | None = None

    def __post_init__(self):
        for name in ("homes", "loans", "investments", "cars", "insurances"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, tuple(value))


@dataclass(frozen=True, slots=True)
class Scenario:
    """
    Aggregate root of a financial plan.

    Attributes:
        id: Scenario identifier
        name: Display name
        base_currency: Currency used when an event definition has none
        assumptions: Projection assumptions (base month, horizon, growth knobs)
        members: Household members
        event_refs: References into the shared event library
        budget_rules: Age-banded recurring expenses
        positions: Home/loan/investment/car/insurance snapshots
    """

    id: str
    name: str = ""
    base_currency: str = "USD"
    assumptions: Assumptions = field(default_factory=Assumptions)
    members: tuple[Member, ...] = ()
    event_refs: tuple[ScenarioEventRef, ...] = ()
    budget_rules: tuple[BudgetRule, ...] = ()
    positions: Positions | None = None

    def __post_init__(self):
        object.__setattr__(self, "members", tuple(self.members))
        object.__setattr__(self, "event_refs", tuple(self.event_refs))
        object.__setattr__(self, "budget_rules", tuple(self.budget_rules))

    def find_member(self, member_id: str) -> Member | None:
        return next((m for m in self.members if m.id == member_id), None)
