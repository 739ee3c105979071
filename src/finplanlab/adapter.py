"""
Scenario to projection-input adapter.

:func:`map_scenario_to_engine_input` compiles one scenario plus the shared
event library into a :class:`ProjectionInput` for the projection calculator.
It converts whole percents to decimals and years to months, derives implied
fields (mortgage principal), reconciles legacy ``buy_home`` events with home
positions and reports every dropped fragment as an :class:`AdapterWarning`.

In strict mode (the default) structurally broken input raises
:class:`ScenarioCompileError`; in lenient mode the offending fragment is
omitted and a warning is recorded instead, so previews can render partial
results.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from finplanlab.core.engine_input import (
    EngineCar,
    EngineCarLoan,
    EngineEvent,
    EngineExistingHome,
    EngineHome,
    EngineInsurance,
    EngineInvestment,
    EngineLoan,
    EngineMortgage,
    EngineRental,
    PositionsInput,
    ProjectionInput,
)
from finplanlab.core.errors import FinPlanDeprecationWarning
from finplanlab.core.events import EventDefinition, ScenarioEventView
from finplanlab.core.exceptions import ScenarioCompileError
from finplanlab.core.kinds import OUTFLOW, E, get_event_sign
from finplanlab.core.months import (
    add_months,
    current_month,
    earliest_month,
    is_valid_month,
    month_to_index,
)
from finplanlab.core.resolver import build_event_library_map, resolve_event_rule
from finplanlab.core.rules import ParamsRule, ScheduleRule
from finplanlab.core.scenario import (
    DEFAULT_HORIZON_MONTHS,
    Assumptions,
    CarPosition,
    HomePosition,
    InsurancePosition,
    InvestmentPosition,
    LoanPosition,
    Scenario,
)
from finplanlab.core.tolerance import is_number_close
from finplanlab.core.validation import (
    PositionReport,
    validate_car_position,
    validate_home_position,
    validate_insurance_position,
    validate_investment_position,
    validate_loan_position,
)
from finplanlab.templates import TemplateSeed, expand_product

logger = logging.getLogger(__name__)

# Warning / error codes
INVALID_MONTH = "invalid-month"
INVALID_HORIZON = "invalid-horizon"
INVALID_POSITION = "invalid-position"
MISSING_DEFINITION = "missing-definition"
BUY_HOME_WITHOUT_POSITION = "buy-home-without-position"
BUY_HOME_UNMATCHED = "buy-home-unmatched"
BUY_HOME_IGNORED = "buy-home-ignored"
DOUBLE_COUNT = "double-count"

# Double-count heuristic: payment vs event amount band
DOUBLE_COUNT_ABS_TOLERANCE = 100.0
DOUBLE_COUNT_PCT_TOLERANCE = 0.1

P = TypeVar("P")


@dataclass(frozen=True, slots=True)
class AdapterOptions:
    """
    Per-call overrides for the scenario's assumptions.

    Attributes:
        base_month: Wins over ``assumptions.base_month`` and inference
        horizon_months: Wins over ``assumptions.horizon_months``
        initial_cash: Wins over ``assumptions.initial_cash``
        default_horizon_months: Horizon used in lenient mode when the
            resolved horizon is not positive
    """

    base_month: str | None = None
    horizon_months: int | None = None
    initial_cash: float | None = None
    default_horizon_months: int = DEFAULT_HORIZON_MONTHS


@dataclass(frozen=True, slots=True)
class AdapterWarning:
    """Structured, non-fatal compilation finding."""

    code: str
    message: str
    source_id: str | None = None
    path: str | None = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "source_id": self.source_id,
            "path": self.path,
        }


@dataclass(frozen=True, slots=True)
class AdapterResult:
    input: ProjectionInput
    warnings: tuple[AdapterWarning, ...] = ()

    def codes(self) -> list[str]:
        return [w.code for w in self.warnings]


@dataclass
class _Diagnostics:
    """Collects warnings and raises on fatal findings in strict mode."""

    scenario_id: str
    strict: bool
    warnings: list[AdapterWarning] = field(default_factory=list)

    def warn(
        self,
        code: str,
        message: str,
        source_id: str | None = None,
        path: str | None = None,
    ) -> None:
        logger.warning("[Scenario %s] %s: %s", self.scenario_id, code, message)
        self.warnings.append(AdapterWarning(code, message, source_id, path))

    def fail(
        self,
        code: str,
        message: str,
        source_id: str | None = None,
        path: str | None = None,
    ) -> None:
        """Raise in strict mode, otherwise record a warning."""
        if self.strict:
            raise ScenarioCompileError(
                self.scenario_id,
                message,
                code=code,
                problem_ids=[source_id] if source_id else None,
            )
        self.warn(code, message, source_id, path)


# --- Helpers ---------------------------------------------------------------


def _pct(value: float | None) -> float:
    """Whole percent to decimal, ``None`` as 0."""
    return (value or 0.0) / 100


def _term_months(years: float | None) -> int:
    return int(round((years or 0.0) * 12))


def _rule_start(rule: ParamsRule | ScheduleRule) -> str | None:
    if rule.start_month:
        return rule.start_month
    if isinstance(rule, ScheduleRule) and rule.schedule:
        return earliest_month(entry.month for entry in rule.schedule)
    return None


def _fallback_growth_pct(event_type: str, assumptions: Assumptions) -> float | None:
    """Scenario-level growth used when an event rule has none."""
    if event_type == E.RENT:
        if assumptions.rent_annual_growth_pct is not None:
            return assumptions.rent_annual_growth_pct
        return assumptions.inflation_rate
    if event_type == E.SALARY:
        return assumptions.salary_growth_rate
    return None


def _position_label(report: PositionReport) -> str:
    return "; ".join(f"{i.path}: {i.message}" for i in report.issues)


def _collect_homes(scenario: Scenario) -> list[HomePosition] | None:
    """Uniform home list from ``positions.homes`` or the legacy ``positions.home``."""
    positions = scenario.positions
    if positions is None:
        return None
    if positions.homes is not None:
        return list(positions.homes)
    if positions.home is not None:
        warnings.warn(
            f"[Scenario {scenario.id}] 'positions.home' is deprecated. Use 'positions.homes'.",
            FinPlanDeprecationWarning,
            stacklevel=3,
        )
        return [positions.home]
    return None


def _validated(
    items: Sequence[P] | None,
    validate: Callable[[P], PositionReport],
    kind: str,
    diagnostics: _Diagnostics,
) -> list[P]:
    """Items that pass validation; failures are fatal (strict) or dropped."""
    kept: list[P] = []
    for index, item in enumerate(items or ()):
        report = validate(item)
        if report.is_valid():
            kept.append(item)
            continue
        code = INVALID_MONTH if report.has_month_errors() else INVALID_POSITION
        diagnostics.fail(
            code,
            f"positions.{kind}[{index}] is invalid: {_position_label(report)}",
            source_id=report.position_id,
            path=f"positions.{kind}[{index}]",
        )
    return kept


# --- Events ----------------------------------------------------------------


def _enabled_views(
    scenario: Scenario,
    event_library: Iterable[EventDefinition],
    diagnostics: _Diagnostics,
) -> list[ScenarioEventView]:
    library = build_event_library_map(event_library)
    views: list[ScenarioEventView] = []
    for ref in scenario.event_refs:
        if not ref.enabled:
            continue
        definition = library.get(ref.ref_id)
        if definition is None:
            diagnostics.warn(
                MISSING_DEFINITION,
                f"event reference {ref.ref_id!r} has no library definition",
                source_id=ref.ref_id,
            )
            continue
        if not definition.is_cashflow:
            continue
        views.append(ScenarioEventView(definition, ref, resolve_event_rule(definition, ref)))
    return views


def _map_params_event(
    event_id: str,
    event_type: str,
    rule: ParamsRule,
    base_month: str,
    assumptions: Assumptions,
    diagnostics: _Diagnostics,
    source_id: str | None = None,
) -> EngineEvent | None:
    start_month = rule.start_month or base_month
    for name, value in (("start_month", start_month), ("end_month", rule.end_month)):
        if value is not None and not is_valid_month(value):
            diagnostics.fail(
                INVALID_MONTH,
                f"event {event_id!r} has malformed {name} {value!r}",
                source_id=event_id,
                path=f"events.{event_id}.{name}",
            )
            return None

    growth_pct = rule.annual_growth_pct
    if growth_pct is None:
        growth_pct = _fallback_growth_pct(event_type, assumptions)

    return EngineEvent(
        id=event_id,
        type=event_type,
        sign=get_event_sign(event_type),
        start_month=start_month,
        end_month=rule.end_month,
        monthly_amount=abs(rule.monthly_amount or 0.0),
        one_time_amount=abs(rule.one_time_amount or 0.0),
        annual_growth_rate=_pct(growth_pct),
        source_id=source_id,
    )


def _map_schedule_event(
    view: ScenarioEventView, diagnostics: _Diagnostics
) -> list[EngineEvent]:
    """One one-time event per schedule entry."""
    definition = view.definition
    sign = get_event_sign(definition.type)
    mapped: list[EngineEvent] = []
    for entry in view.rule.sorted_entries():
        if not is_valid_month(entry.month):
            diagnostics.fail(
                INVALID_MONTH,
                f"event {definition.id!r} has a schedule entry with malformed month {entry.month!r}",
                source_id=definition.id,
                path=f"events.{definition.id}.schedule",
            )
            continue
        mapped.append(
            EngineEvent(
                id=f"{definition.id}-{entry.month}",
                type=definition.type,
                sign=sign,
                start_month=entry.month,
                end_month=entry.month,
                monthly_amount=0.0,
                one_time_amount=abs(entry.amount or 0.0),
                annual_growth_rate=0.0,
                source_id=definition.id,
            )
        )
    return mapped


def _map_insurance_product(
    view: ScenarioEventView,
    base_month: str,
    assumptions: Assumptions,
    diagnostics: _Diagnostics,
) -> list[EngineEvent]:
    definition = view.definition
    rule = view.rule
    start_month = rule.start_month or base_month
    if not is_valid_month(start_month):
        diagnostics.fail(
            INVALID_MONTH,
            f"insurance product {definition.id!r} has malformed start_month {start_month!r}",
            source_id=definition.id,
            path=f"events.{definition.id}.start_month",
        )
        return []
    monthly = rule.monthly_amount if isinstance(rule, ParamsRule) else None
    seed = TemplateSeed(
        title=definition.title,
        start_month=start_month,
        monthly_amount=abs(monthly or 0.0),
    )
    mapped = []
    for derived in expand_product(
        definition.id, definition.template_id, seed, definition.template_params
    ):
        event = _map_params_event(
            derived.id,
            derived.type,
            derived.rule,
            base_month,
            assumptions,
            diagnostics,
            source_id=derived.source_id,
        )
        if event is not None:
            mapped.append(event)
    return mapped


def _map_events(
    views: list[ScenarioEventView],
    base_month: str,
    assumptions: Assumptions,
    diagnostics: _Diagnostics,
) -> list[EngineEvent]:
    events: list[EngineEvent] = []
    for view in views:
        definition = view.definition
        if definition.type == E.BUY_HOME:
            continue
        if definition.type == E.INSURANCE_PRODUCT:
            events.extend(
                _map_insurance_product(view, base_month, assumptions, diagnostics)
            )
        elif isinstance(view.rule, ScheduleRule):
            events.extend(_map_schedule_event(view, diagnostics))
        else:
            event = _map_params_event(
                definition.id,
                definition.type,
                view.rule,
                base_month,
                assumptions,
                diagnostics,
            )
            if event is not None:
                events.append(event)
    return events


def _reconcile_buy_home(
    views: list[ScenarioEventView],
    homes: list[HomePosition],
    diagnostics: _Diagnostics,
) -> None:
    """
    Check ``buy_home`` events against home positions.

    ``buy_home`` events never reach the calculator: the purchase is modelled
    by the home position. Only the earliest one is checked; the rest are
    reported as ignored.
    """
    buy_home_views = sorted(
        (v for v in views if v.definition.type == E.BUY_HOME),
        key=lambda v: _rule_start(v.rule) or "",
    )
    if not buy_home_views:
        return

    primary, *ignored = buy_home_views
    event_id = primary.definition.id
    purchase_month = _rule_start(primary.rule)

    if purchase_month is not None and not is_valid_month(purchase_month):
        diagnostics.fail(
            INVALID_MONTH,
            f"buy_home event {event_id!r} has malformed start_month {purchase_month!r}",
            source_id=event_id,
            path=f"events.{event_id}.start_month",
        )

    if not homes:
        diagnostics.fail(
            BUY_HOME_WITHOUT_POSITION,
            f"buy_home event {event_id!r} requires home details in positions.homes",
            source_id=event_id,
            path=f"events.{event_id}",
        )
    elif purchase_month and not any(
        home.acquisition_month == purchase_month for home in homes
    ):
        diagnostics.warn(
            BUY_HOME_UNMATCHED,
            f"buy_home event {event_id!r} ({purchase_month}) matches no home purchase month",
            source_id=event_id,
            path=f"events.{event_id}",
        )

    for view in ignored:
        diagnostics.warn(
            BUY_HOME_IGNORED,
            f"buy_home event {view.definition.id!r} ignored; only the earliest buy_home is considered",
            source_id=view.definition.id,
            path=f"events.{view.definition.id}",
        )


# --- Positions -------------------------------------------------------------


def _map_home(home: HomePosition, base_month: str) -> EngineHome:
    rental = None
    if home.rental is not None:
        rental = EngineRental(
            rent_monthly=home.rental.rent_monthly,
            rent_start_month=home.rental.rent_start_month,
            rent_end_month=home.rental.rent_end_month,
            rent_annual_growth=_pct(home.rental.rent_annual_growth_pct),
            vacancy_rate=_pct(home.rental.vacancy_rate_pct),
        )

    common = dict(
        id=home.id,
        usage=home.usage,
        mode=home.mode,
        annual_appreciation=_pct(home.annual_appreciation_pct),
        fees_one_time=home.fees_one_time,
        holding_cost_monthly=home.holding_cost_monthly or 0.0,
        holding_cost_annual_growth=_pct(home.holding_cost_annual_growth_pct),
        rental=rental,
    )

    if home.mode == "existing" and home.existing is not None:
        existing = home.existing
        return EngineHome(
            purchase_price=(
                home.purchase_price
                if home.purchase_price is not None
                else existing.market_value
            ),
            existing=EngineExistingHome(
                as_of_month=existing.as_of_month,
                market_value=existing.market_value,
                mortgage_balance=existing.mortgage_balance,
                remaining_term_months=int(existing.remaining_term_months),
                annual_rate=_pct(existing.annual_rate_pct),
            ),
            **common,
        )

    purchase_price = home.purchase_price or 0.0
    down_payment = home.down_payment or 0.0
    return EngineHome(
        purchase_price=purchase_price,
        down_payment=down_payment,
        purchase_month=home.purchase_month or base_month,
        mortgage=EngineMortgage(
            principal=purchase_price - down_payment,
            annual_rate=_pct(home.mortgage_rate_pct),
            term_months=_term_months(home.mortgage_term_years),
        ),
        **common,
    )


def _map_loan(loan: LoanPosition) -> EngineLoan:
    return EngineLoan(
        id=loan.id,
        start_month=loan.start_month,
        principal=loan.principal,
        annual_interest_rate=_pct(loan.annual_interest_rate_pct),
        term_months=_term_months(loan.term_years),
        monthly_payment=loan.monthly_payment,
        fees_one_time=loan.fees_one_time,
    )


def _map_investment(
    investment: InvestmentPosition, assumptions: Assumptions
) -> EngineInvestment:
    return_pct = investment.expected_annual_return_pct
    if return_pct is None and investment.asset_class:
        return_pct = assumptions.investment_return_assumptions.get(
            investment.asset_class
        )
    return EngineInvestment(
        id=investment.id,
        asset_class=investment.asset_class,
        start_month=investment.start_month,
        initial_value=investment.initial_value,
        annual_return_rate=_pct(return_pct),
        monthly_contribution=investment.monthly_contribution or 0.0,
        monthly_withdrawal=investment.monthly_withdrawal or 0.0,
        fee_annual_rate=_pct(investment.fee_annual_rate_pct),
    )


def _map_car(car: CarPosition) -> EngineCar:
    loan = None
    if car.loan is not None:
        loan = EngineCarLoan(
            principal=car.loan.principal,
            annual_interest_rate=_pct(car.loan.annual_interest_rate_pct),
            term_months=_term_months(car.loan.term_years),
            monthly_payment=car.loan.monthly_payment,
        )
    return EngineCar(
        id=car.id,
        purchase_month=car.purchase_month,
        purchase_price=car.purchase_price,
        down_payment=car.down_payment,
        annual_depreciation_rate=_pct(car.annual_depreciation_rate_pct),
        holding_cost_monthly=car.holding_cost_monthly,
        holding_cost_annual_growth=_pct(car.holding_cost_annual_growth_pct),
        loan=loan,
    )


def _map_insurance(insurance: InsurancePosition) -> EngineInsurance:
    premium_monthly = insurance.premium_amount
    if insurance.premium_mode == "annual":
        premium_monthly = insurance.premium_amount / 12
    return EngineInsurance(
        id=insurance.id,
        insurance_type=insurance.insurance_type,
        premium_monthly=premium_monthly,
        has_cash_value=insurance.has_cash_value,
        cash_value=insurance.cash_value_as_of or 0.0,
        cash_value_annual_growth=_pct(insurance.cash_value_annual_growth_pct),
    )


def _as_tuple(items: list) -> tuple | None:
    return tuple(items) if items else None


# --- Double-count detection ------------------------------------------------


def _detect_double_counts(
    events: list[EngineEvent],
    loans: list[EngineLoan],
    cars: list[EngineCar],
    horizon_end_index: int,
    diagnostics: _Diagnostics,
) -> None:
    """
    Warn when a recurring event looks like a repayment already modelled by a
    loan position: an outflow with an overlapping window and a monthly amount
    within tolerance of the loan's payment. Inputs are left untouched.
    """
    obligations: list[tuple[str, str | None, str, int, float]] = []
    for index, loan in enumerate(loans):
        if loan.monthly_payment:
            obligations.append(
                (f"positions.loans[{index}]", loan.id, loan.start_month,
                 loan.term_months, loan.monthly_payment)
            )
    for index, car in enumerate(cars):
        if car.loan is not None and car.loan.monthly_payment:
            obligations.append(
                (f"positions.cars[{index}].loan", car.id, car.purchase_month,
                 car.loan.term_months, car.loan.monthly_payment)
            )

    for path, position_id, start_month, term_months, payment in obligations:
        loan_start = month_to_index(start_month)
        if loan_start is None:
            continue
        loan_end = loan_start + max(term_months, 1) - 1
        for event in events:
            if event.sign != OUTFLOW or not event.monthly_amount:
                continue
            event_start = month_to_index(event.start_month)
            event_end = (
                month_to_index(event.end_month) if event.end_month else horizon_end_index
            )
            if event_start is None or event_end is None:
                continue
            overlaps = event_start <= loan_end and loan_start <= event_end
            if overlaps and is_number_close(
                event.monthly_amount,
                payment,
                DOUBLE_COUNT_ABS_TOLERANCE,
                DOUBLE_COUNT_PCT_TOLERANCE,
            ):
                diagnostics.warn(
                    DOUBLE_COUNT,
                    f"event {event.id!r} ({event.monthly_amount:,.2f}/month) may repeat "
                    f"the payment of {path} ({payment:,.2f}/month)",
                    source_id=event.id,
                    path=path,
                )


# --- Entry point -----------------------------------------------------------


def _resolve_base_month(
    scenario: Scenario,
    options: AdapterOptions,
    views: list[ScenarioEventView],
    homes: list[HomePosition],
    diagnostics: _Diagnostics,
) -> str:
    for label, explicit in (
        ("options.base_month", options.base_month),
        ("assumptions.base_month", scenario.assumptions.base_month),
    ):
        if explicit is None:
            continue
        if is_valid_month(explicit):
            return explicit
        diagnostics.fail(
            INVALID_MONTH,
            f"{label} is malformed: {explicit!r}",
            path=label,
        )

    inferred = earliest_month(_rule_start(view.rule) for view in views)
    if inferred:
        return inferred

    positions = scenario.positions
    acquisition_months = [home.acquisition_month for home in homes]
    if positions is not None:
        acquisition_months += [loan.start_month for loan in positions.loans or ()]
        acquisition_months += [i.start_month for i in positions.investments or ()]
        acquisition_months += [car.purchase_month for car in positions.cars or ()]
    return earliest_month(acquisition_months) or current_month()


def _resolve_horizon(
    scenario: Scenario, options: AdapterOptions, diagnostics: _Diagnostics
) -> int:
    horizon = options.horizon_months
    if horizon is None:
        horizon = scenario.assumptions.horizon_months
    if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon <= 0:
        diagnostics.fail(
            INVALID_HORIZON,
            f"horizon_months must be a positive integer, got {horizon!r}; "
            f"using {options.default_horizon_months}",
            path="assumptions.horizon_months",
        )
        return options.default_horizon_months
    return horizon


def map_scenario_to_engine_input(
    scenario: Scenario,
    event_library: Iterable[EventDefinition],
    *,
    strict: bool = True,
    options: AdapterOptions | None = None,
) -> AdapterResult:
    """
    Compile a scenario into calculator input.

    Args:
        scenario: Scenario snapshot
        event_library: Shared event definitions the scenario refers to
        strict: Raise on structurally broken input instead of warning
        options: Per-call overrides for base month, horizon and initial cash

    Returns:
        :class:`AdapterResult` with the projection input and any warnings

    Raises:
        ScenarioCompileError: In strict mode, for malformed months, invalid
            positions, a non-positive horizon, or a ``buy_home`` event
            without a home position

    **Example:**
        ```python
        result = map_scenario_to_engine_input(scenario, library, strict=False)
        result.input.positions.homes[0].mortgage.principal
        [w.code for w in result.warnings]
        ```
    """
    options = options or AdapterOptions()
    diagnostics = _Diagnostics(scenario_id=scenario.id, strict=strict)
    assumptions = scenario.assumptions

    views = _enabled_views(scenario, event_library, diagnostics)
    home_list = _collect_homes(scenario)
    homes = _validated(home_list, validate_home_position, "homes", diagnostics)

    base_month = _resolve_base_month(scenario, options, views, homes, diagnostics)
    horizon = _resolve_horizon(scenario, options, diagnostics)
    initial_cash = (
        options.initial_cash
        if options.initial_cash is not None
        else assumptions.initial_cash or 0.0
    )

    _reconcile_buy_home(views, homes, diagnostics)
    events = _map_events(views, base_month, assumptions, diagnostics)

    positions = scenario.positions
    loans: list[EngineLoan] = []
    investments: list[EngineInvestment] = []
    cars: list[EngineCar] = []
    insurances: list[EngineInsurance] = []
    if positions is not None:
        loans = [
            _map_loan(loan)
            for loan in _validated(positions.loans, validate_loan_position, "loans", diagnostics)
        ]
        investments = [
            _map_investment(investment, assumptions)
            for investment in _validated(
                positions.investments, validate_investment_position, "investments", diagnostics
            )
        ]
        cars = [
            _map_car(car)
            for car in _validated(positions.cars, validate_car_position, "cars", diagnostics)
        ]
        insurances = [
            _map_insurance(insurance)
            for insurance in _validated(
                positions.insurances, validate_insurance_position, "insurances", diagnostics
            )
        ]

    horizon_end_index = month_to_index(add_months(base_month, horizon - 1))
    _detect_double_counts(events, loans, cars, horizon_end_index, diagnostics)

    mapped_positions = PositionsInput(
        homes=_as_tuple([_map_home(home, base_month) for home in homes]),
        loans=_as_tuple(loans),
        investments=_as_tuple(investments),
        cars=_as_tuple(cars),
        insurances=_as_tuple(insurances),
    )

    projection_input = ProjectionInput(
        base_month=base_month,
        horizon_months=horizon,
        initial_cash=initial_cash,
        events=tuple(events),
        positions=None if mapped_positions.is_empty() else mapped_positions,
    )
    logger.debug(
        "[Scenario %s] compiled %d events, base %s, horizon %d, %d warnings",
        scenario.id,
        len(events),
        base_month,
        horizon,
        len(diagnostics.warnings),
    )
    return AdapterResult(input=projection_input, warnings=tuple(diagnostics.warnings))
