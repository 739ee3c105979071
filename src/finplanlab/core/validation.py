"""
Validation and reporting for scenario positions.

Each ``validate_*`` function inspects one position record and returns a
:class:`PositionReport`. The adapter decides what to do with a failing
report (raise in strict mode, drop and warn in lenient mode).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .months import is_valid_month
from .scenario import (
    ASSET_CLASSES,
    HOME_MODES,
    HOME_USAGES,
    INSURANCE_TYPES,
    PREMIUM_MODES,
    CarPosition,
    HomePosition,
    InsurancePosition,
    InvestmentPosition,
    LoanPosition,
)

MONTH_ISSUE = "month"
VALUE_ISSUE = "value"


@dataclass(frozen=True, slots=True)
class PositionIssue:
    """One failed check on a position field."""

    path: str
    message: str
    category: str = VALUE_ISSUE


@dataclass
class PositionReport:
    """
    Structured validation report for one position.

    Provides machine-readable results the adapter turns into warnings or
    errors.
    """

    position_id: str | None = None
    issues: list[PositionIssue] = field(default_factory=list)

    def add(self, path: str, message: str, category: str = VALUE_ISSUE) -> None:
        self.issues.append(PositionIssue(path, message, category))

    def is_valid(self) -> bool:
        return not self.issues

    def has_month_errors(self) -> bool:
        return any(issue.category == MONTH_ISSUE for issue in self.issues)

    def first_issue_by_path(self) -> dict[str, str]:
        """First message per field path (for form-style display)."""
        result: dict[str, str] = {}
        for issue in self.issues:
            result.setdefault(issue.path, issue.message)
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "position_id": self.position_id,
            "issues": [
                {"path": i.path, "message": i.message, "category": i.category}
                for i in self.issues
            ],
            "is_valid": self.is_valid(),
        }

    def __str__(self) -> str:
        if self.is_valid():
            return "✅ Position is valid"
        lines = [f"❌ Position {self.position_id or '<unnamed>'} is invalid"]
        for issue in self.issues:
            lines.append(f"  {issue.path}: {issue.message}")
        return "\n".join(lines)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_month(
    report: PositionReport, path: str, value: Any, *, required: bool = True
) -> None:
    if value is None:
        if required:
            report.add(path, "month is required", MONTH_ISSUE)
        return
    if not is_valid_month(value):
        report.add(path, f"expected YYYY-MM month, got {value!r}", MONTH_ISSUE)


def _check_number(
    report: PositionReport,
    path: str,
    value: Any,
    *,
    required: bool = True,
    minimum: float | None = None,
    maximum: float | None = None,
    positive: bool = False,
) -> None:
    if value is None:
        if required:
            report.add(path, "value is required")
        return
    if not _is_number(value):
        report.add(path, f"expected a number, got {value!r}")
        return
    if positive and value <= 0:
        report.add(path, "must be positive")
    if minimum is not None and value < minimum:
        report.add(path, f"must be >= {minimum}")
    if maximum is not None and value > maximum:
        report.add(path, f"must be <= {maximum}")


def _check_choice(report: PositionReport, path: str, value: Any, choices) -> None:
    if value is not None and value not in choices:
        report.add(path, f"must be one of {tuple(choices)}, got {value!r}")


def validate_home_position(home: HomePosition) -> PositionReport:
    """
    Validate a home position.

    New purchases need price, down payment (not above the price), purchase
    month, mortgage rate and mortgage term. Existing homes need the
    ``existing`` block instead. Appreciation is always required.
    """
    report = PositionReport(position_id=home.id)
    _check_choice(report, "usage", home.usage, HOME_USAGES)
    _check_choice(report, "mode", home.mode, HOME_MODES)
    _check_number(
        report, "annual_appreciation_pct", home.annual_appreciation_pct,
        minimum=-100, maximum=100,
    )
    _check_number(report, "fees_one_time", home.fees_one_time, required=False, minimum=0)
    _check_number(
        report, "holding_cost_monthly", home.holding_cost_monthly,
        required=False, minimum=0,
    )
    _check_number(
        report, "holding_cost_annual_growth_pct", home.holding_cost_annual_growth_pct,
        required=False, minimum=0, maximum=100,
    )

    if home.rental is not None:
        rental = home.rental
        _check_number(report, "rental.rent_monthly", rental.rent_monthly, minimum=0)
        _check_month(report, "rental.rent_start_month", rental.rent_start_month)
        _check_month(
            report, "rental.rent_end_month", rental.rent_end_month, required=False
        )
        _check_number(
            report, "rental.rent_annual_growth_pct", rental.rent_annual_growth_pct,
            required=False, minimum=0, maximum=100,
        )
        _check_number(
            report, "rental.vacancy_rate_pct", rental.vacancy_rate_pct,
            required=False, minimum=0, maximum=100,
        )

    if home.mode == "existing":
        existing = home.existing
        if existing is None:
            report.add("existing", "existing home details are required")
            return report
        _check_month(report, "existing.as_of_month", existing.as_of_month)
        _check_number(
            report, "existing.market_value", existing.market_value, positive=True
        )
        _check_number(
            report, "existing.mortgage_balance", existing.mortgage_balance, minimum=0
        )
        _check_number(
            report, "existing.remaining_term_months", existing.remaining_term_months,
            minimum=1, maximum=600,
        )
        _check_number(
            report, "existing.annual_rate_pct", existing.annual_rate_pct,
            minimum=0, maximum=100,
        )
        return report

    _check_number(report, "purchase_price", home.purchase_price, positive=True)
    _check_number(report, "down_payment", home.down_payment, minimum=0)
    _check_month(report, "purchase_month", home.purchase_month)
    _check_number(
        report, "mortgage_rate_pct", home.mortgage_rate_pct, minimum=0, maximum=100
    )
    _check_number(
        report, "mortgage_term_years", home.mortgage_term_years, minimum=1, maximum=50
    )
    if (
        _is_number(home.purchase_price)
        and _is_number(home.down_payment)
        and home.down_payment > home.purchase_price
    ):
        report.add("down_payment", "down payment exceeds purchase price")
    return report


def validate_loan_position(loan: LoanPosition) -> PositionReport:
    report = PositionReport(position_id=loan.id)
    _check_month(report, "start_month", loan.start_month)
    _check_number(report, "principal", loan.principal, positive=True)
    _check_number(
        report, "annual_interest_rate_pct", loan.annual_interest_rate_pct,
        minimum=0, maximum=100,
    )
    _check_number(report, "term_years", loan.term_years, minimum=1, maximum=50)
    _check_number(
        report, "monthly_payment", loan.monthly_payment, required=False, minimum=0
    )
    _check_number(report, "fees_one_time", loan.fees_one_time, required=False, minimum=0)
    return report


def validate_investment_position(investment: InvestmentPosition) -> PositionReport:
    report = PositionReport(position_id=investment.id)
    _check_month(report, "start_month", investment.start_month)
    _check_number(report, "initial_value", investment.initial_value, minimum=0)
    _check_choice(report, "asset_class", investment.asset_class, ASSET_CLASSES)
    _check_number(
        report, "expected_annual_return_pct", investment.expected_annual_return_pct,
        required=False, minimum=-100, maximum=100,
    )
    _check_number(
        report, "monthly_contribution", investment.monthly_contribution,
        required=False, minimum=0,
    )
    _check_number(
        report, "monthly_withdrawal", investment.monthly_withdrawal,
        required=False, minimum=0,
    )
    _check_number(
        report, "fee_annual_rate_pct", investment.fee_annual_rate_pct,
        required=False, minimum=0, maximum=100,
    )
    return report


def validate_car_position(car: CarPosition) -> PositionReport:
    report = PositionReport(position_id=car.id)
    _check_month(report, "purchase_month", car.purchase_month)
    _check_number(report, "purchase_price", car.purchase_price, positive=True)
    _check_number(report, "down_payment", car.down_payment, minimum=0)
    _check_number(
        report, "annual_depreciation_rate_pct", car.annual_depreciation_rate_pct,
        minimum=0, maximum=100,
    )
    _check_number(report, "holding_cost_monthly", car.holding_cost_monthly, minimum=0)
    _check_number(
        report, "holding_cost_annual_growth_pct", car.holding_cost_annual_growth_pct,
        minimum=0, maximum=100,
    )
    if car.loan is not None:
        _check_number(report, "loan.principal", car.loan.principal, positive=True)
        _check_number(
            report, "loan.annual_interest_rate_pct", car.loan.annual_interest_rate_pct,
            minimum=0, maximum=100,
        )
        _check_number(
            report, "loan.term_years", car.loan.term_years, minimum=1, maximum=50
        )
        _check_number(
            report, "loan.monthly_payment", car.loan.monthly_payment,
            required=False, minimum=0,
        )
    if (
        _is_number(car.purchase_price)
        and _is_number(car.down_payment)
        and car.down_payment > car.purchase_price
    ):
        report.add("down_payment", "down payment exceeds purchase price")
    return report


def validate_insurance_position(insurance: InsurancePosition) -> PositionReport:
    report = PositionReport(position_id=insurance.id)
    _check_choice(report, "insurance_type", insurance.insurance_type, INSURANCE_TYPES)
    _check_choice(report, "premium_mode", insurance.premium_mode, PREMIUM_MODES)
    _check_number(report, "premium_amount", insurance.premium_amount, minimum=0)
    _check_number(
        report, "cash_value_as_of", insurance.cash_value_as_of,
        required=False, minimum=0,
    )
    return report
