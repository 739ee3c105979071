"""
Insurance product templates.
"""

from __future__ import annotations

from collections.abc import Mapping

from finplanlab.core.kinds import E
from finplanlab.core.months import add_months
from finplanlab.core.rules import ParamsRule

from .registry import DerivedSpec, ProductTemplate, TemplateParam, TemplateSeed

SAVINGS_PAY_2_RETURN_5 = "savings_pay_2_return_5"
HK_ANNUITY_TAX_DEDUCT = "hk_annuity_tax_deduct_pay_5_withdraw_8"


def _title(seed: TemplateSeed, suffix: str) -> str:
    return f"{seed.title} {suffix}".strip()


def _end_month(start_month: str, duration_months: int) -> str:
    if duration_months <= 0:
        return start_month
    return add_months(start_month, duration_months - 1)


def _monthly_stream(
    seed: TemplateSeed, event_type: str, suffix: str, amount: float, months: int
) -> DerivedSpec:
    return DerivedSpec(
        type=event_type,
        title=_title(seed, suffix),
        rule=ParamsRule(
            start_month=seed.start_month,
            end_month=_end_month(seed.start_month, months),
            monthly_amount=abs(amount),
            one_time_amount=0.0,
            annual_growth_pct=0.0,
        ),
    )


def _one_time_payout(
    seed: TemplateSeed, suffix: str, amount: float, after_months: int
) -> DerivedSpec:
    return DerivedSpec(
        type=E.INSURANCE_PAYOUT,
        title=_title(seed, suffix),
        rule=ParamsRule(
            start_month=add_months(seed.start_month, after_months),
            end_month=None,
            monthly_amount=0.0,
            one_time_amount=abs(amount),
            annual_growth_pct=0.0,
        ),
    )


def build_savings_pay_2_return_5(
    seed: TemplateSeed, params: Mapping[str, float]
) -> list[DerivedSpec]:
    """
    Pay a premium for ``pay_months`` then receive ``return_amount`` once,
    ``return_month_offset`` months after the start.

    The premium is ``premium_monthly`` if positive, else ``premium_annual/12``
    if positive, else the product event's own monthly amount.
    """
    if params["premium_monthly"] > 0:
        premium = params["premium_monthly"]
    elif params["premium_annual"] > 0:
        premium = params["premium_annual"] / 12
    else:
        premium = seed.monthly_amount
    pay_months = max(round(params["pay_months"]), 1)
    payout_after = max(round(params["return_month_offset"]), 0)
    return [
        _monthly_stream(seed, E.INSURANCE_PREMIUM, "premium", premium, pay_months),
        _one_time_payout(seed, "return", params["return_amount"], payout_after),
    ]


def build_hk_annuity(seed: TemplateSeed, params: Mapping[str, float]) -> list[DerivedSpec]:
    """
    Annual premium over ``pay_years``, an optional tax benefit over the same
    period, and one withdrawal after ``withdraw_after_years``.
    """
    pay_months = max(round(params["pay_years"] * 12), 1)
    payout_after = max(round(params["withdraw_after_years"] * 12), 0)
    tax_benefit_monthly = params["tax_benefit_annual"] / 12

    specs = [
        _monthly_stream(
            seed, E.INSURANCE_PREMIUM, "premium", params["annual_premium"] / 12, pay_months
        )
    ]
    if tax_benefit_monthly > 0:
        specs.append(
            _monthly_stream(
                seed, E.TAX_BENEFIT, "tax benefit", tax_benefit_monthly, pay_months
            )
        )
    specs.append(
        _one_time_payout(seed, "withdrawal", params["withdraw_amount"], payout_after)
    )
    return specs


SAVINGS_TEMPLATE = ProductTemplate(
    id=SAVINGS_PAY_2_RETURN_5,
    params=(
        TemplateParam("premium_monthly", 0, 0),
        TemplateParam("premium_annual", 0, 0),
        TemplateParam("pay_months", 24, 1),
        TemplateParam("return_month_offset", 60, 1),
        TemplateParam("return_amount", 60000, 0),
    ),
    build=build_savings_pay_2_return_5,
)

HK_ANNUITY_TEMPLATE = ProductTemplate(
    id=HK_ANNUITY_TAX_DEDUCT,
    params=(
        TemplateParam("annual_premium", 60000, 0),
        TemplateParam("pay_years", 5, 1),
        TemplateParam("withdraw_after_years", 8, 1),
        TemplateParam("withdraw_amount", 120000, 0),
        TemplateParam("tax_benefit_annual", 6000, 0),
    ),
    build=build_hk_annuity,
)
