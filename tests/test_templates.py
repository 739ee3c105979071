"""
Tests for insurance product templates.
"""

import pytest
from finplanlab.core.errors import ConfigError, FinPlanWarning
from finplanlab.templates import (
    HK_ANNUITY_TAX_DEDUCT,
    SAVINGS_PAY_2_RETURN_5,
    SAVINGS_TEMPLATE,
    TemplateRegistry,
    TemplateSeed,
    expand_product,
    get_template,
    register_defaults,
    register_template,
)

SEED = TemplateSeed(title="Policy", start_month="2024-01", monthly_amount=700)


class TestRegistry:
    def test_defaults_registered_in_order(self):
        assert list(TemplateRegistry)[:2] == [SAVINGS_PAY_2_RETURN_5, HK_ANNUITY_TAX_DEDUCT]

    def test_register_defaults_is_idempotent(self):
        register_defaults()
        assert list(TemplateRegistry).count(SAVINGS_PAY_2_RETURN_5) == 1

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ConfigError):
            register_template(SAVINGS_TEMPLATE)

    def test_unknown_template_falls_back_to_first(self):
        with pytest.warns(FinPlanWarning, match="nope"):
            assert get_template("nope").id == SAVINGS_PAY_2_RETURN_5
        assert get_template(None).id == SAVINGS_PAY_2_RETURN_5


class TestSavingsTemplate:
    def test_defaults_use_seed_amount(self):
        premium, payout = expand_product("ins", SAVINGS_PAY_2_RETURN_5, SEED)
        assert premium.id == "ins-derived-0"
        assert premium.source_id == "ins"
        assert premium.type == "insurance_premium"
        assert premium.title == "Policy premium"
        assert premium.rule.monthly_amount == 700
        assert premium.rule.end_month == "2025-12"

        assert payout.id == "ins-derived-1"
        assert payout.type == "insurance_payout"
        assert payout.title == "Policy return"
        assert payout.rule.start_month == "2029-01"
        assert payout.rule.one_time_amount == 60000
        assert payout.rule.monthly_amount == 0

    def test_annual_premium_and_out_of_range_params(self):
        premium, payout = expand_product(
            "ins",
            SAVINGS_PAY_2_RETURN_5,
            SEED,
            {"premium_annual": 12000, "pay_months": -5, "return_month_offset": 0},
        )
        assert premium.rule.monthly_amount == 1000
        assert premium.rule.end_month == "2024-01"
        assert payout.rule.start_month == "2024-01"

    def test_monthly_premium_wins(self):
        premium, _ = expand_product(
            "ins", SAVINGS_PAY_2_RETURN_5, SEED,
            {"premium_monthly": 300, "premium_annual": 12000},
        )
        assert premium.rule.monthly_amount == 300


class TestAnnuityTemplate:
    def test_default_expansion(self):
        derived = expand_product("hk", HK_ANNUITY_TAX_DEDUCT, SEED)
        assert [d.type for d in derived] == [
            "insurance_premium",
            "tax_benefit",
            "insurance_payout",
        ]
        premium, benefit, withdrawal = derived
        assert premium.rule.monthly_amount == 5000
        assert premium.rule.end_month == "2028-12"
        assert benefit.rule.monthly_amount == 500
        assert benefit.title == "Policy tax benefit"
        assert withdrawal.rule.start_month == "2032-01"
        assert withdrawal.rule.one_time_amount == 120000

    def test_zero_tax_benefit_omits_stream(self):
        derived = expand_product(
            "hk", HK_ANNUITY_TAX_DEDUCT, SEED, {"tax_benefit_annual": 0}
        )
        assert [d.id for d in derived] == ["hk-derived-0", "hk-derived-1"]


def test_resolve_params_ignores_unknown_keys():
    params = SAVINGS_TEMPLATE.resolve_params({"colour": 3, "return_amount": -10})
    assert "colour" not in params
    assert params["return_amount"] == -10
    assert params["pay_months"] == 24
