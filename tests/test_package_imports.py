"""
Smoke tests for the public package surface.
"""

import finplanlab
from finplanlab.templates import TemplateRegistry


def test_version_metadata():
    assert finplanlab.__version__ == "0.1.0"
    assert finplanlab.__description__


def test_all_exports_resolve():
    for name in finplanlab.__all__:
        assert hasattr(finplanlab, name), name


def test_default_templates_registered_on_import():
    assert "savings_pay_2_return_5" in TemplateRegistry
    assert "hk_annuity_tax_deduct_pay_5_withdraw_8" in TemplateRegistry


def test_quick_start_example():
    from finplanlab import (
        Assumptions,
        EventDefinition,
        HomePosition,
        ParamsRule,
        Positions,
        Scenario,
        ScenarioEventRef,
        map_scenario_to_engine_input,
    )

    rent = EventDefinition(
        id="rent", title="Rent", type="rent",
        rule=ParamsRule(monthly_amount=1800, annual_growth_pct=0),
    )
    home = HomePosition(
        purchase_price=6_000_000, down_payment=1_200_000, purchase_month="2024-01",
        annual_appreciation_pct=2, mortgage_rate_pct=4, mortgage_term_years=30,
    )
    scenario = Scenario(
        id="demo",
        assumptions=Assumptions(base_month="2024-01", horizon_months=24),
        event_refs=[ScenarioEventRef(ref_id="rent")],
        positions=Positions(homes=[home]),
    )
    result = map_scenario_to_engine_input(scenario, [rent])
    assert result.input.positions.homes[0].mortgage.principal == 4_800_000


def test_home_position_leads_with_id():
    from dataclasses import fields

    from finplanlab import HomePosition

    names = [f.name for f in fields(HomePosition)]
    assert names[0] == "id"
    assert names.index("annual_appreciation_pct") == names.index("purchase_month") + 1
