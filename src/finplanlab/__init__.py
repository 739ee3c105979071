"""
FinPlanLab - Scenario Compiler for Personal Financial Plans

FinPlanLab turns a declarative household plan into inputs for a projection
calculator. A plan is a shared library of cash-flow event definitions plus any
number of scenarios; each scenario references library events (optionally
overriding their rules), owns its positions (homes, loans, investments, cars,
insurance) and carries age-banded budget rules for household members.

Key Features:
- **Shared definitions, local overrides**: Scenarios reference library events
  and patch individual rule fields; the library is never copied or mutated
- **Tagged rules**: Params rules (recurring + one-time with compounding growth)
  or explicit month schedules
- **Strict or lenient compilation**: Fail fast on broken input, or drop the
  broken fragment and report a structured warning
- **Budget expansion**: Age-gated monthly budget series with exact monthly
  compounding
- **Duplicate detection**: Fingerprint and cluster near-identical events across
  scenarios, then plan a merge onto one definition

Architecture Overview:
- **core.months**: ``YYYY-MM`` month token arithmetic
- **core.rules / core.events / core.resolver**: Rule records and override
  resolution
- **core.scenario**: Scenario aggregate, members, budget rules, positions
- **adapter**: Scenario to calculator input
- **budget / cashflows**: Monthly series for budget rules and events
- **duplicates**: Clustering, rule diffs and merge plans
- **templates**: Insurance product templates that expand into derived events

Quick Start:
    ```python
    from finplanlab import (
        Assumptions, EventDefinition, HomePosition, ParamsRule, Positions,
        Scenario, ScenarioEventRef, map_scenario_to_engine_input,
    )

    rent = EventDefinition(id="rent", title="Rent", type="rent",
                           rule=ParamsRule(monthly_amount=1800, annual_growth_pct=0))
    home = HomePosition(purchase_price=6_000_000, down_payment=1_200_000,
                        purchase_month="2024-01", annual_appreciation_pct=2,
                        mortgage_rate_pct=4, mortgage_term_years=30)
    scenario = Scenario(
        id="demo",
        assumptions=Assumptions(base_month="2024-01", horizon_months=24),
        event_refs=[ScenarioEventRef(ref_id="rent")],
        positions=Positions(homes=[home]),
    )

    result = map_scenario_to_engine_input(scenario, [rent])
    result.input.positions.homes[0].mortgage.principal  # 4_800_000
    ```
"""

# Version information
__version__ = "0.1.0"
__author__ = "FinPlanLab Team"
__description__ = "Scenario compiler for personal financial plans"

# Import core components for easy access
from .adapter import (
    AdapterOptions,
    AdapterResult,
    AdapterWarning,
    map_scenario_to_engine_input,
)
from .budget import (
    BudgetEntry,
    budget_ledger_frame,
    compile_all_budget_rules,
    compile_budget_rule,
    sum_by_month,
)
from .cashflows import (
    CashflowEntry,
    cashflow_frame,
    compile_event_to_monthly_series,
    compile_scenario_cashflows,
)
from .core import (
    AgeBand,
    Assumptions,
    BudgetRule,
    CarLoan,
    CarPosition,
    CatalogError,
    ConfigError,
    E,
    EventDefinition,
    EventRuleOverrides,
    ExistingHomeDetails,
    HomePosition,
    InsurancePosition,
    InvestmentPosition,
    LoanPosition,
    Member,
    ParamsRule,
    Positions,
    ProjectionInput,
    RentalDetails,
    Scenario,
    ScenarioCompileError,
    ScenarioEventRef,
    ScheduleEntry,
    ScheduleRule,
    add_months,
    is_valid_month,
    load_plan,
    month_index,
    resolve_event_rule,
)
from .duplicates import (
    DuplicateCluster,
    DuplicateTolerances,
    MergePlan,
    apply_merge_plan,
    build_event_rule_overrides,
    build_merge_plan,
    find_duplicate_clusters,
    list_event_rule_differences,
)

__all__ = [
    # Records
    "AgeBand",
    "Assumptions",
    "BudgetRule",
    "CarLoan",
    "CarPosition",
    "E",
    "EventDefinition",
    "EventRuleOverrides",
    "ExistingHomeDetails",
    "HomePosition",
    "InsurancePosition",
    "InvestmentPosition",
    "LoanPosition",
    "Member",
    "ParamsRule",
    "Positions",
    "ProjectionInput",
    "RentalDetails",
    "Scenario",
    "ScenarioEventRef",
    "ScheduleEntry",
    "ScheduleRule",
    # Errors
    "CatalogError",
    "ConfigError",
    "ScenarioCompileError",
    # Months and resolution
    "add_months",
    "is_valid_month",
    "month_index",
    "resolve_event_rule",
    # Adapter
    "AdapterOptions",
    "AdapterResult",
    "AdapterWarning",
    "map_scenario_to_engine_input",
    # Budget and cash flows
    "BudgetEntry",
    "CashflowEntry",
    "budget_ledger_frame",
    "cashflow_frame",
    "compile_all_budget_rules",
    "compile_budget_rule",
    "compile_event_to_monthly_series",
    "compile_scenario_cashflows",
    "sum_by_month",
    # Duplicates
    "DuplicateCluster",
    "DuplicateTolerances",
    "MergePlan",
    "apply_merge_plan",
    "build_event_rule_overrides",
    "build_merge_plan",
    "find_duplicate_clusters",
    "list_event_rule_differences",
    # Loading
    "load_plan",
]
