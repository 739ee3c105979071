"""
Core module for FinPlanLab.

This module contains the records and pure helpers every compiler builds on:
month arithmetic, rule and event records, the scenario aggregate, rule
resolution, position validation and the calculator input shape.
"""

from .catalog_loader import CatalogError, PlanDocument, load_plan
from .engine_input import (
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
from .errors import ConfigError, FinPlanDeprecationWarning, FinPlanWarning
from .events import EventDefinition, ScenarioEventRef, ScenarioEventView
from .exceptions import ScenarioCompileError
from .kinds import E, get_event_meta, get_event_sign
from .members import get_member_age_months, get_member_age_years
from .months import (
    add_months,
    is_valid_month,
    month_index,
    month_range,
    month_to_index,
    months_between,
    normalize_month_input,
    parse_month,
)
from .resolver import (
    build_event_library_map,
    build_scenario_event_views,
    resolve_event_rule,
)
from .rules import (
    UNSET,
    EventRule,
    EventRuleOverrides,
    ParamsRule,
    ScheduleEntry,
    ScheduleRule,
)
from .scenario import (
    AgeBand,
    Assumptions,
    BudgetRule,
    CarLoan,
    CarPosition,
    ExistingHomeDetails,
    HomePosition,
    InsurancePosition,
    InvestmentPosition,
    LoanPosition,
    Member,
    Positions,
    RentalDetails,
    Scenario,
)
from .tolerance import is_month_close, is_number_close
from .validation import PositionIssue, PositionReport

__all__ = [
    # Errors
    "CatalogError",
    "ConfigError",
    "FinPlanDeprecationWarning",
    "FinPlanWarning",
    "ScenarioCompileError",
    # Months
    "add_months",
    "is_valid_month",
    "month_index",
    "month_range",
    "month_to_index",
    "months_between",
    "normalize_month_input",
    "parse_month",
    # Rules and events
    "E",
    "EventDefinition",
    "EventRule",
    "EventRuleOverrides",
    "ParamsRule",
    "ScenarioEventRef",
    "ScenarioEventView",
    "ScheduleEntry",
    "ScheduleRule",
    "UNSET",
    "get_event_meta",
    "get_event_sign",
    # Resolution
    "build_event_library_map",
    "build_scenario_event_views",
    "resolve_event_rule",
    # Scenario
    "AgeBand",
    "Assumptions",
    "BudgetRule",
    "CarLoan",
    "CarPosition",
    "ExistingHomeDetails",
    "HomePosition",
    "InsurancePosition",
    "InvestmentPosition",
    "LoanPosition",
    "Member",
    "Positions",
    "RentalDetails",
    "Scenario",
    "get_member_age_months",
    "get_member_age_years",
    # Calculator input
    "EngineCar",
    "EngineCarLoan",
    "EngineEvent",
    "EngineExistingHome",
    "EngineHome",
    "EngineInsurance",
    "EngineInvestment",
    "EngineLoan",
    "EngineMortgage",
    "EngineRental",
    "PositionsInput",
    "ProjectionInput",
    # Validation and tolerance
    "PositionIssue",
    "PositionReport",
    "is_month_close",
    "is_number_close",
    # Loading
    "PlanDocument",
    "load_plan",
]
