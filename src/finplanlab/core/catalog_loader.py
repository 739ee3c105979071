"""Utilities for loading plan documents (event library + scenarios) from YAML/JSON sources."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .events import EventDefinition, ScenarioEventRef
from .kinds import MODE_PARAMS, MODE_SCHEDULE, RULE_MODES
from .rules import EventRuleOverrides, ParamsRule, ScheduleEntry, ScheduleRule
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

__all__ = [
    "CatalogError",
    "PlanDocument",
    "load_plan",
]

_OVERRIDE_KEYS = (
    "mode",
    "start_month",
    "end_month",
    "monthly_amount",
    "one_time_amount",
    "annual_growth_pct",
    "schedule",
)


class CatalogError(ValueError):
    """Raised when a plan document cannot be parsed or validated."""


@dataclass(slots=True)
class PlanDocument:
    """Structured representation of a plan document."""

    event_library: list[EventDefinition]
    scenarios: list[Scenario]
    metadata: dict[str, Any] = field(default_factory=dict)
    source: str = "<memory>"

    def scenario(self, scenario_id: str) -> Scenario:
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        raise KeyError(scenario_id)


def load_plan(
    source: str | Path | dict[str, Any], *, format: str | None = None
) -> PlanDocument:
    """Parse a plan document from YAML/JSON/dict into scenario records."""

    mapping, label = _read_source(source, format=format)
    library = _normalize_library(mapping.get("event_library"), label)
    scenarios = _normalize_scenarios(mapping.get("scenarios"), label)
    seen: set[str] = set()
    for idx, scenario in enumerate(scenarios):
        if scenario.id in seen:
            raise CatalogError(
                f"{label}::scenarios[{idx}]: duplicate scenario id '{scenario.id}'"
            )
        seen.add(scenario.id)
    return PlanDocument(
        event_library=library,
        scenarios=scenarios,
        metadata={"version": mapping.get("version", 1)},
        source=label,
    )


def _read_source(
    source: str | Path | dict[str, Any], *, format: str | None
) -> tuple[dict[str, Any], str]:
    if isinstance(source, dict):
        return deepcopy(source), "<mapping>"

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    try:
        if fmt in {"yaml", "yml", ""}:
            data = yaml.safe_load(text)
        elif fmt == "json":
            data = json.loads(text)
        else:
            raise CatalogError(f"Unsupported plan format '{fmt}' for {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise CatalogError(f"{path}: could not parse document: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogError(f"Plan root must be a mapping (source={path})")
    return data, str(path)


# --- Event library ---------------------------------------------------------


def _normalize_library(raw: Any, label: str) -> list[EventDefinition]:
    entries = _ensure_list(raw, f"{label}::event_library", allow_none=True) or []
    definitions: list[EventDefinition] = []
    seen: set[str] = set()
    for idx, entry in enumerate(entries):
        ctx = f"{label}::event_library[{idx}]"
        data = _ensure_dict(entry, ctx)
        definition_id = _coerce_str(data.get("id"), f"{ctx}.id")
        if definition_id in seen:
            raise CatalogError(f"{ctx}: duplicate definition id '{definition_id}'")
        seen.add(definition_id)
        params = _ensure_dict(data.get("template_params"), f"{ctx}.template_params")
        definitions.append(
            _construct(
                EventDefinition,
                {
                    "id": definition_id,
                    "title": _coerce_str(data.get("title"), f"{ctx}.title"),
                    "type": _coerce_str(data.get("type"), f"{ctx}.type"),
                    "kind": data.get("kind", "cashflow"),
                    "rule": _normalize_rule(data.get("rule"), f"{ctx}.rule"),
                    "currency": data.get("currency"),
                    "member_id": data.get("member_id"),
                    "parent_id": data.get("parent_id"),
                    "template_id": data.get("template_id"),
                    "template_params": params,
                },
                ctx,
            )
        )
    return definitions


def _normalize_rule(raw: Any, ctx: str) -> ParamsRule | ScheduleRule:
    data = _ensure_dict(raw, ctx)
    mode = data.pop("mode", MODE_PARAMS)
    if mode not in RULE_MODES:
        raise CatalogError(f"{ctx}.mode: expected one of {RULE_MODES}, got '{mode}'")
    if mode == MODE_SCHEDULE:
        data["schedule"] = _normalize_schedule(data.get("schedule"), f"{ctx}.schedule")
        return _construct(ScheduleRule, data, ctx)
    return _construct(ParamsRule, data, ctx)


def _normalize_schedule(raw: Any, ctx: str) -> tuple[ScheduleEntry, ...]:
    entries = _ensure_list(raw, ctx, allow_none=True) or []
    return tuple(
        _construct(ScheduleEntry, _ensure_dict(entry, f"{ctx}[{idx}]"), f"{ctx}[{idx}]")
        for idx, entry in enumerate(entries)
    )


def _normalize_overrides(raw: Any, ctx: str) -> EventRuleOverrides | None:
    if raw is None:
        return None
    data = _ensure_dict(raw, ctx)
    unknown = sorted(set(data) - set(_OVERRIDE_KEYS))
    if unknown:
        raise CatalogError(f"{ctx}: unknown override fields {unknown}")
    if data.get("schedule") is not None:
        data["schedule"] = _normalize_schedule(data["schedule"], f"{ctx}.schedule")
    return _construct(EventRuleOverrides, data, ctx)


# --- Scenarios -------------------------------------------------------------


def _normalize_scenarios(raw: Any, label: str) -> list[Scenario]:
    entries = _ensure_list(raw, f"{label}::scenarios", allow_none=True) or []
    scenarios: list[Scenario] = []
    for idx, entry in enumerate(entries):
        ctx = f"{label}::scenarios[{idx}]"
        data = _ensure_dict(entry, ctx)
        scenario_id = _coerce_str(data.get("id"), f"{ctx}.id")
        assumptions = _construct(
            Assumptions, _ensure_dict(data.get("assumptions"), f"{ctx}.assumptions"),
            f"{ctx}.assumptions",
        )
        members = [
            _construct(Member, _ensure_dict(m, f"{ctx}.members[{i}]"), f"{ctx}.members[{i}]")
            for i, m in enumerate(
                _ensure_list(data.get("members"), f"{ctx}.members", allow_none=True) or []
            )
        ]
        refs = [
            _normalize_ref(r, f"{ctx}.event_refs[{i}]")
            for i, r in enumerate(
                _ensure_list(data.get("event_refs"), f"{ctx}.event_refs", allow_none=True)
                or []
            )
        ]
        budget_rules = [
            _normalize_budget_rule(r, f"{ctx}.budget_rules[{i}]")
            for i, r in enumerate(
                _ensure_list(
                    data.get("budget_rules"), f"{ctx}.budget_rules", allow_none=True
                )
                or []
            )
        ]
        scenarios.append(
            _construct(
                Scenario,
                {
                    "id": scenario_id,
                    "name": data.get("name", scenario_id),
                    "base_currency": data.get("base_currency", "USD"),
                    "assumptions": assumptions,
                    "members": members,
                    "event_refs": refs,
                    "budget_rules": budget_rules,
                    "positions": _normalize_positions(
                        data.get("positions"), f"{ctx}.positions"
                    ),
                },
                ctx,
            )
        )
    return scenarios


def _normalize_ref(raw: Any, ctx: str) -> ScenarioEventRef:
    data = _ensure_dict(raw, ctx)
    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise CatalogError(f"{ctx}.enabled must be boolean when provided")
    return ScenarioEventRef(
        ref_id=_coerce_str(data.get("ref_id"), f"{ctx}.ref_id"),
        enabled=enabled,
        overrides=_normalize_overrides(data.get("overrides"), f"{ctx}.overrides"),
    )


def _normalize_budget_rule(raw: Any, ctx: str) -> BudgetRule:
    data = _ensure_dict(raw, ctx)
    band = data.get("age_band")
    if band is not None:
        data["age_band"] = _construct(
            AgeBand, _ensure_dict(band, f"{ctx}.age_band"), f"{ctx}.age_band"
        )
    return _construct(BudgetRule, data, ctx)


def _normalize_positions(raw: Any, ctx: str) -> Positions | None:
    if raw is None:
        return None
    data = _ensure_dict(raw, ctx)
    unknown = sorted(
        set(data) - {"home", "homes", "loans", "investments", "cars", "insurances"}
    )
    if unknown:
        raise CatalogError(f"{ctx}: unknown position kinds {unknown}")

    home = None
    if data.get("home") is not None:
        home = _normalize_home(data["home"], f"{ctx}.home")
    return Positions(
        home=home,
        homes=_position_list(data, "homes", ctx, _normalize_home),
        loans=_position_list(data, "loans", ctx, _simple(LoanPosition)),
        investments=_position_list(data, "investments", ctx, _simple(InvestmentPosition)),
        cars=_position_list(data, "cars", ctx, _normalize_car),
        insurances=_position_list(data, "insurances", ctx, _simple(InsurancePosition)),
    )


def _position_list(data: dict[str, Any], key: str, ctx: str, build) -> list | None:
    if key not in data or data[key] is None:
        return None
    entries = _ensure_list(data[key], f"{ctx}.{key}")
    return [build(entry, f"{ctx}.{key}[{idx}]") for idx, entry in enumerate(entries)]


def _simple(cls):
    def build(raw: Any, ctx: str):
        return _construct(cls, _ensure_dict(raw, ctx), ctx)

    return build


def _normalize_home(raw: Any, ctx: str) -> HomePosition:
    data = _ensure_dict(raw, ctx)
    if data.get("existing") is not None:
        data["existing"] = _construct(
            ExistingHomeDetails,
            _ensure_dict(data["existing"], f"{ctx}.existing"),
            f"{ctx}.existing",
        )
    if data.get("rental") is not None:
        data["rental"] = _construct(
            RentalDetails, _ensure_dict(data["rental"], f"{ctx}.rental"), f"{ctx}.rental"
        )
    return _construct(HomePosition, data, ctx)


def _normalize_car(raw: Any, ctx: str) -> CarPosition:
    data = _ensure_dict(raw, ctx)
    if data.get("loan") is not None:
        data["loan"] = _construct(
            CarLoan, _ensure_dict(data["loan"], f"{ctx}.loan"), f"{ctx}.loan"
        )
    return _construct(CarPosition, data, ctx)


# --- Coercion helpers ------------------------------------------------------


def _construct(cls, data: dict[str, Any], ctx: str):
    """Build a record, turning unknown/missing fields into path-qualified errors."""
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise CatalogError(f"{ctx}: unknown fields {unknown}")
    try:
        return cls(**data)
    except ConfigError as exc:
        raise CatalogError(f"{ctx}: {exc}") from exc
    except TypeError as exc:
        raise CatalogError(f"{ctx}: {exc}") from exc


def _coerce_str(value: Any, ctx: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"{ctx}: expected non-empty string")
    return value


def _ensure_dict(value: Any, ctx: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise CatalogError(f"{ctx}: expected a mapping")
    return deepcopy(value)


def _ensure_list(value: Any, ctx: str, *, allow_none: bool = False) -> list[Any] | None:
    if value is None:
        if allow_none:
            return None
        raise CatalogError(f"{ctx}: expected a list")
    if not isinstance(value, list):
        raise CatalogError(f"{ctx}: expected a list")
    return list(value)
