"""
Template registry for FinPlanLab.

Maps a template id to the :class:`ProductTemplate` that expands an
``insurance_product`` event into concrete derived cash-flow events.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from finplanlab.core.errors import ConfigError, FinPlanWarning
from finplanlab.core.rules import ParamsRule


@dataclass(frozen=True, slots=True)
class TemplateParam:
    """One numeric template parameter with its default and lower bound."""

    key: str
    default: float
    minimum: float | None = None


@dataclass(frozen=True, slots=True)
class TemplateSeed:
    """What a template needs to know about the product event it expands."""

    title: str
    start_month: str
    monthly_amount: float = 0.0


@dataclass(frozen=True, slots=True)
class DerivedEvent:
    """
    Cash-flow event produced by a template.

    ``id`` is ``<source_id>-derived-<n>``; the rule is always params-mode.
    """

    id: str
    source_id: str
    type: str
    title: str
    rule: ParamsRule


@dataclass(frozen=True, slots=True)
class DerivedSpec:
    """Template output before ids are assigned."""

    type: str
    title: str
    rule: ParamsRule


Builder = Callable[[TemplateSeed, Mapping[str, float]], list[DerivedSpec]]


@dataclass(frozen=True, slots=True)
class ProductTemplate:
    id: str
    params: tuple[TemplateParam, ...]
    build: Builder

    def resolve_params(self, overrides: Mapping[str, float] | None = None) -> dict[str, float]:
        """
        Merge caller parameters with defaults.

        Unknown keys are ignored. Values are passed through as given; the
        minimum is advisory and the builders bound the durations they use.
        """
        overrides = overrides or {}
        resolved: dict[str, float] = {}
        for param in self.params:
            value = overrides.get(param.key)
            resolved[param.key] = param.default if value is None else float(value)
        return resolved


# Insertion-ordered; the first registered template is the fallback.
TemplateRegistry: dict[str, ProductTemplate] = {}


def register_template(template: ProductTemplate) -> None:
    if template.id in TemplateRegistry:
        raise ConfigError(f"Template {template.id!r} is already registered")
    TemplateRegistry[template.id] = template


def get_template(template_id: str | None) -> ProductTemplate:
    """
    Look up a template, falling back to the first registered one for unknown
    or missing ids. An unknown id also emits a :class:`FinPlanWarning`.
    """
    if not TemplateRegistry:
        raise ConfigError("No product templates are registered")
    if template_id and template_id in TemplateRegistry:
        return TemplateRegistry[template_id]
    if template_id:
        warnings.warn(
            f"Unknown template {template_id!r}; using {next(iter(TemplateRegistry))!r}",
            FinPlanWarning,
            stacklevel=2,
        )
    return next(iter(TemplateRegistry.values()))


def expand_product(
    source_id: str,
    template_id: str | None,
    seed: TemplateSeed,
    params: Mapping[str, float] | None = None,
) -> list[DerivedEvent]:
    """
    Expand one product event through its template.

    **Example:**
        ```python
        seed = TemplateSeed(title="Policy", start_month="2024-01")
        derived = expand_product("ins-1", "savings_pay_2_return_5", seed)
        [d.id for d in derived]  # ["ins-1-derived-0", "ins-1-derived-1"]
        ```
    """
    template = get_template(template_id)
    specs = template.build(seed, template.resolve_params(params))
    return [
        DerivedEvent(
            id=f"{source_id}-derived-{index}",
            source_id=source_id,
            type=spec.type,
            title=spec.title,
            rule=spec.rule,
        )
        for index, spec in enumerate(specs)
    ]
