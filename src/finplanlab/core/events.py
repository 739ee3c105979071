"""
Shared event definitions and the scenario references that point at them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigError
from .kinds import DEFINITION_KINDS, KIND_CASHFLOW
from .rules import EventRule, EventRuleOverrides, ParamsRule


@dataclass(frozen=True, slots=True)
class EventDefinition:
    """
    Library-level cash-flow rule shared by any number of scenarios.

    Scenarios never copy a definition; they hold a :class:`ScenarioEventRef`
    whose ``ref_id`` is the definition ``id``.

    Attributes:
        id: Library identifier
        title: Display title (also used for duplicate detection)
        type: Event type from :class:`finplanlab.core.kinds.E`
        kind: ``"cashflow"`` or ``"group"``
        rule: :class:`ParamsRule` or :class:`ScheduleRule`
        currency: Optional currency code (scenario base currency otherwise)
        member_id: Household member the event belongs to
        parent_id: Group definition this event is filed under
        template_id: Template used to expand ``insurance_product`` events
        template_params: Parameters for that template
    """

    id: str
    title: str
    type: str
    kind: str = KIND_CASHFLOW
    rule: EventRule = field(default_factory=ParamsRule)
    currency: str | None = None
    member_id: str | None = None
    parent_id: str | None = None
    template_id: str | None = None
    template_params: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self):
        if self.kind not in DEFINITION_KINDS:
            raise ConfigError(
                f"Event definition {self.id!r}: kind must be one of "
                f"{DEFINITION_KINDS}, got {self.kind!r}"
            )
        object.__setattr__(
            self, "template_params", MappingProxyType(dict(self.template_params))
        )

    @property
    def is_cashflow(self) -> bool:
        return self.kind == KIND_CASHFLOW


@dataclass(frozen=True, slots=True)
class ScenarioEventRef:
    """A scenario's attachment to a library definition."""

    ref_id: str
    enabled: bool = True
    overrides: EventRuleOverrides | None = None


@dataclass(frozen=True, slots=True)
class ScenarioEventView:
    """Definition, reference and resolved rule for one scenario event."""

    definition: EventDefinition
    ref: ScenarioEventRef
    rule: EventRule

