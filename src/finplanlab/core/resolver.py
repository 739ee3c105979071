"""
Resolution of shared event definitions against scenario overrides.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .events import EventDefinition, ScenarioEventRef, ScenarioEventView
from .kinds import MODE_SCHEDULE
from .rules import UNSET, EventRule, ParamsRule, ScheduleRule, rule_field

if TYPE_CHECKING:
    from .scenario import Scenario


def resolve_event_rule(definition: EventDefinition, ref: ScenarioEventRef) -> EventRule:
    """
    Merge a definition's rule with a scenario reference's overrides.

    For every rule field the override wins when it is set, including an
    explicit ``None`` (an override ``end_month=None`` makes the event
    open-ended even if the definition has an end month). Otherwise the
    definition's value is used.

    The override's ``mode`` decides which variant is produced. Switching a
    params definition to schedule mode without an overriding schedule yields
    the definition's schedule, which is empty for a params definition.

    The function is pure: the definition and the reference are not modified
    and the returned rule shares no mutable state with them.

    Args:
        definition: Shared library definition
        ref: The scenario's reference to it

    Returns:
        A new :class:`ParamsRule` or :class:`ScheduleRule`
    """
    base = definition.rule
    overrides = ref.overrides
    provided = overrides.provided() if overrides is not None else {}

    def pick(name: str):
        if name in provided:
            return provided[name]
        value = rule_field(base, name)
        return None if value is UNSET else value

    mode = provided.get("mode") or base.mode

    if mode == MODE_SCHEDULE:
        schedule = pick("schedule")
        return ScheduleRule(
            schedule=tuple(schedule or ()),
            start_month=pick("start_month"),
            end_month=pick("end_month"),
        )

    return ParamsRule(
        start_month=pick("start_month"),
        end_month=pick("end_month"),
        monthly_amount=pick("monthly_amount"),
        one_time_amount=pick("one_time_amount"),
        annual_growth_pct=pick("annual_growth_pct"),
    )


def build_event_library_map(
    event_library: Iterable[EventDefinition],
) -> dict[str, EventDefinition]:
    """Index a library by definition id (later duplicates win)."""
    return {definition.id: definition for definition in event_library}


def build_scenario_event_views(
    scenario: Scenario, event_library: Iterable[EventDefinition]
) -> list[ScenarioEventView]:
    """
    Resolve every reference of ``scenario`` whose definition exists.

    References to missing definitions are skipped; enabled/disabled refs are
    both returned so callers can decide.
    """
    library = build_event_library_map(event_library)
    views: list[ScenarioEventView] = []
    for ref in scenario.event_refs:
        definition = library.get(ref.ref_id)
        if definition is None:
            continue
        views.append(
            ScenarioEventView(
                definition=definition,
                ref=ref,
                rule=resolve_event_rule(definition, ref),
            )
        )
    return views
