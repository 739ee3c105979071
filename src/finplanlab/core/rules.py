"""
Cash-flow rule records.

A rule is a tagged variant: :class:`ParamsRule` describes a recurring and/or
one-time amount with compounding growth, :class:`ScheduleRule` an explicit
list of ``(month, amount)`` entries. Which fields are meaningful is decided by
the variant, never by optional fields on one flat record.

:class:`EventRuleOverrides` is the per-scenario patch applied on top of a
shared definition's rule. Its fields default to :data:`UNSET` so an explicit
``None`` (e.g. "this scenario has no end month") is distinguishable from
"not overridden".
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Union

from .errors import ConfigError
from .kinds import MODE_PARAMS, MODE_SCHEDULE, RULE_MODES


class _Unset:
    """Sentinel type for override fields that were not provided."""

    _instance: _Unset | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True, slots=True)
class ScheduleEntry:
    """One explicit amount in a scheduled rule."""

    month: str
    amount: float = 0.0


@dataclass(frozen=True, slots=True)
class ParamsRule:
    """Recurring/one-time rule driven by parameters."""

    mode: ClassVar[str] = MODE_PARAMS

    start_month: str | None = None
    end_month: str | None = None
    monthly_amount: float | None = None
    one_time_amount: float | None = None
    annual_growth_pct: float | None = None  # whole percent, 3 == 3%


@dataclass(frozen=True, slots=True)
class ScheduleRule:
    """Rule whose amounts come from an explicit month schedule."""

    mode: ClassVar[str] = MODE_SCHEDULE

    schedule: tuple[ScheduleEntry, ...] = ()
    start_month: str | None = None
    end_month: str | None = None

    def __post_init__(self):
        # Accept any iterable of entries; store an immutable tuple.
        object.__setattr__(self, "schedule", tuple(self.schedule))

    def sorted_entries(self) -> list[ScheduleEntry]:
        """Entries in chronological order."""
        return sorted(self.schedule, key=lambda entry: entry.month)


EventRule = Union[ParamsRule, ScheduleRule]

RULE_FIELDS = (
    "start_month",
    "end_month",
    "monthly_amount",
    "one_time_amount",
    "annual_growth_pct",
    "schedule",
)


def rule_field(rule: EventRule, name: str) -> Any:
    """Value of ``name`` on ``rule``, ``UNSET`` if the variant has no such field."""
    return getattr(rule, name, UNSET)


@dataclass(frozen=True, slots=True)
class EventRuleOverrides:
    """
    Partial rule patch owned by one scenario reference.

    Only fields that are not :data:`UNSET` shadow the definition's values.
    """

    mode: Any = UNSET
    start_month: Any = UNSET
    end_month: Any = UNSET
    monthly_amount: Any = UNSET
    one_time_amount: Any = UNSET
    annual_growth_pct: Any = UNSET
    schedule: Any = UNSET

    def __post_init__(self):
        if self.mode is not UNSET and self.mode not in RULE_MODES:
            raise ConfigError(
                f"Override mode must be one of {RULE_MODES}, got {self.mode!r}"
            )
        if self.schedule is not UNSET and self.schedule is not None:
            object.__setattr__(self, "schedule", tuple(self.schedule))

    def is_set(self, name: str) -> bool:
        """True when the override provides a value (possibly ``None``) for ``name``."""
        return getattr(self, name) is not UNSET

    def provided(self) -> dict[str, Any]:
        """Mapping of the fields this override actually sets."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.provided()
