"""
Duplicate event detection and merge planning.

Scans the event references of several scenarios, fingerprints each resolved
rule and groups near-identical recurring events into clusters so they can be
merged onto one shared definition. Detection is advisory: nothing here
modifies its inputs. :func:`apply_merge_plan` returns new scenario records.

Clustering is greedy single-link: each candidate is compared only with the
first candidate of each existing cluster in its ``type:mode`` bucket, and the
first match wins. Transitively similar candidates (A~B, B~C, A!~C) may
therefore land in different clusters.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from finplanlab.core.errors import ConfigError
from finplanlab.core.events import EventDefinition, ScenarioEventRef
from finplanlab.core.kinds import MODE_PARAMS, MODE_SCHEDULE
from finplanlab.core.months import month_to_index
from finplanlab.core.resolver import build_event_library_map, resolve_event_rule
from finplanlab.core.rules import (
    UNSET,
    EventRule,
    EventRuleOverrides,
    ScheduleEntry,
    rule_field,
)
from finplanlab.core.scenario import Scenario
from finplanlab.core.tolerance import is_month_close, is_number_close

logger = logging.getLogger(__name__)

TITLE_STOP_WORDS = frozenset(
    {
        "event",
        "plan",
        "monthly",
        "month",
        "annual",
        "year",
        "expense",
        "income",
        "payment",
        "fee",
        "cost",
    }
)

_NON_WORD = re.compile(r"[^\w\s]|_")

# Exact-ish bands used when diffing two rules for a merge
DIFF_AMOUNT_ABS, DIFF_AMOUNT_PCT = 1.0, 0.01
DIFF_GROWTH_ABS, DIFF_GROWTH_PCT = 0.1, 0.01


@dataclass(frozen=True, slots=True)
class DuplicateTolerances:
    """
    Similarity bands used by clustering.

    Numeric pairs are compared with
    :func:`~finplanlab.core.tolerance.is_number_close`, i.e. within
    ``max(abs, pct * max(|a|, |b|))``.
    """

    month_tolerance: int = 1
    amount_abs: float = 100.0
    amount_pct: float = 0.1
    growth_abs: float = 1.0
    growth_pct: float = 0.1
    schedule_max_count_diff: int = 2
    schedule_total_abs: float = 200.0
    schedule_total_pct: float = 0.15
    schedule_average_abs: float = 100.0
    schedule_average_pct: float = 0.15
    schedule_leading_count: int = 4
    schedule_leading_abs: float = 200.0
    schedule_leading_pct: float = 0.2
    title_max_distance: int = 3
    title_max_ratio: float = 0.2


DEFAULT_TOLERANCES = DuplicateTolerances()


@dataclass(frozen=True, slots=True)
class DuplicateCandidate:
    """One scenario's resolved event, as seen by the detector."""

    id: str
    scenario_id: str
    scenario_name: str
    scenario_base_currency: str
    ref: ScenarioEventRef
    definition: EventDefinition
    effective_rule: EventRule
    fingerprint: str
    title_key: str


@dataclass(frozen=True, slots=True)
class DuplicateCluster:
    id: str
    candidates: tuple[DuplicateCandidate, ...]

    @property
    def ref_ids(self) -> list[str]:
        """Distinct referenced definition ids, in first-seen order."""
        return list(dict.fromkeys(c.ref.ref_id for c in self.candidates))

    @property
    def scenario_ids(self) -> list[str]:
        return list(dict.fromkeys(c.scenario_id for c in self.candidates))


@dataclass(frozen=True, slots=True)
class MergeAssignment:
    """Re-point ``ref_id`` in ``scenario_id`` at the base with ``overrides``."""

    scenario_id: str
    ref_id: str
    overrides: EventRuleOverrides | None


@dataclass(frozen=True, slots=True)
class MergePlan:
    cluster_id: str
    base_definition_id: str
    assignments: tuple[MergeAssignment, ...] = field(default_factory=tuple)


# --- Title similarity ------------------------------------------------------


def normalize_title(title: str) -> str:
    """
    Lowercase, strip punctuation, drop stop words and join the remaining
    tokens without separators.

    **Example:**
        ```python
        normalize_title("Monthly Rent - Flat")  # "rentflat"
        normalize_title("rent ")                # "rent"
        ```
    """
    cleaned = _NON_WORD.sub(" ", (title or "").lower())
    return "".join(word for word in cleaned.split() if word not in TITLE_STOP_WORDS)


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insert, delete, substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def is_title_similar(
    a: str, b: str, tolerances: DuplicateTolerances = DEFAULT_TOLERANCES
) -> bool:
    """
    Equal after normalization, one contained in the other, or within a small
    edit distance. Titles that normalize to nothing never match.
    """
    key_a = normalize_title(a)
    key_b = normalize_title(b)
    if not key_a or not key_b:
        return False
    if key_a == key_b or key_a in key_b or key_b in key_a:
        return True
    distance = levenshtein(key_a, key_b)
    return (
        distance <= tolerances.title_max_distance
        or distance <= max(len(key_a), len(key_b)) * tolerances.title_max_ratio
    )


# --- Rule similarity -------------------------------------------------------


def _value(rule: EventRule, name: str):
    value = rule_field(rule, name)
    return None if value is UNSET else value


@dataclass(frozen=True, slots=True)
class ScheduleStats:
    total: float
    average: float
    count: int
    leading: tuple[float, ...]


def schedule_stats(
    schedule: Sequence[ScheduleEntry] | None, leading_count: int = 4
) -> ScheduleStats:
    entries = list(schedule or ())
    amounts = [abs(entry.amount or 0.0) for entry in entries]
    total = sum(amounts)
    count = len(amounts)
    leading = tuple(
        abs(entry.amount or 0.0)
        for entry in sorted(entries, key=lambda e: e.month)[:leading_count]
    )
    return ScheduleStats(total, total / count if count else 0.0, count, leading)


def is_schedule_similar(
    a: Sequence[ScheduleEntry] | None,
    b: Sequence[ScheduleEntry] | None,
    tolerances: DuplicateTolerances = DEFAULT_TOLERANCES,
) -> bool:
    t = tolerances
    stats_a = schedule_stats(a, t.schedule_leading_count)
    stats_b = schedule_stats(b, t.schedule_leading_count)
    if stats_a.count == 0 and stats_b.count == 0:
        return True
    if abs(stats_a.count - stats_b.count) > t.schedule_max_count_diff:
        return False
    if not is_number_close(
        stats_a.total, stats_b.total, t.schedule_total_abs, t.schedule_total_pct
    ):
        return False
    if not is_number_close(
        stats_a.average, stats_b.average, t.schedule_average_abs, t.schedule_average_pct
    ):
        return False
    if len(stats_a.leading) != len(stats_b.leading):
        return False
    return all(
        is_number_close(x, y, t.schedule_leading_abs, t.schedule_leading_pct)
        for x, y in zip(stats_a.leading, stats_b.leading)
    )


def is_rule_similar(
    a: EventRule, b: EventRule, tolerances: DuplicateTolerances = DEFAULT_TOLERANCES
) -> bool:
    t = tolerances
    if a.mode != b.mode:
        return False
    if a.mode == MODE_SCHEDULE:
        return is_schedule_similar(a.schedule, b.schedule, t)
    return (
        is_month_close(a.start_month, b.start_month, t.month_tolerance)
        and is_month_close(a.end_month, b.end_month, t.month_tolerance)
        and is_number_close(a.monthly_amount, b.monthly_amount, t.amount_abs, t.amount_pct)
        and is_number_close(a.one_time_amount, b.one_time_amount, t.amount_abs, t.amount_pct)
        and is_number_close(
            a.annual_growth_pct, b.annual_growth_pct, t.growth_abs, t.growth_pct
        )
    )


def is_candidate_similar(
    a: DuplicateCandidate,
    b: DuplicateCandidate,
    tolerances: DuplicateTolerances = DEFAULT_TOLERANCES,
) -> bool:
    if a.definition.type != b.definition.type:
        return False
    if not is_title_similar(a.definition.title, b.definition.title, tolerances):
        return False
    return is_rule_similar(a.effective_rule, b.effective_rule, tolerances)


# --- Fingerprint -----------------------------------------------------------


def build_fingerprint(definition: EventDefinition, rule: EventRule) -> str:
    """
    ``type|mode|normalized_title|signature`` summary of a resolved rule.

    The params signature is ``monthly:one_time:growth:start_idx:end_idx``
    (missing months as ``na``); the schedule signature is
    ``count:total:average``.
    """
    if rule.mode == MODE_SCHEDULE:
        stats = schedule_stats(rule.schedule)
        signature = f"{stats.count}:{round(stats.total)}:{round(stats.average)}"
    else:
        start = month_to_index(rule.start_month)
        end = month_to_index(rule.end_month)
        signature = ":".join(
            [
                f"{rule.monthly_amount or 0:.0f}",
                f"{rule.one_time_amount or 0:.0f}",
                f"{rule.annual_growth_pct or 0:.2f}",
                "na" if start is None else str(start),
                "na" if end is None else str(end),
            ]
        )
    return "|".join(
        [definition.type, rule.mode, normalize_title(definition.title), signature]
    )


def _digest(*parts: str) -> str:
    return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()[:12]


# --- Clustering ------------------------------------------------------------


def collect_candidates(
    scenarios: Iterable[Scenario],
    event_library: Iterable[EventDefinition],
    scenario_ids: Iterable[str] | None = None,
) -> list[DuplicateCandidate]:
    """Candidates for every enabled cash-flow reference of the selected scenarios."""
    selected = set(scenario_ids) if scenario_ids is not None else None
    library = build_event_library_map(event_library)
    candidates: list[DuplicateCandidate] = []
    for scenario in scenarios:
        if selected is not None and scenario.id not in selected:
            continue
        for position, ref in enumerate(scenario.event_refs):
            if not ref.enabled:
                continue
            definition = library.get(ref.ref_id)
            if definition is None or not definition.is_cashflow:
                continue
            rule = resolve_event_rule(definition, ref)
            candidates.append(
                DuplicateCandidate(
                    id=f"candidate-{_digest(scenario.id, str(position), ref.ref_id)}",
                    scenario_id=scenario.id,
                    scenario_name=scenario.name,
                    scenario_base_currency=scenario.base_currency,
                    ref=ref,
                    definition=definition,
                    effective_rule=rule,
                    fingerprint=build_fingerprint(definition, rule),
                    title_key=normalize_title(definition.title),
                )
            )
    return candidates


def find_duplicate_clusters(
    scenarios: Iterable[Scenario],
    event_library: Iterable[EventDefinition],
    scenario_ids: Iterable[str] | None = None,
    tolerances: DuplicateTolerances | None = None,
) -> list[DuplicateCluster]:
    """
    Group near-identical events across scenarios.

    Args:
        scenarios: Scenarios to scan
        event_library: Shared definitions the scenarios refer to
        scenario_ids: Restrict the scan to these scenarios (all when ``None``)
        tolerances: Similarity bands (defaults to :data:`DEFAULT_TOLERANCES`)

    Returns:
        Clusters with candidates from at least two distinct definitions, in
        order of their first candidate. An empty list is a normal outcome.
    """
    tolerances = tolerances or DEFAULT_TOLERANCES
    candidates = collect_candidates(scenarios, event_library, scenario_ids)

    groups: list[list[DuplicateCandidate]] = []
    buckets: dict[str, list[list[DuplicateCandidate]]] = {}
    for candidate in candidates:
        key = f"{candidate.definition.type}:{candidate.effective_rule.mode}"
        bucket = buckets.setdefault(key, [])
        match = next(
            (g for g in bucket if is_candidate_similar(g[0], candidate, tolerances)),
            None,
        )
        if match is not None:
            match.append(candidate)
            continue
        group = [candidate]
        groups.append(group)
        bucket.append(group)

    clusters = []
    for group in groups:
        if len({c.ref.ref_id for c in group}) < 2:
            continue
        clusters.append(
            DuplicateCluster(
                id=f"cluster-{_digest(*(c.id for c in group))}",
                candidates=tuple(group),
            )
        )
    logger.debug(
        "Scanned %d candidates, found %d duplicate clusters",
        len(candidates),
        len(clusters),
    )
    return clusters


# --- Override diff ---------------------------------------------------------


def _schedules_equal(
    base: Sequence[ScheduleEntry] | None, target: Sequence[ScheduleEntry] | None
) -> bool:
    base_entries = sorted(base or (), key=lambda e: e.month)
    target_entries = sorted(target or (), key=lambda e: e.month)
    if len(base_entries) != len(target_entries):
        return False
    return all(
        b.month == t.month
        and is_number_close(
            abs(b.amount or 0.0), abs(t.amount or 0.0), DIFF_AMOUNT_ABS, DIFF_AMOUNT_PCT
        )
        for b, t in zip(base_entries, target_entries)
    )


def _differing_fields(base: EventRule, target: EventRule) -> list[str]:
    diffs = []
    if not is_month_close(base.start_month, target.start_month, 0):
        diffs.append("start_month")
    if not is_month_close(base.end_month, target.end_month, 0):
        diffs.append("end_month")
    for name in ("monthly_amount", "one_time_amount"):
        if not is_number_close(
            _value(base, name), _value(target, name), DIFF_AMOUNT_ABS, DIFF_AMOUNT_PCT
        ):
            diffs.append(name)
    if not is_number_close(
        _value(base, "annual_growth_pct"),
        _value(target, "annual_growth_pct"),
        DIFF_GROWTH_ABS,
        DIFF_GROWTH_PCT,
    ):
        diffs.append("annual_growth_pct")
    if base.mode != target.mode:
        diffs.append("mode")
    if target.mode == MODE_SCHEDULE and not _schedules_equal(
        _value(base, "schedule"), _value(target, "schedule")
    ):
        diffs.append("schedule")
    return diffs


def list_event_rule_differences(base_rule: EventRule, target_rule: EventRule) -> list[str]:
    """Names of the rule fields where ``target_rule`` differs from ``base_rule``."""
    return _differing_fields(base_rule, target_rule)


def build_event_rule_overrides(
    base_rule: EventRule, target_rule: EventRule
) -> EventRuleOverrides | None:
    """
    Minimal override patch that makes ``base_rule`` resolve to ``target_rule``.

    Only fields that differ beyond the merge tolerances are included. Moving a
    schedule-mode base to a params target also clears the schedule. Returns
    ``None`` when the rules already agree.

    **Example:**
        ```python
        base = ParamsRule(start_month="2024-01", monthly_amount=1000)
        target = ParamsRule(start_month="2024-01", monthly_amount=1200)
        build_event_rule_overrides(base, target)
        # EventRuleOverrides(monthly_amount=1200)
        ```
    """
    patch = {name: _value(target_rule, name) for name in _differing_fields(base_rule, target_rule)}
    if "schedule" in patch and patch["schedule"] is None:
        patch["schedule"] = ()
    if base_rule.mode == MODE_SCHEDULE and target_rule.mode == MODE_PARAMS:
        patch["schedule"] = None
    if not patch:
        return None
    return EventRuleOverrides(**patch)


# --- Merge -----------------------------------------------------------------


def build_merge_plan(
    cluster: DuplicateCluster,
    base_definition_id: str,
    event_library: Iterable[EventDefinition],
) -> MergePlan:
    """
    Plan re-pointing every candidate of ``cluster`` at one base definition.

    Each candidate keeps its current effective rule through an override
    patch computed against the base definition's rule.

    Raises:
        ConfigError: If ``base_definition_id`` is not in the library
    """
    library = build_event_library_map(event_library)
    base = library.get(base_definition_id)
    if base is None:
        raise ConfigError(
            f"Merge base definition {base_definition_id!r} is not in the event library"
        )

    assignments: dict[tuple[str, str], MergeAssignment] = {}
    for candidate in cluster.candidates:
        key = (candidate.scenario_id, candidate.ref.ref_id)
        assignments[key] = MergeAssignment(
            scenario_id=candidate.scenario_id,
            ref_id=candidate.ref.ref_id,
            overrides=build_event_rule_overrides(base.rule, candidate.effective_rule),
        )
    return MergePlan(
        cluster_id=cluster.id,
        base_definition_id=base_definition_id,
        assignments=tuple(assignments.values()),
    )


def apply_merge_plan(scenarios: Iterable[Scenario], plan: MergePlan) -> list[Scenario]:
    """
    Return scenarios with the plan's references re-pointed at the base.

    Scenarios the plan does not touch are returned as they are; the others
    are new records.
    """
    by_scenario: dict[str, dict[str, MergeAssignment]] = {}
    for assignment in plan.assignments:
        by_scenario.setdefault(assignment.scenario_id, {})[assignment.ref_id] = assignment

    merged: list[Scenario] = []
    for scenario in scenarios:
        targets = by_scenario.get(scenario.id)
        if not targets:
            merged.append(scenario)
            continue
        refs = []
        for ref in scenario.event_refs:
            assignment = targets.get(ref.ref_id)
            if assignment is None:
                refs.append(ref)
            else:
                refs.append(
                    replace(
                        ref,
                        ref_id=plan.base_definition_id,
                        overrides=assignment.overrides,
                    )
                )
        merged.append(replace(scenario, event_refs=tuple(refs)))
    return merged
