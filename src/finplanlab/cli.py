"""
Command-line interface for FinPlanLab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from finplanlab import __version__
from finplanlab.adapter import map_scenario_to_engine_input
from finplanlab.budget import compile_all_budget_rules, sum_by_month
from finplanlab.core.catalog_loader import PlanDocument, load_plan
from finplanlab.core.exceptions import ScenarioCompileError
from finplanlab.duplicates import find_duplicate_clusters

EXAMPLE_PLAN = {
    "version": 1,
    "event_library": [
        {
            "id": "rent",
            "title": "Rent",
            "type": "rent",
            "rule": {"mode": "params", "start_month": "2024-01", "monthly_amount": 1800},
        },
        {
            "id": "rent-copy",
            "title": "rent ",
            "type": "rent",
            "rule": {"mode": "params", "start_month": "2024-01", "monthly_amount": 1820},
        },
        {
            "id": "salary",
            "title": "Salary",
            "type": "salary",
            "rule": {"mode": "params", "start_month": "2024-01", "monthly_amount": 9000},
        },
    ],
    "scenarios": [
        {
            "id": "base",
            "name": "Rent and save",
            "assumptions": {"base_month": "2024-01", "horizon_months": 24},
            "members": [{"id": "kid", "name": "Kid", "birth_month": "2024-01"}],
            "event_refs": [{"ref_id": "rent"}, {"ref_id": "salary"}],
            "budget_rules": [
                {
                    "id": "daycare",
                    "name": "Daycare",
                    "member_id": "kid",
                    "category": "childcare",
                    "monthly_amount": 900,
                    "age_band": {"from_years": 1, "to_years": 3},
                }
            ],
            "positions": {
                "homes": [
                    {
                        "id": "flat",
                        "purchase_price": 6000000,
                        "down_payment": 1200000,
                        "purchase_month": "2024-01",
                        "annual_appreciation_pct": 2,
                        "mortgage_rate_pct": 4,
                        "mortgage_term_years": 30,
                    }
                ]
            },
        },
        {
            "id": "alt",
            "name": "Keep renting",
            "assumptions": {"base_month": "2024-01", "horizon_months": 24},
            "event_refs": [{"ref_id": "rent-copy"}, {"ref_id": "salary"}],
        },
    ],
}


def _dump(data) -> None:
    json.dump(data, sys.stdout, indent=2)
    sys.stdout.write("\n")


def _select(plan: PlanDocument, scenario_ids: list[str] | None) -> list:
    if not scenario_ids:
        return list(plan.scenarios)
    return [plan.scenario(scenario_id) for scenario_id in scenario_ids]


def cmd_example(_) -> int:
    """Print a small plan document with two overlapping scenarios."""
    _dump(EXAMPLE_PLAN)
    return 0


def cmd_compile(args) -> int:
    """Compile scenarios into projection inputs."""
    try:
        plan = load_plan(args.input)
        output = {}
        for scenario in _select(plan, args.scenario):
            result = map_scenario_to_engine_input(
                scenario, plan.event_library, strict=not args.lenient
            )
            output[scenario.id] = {
                "input": result.input.to_dict(),
                "warnings": [w.to_dict() for w in result.warnings],
            }
        _dump(output)
        return 0

    except ScenarioCompileError as e:
        print(f"Compilation failed ({e.code}): {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error compiling plan: {e}", file=sys.stderr)
        return 1


def cmd_budget(args) -> int:
    """Expand budget rules into monthly entries and totals."""
    try:
        plan = load_plan(args.input)
        output = {}
        for scenario in _select(plan, args.scenario):
            entries = compile_all_budget_rules(scenario)
            output[scenario.id] = {
                "entries": [
                    {
                        "month": e.month,
                        "amount_signed": e.amount_signed,
                        "source_rule_id": e.source_rule_id,
                        "member_id": e.member_id,
                        "label": e.label,
                        "category": e.category,
                    }
                    for e in entries
                ],
                "totals": [
                    {"month": month, "total_amount_signed": total}
                    for month, total in sum_by_month(entries)
                ],
            }
        _dump(output)
        return 0

    except Exception as e:
        print(f"Error compiling budget: {e}", file=sys.stderr)
        return 1


def cmd_duplicates(args) -> int:
    """Report near-duplicate events across scenarios."""
    try:
        plan = load_plan(args.input)
        clusters = find_duplicate_clusters(
            plan.scenarios, plan.event_library, args.scenario or None
        )
        _dump(
            [
                {
                    "id": cluster.id,
                    "ref_ids": cluster.ref_ids,
                    "candidates": [
                        {
                            "scenario_id": c.scenario_id,
                            "ref_id": c.ref.ref_id,
                            "title": c.definition.title,
                            "fingerprint": c.fingerprint,
                        }
                        for c in cluster.candidates
                    ],
                }
                for cluster in clusters
            ]
        )
        return 0

    except Exception as e:
        print(f"Error scanning for duplicates: {e}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="finplanlab", description="FinPlanLab - Scenario compiler for financial plans"
    )

    parser.add_argument("--version", action="version", version=f"FinPlanLab {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output to stderr"
    )

    subparsers = parser.add_subparsers(
        dest="cmd", required=True, help="Available commands"
    )

    # Example command
    example_parser = subparsers.add_parser(
        "example", help="Print a small plan document (JSON)"
    )
    example_parser.set_defaults(func=cmd_example)

    # Compile command
    compile_parser = subparsers.add_parser(
        "compile", help="Compile scenarios into projection inputs (JSON)"
    )
    compile_parser.add_argument("input", help="Plan document (YAML or JSON)")
    compile_parser.add_argument(
        "--scenario", action="append", help="Scenario id to compile (repeatable)"
    )
    compile_parser.add_argument(
        "--lenient",
        action="store_true",
        help="Drop broken fragments with warnings instead of failing",
    )
    compile_parser.set_defaults(func=cmd_compile)

    # Budget command
    budget_parser = subparsers.add_parser(
        "budget", help="Expand budget rules into monthly entries (JSON)"
    )
    budget_parser.add_argument("input", help="Plan document (YAML or JSON)")
    budget_parser.add_argument(
        "--scenario", action="append", help="Scenario id to expand (repeatable)"
    )
    budget_parser.set_defaults(func=cmd_budget)

    # Duplicates command
    duplicates_parser = subparsers.add_parser(
        "duplicates", help="Find near-duplicate events across scenarios (JSON)"
    )
    duplicates_parser.add_argument("input", help="Plan document (YAML or JSON)")
    duplicates_parser.add_argument(
        "--scenario", action="append", help="Scenario id to scan (repeatable)"
    )
    duplicates_parser.set_defaults(func=cmd_duplicates)

    # Parse arguments and execute
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
