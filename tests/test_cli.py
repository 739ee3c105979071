"""
Tests for the finplanlab command-line interface.
"""

import json

import pytest
from finplanlab import __version__
from finplanlab.cli import EXAMPLE_PLAN, main


def _run(argv, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    captured = capsys.readouterr()
    return exc_info.value.code, captured.out, captured.err


@pytest.fixture
def plan_path(tmp_path):
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(EXAMPLE_PLAN), encoding="utf-8")
    return path


def test_version(capsys):
    code, out, _ = _run(["--version"], capsys)
    assert code == 0
    assert f"FinPlanLab {__version__}" in out


def test_example_prints_plan(capsys):
    code, out, _ = _run(["example"], capsys)
    assert code == 0
    assert json.loads(out) == EXAMPLE_PLAN


def test_compile(plan_path, capsys):
    code, out, _ = _run(["compile", str(plan_path)], capsys)
    assert code == 0
    output = json.loads(out)
    assert set(output) == {"base", "alt"}
    base = output["base"]["input"]
    assert base["positions"]["homes"][0]["mortgage"] == {
        "principal": 4800000,
        "annual_rate": 0.04,
        "term_months": 360,
    }
    assert [e["id"] for e in base["events"]] == ["rent", "salary"]
    assert "positions" not in output["alt"]["input"]
    assert output["base"]["warnings"] == []


def test_compile_selected_scenario(plan_path, capsys):
    code, out, _ = _run(["compile", str(plan_path), "--scenario", "alt"], capsys)
    assert code == 0
    assert list(json.loads(out)) == ["alt"]


def test_compile_strict_failure_and_lenient(tmp_path, capsys):
    plan = {
        "event_library": [
            {
                "id": "buy",
                "title": "Buy flat",
                "type": "buy_home",
                "rule": {"start_month": "2024-06", "one_time_amount": 1000000},
            }
        ],
        "scenarios": [
            {
                "id": "s1",
                "assumptions": {"base_month": "2024-01", "horizon_months": 12},
                "event_refs": [{"ref_id": "buy"}],
            }
        ],
    }
    path = tmp_path / "plan.yaml"
    path.write_text(json.dumps(plan), encoding="utf-8")

    code, _, err = _run(["compile", str(path)], capsys)
    assert code == 1
    assert "Compilation failed (buy-home-without-position)" in err

    code, out, _ = _run(["compile", str(path), "--lenient"], capsys)
    assert code == 0
    warnings = json.loads(out)["s1"]["warnings"]
    assert [w["code"] for w in warnings] == ["buy-home-without-position"]


def test_compile_missing_file(tmp_path, capsys):
    code, _, err = _run(["compile", str(tmp_path / "missing.yaml")], capsys)
    assert code == 1
    assert "Error compiling plan" in err


def test_budget(plan_path, capsys):
    code, out, _ = _run(["budget", str(plan_path), "--scenario", "base"], capsys)
    assert code == 0
    base = json.loads(out)["base"]
    assert len(base["entries"]) == 12
    assert base["entries"][0]["month"] == "2025-01"
    assert base["entries"][0]["member_id"] == "kid"
    assert base["totals"][0] == {"month": "2025-01", "total_amount_signed": -900}


def test_duplicates(plan_path, capsys):
    code, out, _ = _run(["duplicates", str(plan_path)], capsys)
    assert code == 0
    clusters = json.loads(out)
    assert len(clusters) == 1
    assert clusters[0]["ref_ids"] == ["rent", "rent-copy"]
    assert {c["scenario_id"] for c in clusters[0]["candidates"]} == {"base", "alt"}


def test_unknown_scenario_is_an_error(plan_path, capsys):
    code, _, err = _run(["budget", str(plan_path), "--scenario", "nope"], capsys)
    assert code == 1
    assert "Error compiling budget" in err


def test_requires_a_command(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 2
