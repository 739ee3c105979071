"""
Compilation exceptions for FinPlanLab.

The adapter raises these when it runs in strict mode and a scenario is
missing structurally required data.
"""

from __future__ import annotations

from .errors import ConfigError


class ScenarioCompileError(ConfigError):
    """
    Raised when a scenario cannot be compiled into a projection input.

    Only the adapter raises this, and only in strict mode. Lenient callers
    receive the same condition as an ``AdapterWarning`` record instead.

    Attributes:
        scenario_id: The ID of the scenario that failed to compile
        code: Machine-readable failure code (same vocabulary as warnings)
        problem_ids: IDs of the events or positions that caused the failure
    """

    def __init__(
        self,
        scenario_id: str,
        message: str,
        code: str = "invalid-scenario",
        problem_ids: list[str] | None = None,
    ):
        self.scenario_id = scenario_id
        self.code = code
        self.problem_ids = problem_ids or []
        super().__init__(self._fmt(message))

    def _fmt(self, msg: str) -> str:
        """Format the error message with additional context."""
        suffix = ""
        if self.problem_ids:
            preview = ", ".join(self.problem_ids[:10])
            more = (
                f" (+{len(self.problem_ids)-10} more)"
                if len(self.problem_ids) > 10
                else ""
            )
            suffix = f" | problem_ids: [{preview}]{more}"
        return f"[Scenario {self.scenario_id}] {msg}{suffix}"
