"""
Month token arithmetic for FinPlanLab.

Every date in a scenario is a ``"YYYY-MM"`` month token. Tokens map
bijectively to an absolute month index (``year * 12 + month - 1``), which is
what all window and offset arithmetic is done in.
"""

from __future__ import annotations

import re
from datetime import date

import numpy as np

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_PARTIAL_PATTERN = re.compile(r"^(\d{0,4})(?:-(\d{0,2})?)?$")


def is_valid_month(value: object) -> bool:
    """Return True when ``value`` is a canonical ``YYYY-MM`` token."""
    return isinstance(value, str) and MONTH_PATTERN.match(value) is not None


def parse_month(value: str) -> tuple[int, int]:
    """
    Split a month token into ``(year, month)``.

    Raises:
        ValueError: If the token is not a canonical ``YYYY-MM`` month
    """
    if not is_valid_month(value):
        raise ValueError(f"Invalid month token: {value!r}")
    year, month = value.split("-")
    return int(year), int(month)


def format_month(year: int, month: int) -> str:
    """Build a month token from a year and a 1-based month."""
    return f"{year:04d}-{month:02d}"


def month_to_index(value: object) -> int | None:
    """Absolute month index of a token, or ``None`` for malformed input."""
    if not is_valid_month(value):
        return None
    year, month = parse_month(value)  # type: ignore[arg-type]
    return year * 12 + month - 1


def index_to_month(index: int) -> str:
    """Inverse of :func:`month_to_index`."""
    year, month0 = divmod(int(index), 12)
    return format_month(year, month0 + 1)


def month_index(base: object, target: object) -> int | None:
    """
    Signed month offset of ``target`` relative to ``base``.

    Returns ``None`` instead of raising when either token is malformed, so it
    can be used mid-calculation and checked by the caller.

    **Example:**
        ```python
        month_index("2024-01", "2025-03")  # 14
        month_index("2024-01", "2023-12")  # -1
        month_index("2024-01", "2024-13")  # None
        ```
    """
    base_idx = month_to_index(base)
    target_idx = month_to_index(target)
    if base_idx is None or target_idx is None:
        return None
    return target_idx - base_idx


def months_between(start: str, end: str) -> int | None:
    """Months from ``start`` to ``end`` (same contract as :func:`month_index`)."""
    return month_index(start, end)


def add_months(month: str, offset: int) -> str:
    """
    Return the token ``offset`` months after ``month``.

    Handles year rollover in both directions (``add_months("2024-01", -1)``
    is ``"2023-12"``).

    Raises:
        ValueError: If ``month`` is malformed
    """
    year, month_number = parse_month(month)
    return index_to_month(year * 12 + month_number - 1 + int(offset))


def month_range(base: str, count: int) -> list[str]:
    """
    Generate ``count`` consecutive month tokens starting at ``base``.

    Uses numpy ``datetime64[M]`` arithmetic; an empty list is returned for
    non-positive counts.

    **Example:**
        ```python
        month_range("2024-11", 3)  # ["2024-11", "2024-12", "2025-01"]
        ```
    """
    if count <= 0:
        return []
    parse_month(base)
    start = np.datetime64(base, "M")
    months = start + np.arange(int(count)).astype("timedelta64[M]")
    return [str(m) for m in months]


def current_month(today: date | None = None) -> str:
    """Month token of ``today`` (defaults to the system date)."""
    today = today or date.today()
    return format_month(today.year, today.month)


def earliest_month(months) -> str | None:
    """Earliest valid token in an iterable, ignoring malformed values."""
    valid = [m for m in months if is_valid_month(m)]
    return min(valid) if valid else None


def normalize_month_input(value: str) -> tuple[str, str | None]:
    """
    Classify free-form month input typed by a user.

    Returns ``(status, month)`` where status is one of ``"valid"``,
    ``"partial"``, ``"empty"`` or ``"invalid"``. Input that could still turn
    into a valid token as the user keeps typing (``"202"``, ``"2024-1"``) is
    ``"partial"``.
    """
    trimmed = (value or "").strip()
    if not trimmed:
        return "empty", None

    match = _PARTIAL_PATTERN.match(trimmed)
    if match is None:
        return "invalid", None
    if is_valid_month(trimmed):
        return "valid", trimmed

    year_part, month_part = match.group(1), match.group(2)
    if not year_part or len(year_part) < 4 or not month_part:
        return "partial", None
    if len(month_part) == 1:
        return "partial", None

    month_value = int(month_part)
    if month_value < 1 or month_value > 12:
        return "invalid", None
    return "valid", format_month(int(year_part), month_value)
