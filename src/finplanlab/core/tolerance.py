"""
Tolerance-banded comparisons shared by duplicate clustering, merge diffs and
the adapter's double-count check.
"""

from __future__ import annotations

from .months import month_to_index


def is_number_close(
    a: float | None,
    b: float | None,
    abs_tolerance: float = 100.0,
    pct_tolerance: float = 0.1,
) -> bool:
    """
    True when ``|a - b| <= max(abs_tolerance, pct_tolerance * max(|a|, |b|))``.

    Missing values count as ``0``.

    **Example:**
        ```python
        is_number_close(1000, 1090)         # True  (band is 100)
        is_number_close(5000, 5600)         # False (band is 500)
        is_number_close(3, 3.5, 1, 0.1)     # True
        ```
    """
    value_a = float(a or 0.0)
    value_b = float(b or 0.0)
    scale = max(abs(value_a), abs(value_b))
    return abs(value_a - value_b) <= max(abs_tolerance, scale * pct_tolerance)


def is_month_close(a: str | None, b: str | None, tolerance: int = 1) -> bool:
    """
    True when two optional month tokens are within ``tolerance`` months.

    Two absent months are close; one absent or malformed month is not.
    """
    if not a and not b:
        return True
    index_a = month_to_index(a)
    index_b = month_to_index(b)
    if index_a is None or index_b is None:
        return False
    return abs(index_a - index_b) <= tolerance
