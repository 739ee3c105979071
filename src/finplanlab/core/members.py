"""
Household member age helpers.
"""

from __future__ import annotations

from .months import months_between
from .scenario import Member


def get_member_age_months(member: Member, month: str, base_month: str) -> int | None:
    """
    Age of ``member`` in whole months at ``month``.

    Uses ``birth_month`` when present, otherwise ``age_at_base_month`` (years,
    defaulting to 0) plus the months elapsed since ``base_month``. Ages are
    never negative. Returns ``None`` when a month token is malformed.
    """
    if member.birth_month:
        age = months_between(member.birth_month, month)
        if age is None:
            return None
    else:
        elapsed = months_between(base_month, month)
        if elapsed is None:
            return None
        age = round((member.age_at_base_month or 0.0) * 12 + elapsed)
    return max(age, 0)


def get_member_age_years(member: Member, month: str, base_month: str) -> float | None:
    """Age of ``member`` in (fractional) years at ``month``."""
    age_months = get_member_age_months(member, month, base_month)
    if age_months is None:
        return None
    return age_months / 12
