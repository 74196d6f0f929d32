"""
nsasa.constants — Shared Constants & Helpers
=============================================

Single source of truth for presentation constants and the profile
completion formula.  Import from here instead of duplicating in services
and routes.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

# ---------------------------------------------------------------------------
# Leaderboard presentation
# ---------------------------------------------------------------------------
RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉


def rank_badge(position: int) -> str | None:
    """Medal for a zero-based leaderboard *position*, or None past third."""
    if 0 <= position < len(RANK_BADGES):
        return RANK_BADGES[position]
    return None


# ---------------------------------------------------------------------------
# Profile completion
# ---------------------------------------------------------------------------
PROFILE_FIELDS: tuple[str, ...] = (
    "email",
    "first_name",
    "last_name",
    "matric_number",
    "gender",
    "location",
    "address",
    "phone_number",
    "level",
)

# Owner-editable profile fields; role and approval_status are never here.
EDITABLE_PROFILE_FIELDS: frozenset[str] = frozenset(PROFILE_FIELDS[1:]) | {"occupation"}


def profile_completion(profile: Mapping[str, Any]) -> int:
    """Percentage (0..100) of :data:`PROFILE_FIELDS` that are filled in."""
    filled = sum(1 for name in PROFILE_FIELDS if profile.get(name))
    return round(filled / len(PROFILE_FIELDS) * 100)


# ---------------------------------------------------------------------------
# Academic level parsing
# ---------------------------------------------------------------------------
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_level(level: str | None) -> int:
    """Parse the leading integer of an academic level string.

    ``"300"`` → 300, ``"400L"`` → 400, ``"Graduated/Alumni"`` → 0.
    """
    if not level:
        return 0
    match = _LEADING_INT.match(level)
    return int(match.group(1)) if match else 0
