"""
nsasa.engine.polls — Poll Input Validation & Tally
====================================================

Pure functions shared by the poll service and its tests.

Tally percentages are rounded per option and **not** normalised, so three
options with one vote each read 33/33/33.  That drift is expected.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from nsasa.errors import InvalidInput

MIN_OPTIONS = 2
MAX_OPTIONS = 10
MAX_OPTION_LENGTH = 500


@dataclass(frozen=True, slots=True)
class OptionTally:
    option_id: int
    text: str
    vote_count: int
    percentage: int


def normalize_question(question: str | None) -> str:
    text = (question or "").strip()
    if not text:
        raise InvalidInput("Poll question must not be empty")
    return text


def normalize_options(options: Iterable[str | None]) -> list[str]:
    """Trim options, drop empty ones, and enforce the 2..10 bound."""
    cleaned = [opt.strip() for opt in options if opt and opt.strip()]
    if any(len(opt) > MAX_OPTION_LENGTH for opt in cleaned):
        raise InvalidInput(f"Poll options are limited to {MAX_OPTION_LENGTH} characters")
    if len(cleaned) < MIN_OPTIONS:
        raise InvalidInput(f"A poll needs at least {MIN_OPTIONS} non-empty options")
    if len(cleaned) > MAX_OPTIONS:
        raise InvalidInput(f"A poll may have at most {MAX_OPTIONS} options")
    return cleaned


def normalize_levels(levels: Iterable[str] | None) -> list[str]:
    return [lvl.strip() for lvl in (levels or []) if lvl and lvl.strip()]


def level_may_vote(target_levels: Sequence[str] | None, level: str | None) -> bool:
    """An empty target list means every level may vote."""
    if not target_levels:
        return True
    return level is not None and level.strip() in target_levels


def percentage(votes: int, total: int) -> int:
    """Half-up rounded share of *total*; ``0`` when there are no votes."""
    if total <= 0:
        return 0
    return int(math.floor(votes / total * 100 + 0.5))


def tally(options: Sequence[tuple[int, str, int]]) -> tuple[int, list[OptionTally]]:
    """Compute ``(total_votes, per-option tallies)``.

    *options* is a sequence of ``(option_id, text, vote_count)`` in display
    order.
    """
    total = sum(count for _, _, count in options)
    return total, [
        OptionTally(
            option_id=option_id,
            text=text,
            vote_count=count,
            percentage=percentage(count, total),
        )
        for option_id, text, count in options
    ]
