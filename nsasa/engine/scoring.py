"""
nsasa.engine.scoring — Engagement Score, Leaderboard & Badges
===============================================================

Pure read-side calculations; no DB I/O inside the engine.

Leaderboard score::

    score = floor(profile_completion * completion_weight)
            + parse_level(level) * level_weight

With the default weights (10, 5) this is the portal's historical
heuristic.  It mixes a percentage with a raw level number, so the weights
are configuration rather than constants.

Gamification stats (per-account dashboard card)::

    total_actions = posts * 50 + comments * 15 + downloads * 5
    level         = total_actions // 200 + 1
    xp            = total_actions % 1000
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from nsasa.config import ScoringWeights
from nsasa.constants import parse_level, rank_badge
from nsasa.database.models import ApprovalStatus, Role

__all__ = [
    "Badge",
    "GamificationStats",
    "LeaderboardEntry",
    "build_leaderboard",
    "calculate_badges",
    "calculate_gamification_stats",
    "calculate_score",
    "is_rankable",
]

POST_ACTION_WEIGHT = 50
COMMENT_ACTION_WEIGHT = 15
DOWNLOAD_ACTION_WEIGHT = 5
ACTIONS_PER_LEVEL = 200
XP_PER_CYCLE = 1000


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    account_id: int
    display_name: str
    level: str | None
    score: int
    rank: int

    @property
    def badge(self) -> str | None:
        return rank_badge(self.rank - 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": str(self.account_id),
            "display_name": self.display_name,
            "level": self.level,
            "score": self.score,
            "rank": self.rank,
            "badge": self.badge,
        }


def calculate_score(
    profile_completion: int | float,
    level: str | None,
    weights: ScoringWeights | None = None,
) -> int:
    weights = weights or ScoringWeights()
    return (
        math.floor((profile_completion or 0) * weights.completion_weight)
        + parse_level(level) * weights.level_weight
    )


def is_rankable(account: Any) -> bool:
    """Only approved students appear on the leaderboard."""
    return (
        account.approval_status == ApprovalStatus.APPROVED
        and account.role == Role.STUDENT
    )


def build_leaderboard(
    accounts: Iterable[Any],
    weights: ScoringWeights | None = None,
    *,
    limit: int | None = None,
) -> list[LeaderboardEntry]:
    """Rank eligible *accounts* by score, highest first.

    :func:`sorted` is stable, so accounts with equal scores keep their
    input order.  Callers feed accounts in creation order.
    """
    scored = [
        (account, calculate_score(account.profile_completion, account.level, weights))
        for account in accounts
        if is_rankable(account)
    ]
    ranked = sorted(scored, key=lambda pair: pair[1], reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return [
        LeaderboardEntry(
            account_id=account.id,
            display_name=account.display_name,
            level=account.level,
            score=score,
            rank=i + 1,
        )
        for i, (account, score) in enumerate(ranked)
    ]


# ---------------------------------------------------------------------------
# Gamification stats
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GamificationStats:
    level: int
    xp: int
    xp_to_next: int
    total_badges: int
    total_posts: int
    total_comments: int
    total_downloads: int
    blog_likes: int

    def to_dict(self) -> dict[str, int]:
        return {
            "level": self.level,
            "xp": self.xp,
            "xp_to_next": self.xp_to_next,
            "total_badges": self.total_badges,
            "total_posts": self.total_posts,
            "total_comments": self.total_comments,
            "total_downloads": self.total_downloads,
            "blog_likes": self.blog_likes,
        }


@dataclass(frozen=True, slots=True)
class Badge:
    name: str
    description: str
    earned: bool

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "earned": self.earned}


def calculate_badges(
    *, posts: int, comments: int, downloads: int, events: int,
) -> list[Badge]:
    return [
        Badge("First Comment", "Made your first comment", comments > 0),
        Badge("Resource Explorer", "Downloaded 10+ resources", downloads >= 10),
        Badge("Active Participant", "Participated in 3+ events", events >= 3),
        Badge("Popular Contributor", "Published 2+ blog posts", posts >= 2),
        Badge("Streak Master", "Made 10+ comments", comments >= 10),
        Badge("Scholar", "Published 5+ high-quality posts", posts >= 5),
    ]


def calculate_gamification_stats(
    *,
    posts: int,
    comments: int,
    downloads: int,
    events: int,
    likes_received: int,
) -> GamificationStats:
    total_actions = (
        posts * POST_ACTION_WEIGHT
        + comments * COMMENT_ACTION_WEIGHT
        + downloads * DOWNLOAD_ACTION_WEIGHT
    )
    xp = total_actions % XP_PER_CYCLE
    earned = sum(
        1 for b in calculate_badges(
            posts=posts, comments=comments, downloads=downloads, events=events,
        )
        if b.earned
    )
    return GamificationStats(
        level=total_actions // ACTIONS_PER_LEVEL + 1,
        xp=xp,
        xp_to_next=XP_PER_CYCLE - xp,
        total_badges=earned,
        total_posts=posts,
        total_comments=comments,
        total_downloads=downloads,
        blog_likes=likes_received,
    )
