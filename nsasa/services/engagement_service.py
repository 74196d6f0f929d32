"""
nsasa.services.engagement_service — Activity Counters & Leaderboard
=====================================================================

Write side: :func:`record_activity` bumps the per-account counters that
comments, downloads and event check-ins feed.

Read side: the leaderboard, gamification stats and badges are recomputed
on every read by :mod:`nsasa.engine.scoring`; nothing derived is stored.
"""

from __future__ import annotations

import enum
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nsasa.config import ScoringWeights
from nsasa.database.engine import get_session
from nsasa.database.models import Account, AccountStats, ApprovalStatus, BlogPost, Role
from nsasa.engine.policy import Action, Actor, authorize
from nsasa.engine.scoring import (
    Badge,
    GamificationStats,
    LeaderboardEntry,
    build_leaderboard,
    calculate_badges,
    calculate_gamification_stats,
)
from nsasa.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)


class ActivityKind(enum.StrEnum):
    COMMENT = "comment"
    DOWNLOAD = "download"
    EVENT = "event"


ACTIVITY_TO_COUNTER: dict[ActivityKind, str] = {
    ActivityKind.COMMENT: "comments_posted",
    ActivityKind.DOWNLOAD: "resources_downloaded",
    ActivityKind.EVENT: "events_attended",
}


def record_activity(engine, account_id: int, kind: ActivityKind | str, amount: int = 1) -> None:
    """Increment one activity counter for *account_id* by a positive *amount*."""
    try:
        column = ACTIVITY_TO_COUNTER[ActivityKind(kind)]
    except ValueError:
        raise InvalidInput(
            f"Activity must be one of: {', '.join(k.value for k in ActivityKind)}"
        ) from None
    if amount < 1:
        raise InvalidInput("Activity amount must be a positive integer")

    with get_session(engine) as session:
        if session.get(Account, account_id) is None:
            raise NotFound(f"Account {account_id} not found")
        if session.get(AccountStats, account_id) is None:
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(AccountStats(account_id=account_id))
                    session.flush()
            except IntegrityError:
                # A concurrent first activity created the row.
                logger.debug("account_stats row for %s already exists", account_id)
        session.execute(
            update(AccountStats)
            .where(AccountStats.account_id == account_id)
            .values({column: getattr(AccountStats, column) + amount})
        )
    logger.debug("Recorded %s x%d for account %s", kind, amount, account_id)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
def get_leaderboard(
    engine,
    weights: ScoringWeights | None = None,
    *,
    limit: int | None = 10,
) -> list[LeaderboardEntry]:
    """Approved students ranked by score; ties keep registration order."""
    with Session(engine) as session:
        accounts = session.scalars(
            select(Account)
            .where(
                Account.approval_status == ApprovalStatus.APPROVED.value,
                Account.role == Role.STUDENT.value,
            )
            .order_by(Account.created_at.asc(), Account.id.asc())
        ).all()
        return build_leaderboard(accounts, weights, limit=limit)


# ---------------------------------------------------------------------------
# Per-account stats
# ---------------------------------------------------------------------------
def _counters(session: Session, account_id: int) -> dict[str, int]:
    if session.get(Account, account_id) is None:
        raise NotFound(f"Account {account_id} not found")
    stats = session.get(AccountStats, account_id)
    posts, likes = session.execute(
        select(func.count(BlogPost.id), func.coalesce(func.sum(BlogPost.likes), 0))
        .where(BlogPost.author_id == account_id)
    ).one()
    return {
        "posts": posts or 0,
        "likes_received": likes or 0,
        "comments": stats.comments_posted if stats else 0,
        "downloads": stats.resources_downloaded if stats else 0,
        "events": stats.events_attended if stats else 0,
    }


def _authorize_stats_view(actor: Actor, account_id: int) -> None:
    if actor.account_id != account_id:
        authorize(actor, Action.VIEW_ANY_STATS)


def get_gamification_stats(engine, actor: Actor, account_id: int) -> GamificationStats:
    """Stats card for *account_id*; visible to the owner and to admins."""
    _authorize_stats_view(actor, account_id)
    with Session(engine) as session:
        c = _counters(session, account_id)
    return calculate_gamification_stats(
        posts=c["posts"],
        comments=c["comments"],
        downloads=c["downloads"],
        events=c["events"],
        likes_received=c["likes_received"],
    )


def get_badges(engine, actor: Actor, account_id: int) -> list[Badge]:
    _authorize_stats_view(actor, account_id)
    with Session(engine) as session:
        c = _counters(session, account_id)
    return calculate_badges(
        posts=c["posts"],
        comments=c["comments"],
        downloads=c["downloads"],
        events=c["events"],
    )
