"""
nsasa.services.poll_service — Poll Lifecycle & Voting
=======================================================

One vote per account per poll, never changed once cast.  The application
check gives a friendly ``AlreadyVoted``; the ``(poll_id, account_id)``
unique constraint is what actually guarantees it when two requests race.
Closing is one-way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from nsasa.database.engine import get_session
from nsasa.database.models import (
    AdminActionType,
    Poll,
    PollOption,
    PollStatus,
    PollVote,
)
from nsasa.engine.events import EntityChanged, EntityKind, get_change_bus
from nsasa.engine.lifecycle import check_poll_close
from nsasa.engine.policy import Action, Actor, authorize
from nsasa.engine.polls import (
    OptionTally,
    level_may_vote,
    normalize_levels,
    normalize_options,
    normalize_question,
    tally,
)
from nsasa.errors import AlreadyVoted, InvalidInput, NotFound, PollClosed, Unauthorized
from nsasa.services.audit_service import log_admin_action, row_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PollSnapshot:
    """Detached, serialisable view of a poll and its tally."""

    id: int
    question: str
    status: str
    target_levels: list[str]
    total_votes: int
    options: list[OptionTally]
    created_at: datetime | None
    closed_at: datetime | None
    user_vote: int | None = None

    @property
    def has_voted(self) -> bool:
        return self.user_vote is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "status": self.status,
            "target_levels": self.target_levels,
            "total_votes": self.total_votes,
            "options": [
                {
                    "id": o.option_id,
                    "text": o.text,
                    "votes": o.vote_count,
                    "percentage": o.percentage,
                }
                for o in self.options
            ],
            "has_voted": self.has_voted,
            "user_vote": self.user_vote,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
        }


def _load_poll(session: Session, poll_id: int) -> Poll:
    poll = session.scalar(
        select(Poll).where(Poll.id == poll_id).options(selectinload(Poll.options))
    )
    if poll is None:
        raise NotFound(f"Poll {poll_id} not found")
    return poll


def _snapshot(session: Session, poll: Poll, viewer_id: int | None = None) -> PollSnapshot:
    total, options = tally([(o.id, o.text, o.vote_count) for o in poll.options])
    user_vote = None
    if viewer_id is not None:
        user_vote = session.scalar(
            select(PollVote.option_id).where(
                PollVote.poll_id == poll.id, PollVote.account_id == viewer_id,
            )
        )
    return PollSnapshot(
        id=poll.id,
        question=poll.question,
        status=poll.status,
        target_levels=list(poll.target_levels or []),
        total_votes=total,
        options=options,
        created_at=poll.created_at,
        closed_at=poll.closed_at,
        user_vote=user_vote,
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
def create_poll(
    engine,
    actor: Actor,
    question: str,
    options: list[str],
    *,
    target_levels: list[str] | None = None,
) -> PollSnapshot:
    authorize(actor, Action.CREATE_POLL)
    question = normalize_question(question)
    texts = normalize_options(options)
    levels = normalize_levels(target_levels)

    with get_session(engine) as session:
        poll = Poll(
            question=question,
            status=PollStatus.ACTIVE.value,
            created_by=actor.account_id,
            target_levels=levels,
            options=[
                PollOption(position=i, text=text, vote_count=0)
                for i, text in enumerate(texts)
            ],
        )
        session.add(poll)
        session.flush()
        session.refresh(poll)
        log_admin_action(
            session,
            actor_id=actor.account_id,
            action_type=AdminActionType.CREATE,
            target_table="polls",
            target_id=str(poll.id),
            before=None,
            after=row_to_dict(poll),
        )
        snapshot = _snapshot(session, _load_poll(session, poll.id))

    logger.info(
        "Poll %s created by %s with %d options", snapshot.id, actor.account_id, len(texts),
    )
    get_change_bus().publish(EntityChanged(EntityKind.POLL, snapshot.id, "created", actor.account_id))
    return snapshot


def close_poll(engine, actor: Actor, poll_id: int) -> PollSnapshot:
    """Close *poll_id*.  Closing an already closed poll is an
    :class:`~nsasa.errors.InvalidTransition`, never a silent success."""
    authorize(actor, Action.CLOSE_POLL)
    with get_session(engine) as session:
        poll = _load_poll(session, poll_id)
        check_poll_close(poll.status)
        before = row_to_dict(poll)
        poll.status = PollStatus.CLOSED.value
        poll.closed_at = datetime.now(UTC)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor.account_id,
            action_type=AdminActionType.CLOSE,
            target_table="polls",
            target_id=str(poll.id),
            before=before,
            after=row_to_dict(poll),
        )
        snapshot = _snapshot(session, poll, actor.account_id)

    logger.info("Poll %s closed by %s", poll_id, actor.account_id)
    get_change_bus().publish(EntityChanged(EntityKind.POLL, poll_id, "closed", actor.account_id))
    return snapshot


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------
def vote(engine, actor: Actor, poll_id: int, option_id: int) -> PollSnapshot:
    authorize(actor, Action.VOTE)
    with get_session(engine) as session:
        poll = _load_poll(session, poll_id)
        if poll.status == PollStatus.CLOSED:
            raise PollClosed(f"Poll {poll_id} is closed")
        if option_id not in {o.id for o in poll.options}:
            raise NotFound(f"Option {option_id} does not belong to poll {poll_id}")
        if not level_may_vote(poll.target_levels, actor.level):
            raise Unauthorized(
                f"Only levels {', '.join(poll.target_levels or [])} may vote in this poll"
            )

        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(PollVote(
                    poll_id=poll_id, account_id=actor.account_id, option_id=option_id,
                ))
                session.flush()
        except IntegrityError:
            raise AlreadyVoted(f"Account {actor.account_id} already voted in poll {poll_id}") from None

        session.execute(
            update(PollOption)
            .where(PollOption.id == option_id)
            .values(vote_count=PollOption.vote_count + 1)
        )
        session.expire_all()
        snapshot = _snapshot(session, _load_poll(session, poll_id), actor.account_id)

    logger.debug("Account %s voted option %s in poll %s", actor.account_id, option_id, poll_id)
    get_change_bus().publish(EntityChanged(EntityKind.POLL, poll_id, "voted", actor.account_id))
    return snapshot


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_poll(engine, poll_id: int, viewer_id: int | None = None) -> PollSnapshot:
    with Session(engine) as session:
        return _snapshot(session, _load_poll(session, poll_id), viewer_id)


def list_polls(
    engine, *, status: str | None = None, viewer_id: int | None = None,
) -> list[PollSnapshot]:
    """Polls newest first, optionally filtered by ``active``/``closed``."""
    query = select(Poll).options(selectinload(Poll.options))
    if status:
        try:
            query = query.where(Poll.status == PollStatus(status).value)
        except ValueError:
            raise InvalidInput("Status must be 'active' or 'closed'") from None
    with Session(engine) as session:
        polls = session.scalars(query.order_by(Poll.created_at.desc(), Poll.id.desc())).all()
        return [_snapshot(session, poll, viewer_id) for poll in polls]
