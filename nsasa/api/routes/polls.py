"""
nsasa.api.routes.polls — Poll creation, voting and closing
============================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from nsasa.api.deps import get_current_actor, get_engine, get_optional_actor
from nsasa.engine.policy import Actor
from nsasa.services import poll_service

router = APIRouter(prefix="/polls", tags=["polls"])


class PollCreate(BaseModel):
    question: str
    options: list[Annotated[str, Field(max_length=500)]] = Field(default_factory=list)
    target_levels: list[str] | None = None


class VoteRequest(BaseModel):
    option_id: int


def _viewer_id(viewer: Actor | None) -> int | None:
    return viewer.account_id if viewer is not None else None


@router.get("")
def list_polls(
    status: str | None = None,
    viewer: Actor | None = Depends(get_optional_actor),
    engine=Depends(get_engine),
):
    polls = poll_service.list_polls(engine, status=status, viewer_id=_viewer_id(viewer))
    return [p.to_dict() for p in polls]


@router.get("/{poll_id}")
def get_poll(
    poll_id: int,
    viewer: Actor | None = Depends(get_optional_actor),
    engine=Depends(get_engine),
):
    return poll_service.get_poll(engine, poll_id, _viewer_id(viewer)).to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_poll(
    body: PollCreate,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    snapshot = poll_service.create_poll(
        engine, actor, body.question, body.options, target_levels=body.target_levels,
    )
    return snapshot.to_dict()


@router.post("/{poll_id}/vote")
def vote(
    poll_id: int,
    body: VoteRequest,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    """Cast the caller's single, final vote and return the updated tally."""
    return poll_service.vote(engine, actor, poll_id, body.option_id).to_dict()


@router.put("/{poll_id}/close")
def close_poll(poll_id: int, actor: Actor = Depends(get_current_actor), engine=Depends(get_engine)):
    return poll_service.close_poll(engine, actor, poll_id).to_dict()
