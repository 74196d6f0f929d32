"""
nsasa.api.routes.public — Leaderboard and gamification endpoints
==================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from nsasa.api.deps import get_config, get_current_actor, get_engine
from nsasa.config import PortalConfig
from nsasa.database.engine import run_db
from nsasa.engine.policy import Actor
from nsasa.services import engagement_service

router = APIRouter(tags=["public"])


@router.get("/leaderboard")
async def leaderboard(
    limit: int | None = Query(None, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
    cfg: PortalConfig = Depends(get_config),
):
    """Top approved students by engagement score; members only."""
    entries = await run_db(
        engagement_service.get_leaderboard,
        engine,
        cfg.scoring,
        limit=limit or cfg.leaderboard_size,
    )
    return [e.to_dict() for e in entries]


@router.get("/gamification/stats/{account_id}")
def gamification_stats(
    account_id: int,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    return engagement_service.get_gamification_stats(engine, actor, account_id).to_dict()


@router.get("/gamification/badges/{account_id}")
def badges(
    account_id: int,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    return [b.to_dict() for b in engagement_service.get_badges(engine, actor, account_id)]
