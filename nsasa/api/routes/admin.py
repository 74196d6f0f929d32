"""
nsasa.api.routes.admin — Audit trail endpoints (JWT-protected)
================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from nsasa.api.deps import get_current_actor, get_engine
from nsasa.database.models import AdminLog
from nsasa.engine.policy import Action, Actor, authorize
from nsasa.services.audit_service import list_admin_log

router = APIRouter(prefix="/admin", tags=["admin"])


def _log_dict(row: AdminLog) -> dict:
    return {
        "id": row.id,
        "actor_id": str(row.actor_id),
        "action_type": row.action_type,
        "target_table": row.target_table,
        "target_id": row.target_id,
        "before_snapshot": row.before_snapshot,
        "after_snapshot": row.after_snapshot,
        "reason": row.reason,
        "timestamp": row.timestamp.isoformat() if row.timestamp else None,
    }


@router.get("/audit")
def audit_log(
    target_table: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    """Newest-first audit trail, optionally filtered to one table."""
    authorize(actor, Action.VIEW_AUDIT_LOG)
    total, rows = list_admin_log(
        engine, target_table=target_table, page=page, page_size=page_size,
    )
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "entries": [_log_dict(r) for r in rows],
    }
