"""
nsasa.services.audit_service — Admin Audit Trail
==================================================

Every admin mutation follows the pattern:
  1. Begin transaction
  2. Read "before" snapshot
  3. Apply change
  4. Write admin_log with before/after JSON
  5. Commit
  6. Publish EntityChanged
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from nsasa.database.models import AdminLog


def row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[col.name] = val
    return result


def log_admin_action(
    session: Session,
    *,
    actor_id: int,
    action_type: str,
    target_table: str,
    target_id: str | None,
    before: dict | None,
    after: dict | None,
    reason: str | None = None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=action_type,
        target_table=target_table,
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
        reason=reason,
    ))


def list_admin_log(
    engine,
    *,
    target_table: str | None = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[int, list[AdminLog]]:
    """Newest-first page of the audit trail, optionally for one table."""
    with Session(engine) as session:
        query = select(AdminLog)
        count_query = select(func.count()).select_from(AdminLog)
        if target_table:
            query = query.where(AdminLog.target_table == target_table)
            count_query = count_query.where(AdminLog.target_table == target_table)
        total = session.scalar(count_query) or 0
        rows = session.scalars(
            query.order_by(AdminLog.timestamp.desc(), AdminLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
        for row in rows:
            session.expunge(row)
        return total, list(rows)
