"""
nsasa.services.account_service — Registration, Approval & Roles
=================================================================

Approval and role changes are super_admin-only and audited.  Each is a
single transaction; the role guard lives in the UPDATE's WHERE clause so
two racing requests cannot promote a super_admin out from under each
other.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nsasa.constants import EDITABLE_PROFILE_FIELDS, profile_completion
from nsasa.database.engine import get_session
from nsasa.database.models import Account, AdminActionType, ApprovalStatus, Role
from nsasa.engine.events import EntityChanged, EntityKind, get_change_bus
from nsasa.engine.lifecycle import (
    check_approval_transition,
    check_role_change,
    parse_approval_status,
    parse_role,
)
from nsasa.engine.policy import Action, Actor, authorize
from nsasa.errors import InvalidInput, InvalidTransition, NotFound
from nsasa.services.audit_service import log_admin_action, row_to_dict

logger = logging.getLogger(__name__)


def actor_for(account: Account) -> Actor:
    """Build the :class:`Actor` view of a loaded account."""
    return Actor(
        account_id=account.id,
        role=Role(account.role),
        approval_status=ApprovalStatus(account.approval_status),
        level=account.level,
    )


def get_account(engine, account_id: int) -> Account:
    with Session(engine) as session:
        account = session.get(Account, account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found")
        session.expunge(account)
        return account


# ---------------------------------------------------------------------------
# Registration & profile
# ---------------------------------------------------------------------------
def _check_lengths(values: dict[str, Any]) -> None:
    """Refuse values longer than their ``accounts`` column allows."""
    columns = Account.__table__.c
    for name, value in values.items():
        limit = getattr(columns[name].type, "length", None)
        if limit is not None and isinstance(value, str) and len(value) > limit:
            raise InvalidInput(f"{name} is limited to {limit} characters")


def register_account(engine, *, email: str, **profile: Any) -> Account:
    """Create a pending student account.

    Unknown or privileged keys in *profile* (``role``,
    ``approval_status``) are ignored.
    """
    email = (email or "").strip().lower()
    if not email:
        raise InvalidInput("Email is required")
    fields = {k: v for k, v in profile.items() if k in EDITABLE_PROFILE_FIELDS}
    _check_lengths({"email": email, **fields})

    try:
        with get_session(engine) as session:
            account = Account(
                email=email,
                role=Role.STUDENT.value,
                approval_status=ApprovalStatus.PENDING.value,
                profile_completion=profile_completion({"email": email, **fields}),
                **fields,
            )
            session.add(account)
            session.flush()
            session.refresh(account)
    except IntegrityError:
        raise InvalidInput("An account with this email already exists") from None

    logger.info("Registered account %s (pending approval)", account.id)
    get_change_bus().publish(EntityChanged(EntityKind.ACCOUNT, account.id, "registered"))
    return account


def update_profile(engine, actor: Actor, updates: dict[str, Any]) -> Account:
    """Owner-only profile edit; recomputes ``profile_completion``."""
    fields = {k: v for k, v in updates.items() if k in EDITABLE_PROFILE_FIELDS}
    _check_lengths(fields)
    with get_session(engine) as session:
        account = session.get(Account, actor.account_id)
        if account is None:
            raise NotFound(f"Account {actor.account_id} not found")
        for key, value in fields.items():
            setattr(account, key, value)
        account.profile_completion = profile_completion(
            {name: getattr(account, name) for name in ("email", *EDITABLE_PROFILE_FIELDS)}
        )
        session.flush()
        session.refresh(account)

    get_change_bus().publish(
        EntityChanged(EntityKind.ACCOUNT, account.id, "profile", actor.account_id)
    )
    return account


# ---------------------------------------------------------------------------
# Approval state machine
# ---------------------------------------------------------------------------
def set_approval_status(
    engine,
    actor: Actor,
    target_account_id: int,
    new_status: str,
    *,
    reason: str | None = None,
) -> Account:
    authorize(actor, Action.SET_APPROVAL)
    status = parse_approval_status(new_status)

    with get_session(engine) as session:
        account = session.get(Account, target_account_id)
        if account is None:
            raise NotFound(f"Account {target_account_id} not found")
        if not check_approval_transition(account.approval_status, status):
            session.expunge(account)
            return account

        before = row_to_dict(account)
        account.approval_status = status.value
        session.flush()
        session.refresh(account)
        log_admin_action(
            session,
            actor_id=actor.account_id,
            action_type=AdminActionType.APPROVAL,
            target_table="accounts",
            target_id=str(account.id),
            before=before,
            after=row_to_dict(account),
            reason=reason,
        )

    logger.info(
        "Account %s approval set to %s by %s", target_account_id, status, actor.account_id,
    )
    get_change_bus().publish(
        EntityChanged(EntityKind.ACCOUNT, target_account_id, "approval", actor.account_id)
    )
    return account


def list_accounts_by_status(
    engine,
    actor: Actor,
    status: str,
    *,
    page: int = 1,
    page_size: int = 50,
) -> tuple[int, list[Account]]:
    """Accounts in *status*, oldest registration first."""
    authorize(actor, Action.LIST_ACCOUNTS)
    status = parse_approval_status(status)

    with Session(engine) as session:
        total = session.scalar(
            select(func.count()).select_from(Account)
            .where(Account.approval_status == status.value)
        ) or 0
        rows = session.scalars(
            select(Account)
            .where(Account.approval_status == status.value)
            .order_by(Account.created_at.asc(), Account.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
        for row in rows:
            session.expunge(row)
        return total, list(rows)


# ---------------------------------------------------------------------------
# Role authority
# ---------------------------------------------------------------------------
def set_role(
    engine,
    actor: Actor,
    target_account_id: int,
    new_role: str,
    *,
    reason: str | None = None,
) -> Account:
    authorize(actor, Action.SET_ROLE)
    role = parse_role(new_role)

    with get_session(engine) as session:
        account = session.get(Account, target_account_id)
        if account is None:
            raise NotFound(f"Account {target_account_id} not found")
        check_role_change(account.role)
        before = row_to_dict(account)

        result = session.execute(
            update(Account)
            .where(
                Account.id == target_account_id,
                Account.role != Role.SUPER_ADMIN.value,
            )
            .values(role=role.value)
        )
        if result.rowcount == 0:
            raise InvalidTransition(
                "The super_admin role cannot be changed through this path"
            )
        session.refresh(account)
        log_admin_action(
            session,
            actor_id=actor.account_id,
            action_type=AdminActionType.ROLE_CHANGE,
            target_table="accounts",
            target_id=str(account.id),
            before=before,
            after=row_to_dict(account),
            reason=reason,
        )

    logger.info(
        "Account %s role set to %s by %s", target_account_id, role, actor.account_id,
    )
    get_change_bus().publish(
        EntityChanged(EntityKind.ACCOUNT, target_account_id, "role", actor.account_id)
    )
    return account
