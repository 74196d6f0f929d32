"""
nsasa.engine.policy — Role Authority Model
============================================

One permission table consulted by every service.  Routes and services
never compare role strings inline; they ask :func:`can_perform` (pure) or
:func:`authorize` (raises :class:`~nsasa.errors.Unauthorized`).

Authority order::

    student / alumnus  <  admin  <  super_admin

Only ``super_admin`` may change another account's role or admission
status.  ``admin`` moderates content and runs polls.  Every approved
account may author posts, like, and vote.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from nsasa.database.models import ApprovalStatus, Role
from nsasa.errors import Unauthorized

logger = logging.getLogger(__name__)

__all__ = [
    "Action",
    "Actor",
    "PERMISSIONS",
    "authorize",
    "can_perform",
    "has_dashboard_access",
    "is_permitted",
]


class Action(enum.StrEnum):
    SET_APPROVAL = "set_approval"
    SET_ROLE = "set_role"
    LIST_ACCOUNTS = "list_accounts"
    MODERATE_CONTENT = "moderate_content"
    FEATURE_CONTENT = "feature_content"
    CREATE_CONTENT = "create_content"
    LIKE_CONTENT = "like_content"
    CREATE_POLL = "create_poll"
    CLOSE_POLL = "close_poll"
    VOTE = "vote"
    VIEW_ANY_STATS = "view_any_stats"
    VIEW_AUDIT_LOG = "view_audit_log"


_MEMBER_ACTIONS = frozenset({
    Action.CREATE_CONTENT,
    Action.LIKE_CONTENT,
    Action.VOTE,
})

_ADMIN_ACTIONS = _MEMBER_ACTIONS | {
    Action.LIST_ACCOUNTS,
    Action.MODERATE_CONTENT,
    Action.FEATURE_CONTENT,
    Action.CREATE_POLL,
    Action.CLOSE_POLL,
    Action.VIEW_ANY_STATS,
    Action.VIEW_AUDIT_LOG,
}

PERMISSIONS: dict[Role, frozenset[Action]] = {
    Role.STUDENT: _MEMBER_ACTIONS,
    Role.ALUMNUS: _MEMBER_ACTIONS,
    Role.ADMIN: frozenset(_ADMIN_ACTIONS),
    Role.SUPER_ADMIN: frozenset(_ADMIN_ACTIONS | {Action.SET_APPROVAL, Action.SET_ROLE}),
}


@dataclass(frozen=True, slots=True)
class Actor:
    """The already-authenticated account performing a command."""

    account_id: int
    role: Role
    approval_status: ApprovalStatus
    level: str | None = None


def can_perform(role: Role | str, action: Action) -> bool:
    """Return True if *role* is allowed to perform *action*."""
    try:
        role = Role(role)
    except ValueError:
        return False
    return action in PERMISSIONS.get(role, frozenset())


def has_dashboard_access(approval_status: ApprovalStatus | str) -> bool:
    """Only approved accounts hold any privileges; pending == rejected."""
    return approval_status == ApprovalStatus.APPROVED


def is_permitted(actor: Actor, action: Action) -> bool:
    """Non-raising :func:`authorize`: approval status *and* role must allow it."""
    return has_dashboard_access(actor.approval_status) and can_perform(actor.role, action)


def authorize(actor: Actor, action: Action) -> None:
    """Raise :class:`Unauthorized` unless *actor* may perform *action*."""
    if not has_dashboard_access(actor.approval_status):
        logger.info(
            "Refused %s for account %s: approval status is %s",
            action, actor.account_id, actor.approval_status,
        )
        raise Unauthorized(f"Account is {actor.approval_status}, not approved")
    if not can_perform(actor.role, action):
        logger.info(
            "Refused %s for account %s: role %s lacks permission",
            action, actor.account_id, actor.role,
        )
        raise Unauthorized(f"Role '{actor.role}' may not {action.value.replace('_', ' ')}")
