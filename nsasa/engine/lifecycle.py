"""
nsasa.engine.lifecycle — Approval, Role and Poll Transition Rules
===================================================================

Pure transition checks; no DB I/O.  Services call these *before* writing
so an illegal edge never reaches the store.

Approval graph (accounts and blog posts share it)::

    pending ──► approved
       │           ▲
       │           │  (toggle either way, no terminal state)
       └─────► rejected

Poll graph::

    active ──► closed      (one-way)
"""

from __future__ import annotations

from nsasa.database.models import ApprovalStatus, PollStatus, Role
from nsasa.errors import InvalidInput, InvalidTransition

APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED}),
    ApprovalStatus.APPROVED: frozenset({ApprovalStatus.REJECTED}),
    ApprovalStatus.REJECTED: frozenset({ApprovalStatus.APPROVED}),
}


def parse_approval_status(value: str) -> ApprovalStatus:
    try:
        return ApprovalStatus(value)
    except ValueError:
        raise InvalidInput(
            f"Status must be one of: {', '.join(s.value for s in ApprovalStatus)}"
        ) from None


def parse_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise InvalidInput(
            f"Invalid role. Must be one of: {', '.join(r.value for r in Role)}"
        ) from None


def check_approval_transition(current: str, new: ApprovalStatus) -> bool:
    """Validate an approval edge.

    Returns ``False`` when *new* equals *current* (nothing to write),
    ``True`` when the edge is legal.  Raises :class:`InvalidTransition`
    otherwise; in practice that means anything moving back to ``pending``.
    """
    current = ApprovalStatus(current)
    if current == new:
        return False
    if new not in APPROVAL_TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot move from {current} to {new}")
    return True


def check_role_change(current: str) -> None:
    """A super_admin's role can only be changed out-of-band."""
    if Role(current) == Role.SUPER_ADMIN:
        raise InvalidTransition("The super_admin role cannot be changed through this path")


def check_poll_close(current: str) -> None:
    if PollStatus(current) == PollStatus.CLOSED:
        raise InvalidTransition("Poll is already closed")
