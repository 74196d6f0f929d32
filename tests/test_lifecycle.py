"""
tests/test_lifecycle.py — Transition Rule Tests
=================================================
"""

from __future__ import annotations

import pytest

from nsasa.database.models import ApprovalStatus, Role
from nsasa.engine.lifecycle import (
    check_approval_transition,
    check_poll_close,
    check_role_change,
    parse_approval_status,
    parse_role,
)
from nsasa.errors import InvalidInput, InvalidTransition


class TestApprovalTransitions:
    @pytest.mark.parametrize("current,new", [
        ("pending", ApprovalStatus.APPROVED),
        ("pending", ApprovalStatus.REJECTED),
        ("approved", ApprovalStatus.REJECTED),
        ("rejected", ApprovalStatus.APPROVED),
    ])
    def test_legal_edges(self, current, new):
        assert check_approval_transition(current, new) is True

    @pytest.mark.parametrize("status", list(ApprovalStatus))
    def test_same_status_is_noop(self, status):
        assert check_approval_transition(status.value, status) is False

    @pytest.mark.parametrize("current", ["approved", "rejected"])
    def test_back_to_pending_is_refused(self, current):
        with pytest.raises(InvalidTransition):
            check_approval_transition(current, ApprovalStatus.PENDING)


class TestParsing:
    def test_parse_status(self):
        assert parse_approval_status("approved") is ApprovalStatus.APPROVED

    def test_parse_bad_status(self):
        with pytest.raises(InvalidInput):
            parse_approval_status("maybe")

    def test_parse_bad_role(self):
        with pytest.raises(InvalidInput):
            parse_role("overlord")

    def test_parse_role(self):
        assert parse_role("alumnus") is Role.ALUMNUS


class TestRoleAndPollRules:
    def test_super_admin_role_is_frozen(self):
        with pytest.raises(InvalidTransition):
            check_role_change("super_admin")

    @pytest.mark.parametrize("role", ["student", "alumnus", "admin"])
    def test_other_roles_may_change(self, role):
        check_role_change(role)

    def test_close_active_poll(self):
        check_poll_close("active")

    def test_close_closed_poll_raises(self):
        with pytest.raises(InvalidTransition):
            check_poll_close("closed")
