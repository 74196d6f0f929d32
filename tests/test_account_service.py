"""
tests/test_account_service.py — Registration, Approval & Role Tests
=====================================================================
Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import actor_of, seed_account
from nsasa.database.models import Account, AdminLog, ApprovalStatus, Role
from nsasa.engine.events import EntityKind, get_change_bus
from nsasa.errors import InvalidInput, InvalidTransition, NotFound, Unauthorized
from nsasa.services import account_service


class TestRegistration:
    def test_new_account_is_pending_student(self, db_engine):
        account = account_service.register_account(
            db_engine, email="  Ada@Example.EDU ", first_name="Ada", level="200",
        )
        assert account.email == "ada@example.edu"
        assert account.role == Role.STUDENT
        assert account.approval_status == ApprovalStatus.PENDING
        # email + first_name + level = 3 of 9
        assert account.profile_completion == 33

    def test_privileged_fields_are_ignored(self, db_engine):
        account = account_service.register_account(
            db_engine, email="sneaky@example.edu", role="super_admin", approval_status="approved",
        )
        assert account.role == Role.STUDENT
        assert account.approval_status == ApprovalStatus.PENDING

    def test_duplicate_email(self, db_engine):
        account_service.register_account(db_engine, email="dup@example.edu")
        with pytest.raises(InvalidInput):
            account_service.register_account(db_engine, email="DUP@example.edu")

    def test_overlong_email_rejected(self, db_engine):
        with pytest.raises(InvalidInput):
            account_service.register_account(db_engine, email="a" * 250 + "@x.edu")

    def test_publishes_change(self, db_engine):
        seen = []
        get_change_bus().subscribe(EntityKind.ACCOUNT, seen.append)
        account = account_service.register_account(db_engine, email="new@example.edu")
        assert [(e.entity_id, e.change) for e in seen] == [(account.id, "registered")]


class TestProfile:
    def test_update_recomputes_completion(self, db_engine):
        account = seed_account(db_engine, status=ApprovalStatus.PENDING)
        updated = account_service.update_profile(
            db_engine, actor_of(account),
            {"first_name": "Kemi", "last_name": "Ade", "role": "admin"},
        )
        assert updated.first_name == "Kemi"
        assert updated.role == Role.STUDENT
        assert updated.profile_completion == 33

    def test_overlong_field_rejected(self, db_engine):
        account = seed_account(db_engine, first_name="Kemi")
        with pytest.raises(InvalidInput):
            account_service.update_profile(db_engine, actor_of(account), {"gender": "x" * 21})
        assert account_service.get_account(db_engine, account.id).gender is None


class TestApproval:
    def test_super_admin_approves(self, db_engine, super_admin):
        target = seed_account(db_engine, status=ApprovalStatus.PENDING)
        account = account_service.set_approval_status(
            db_engine, super_admin, target.id, "approved", reason="verified matric",
        )
        assert account.approval_status == ApprovalStatus.APPROVED

        with Session(db_engine) as session:
            log = session.scalars(select(AdminLog)).one()
            assert log.action_type == "APPROVAL"
            assert log.before_snapshot["approval_status"] == "pending"
            assert log.after_snapshot["approval_status"] == "approved"
            assert log.reason == "verified matric"

    def test_admin_cannot_approve(self, db_engine, admin):
        target = seed_account(db_engine, status=ApprovalStatus.PENDING)
        with pytest.raises(Unauthorized):
            account_service.set_approval_status(db_engine, admin, target.id, "approved")

        with Session(db_engine) as session:
            assert session.get(Account, target.id).approval_status == "pending"
            assert session.scalars(select(AdminLog)).all() == []

    def test_rejected_can_be_reapproved(self, db_engine, super_admin):
        target = seed_account(db_engine, status=ApprovalStatus.REJECTED)
        account = account_service.set_approval_status(db_engine, super_admin, target.id, "approved")
        assert account.approval_status == ApprovalStatus.APPROVED

    def test_back_to_pending_refused(self, db_engine, super_admin):
        target = seed_account(db_engine)
        with pytest.raises(InvalidTransition):
            account_service.set_approval_status(db_engine, super_admin, target.id, "pending")

    def test_same_status_writes_nothing(self, db_engine, super_admin):
        target = seed_account(db_engine)
        account_service.set_approval_status(db_engine, super_admin, target.id, "approved")
        with Session(db_engine) as session:
            assert session.scalars(select(AdminLog)).all() == []

    def test_unknown_target(self, db_engine, super_admin):
        with pytest.raises(NotFound):
            account_service.set_approval_status(db_engine, super_admin, 424242, "approved")


class TestListing:
    def test_pending_oldest_first(self, db_engine, admin):
        first = seed_account(db_engine, status=ApprovalStatus.PENDING)
        second = seed_account(db_engine, status=ApprovalStatus.PENDING)
        seed_account(db_engine, status=ApprovalStatus.REJECTED)

        total, rows = account_service.list_accounts_by_status(db_engine, admin, "pending")

        assert total == 2
        assert [a.id for a in rows] == [first.id, second.id]

    def test_students_cannot_list(self, db_engine, student):
        with pytest.raises(Unauthorized):
            account_service.list_accounts_by_status(db_engine, student, "pending")


class TestRoles:
    def test_promote_student_to_admin(self, db_engine, super_admin):
        target = seed_account(db_engine)
        account = account_service.set_role(db_engine, super_admin, target.id, "admin")
        assert account.role == Role.ADMIN

        with Session(db_engine) as session:
            log = session.scalars(select(AdminLog)).one()
            assert log.action_type == "ROLE_CHANGE"
            assert log.before_snapshot["role"] == "student"
            assert log.after_snapshot["role"] == "admin"

    def test_super_admin_role_cannot_change(self, db_engine, super_admin):
        other = seed_account(db_engine, role=Role.SUPER_ADMIN)
        with pytest.raises(InvalidTransition):
            account_service.set_role(db_engine, super_admin, other.id, "student")

    def test_admin_cannot_set_roles(self, db_engine, admin):
        target = seed_account(db_engine)
        with pytest.raises(Unauthorized):
            account_service.set_role(db_engine, admin, target.id, "admin")

        with Session(db_engine) as session:
            assert session.get(Account, target.id).role == "student"
            assert session.scalars(select(AdminLog)).all() == []

    def test_invalid_role(self, db_engine, super_admin):
        target = seed_account(db_engine)
        with pytest.raises(InvalidInput):
            account_service.set_role(db_engine, super_admin, target.id, "overlord")
