"""
tests/test_content_service.py — Blog Post, Moderation & Like Tests
====================================================================
Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import actor_of, seed_account
from nsasa.database.models import AdminLog, ApprovalStatus, BlogPostLike, Role
from nsasa.errors import InvalidInput, InvalidTransition, NotFound, Unauthorized
from nsasa.services import content_service


def _approved_post(engine, author, moderator, **kwargs):
    kwargs.setdefault("title", "Field trip")
    kwargs.setdefault("content", "We went to the observatory.")
    kwargs.setdefault("published", True)
    post = content_service.create_post(engine, author, **kwargs)
    return content_service.set_content_approval(engine, moderator, post.id, "approved")


class TestAuthoring:
    def test_new_post_is_pending(self, db_engine, student):
        post = content_service.create_post(
            db_engine, student, title="Hello", content="World", tags=["intro"],
        )
        assert post.approval_status == ApprovalStatus.PENDING
        assert post.published is False
        assert post.likes == 0
        assert post.tags == ["intro"]

    def test_blank_title_rejected(self, db_engine, student):
        with pytest.raises(InvalidInput):
            content_service.create_post(db_engine, student, title="  ", content="x")

    def test_overlong_title_or_category_rejected(self, db_engine, student):
        with pytest.raises(InvalidInput):
            content_service.create_post(db_engine, student, title="t" * 201, content="c")
        with pytest.raises(InvalidInput):
            content_service.create_post(db_engine, student, title="t", content="c", category="c" * 51)

    def test_pending_member_cannot_post(self, db_engine):
        pending = actor_of(seed_account(db_engine, status=ApprovalStatus.PENDING))
        with pytest.raises(Unauthorized):
            content_service.create_post(db_engine, pending, title="t", content="c")

    def test_only_author_or_moderator_publishes(self, db_engine, student, admin):
        post = content_service.create_post(db_engine, student, title="t", content="c")
        other = actor_of(seed_account(db_engine))
        with pytest.raises(Unauthorized):
            content_service.set_published(db_engine, other, post.id, True)
        assert content_service.set_published(db_engine, student, post.id, True).published
        assert not content_service.set_published(db_engine, admin, post.id, False).published


class TestModeration:
    def test_admin_approves_with_audit(self, db_engine, student, admin):
        post = content_service.create_post(db_engine, student, title="t", content="c")
        approved = content_service.set_content_approval(
            db_engine, admin, post.id, "approved", reason="fine",
        )
        assert approved.approval_status == ApprovalStatus.APPROVED
        with Session(db_engine) as session:
            log = session.scalars(select(AdminLog)).one()
            assert log.action_type == "MODERATION"
            assert log.target_table == "blog_posts"

    def test_student_cannot_moderate(self, db_engine, student):
        post = content_service.create_post(db_engine, student, title="t", content="c")
        with pytest.raises(Unauthorized):
            content_service.set_content_approval(db_engine, student, post.id, "approved")

    def test_cannot_return_to_pending(self, db_engine, student, admin):
        post = _approved_post(db_engine, student, admin)
        with pytest.raises(InvalidTransition):
            content_service.set_content_approval(db_engine, admin, post.id, "pending")

    def test_moderation_queue(self, db_engine, student, admin):
        first = content_service.create_post(db_engine, student, title="a", content="c")
        second = content_service.create_post(db_engine, student, title="b", content="c")
        _approved_post(db_engine, student, admin)

        queue = content_service.list_posts_for_moderation(db_engine, admin)

        assert [p.id for p in queue] == [first.id, second.id]

    def test_featured_toggle(self, db_engine, student, admin):
        post = _approved_post(db_engine, student, admin)
        assert content_service.set_featured(db_engine, admin, post.id, True).featured
        with pytest.raises(Unauthorized):
            content_service.set_featured(db_engine, student, post.id, False)


class TestPublicVisibility:
    def test_requires_published_and_approved(self, db_engine, student, admin):
        visible = _approved_post(db_engine, student, admin)
        _approved_post(db_engine, student, admin, published=False)
        content_service.create_post(db_engine, student, title="p", content="c", published=True)

        total, rows = content_service.list_public_posts(db_engine)

        assert total == 1
        assert [p.id for p in rows] == [visible.id]

    def test_category_and_featured_filters(self, db_engine, student, admin):
        news = _approved_post(db_engine, student, admin, category="news")
        _approved_post(db_engine, student, admin, category="events")
        content_service.set_featured(db_engine, admin, news.id, True)

        total, _ = content_service.list_public_posts(db_engine, category="news")
        assert total == 1
        total, rows = content_service.list_public_posts(db_engine, featured_only=True)
        assert [p.id for p in rows] == [news.id]

    def test_view_counts_only_visible_posts(self, db_engine, student, admin):
        post = _approved_post(db_engine, student, admin)
        content_service.view_post(db_engine, post.id)
        assert content_service.view_post(db_engine, post.id).views == 2

    def test_hidden_post_is_not_found_for_strangers(self, db_engine, student):
        post = content_service.create_post(db_engine, student, title="t", content="c")
        with pytest.raises(NotFound):
            content_service.view_post(db_engine, post.id)
        assert content_service.view_post(db_engine, post.id, student).views == 0

    def test_moderator_sees_hidden_post(self, db_engine, student, admin):
        post = content_service.create_post(db_engine, student, title="t", content="c")
        assert content_service.view_post(db_engine, post.id, admin).id == post.id

    @pytest.mark.parametrize("status", [ApprovalStatus.PENDING, ApprovalStatus.REJECTED])
    def test_unapproved_admin_cannot_see_hidden_post(self, db_engine, student, status):
        post = content_service.create_post(db_engine, student, title="t", content="c")
        admin = actor_of(seed_account(db_engine, role=Role.ADMIN, status=status))
        with pytest.raises(NotFound):
            content_service.view_post(db_engine, post.id, admin)


class TestLikes:
    def test_like_is_idempotent(self, db_engine, student, admin):
        post = _approved_post(db_engine, student, admin)
        assert content_service.like(db_engine, admin, post.id) == 1
        assert content_service.like(db_engine, admin, post.id) == 1
        assert content_service.liked_by(db_engine, post.id) == {admin.account_id}

    def test_likes_match_distinct_likers(self, db_engine, student, admin):
        post = _approved_post(db_engine, student, admin)
        for _ in range(3):
            content_service.like(db_engine, actor_of(seed_account(db_engine)), post.id)
        content_service.like(db_engine, student, post.id)

        with Session(db_engine) as session:
            rows = session.scalars(
                select(BlogPostLike).where(BlogPostLike.post_id == post.id)
            ).all()
        assert content_service.view_post(db_engine, post.id).likes == len(rows) == 4

    def test_unlike(self, db_engine, student, admin):
        post = _approved_post(db_engine, student, admin)
        content_service.like(db_engine, admin, post.id)
        assert content_service.unlike(db_engine, admin, post.id) == 0

    def test_unlike_without_like_is_noop(self, db_engine, student, admin):
        post = _approved_post(db_engine, student, admin)
        content_service.like(db_engine, student, post.id)
        assert content_service.unlike(db_engine, admin, post.id) == 1

    def test_cannot_like_hidden_post(self, db_engine, student, admin):
        post = content_service.create_post(db_engine, student, title="t", content="c")
        with pytest.raises(NotFound):
            content_service.like(db_engine, admin, post.id)

    def test_missing_post(self, db_engine, student):
        with pytest.raises(NotFound):
            content_service.like(db_engine, student, 999)
