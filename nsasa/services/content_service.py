"""
nsasa.services.content_service — Blog Posts, Moderation & Likes
=================================================================

``published`` (author intent) and ``approval_status`` (moderation) are
independent.  Public listings require both ``published`` and
``approved``.

Likes are idempotent per account: the ``(post_id, account_id)`` unique
constraint decides whether a like is new, and the counter moves with SQL
arithmetic (``likes = likes + 1``) so concurrent likes from different
accounts are never lost.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nsasa.database.engine import get_session
from nsasa.database.models import (
    AdminActionType,
    ApprovalStatus,
    BlogPost,
    BlogPostLike,
)
from nsasa.engine.events import EntityChanged, EntityKind, get_change_bus
from nsasa.engine.lifecycle import check_approval_transition, parse_approval_status
from nsasa.engine.policy import Action, Actor, authorize, is_permitted
from nsasa.errors import InvalidInput, NotFound
from nsasa.services.audit_service import log_admin_action, row_to_dict

logger = logging.getLogger(__name__)


def is_publicly_visible(post: BlogPost) -> bool:
    return post.published and post.approval_status == ApprovalStatus.APPROVED


def _get_post(session: Session, post_id: int) -> BlogPost:
    post = session.get(BlogPost, post_id)
    if post is None:
        raise NotFound(f"Post {post_id} not found")
    return post


def _publish(post_id: int, change: str, actor_id: int | None) -> None:
    get_change_bus().publish(EntityChanged(EntityKind.CONTENT, post_id, change, actor_id))


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------
def create_post(
    engine,
    actor: Actor,
    *,
    title: str,
    content: str,
    category: str = "general",
    excerpt: str | None = None,
    tags: list[str] | None = None,
    published: bool = False,
) -> BlogPost:
    """Create a post awaiting moderation (``approval_status = pending``)."""
    authorize(actor, Action.CREATE_CONTENT)
    title = (title or "").strip()
    if not title or not (content or "").strip():
        raise InvalidInput("Title and content are required")
    category = category or "general"
    if len(title) > 200 or len(category) > 50:
        raise InvalidInput("Title is limited to 200 characters and category to 50")

    with get_session(engine) as session:
        post = BlogPost(
            author_id=actor.account_id,
            title=title,
            content=content,
            category=category,
            excerpt=excerpt,
            tags=list(tags or []),
            published=published,
            approval_status=ApprovalStatus.PENDING.value,
        )
        session.add(post)
        session.flush()
        session.refresh(post)

    logger.info("Post %s created by %s (published=%s)", post.id, actor.account_id, published)
    _publish(post.id, "created", actor.account_id)
    return post


def set_published(engine, actor: Actor, post_id: int, published: bool) -> BlogPost:
    """Author (or a moderator) toggles the draft flag."""
    with get_session(engine) as session:
        post = _get_post(session, post_id)
        if post.author_id != actor.account_id:
            authorize(actor, Action.MODERATE_CONTENT)
        post.published = published
        session.flush()
        session.refresh(post)

    _publish(post_id, "published" if published else "unpublished", actor.account_id)
    return post


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------
def set_content_approval(
    engine,
    actor: Actor,
    post_id: int,
    new_status: str,
    *,
    reason: str | None = None,
) -> BlogPost:
    authorize(actor, Action.MODERATE_CONTENT)
    status = parse_approval_status(new_status)

    with get_session(engine) as session:
        post = _get_post(session, post_id)
        if not check_approval_transition(post.approval_status, status):
            return post

        before = row_to_dict(post)
        post.approval_status = status.value
        session.flush()
        session.refresh(post)
        log_admin_action(
            session,
            actor_id=actor.account_id,
            action_type=AdminActionType.MODERATION,
            target_table="blog_posts",
            target_id=str(post.id),
            before=before,
            after=row_to_dict(post),
            reason=reason,
        )

    logger.info("Post %s moderation set to %s by %s", post_id, status, actor.account_id)
    _publish(post_id, "approval", actor.account_id)
    return post


def set_featured(engine, actor: Actor, post_id: int, featured: bool) -> BlogPost:
    authorize(actor, Action.FEATURE_CONTENT)
    with get_session(engine) as session:
        post = _get_post(session, post_id)
        before = row_to_dict(post)
        post.featured = featured
        session.flush()
        session.refresh(post)
        log_admin_action(
            session,
            actor_id=actor.account_id,
            action_type=AdminActionType.UPDATE,
            target_table="blog_posts",
            target_id=str(post.id),
            before=before,
            after=row_to_dict(post),
        )

    _publish(post_id, "featured", actor.account_id)
    return post


def list_posts_for_moderation(
    engine, actor: Actor, status: str = ApprovalStatus.PENDING.value,
) -> list[BlogPost]:
    authorize(actor, Action.MODERATE_CONTENT)
    status = parse_approval_status(status)
    with Session(engine) as session:
        rows = session.scalars(
            select(BlogPost)
            .where(BlogPost.approval_status == status.value)
            .order_by(BlogPost.created_at.asc(), BlogPost.id.asc())
        ).all()
        for row in rows:
            session.expunge(row)
        return list(rows)


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------
def list_public_posts(
    engine,
    *,
    category: str | None = None,
    featured_only: bool = False,
    page: int = 1,
    page_size: int = 20,
) -> tuple[int, list[BlogPost]]:
    """Published *and* approved posts, newest first."""
    conditions = [
        BlogPost.published.is_(True),
        BlogPost.approval_status == ApprovalStatus.APPROVED.value,
    ]
    if category:
        conditions.append(BlogPost.category == category)
    if featured_only:
        conditions.append(BlogPost.featured.is_(True))

    with Session(engine) as session:
        total = session.scalar(
            select(func.count()).select_from(BlogPost).where(*conditions)
        ) or 0
        rows = session.scalars(
            select(BlogPost)
            .where(*conditions)
            .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
        for row in rows:
            session.expunge(row)
        return total, list(rows)


def view_post(engine, post_id: int, viewer: Actor | None = None) -> BlogPost:
    """Fetch a post and count the view.

    Hidden posts (draft, pending, rejected) are only visible to their author
    and to moderators; for everyone else they do not exist.  Only views of
    publicly visible posts are counted.
    """
    with get_session(engine) as session:
        post = _get_post(session, post_id)
        if not is_publicly_visible(post):
            is_author = viewer is not None and viewer.account_id == post.author_id
            is_moderator = viewer is not None and is_permitted(viewer, Action.MODERATE_CONTENT)
            if not (is_author or is_moderator):
                raise NotFound(f"Post {post_id} not found")
            return post

        session.execute(
            update(BlogPost).where(BlogPost.id == post_id).values(views=BlogPost.views + 1)
        )
        session.refresh(post)
        return post


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
def _likes_count(session: Session, post_id: int) -> int:
    return session.scalar(select(BlogPost.likes).where(BlogPost.id == post_id)) or 0


def _ensure_likeable(session: Session, actor: Actor, post_id: int) -> None:
    post = _get_post(session, post_id)
    if not is_publicly_visible(post) and post.author_id != actor.account_id:
        raise NotFound(f"Post {post_id} not found")


def like(engine, actor: Actor, post_id: int) -> int:
    """Add *actor* to the post's likers.  Returns the resulting like count.

    Liking twice is a no-op: the second call returns the same count.
    """
    authorize(actor, Action.LIKE_CONTENT)
    changed = False
    with get_session(engine) as session:
        _ensure_likeable(session, actor, post_id)
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(BlogPostLike(post_id=post_id, account_id=actor.account_id))
                session.flush()
        except IntegrityError:
            # Already liked; the unique constraint caught it.
            pass
        else:
            session.execute(
                update(BlogPost).where(BlogPost.id == post_id).values(likes=BlogPost.likes + 1)
            )
            changed = True
        count = _likes_count(session, post_id)

    if changed:
        logger.debug("Account %s liked post %s (%d likes)", actor.account_id, post_id, count)
        _publish(post_id, "liked", actor.account_id)
    return count


def unlike(engine, actor: Actor, post_id: int) -> int:
    """Remove *actor* from the post's likers; a no-op if they never liked it."""
    authorize(actor, Action.LIKE_CONTENT)
    with get_session(engine) as session:
        _get_post(session, post_id)
        result = session.execute(
            delete(BlogPostLike).where(
                BlogPostLike.post_id == post_id,
                BlogPostLike.account_id == actor.account_id,
            )
        )
        changed = result.rowcount > 0
        if changed:
            session.execute(
                update(BlogPost)
                .where(BlogPost.id == post_id, BlogPost.likes > 0)
                .values(likes=BlogPost.likes - 1)
            )
        count = _likes_count(session, post_id)

    if changed:
        logger.debug("Account %s unliked post %s (%d likes)", actor.account_id, post_id, count)
        _publish(post_id, "unliked", actor.account_id)
    return count


def liked_by(engine, post_id: int) -> set[int]:
    with Session(engine) as session:
        return set(session.scalars(
            select(BlogPostLike.account_id).where(BlogPostLike.post_id == post_id)
        ).all())


def post_to_dict(post: BlogPost, *, liked: bool | None = None) -> dict[str, Any]:
    data = {
        "id": post.id,
        "author_id": str(post.author_id),
        "title": post.title,
        "excerpt": post.excerpt,
        "content": post.content,
        "category": post.category,
        "tags": post.tags or [],
        "approval_status": post.approval_status,
        "published": post.published,
        "featured": post.featured,
        "views": post.views,
        "likes": post.likes,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
    }
    if liked is not None:
        data["liked"] = liked
    return data
