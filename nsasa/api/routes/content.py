"""
nsasa.api.routes.content — Blog post, moderation and like endpoints
=====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from nsasa.api.deps import get_current_actor, get_engine, get_optional_actor
from nsasa.engine.policy import Actor
from nsasa.services import content_service
from nsasa.services.content_service import post_to_dict

router = APIRouter(prefix="/content", tags=["content"])


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    category: str = Field("general", max_length=50)
    excerpt: str | None = None
    tags: list[str] = Field(default_factory=list)
    published: bool = False


class PublishUpdate(BaseModel):
    published: bool


class FeaturedUpdate(BaseModel):
    featured: bool


class ApprovalUpdate(BaseModel):
    status: str
    reason: str | None = None


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------
@router.get("")
def list_posts(
    category: str | None = None,
    featured: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    engine=Depends(get_engine),
):
    """Published and approved posts, newest first."""
    total, rows = content_service.list_public_posts(
        engine, category=category, featured_only=featured, page=page, page_size=page_size,
    )
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "posts": [post_to_dict(p) for p in rows],
    }


# Declared before /{post_id} so "moderation" is not parsed as an id.
@router.get("/moderation")
def moderation_queue(
    status: str = Query("pending"),
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    rows = content_service.list_posts_for_moderation(engine, actor, status)
    return [post_to_dict(p) for p in rows]


@router.get("/{post_id}")
def get_post(
    post_id: int,
    viewer: Actor | None = Depends(get_optional_actor),
    engine=Depends(get_engine),
):
    post = content_service.view_post(engine, post_id, viewer)
    liked = None
    if viewer is not None:
        liked = viewer.account_id in content_service.liked_by(engine, post_id)
    return post_to_dict(post, liked=liked)


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    body: PostCreate,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    post = content_service.create_post(engine, actor, **body.model_dump())
    return post_to_dict(post)


@router.put("/{post_id}/publish")
def set_published(
    post_id: int,
    body: PublishUpdate,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    return post_to_dict(content_service.set_published(engine, actor, post_id, body.published))


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------
@router.put("/{post_id}/approval")
def set_approval(
    post_id: int,
    body: ApprovalUpdate,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    post = content_service.set_content_approval(
        engine, actor, post_id, body.status, reason=body.reason,
    )
    return post_to_dict(post)


@router.put("/{post_id}/featured")
def set_featured(
    post_id: int,
    body: FeaturedUpdate,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    return post_to_dict(content_service.set_featured(engine, actor, post_id, body.featured))


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
@router.post("/{post_id}/like")
def like_post(post_id: int, actor: Actor = Depends(get_current_actor), engine=Depends(get_engine)):
    return {"likes_count": content_service.like(engine, actor, post_id)}


@router.delete("/{post_id}/like")
def unlike_post(post_id: int, actor: Actor = Depends(get_current_actor), engine=Depends(get_engine)):
    return {"likes_count": content_service.unlike(engine, actor, post_id)}
