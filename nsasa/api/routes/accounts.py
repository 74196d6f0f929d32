"""
nsasa.api.routes.accounts — Registration, profile, approval and role endpoints
================================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from nsasa.api.deps import get_current_account, get_current_actor, get_engine
from nsasa.database.models import Account
from nsasa.engine.policy import Actor
from nsasa.services import account_service

router = APIRouter(prefix="/accounts", tags=["accounts"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    matric_number: str | None = Field(None, max_length=50)
    gender: str | None = Field(None, max_length=20)
    location: str | None = Field(None, max_length=20)
    address: str | None = None
    phone_number: str | None = Field(None, max_length=30)
    level: str | None = Field(None, max_length=50)
    occupation: str | None = Field(None, max_length=100)


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    matric_number: str | None = Field(None, max_length=50)
    gender: str | None = Field(None, max_length=20)
    location: str | None = Field(None, max_length=20)
    address: str | None = None
    phone_number: str | None = Field(None, max_length=30)
    level: str | None = Field(None, max_length=50)
    occupation: str | None = Field(None, max_length=100)


class ApprovalUpdate(BaseModel):
    status: str
    reason: str | None = None


class RoleUpdate(BaseModel):
    role: str
    reason: str | None = None


def account_dict(a: Account) -> dict:
    return {
        "id": str(a.id),
        "email": a.email,
        "first_name": a.first_name,
        "last_name": a.last_name,
        "display_name": a.display_name,
        "matric_number": a.matric_number,
        "gender": a.gender,
        "location": a.location,
        "address": a.address,
        "phone_number": a.phone_number,
        "level": a.level,
        "occupation": a.occupation,
        "role": a.role,
        "approval_status": a.approval_status,
        "profile_completion": a.profile_completion,
        "created_at": a.created_at.isoformat() if a.created_at else None,
        "updated_at": a.updated_at.isoformat() if a.updated_at else None,
    }


# ---------------------------------------------------------------------------
# Registration & own profile
# ---------------------------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, engine=Depends(get_engine)):
    """Register a new member.  The account starts as a pending student."""
    account = account_service.register_account(engine, **body.model_dump())
    return {
        "message": "Registration successful! Your account is pending approval.",
        "account": account_dict(account),
    }


@router.get("/me")
def me(actor: Actor = Depends(get_current_account), engine=Depends(get_engine)):
    return account_dict(account_service.get_account(engine, actor.account_id))


@router.put("/me/profile")
def update_profile(
    body: ProfileUpdate,
    actor: Actor = Depends(get_current_account),
    engine=Depends(get_engine),
):
    account = account_service.update_profile(engine, actor, body.model_dump(exclude_unset=True))
    return account_dict(account)


# ---------------------------------------------------------------------------
# Admin views
# ---------------------------------------------------------------------------
@router.get("")
def list_accounts(
    status: str = Query("pending"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    """Accounts in one approval status, oldest registration first."""
    total, rows = account_service.list_accounts_by_status(
        engine, actor, status, page=page, page_size=page_size,
    )
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "accounts": [account_dict(a) for a in rows],
    }


@router.put("/{account_id}/approval")
def set_approval(
    account_id: int,
    body: ApprovalUpdate,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    account = account_service.set_approval_status(
        engine, actor, account_id, body.status, reason=body.reason,
    )
    return account_dict(account)


@router.put("/{account_id}/role")
def set_role(
    account_id: int,
    body: RoleUpdate,
    actor: Actor = Depends(get_current_actor),
    engine=Depends(get_engine),
):
    account = account_service.set_role(engine, actor, account_id, body.role, reason=body.reason)
    return account_dict(account)
