"""
nsasa.api.deps — FastAPI dependency injection
===============================================

Tokens are issued by the portal's auth service; this module only decodes
them.  The ``sub`` claim names the account, and the account row (not the
token) is the source of truth for role and approval status, so a demotion
takes effect on the very next request.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from nsasa.config import PortalConfig, load_config
from nsasa.database.engine import create_db_engine
from nsasa.database.models import Account
from nsasa.engine.policy import Actor, has_dashboard_access
from nsasa.services.account_service import actor_for

logger = logging.getLogger(__name__)

_WEAK_SECRETS = frozenset({
    "nsasa-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> PortalConfig:
    return load_config(os.getenv("NSASA_CONFIG", "config.yaml"))


def _resolve_actor(authorization: str | None, engine: Engine) -> Actor:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        account_id = int(payload["sub"])
    except (InvalidTokenError, KeyError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    with Session(engine) as session:
        account = session.get(Account, account_id)
        if account is None:
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unknown account")
        return actor_for(account)


def get_current_account(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> Actor:
    """Any authenticated account, whatever its approval status.

    Used only by the owner's own profile endpoints so a pending member can
    finish their profile while waiting for approval.
    """
    return _resolve_actor(authorization, engine)


def get_current_actor(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> Actor:
    """An authenticated *and approved* account.  Raises 401/403."""
    actor = _resolve_actor(authorization, engine)
    if not has_dashboard_access(actor.approval_status):
        logger.warning(
            "Account %s refused: approval status %s", actor.account_id, actor.approval_status,
        )
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Account is not approved")
    return actor


def get_optional_actor(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> Actor | None:
    """Resolve the actor when a valid token is present; anonymous otherwise."""
    if not authorization:
        return None
    try:
        return _resolve_actor(authorization, engine)
    except HTTPException:
        return None
