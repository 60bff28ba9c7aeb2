"""
rallypoint.api.deps — FastAPI dependency injection
===================================================

Tokens are issued by the external auth service; this module only verifies
them.  ``sub`` is the caller's user id and ``is_admin`` gates moderation
routes.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from rallypoint.config import RallypointConfig, load_config
from rallypoint.database.engine import create_db_engine

_WEAK_SECRETS = frozenset({
    "rallypoint-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Read JWT_SECRET and refuse to start with a missing or guessable one.

    The secret is shared with the external auth service that issues member
    tokens.
    """
    secret = os.getenv("JWT_SECRET", "")
    problem = None
    if not secret:
        problem = (
            "JWT_SECRET environment variable is not set. "
            "Use the same value as the auth service (see .env.example)."
        )
    elif secret in _WEAK_SECRETS:
        problem = f"JWT_SECRET is a known weak default ('{secret}')."
    elif len(secret) < _MIN_SECRET_LENGTH:
        problem = (
            f"JWT_SECRET is too short ({len(secret)} chars); "
            f"tokens need at least {_MIN_SECRET_LENGTH}."
        )
    if problem:
        raise RuntimeError(problem)
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> RallypointConfig:
    return load_config()


def _decode_bearer(authorization: str | None) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has no subject")
    return payload


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer JWT and return its payload.  Raises 401 if invalid."""
    return _decode_bearer(authorization)


def get_current_user_id(user: Annotated[dict, Depends(get_current_user)]) -> str:
    return str(user["sub"])


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate JWT and require the ``is_admin`` claim.  401 / 403 otherwise."""
    payload = _decode_bearer(authorization)
    if not payload.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return payload


def require_owner(owner_id: str, user_id: str, what: str) -> None:
    """403 unless *user_id* authored / owns the resource."""
    if owner_id != user_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, f"Only the author can modify this {what}")
