"""
Authentication and authorization dependencies.

``get_current_principal`` turns an ``Authorization: Bearer <token>`` header
into a verified ``Principal``. ``require_admin`` builds on it and checks the
principal's stored role, so the admin subject always comes from the token.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

from elevate_backend.db import DbClient
from elevate_backend.dependencies import get_db_client, get_identity_verifier
from elevate_backend.identity import IdentityVerifier, InvalidTokenError, Principal
from elevate_backend.schemas import Role

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "unauthorized access"
FORBIDDEN_MESSAGE = "forbidden access"


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=UNAUTHORIZED_MESSAGE,
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from a ``Bearer <token>`` header value, or None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def get_current_principal(
    authorization: Optional[str] = Header(default=None),
    identity: IdentityVerifier = Depends(get_identity_verifier),
) -> Principal:
    token = extract_bearer_token(authorization)
    if token is None:
        logger.info("Rejected request without a bearer credential")
        raise _unauthorized()
    try:
        return identity.verify(token)
    except InvalidTokenError as exc:
        logger.info("Rejected bearer credential: %s", exc)
        raise _unauthorized() from exc


def stored_role(db: DbClient, email: str) -> Optional[Role]:
    user = db.get_user(email)
    if not user:
        return None
    try:
        return Role(user.get("role"))
    except ValueError:
        return None


def is_admin(db: DbClient, email: str) -> bool:
    return stored_role(db, email) is Role.ADMIN


def require_admin(
    principal: Principal = Depends(get_current_principal),
    db: DbClient = Depends(get_db_client),
) -> Principal:
    if not is_admin(db, principal.email):
        logger.info("Denied admin operation for %s", principal.email)
        raise HTTPException(status_code=403, detail=FORBIDDEN_MESSAGE)
    return principal
