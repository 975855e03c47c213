"""
Bearer-token authentication and role checks.

Tokens are issued by the identity service; this module only verifies them.
`create_access_token` exists for scripts and tests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.config import Settings, get_settings
from backend.db import Database, OrganizationRow, UserRow
from backend.dependencies import get_db
from shared.types import Role

logger = logging.getLogger(__name__)

TOKEN_TYPE = "access"
DEFAULT_TOKEN_TTL_SECONDS = 24 * 3600

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: int
    email: str
    role: Role
    organization_id: Optional[int] = None
    display_name: Optional[str] = None

    def has_role(self, role: Role) -> bool:
        return self.role.includes(role)

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN


def create_access_token(
    user_id: int,
    email: str,
    role: str = Role.USER.value,
    organization_id: Optional[int] = None,
    *,
    name: Optional[str] = None,
    expires_in: int = DEFAULT_TOKEN_TTL_SECONDS,
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or get_settings()
    now = int(time.time())
    claims = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "organization_id": organization_id,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": now + expires_in,
    }
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> dict:
    settings = settings or get_settings()
    claims = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )
    if claims.get("type", TOKEN_TYPE) != TOKEN_TYPE:
        raise jwt.InvalidTokenError("Not an access token")
    return claims


def ensure_user(db: Database, user: CurrentUser) -> UserRow:
    """Creates the local user record the first time a token is seen."""
    with db.session() as session:
        row = session.get(UserRow, user.id)
        if row:
            return row
        organization_id = user.organization_id
        if organization_id is not None and not session.get(
            OrganizationRow, organization_id
        ):
            logger.warning(
                "Token for user %s names unknown organization %s",
                user.id,
                organization_id,
            )
            organization_id = None
        row = UserRow(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=user.role.value,
            organization_id=organization_id,
        )
        session.add(row)
        return row


def _user_from_claims(claims: dict) -> CurrentUser:
    organization_id = claims.get("organization_id")
    return CurrentUser(
        id=int(claims["sub"]),
        email=claims.get("email") or f"user-{claims['sub']}@unknown.invalid",
        role=Role.parse(claims.get("role")),
        organization_id=int(organization_id) if organization_id is not None else None,
        display_name=claims.get("name"),
    )


def _authenticate(token: str, db: Database) -> CurrentUser:
    try:
        user = _user_from_claims(decode_access_token(token))
    except (jwt.PyJWTError, ValueError) as e:
        logger.info("Rejected bearer token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    row = ensure_user(db, user)
    if row.suspended:
        raise HTTPException(status_code=403, detail="Account suspended")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
) -> CurrentUser:
    if not credentials:
        raise HTTPException(status_code=401, detail="Authentication required")
    return _authenticate(credentials.credentials, db)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
) -> Optional[CurrentUser]:
    if not credentials:
        return None
    return _authenticate(credentials.credentials, db)


def require_role(role: Role):
    """Dependency factory rejecting callers below `role` with 403."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_role(role):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency
