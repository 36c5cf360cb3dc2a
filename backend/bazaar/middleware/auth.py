"""
Bazaar Backend — Authentication & Authorization
================================================

What:  Bearer-token authentication and role/vendor authorization as FastAPI
       dependencies.
How:   Tokens are HS256 JWTs signed with ACCESS_TOKEN_SECRET carrying the
       user id in the `id` claim. The user must still exist and be active.
       Every failure raises UnauthorizedError (401 via the classifier).

Dependencies:
    authenticate_user        → AuthenticatedUser
    authorize_roles(*roles)  → AuthenticatedUser with one of the roles
    authorize_vendor         → vendor id the caller may act for
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import jwt
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.config import Settings
from bazaar.database import get_db_session, translate_db_errors
from bazaar.exceptions import ShortCircuit, UnauthorizedError
from bazaar.middleware.guards import request_params
from bazaar.models.customer import User

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    role: str
    email: Optional[str] = None
    name: Optional[str] = None
    vendor_id: Optional[str] = None


def create_access_token(
    settings: Settings,
    user_id: str,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "id": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.access_token_ttl_minutes)).timestamp()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.access_token_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> Dict[str, Any]:
    if not settings.access_token_secret:
        logger.error("ACCESS_TOKEN_SECRET is not configured; rejecting bearer token")
        raise UnauthorizedError("Authentication is not configured")
    try:
        return jwt.decode(token, settings.access_token_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid or expired token") from exc


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


async def authenticate_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> AuthenticatedUser:
    token = parse_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise UnauthorizedError("Authorization header missing")

    claims = decode_access_token(request.app.state.settings, token)
    user_id = claims.get("id")
    if not user_id:
        raise UnauthorizedError("Invalid or expired token")

    async with translate_db_errors():
        result = await db.execute(select(User).where(User.id == str(user_id)))
        user = result.scalars().first()

    if user is None or not user.is_active or user.is_blocked:
        raise UnauthorizedError("User not found or inactive")

    return AuthenticatedUser(
        id=user.id,
        role=user.role,
        email=user.email,
        name=user.name,
        vendor_id=user.vendor_id,
    )


def authorize_roles(*roles: str) -> Callable[..., Awaitable[AuthenticatedUser]]:
    async def dependency(
        user: AuthenticatedUser = Depends(authenticate_user),
    ) -> AuthenticatedUser:
        if user.role not in roles:
            raise UnauthorizedError("Unauthorized: insufficient permissions")
        return user

    return dependency


async def authorize_vendor(
    request: Request,
    user: AuthenticatedUser = Depends(authenticate_user),
) -> str:
    """vendorId (body or query) must be present and owned by the caller, unless admin."""
    body, query = await request_params(request)
    vendor_id = body.get("vendorId") or query.get("vendorId")
    if not vendor_id:
        raise ShortCircuit(400, "Vendor ID is required")
    if user.role != ADMIN_ROLE and user.vendor_id != str(vendor_id):
        raise UnauthorizedError("Unauthorized access to this vendor")
    return str(vendor_id)
