"""
Auth dependencies.

Identity is issued by an external provider. This module only turns a request
into an AuthUser:

1. Authorization: Bearer <jwt> verified with AUTH_JWT_SECRET (claims: sub, email, role)
2. X-User-Id header (plus X-User-Role / X-User-Email) for development and tests,
   only while settings.header_auth_enabled() (off in production by default)
3. Otherwise anonymous

The first request from a new identity creates the local user row.
"""
import hmac
import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, Request

from backend.core.config import settings
from backend.core.errors import AuthenticationError, PermissionError
from backend.core.logging import LOGGER_NAME
from backend.models.user import AuthUser, UserRole

logger = logging.getLogger(LOGGER_NAME)


def verify_jwt(token: str) -> dict:
    """
    Verify a bearer token and return its claims.

    Raises:
        AuthenticationError: expired, malformed, unsigned, or missing 'sub'
    """
    if not settings.AUTH_JWT_SECRET:
        raise AuthenticationError("Token authentication is not configured")

    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=settings.jwt_algorithms(),
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Invalid token: %s", e)
        raise AuthenticationError("Invalid token")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return payload


def _resolve_identity(request: Request) -> Optional[AuthUser]:
    from backend.features.users.service import get_or_create_user

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        claims = verify_jwt(auth_header[7:])
        user = get_or_create_user(
            str(claims["sub"]),
            email=claims.get("email"),
            role=claims.get("role"),
            auth_provider=str(claims.get("provider") or "jwt"),
        )
        return AuthUser.from_user(user)

    header_uid = request.headers.get("X-User-Id") if settings.header_auth_enabled() else None
    if header_uid and header_uid.strip():
        user = get_or_create_user(
            header_uid.strip(),
            email=request.headers.get("X-User-Email"),
            role=request.headers.get("X-User-Role"),
            auth_provider="header",
        )
        return AuthUser.from_user(user)

    return None


def get_optional_user(request: Request) -> Optional[AuthUser]:
    """Authenticated user or None. An invalid token is still a 401."""
    user = _resolve_identity(request)
    request.state.user_id = user.id if user else None
    return user


def get_current_user(user: Optional[AuthUser] = Depends(get_optional_user)) -> AuthUser:
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


def require_role(role: UserRole):
    """Dependency factory: the caller must hold the given role."""

    def _dependency(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if user.role != role:
            raise PermissionError(f"Only users with role '{role.value}' can perform this action")
        return user

    return _dependency


def require_admin(
    user: AuthUser = Depends(get_current_user),
    x_admin_key: Optional[str] = Header(None),
) -> AuthUser:
    """Plan administration guard.

    With ADMIN_KEY configured the X-Admin-Key header must match it. Without
    one any authenticated user may administer plans.
    """
    expected = settings.ADMIN_KEY
    if expected:
        if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
            raise PermissionError("Admin key required")
    return user
