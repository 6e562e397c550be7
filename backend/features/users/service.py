"""
User domain service.
- get_or_create_user(auth_uid, ...)
- get_user(user_id)
- update_user_profile / update_pricing_plan
- get_user_stats(user_id)
"""

from typing import Optional
from sqlalchemy import select, insert, update, func
from sqlalchemy.exc import IntegrityError

from backend.core.database import (
    get_db_session,
    users as app_users,
    startups,
    favorites,
    startup_views,
    utcnow,
)
from backend.core.errors import ConflictError, NotFoundError
from backend.core.logging import log_event
from backend.models.user import PricingTier, User, UserProfileUpdate, UserRole, UserStats


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        auth_uid=row.auth_uid,
        auth_provider=row.auth_provider,
        role=row.role,
        current_pricing_plan=row.current_pricing_plan,
        created_at=row.created_at,
    )


def placeholder_email(auth_uid: str) -> str:
    # Header-authenticated users may arrive without an email
    return f"{auth_uid}@users.invalid"


def find_user_by_auth_uid(auth_uid: str) -> Optional[User]:
    with get_db_session() as session:
        row = session.execute(select(app_users).where(app_users.c.auth_uid == auth_uid)).first()
        return _row_to_user(row) if row else None


def get_user(user_id: int) -> User:
    with get_db_session() as session:
        row = session.execute(select(app_users).where(app_users.c.id == user_id)).first()
    if not row:
        raise NotFoundError("User not found")
    return _row_to_user(row)


def get_or_create_user(
    auth_uid: str,
    email: Optional[str] = None,
    role: Optional[str] = None,
    auth_provider: str = "jwt",
) -> User:
    """Return the local user for an external identity, creating it on first sight.

    New users default to the investor role. An existing user's stored role
    wins over whatever the token claims.
    """
    existing = find_user_by_auth_uid(auth_uid)
    if existing:
        return existing

    resolved_role = UserRole(role) if role in {r.value for r in UserRole} else UserRole.INVESTOR
    try:
        with get_db_session() as session:
            session.execute(
                insert(app_users).values(
                    email=email or placeholder_email(auth_uid),
                    auth_uid=auth_uid,
                    auth_provider=auth_provider,
                    role=resolved_role.value,
                    current_pricing_plan=PricingTier.FREE.value,
                    created_at=utcnow(),
                )
            )
    except IntegrityError:
        # Concurrent first request for the same identity already inserted it
        existing = find_user_by_auth_uid(auth_uid)
        if existing:
            return existing
        raise ConflictError("Email is already registered to another account")

    created = find_user_by_auth_uid(auth_uid)
    log_event("info", "user.created", request_id=None, user_id=created.id, event_type="user_created")
    return created


def update_user_profile(user_id: int, data: UserProfileUpdate) -> User:
    values = {}
    if data.email is not None:
        values["email"] = data.email
    if data.role is not None:
        values["role"] = data.role.value
    if not values:
        return get_user(user_id)

    try:
        with get_db_session() as session:
            result = session.execute(
                update(app_users).where(app_users.c.id == user_id).values(**values)
            )
            if result.rowcount == 0:
                raise NotFoundError("User not found")
    except IntegrityError:
        raise ConflictError("Email is already registered to another account")
    return get_user(user_id)


def update_pricing_plan(user_id: int, tier: PricingTier) -> User:
    """Set the legacy pricing flag. It is informational and grants nothing."""
    with get_db_session() as session:
        result = session.execute(
            update(app_users)
            .where(app_users.c.id == user_id)
            .values(current_pricing_plan=PricingTier(tier).value)
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")
    return get_user(user_id)


def get_user_stats(user_id: int) -> UserStats:
    with get_db_session() as session:
        startups_count = session.execute(
            select(func.count()).select_from(startups).where(startups.c.user_id == user_id)
        ).scalar_one()
        favorites_count = session.execute(
            select(func.count()).select_from(favorites).where(favorites.c.user_id == user_id)
        ).scalar_one()
        total_views = session.execute(
            select(func.count())
            .select_from(startup_views.join(startups, startup_views.c.startup_id == startups.c.id))
            .where(startups.c.user_id == user_id)
        ).scalar_one()
    return UserStats(
        startups_count=startups_count,
        favorites_count=favorites_count,
        total_views=total_views,
    )
