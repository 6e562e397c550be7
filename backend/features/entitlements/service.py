"""
backend/features/entitlements/service.py

Entitlement resolver.

A user's effective permission set is the union of allowed-field tokens
across every active, unexpired subscription. Pure read; no side effects.
"""

from datetime import datetime, timezone
from typing import Any, FrozenSet, Optional
import logging
from sqlalchemy import and_, or_, select

from backend.core.database import get_db_session, plans, user_plans
from backend.core.logging import LOGGER_NAME
from backend.models.plan import token_value


logger = logging.getLogger(LOGGER_NAME)


def _normalize_now(now: Optional[Any]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if getattr(now, "tzinfo", None) is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def active_subscription_clause(now: Optional[Any] = None):
    """WHERE clause for subscriptions that currently grant access."""
    normalized_now = _normalize_now(now)
    return and_(
        user_plans.c.is_active.is_(True),
        or_(user_plans.c.expires_at.is_(None), user_plans.c.expires_at > normalized_now),
    )


def resolve_allowed_fields(user_id: int, now: Optional[Any] = None) -> FrozenSet[str]:
    """Deduplicated union of tokens over the user's active plans.

    An empty set is a valid answer (no active subscriptions), not an error.
    """
    with get_db_session() as session:
        rows = session.execute(
            select(plans.c.allowed_fields)
            .select_from(user_plans.join(plans, user_plans.c.plan_id == plans.c.id))
            .where(user_plans.c.user_id == user_id)
            .where(active_subscription_clause(now))
        ).all()

    tokens = set()
    for row in rows:
        for token in row.allowed_fields or []:
            tokens.add(token_value(token))
    logger.debug("entitlements.resolved", extra={"user_id": user_id})
    return frozenset(tokens)
