"""
backend/features/subscriptions/service.py

Subscription lifecycle.

created (active) -> unsubscribed (inactive) -> reactivated (active) -> ...

Rows are never hard-deleted here. The (user_id, plan_id) unique constraint
is the final guard: the existence check below is only an early exit, and an
insert that loses a race surfaces as ConflictError.
"""

from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backend.core.database import get_db_session, plans, user_plans, utcnow
from backend.core.errors import ConflictError, DatabaseError, NotFoundError, ValidationError
from backend.core.logging import log_event
from backend.core.metrics import subscription_mutations_total
from backend.features.entitlements.service import active_subscription_clause
from backend.features.plans.service import row_to_plan
from backend.models.user_plan import ActiveSubscription, Subscription, SubscriptionResult


def _row_to_subscription(row) -> Subscription:
    return Subscription(
        id=row.id,
        user_id=row.user_id,
        plan_id=row.plan_id,
        is_active=row.is_active,
        started_at=row.started_at,
        expires_at=row.expires_at,
    )


def _normalize_expiry(expires_at: Optional[datetime]) -> Optional[datetime]:
    if expires_at is None:
        return None
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    expires_at = expires_at.astimezone(timezone.utc)
    if expires_at <= utcnow():
        raise ValidationError("expires_at must be in the future")
    return expires_at


def _get_row(session, user_id: int, plan_id: int):
    return session.execute(
        select(user_plans)
        .where(user_plans.c.user_id == user_id)
        .where(user_plans.c.plan_id == plan_id)
    ).first()


def subscribe(user_id: int, plan_id: int, expires_at: Optional[datetime] = None) -> SubscriptionResult:
    """
    Subscribe a user to a plan.

    Returns the subscription with reactivated=True when an inactive row was
    flipped back on.

    Raises:
        ValidationError: expiry in the past
        NotFoundError: plan absent
        ConflictError: already actively subscribed (including a lost race)
        DatabaseError: any other store failure
    """
    expiry = _normalize_expiry(expires_at)
    now = utcnow()
    reactivated = False

    try:
        with get_db_session() as session:
            plan_row = session.execute(select(plans.c.id).where(plans.c.id == plan_id)).first()
            if not plan_row:
                raise NotFoundError("Plan not found")

            existing = _get_row(session, user_id, plan_id)
            if existing is not None:
                still_active = session.execute(
                    select(user_plans.c.id)
                    .where(user_plans.c.id == existing.id)
                    .where(active_subscription_clause(now))
                ).first()
                if still_active:
                    raise ConflictError("Already subscribed to this plan")
                # Conditional flip: only succeeds if the row is still inactive or expired
                result = session.execute(
                    update(user_plans)
                    .where(user_plans.c.id == existing.id)
                    .where(~active_subscription_clause(now))
                    .values(is_active=True, started_at=now, expires_at=expiry)
                )
                if result.rowcount == 0:
                    raise ConflictError("Already subscribed to this plan")
                reactivated = True
            else:
                session.execute(
                    insert(user_plans).values(
                        user_id=user_id,
                        plan_id=plan_id,
                        is_active=True,
                        started_at=now,
                        expires_at=expiry,
                    )
                )
            row = _get_row(session, user_id, plan_id)
    except ConflictError:
        subscription_mutations_total.inc(labels={"type": "conflict"})
        raise
    except IntegrityError:
        # Lost the race to a concurrent insert for the same pair
        subscription_mutations_total.inc(labels={"type": "conflict"})
        raise ConflictError("Already subscribed to this plan")
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to subscribe to plan", cause=e)

    mutation = "reactivated" if reactivated else "created"
    subscription_mutations_total.inc(labels={"type": mutation})
    log_event(
        "info",
        f"subscription.{mutation}",
        request_id=None,
        user_id=user_id,
        plan_id=plan_id,
        event_type=mutation,
    )
    return SubscriptionResult(subscription=_row_to_subscription(row), reactivated=reactivated)


def unsubscribe(user_id: int, plan_id: int) -> Subscription:
    """
    Deactivate a subscription; the row is kept for later reactivation.

    Raises:
        NotFoundError: no row for the pair, or the row is already inactive
    """
    try:
        with get_db_session() as session:
            existing = _get_row(session, user_id, plan_id)
            if existing is None:
                raise NotFoundError("Subscription not found")
            result = session.execute(
                update(user_plans)
                .where(user_plans.c.id == existing.id)
                .where(user_plans.c.is_active.is_(True))
                .values(is_active=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("No active subscription for this plan")
            row = _get_row(session, user_id, plan_id)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to unsubscribe from plan", cause=e)

    subscription_mutations_total.inc(labels={"type": "deactivated"})
    log_event(
        "info",
        "subscription.deactivated",
        request_id=None,
        user_id=user_id,
        plan_id=plan_id,
        event_type="deactivated",
    )
    return _row_to_subscription(row)


def list_active(user_id: int) -> List[ActiveSubscription]:
    """Active, unexpired subscriptions joined with their plan."""
    with get_db_session() as session:
        subscription_rows = session.execute(
            select(user_plans)
            .where(user_plans.c.user_id == user_id)
            .where(active_subscription_clause())
            .order_by(user_plans.c.started_at, user_plans.c.id)
        ).all()
        plan_ids = [row.plan_id for row in subscription_rows]
        plan_rows = []
        if plan_ids:
            plan_rows = session.execute(select(plans).where(plans.c.id.in_(plan_ids))).all()

    plans_by_id = {row.id: row_to_plan(row) for row in plan_rows}
    return [
        ActiveSubscription(subscription=_row_to_subscription(row), plan=plans_by_id[row.plan_id])
        for row in subscription_rows
        if row.plan_id in plans_by_id
    ]
