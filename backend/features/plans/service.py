"""
backend/features/plans/service.py

Plan administration service.

Handles:
- Plan create / update / delete (admin)
- Plan lookup and listing, annotated with a user's subscription state
"""

from typing import List, Optional, Union
from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.exc import SQLAlchemyError

from backend.core.database import get_db_session, plans, user_plans, utcnow
from backend.core.errors import ConflictError, DatabaseError, NotFoundError
from backend.core.logging import log_event
from backend.features.entitlements.service import active_subscription_clause
from backend.models.plan import (
    Plan,
    PlanAudience,
    PlanCreateRequest,
    PlanUpdateRequest,
    normalize_allowed_fields,
)
from backend.models.user_plan import PlanWithSubscription


def row_to_plan(row) -> Plan:
    return Plan(
        id=row.id,
        name=row.name,
        plan_for=row.plan_for,
        allowed_fields=list(row.allowed_fields or []),
        price=row.price,
        description=row.description,
        created_at=row.created_at,
    )


def get_plan(plan_id: int) -> Plan:
    """Get plan by ID. Raises NotFoundError when absent."""
    with get_db_session() as session:
        row = session.execute(select(plans).where(plans.c.id == plan_id)).first()
    if not row:
        raise NotFoundError("Plan not found")
    return row_to_plan(row)


def list_plans(
    plan_for: Optional[Union[PlanAudience, str]] = None,
    user_id: Optional[int] = None,
) -> List[Union[Plan, PlanWithSubscription]]:
    """
    List plans, optionally narrowed to one audience.

    With a user_id every plan is annotated with is_subscribed (any row for
    the pair) and subscription_active (that row is active and unexpired).
    """
    query = select(plans).order_by(plans.c.price, plans.c.id)
    if plan_for is not None:
        query = query.where(plans.c.plan_for == PlanAudience(plan_for).value)

    with get_db_session() as session:
        rows = session.execute(query).all()
        subscription_rows = []
        if user_id is not None:
            subscription_rows = session.execute(
                select(user_plans.c.plan_id, active_subscription_clause().label("active"))
                .where(user_plans.c.user_id == user_id)
            ).all()

    result = [row_to_plan(row) for row in rows]
    if user_id is None:
        return result

    by_plan = {sub.plan_id: sub.active for sub in subscription_rows}
    return [
        PlanWithSubscription(
            **plan.model_dump(),
            is_subscribed=plan.id in by_plan,
            subscription_active=bool(by_plan.get(plan.id, False)),
        )
        for plan in result
    ]


def create_plan(data: PlanCreateRequest) -> Plan:
    """
    Create a plan.

    Raises:
        ValidationError: unknown or missing allowed-field tokens
        DatabaseError: store failure
    """
    allowed_fields = normalize_allowed_fields(data.allowed_fields)
    try:
        with get_db_session() as session:
            result = session.execute(
                insert(plans).values(
                    name=data.name,
                    plan_for=data.plan_for.value,
                    allowed_fields=allowed_fields,
                    price=data.price,
                    description=data.description,
                    created_at=utcnow(),
                )
            )
            plan_id = result.inserted_primary_key[0]
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create plan", cause=e)

    log_event("info", "plan.created", request_id=None, plan_id=plan_id, event_type="plan_created")
    return get_plan(plan_id)


def update_plan(plan_id: int, data: PlanUpdateRequest) -> Plan:
    """Apply only the fields that were provided. Raises NotFoundError when absent."""
    values = {}
    provided = data.model_dump(exclude_unset=True)
    if provided.get("name") is not None:
        values["name"] = data.name
    if provided.get("plan_for") is not None:
        values["plan_for"] = data.plan_for.value
    if provided.get("allowed_fields") is not None:
        values["allowed_fields"] = normalize_allowed_fields(data.allowed_fields)
    if provided.get("price") is not None:
        values["price"] = data.price
    if "description" in provided:
        values["description"] = data.description

    try:
        with get_db_session() as session:
            exists = session.execute(select(plans.c.id).where(plans.c.id == plan_id)).first()
            if not exists:
                raise NotFoundError("Plan not found")
            if values:
                session.execute(update(plans).where(plans.c.id == plan_id).values(**values))
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to update plan", cause=e)

    log_event("info", "plan.updated", request_id=None, plan_id=plan_id, event_type="plan_updated")
    return get_plan(plan_id)


def delete_plan(plan_id: int) -> None:
    """
    Delete a plan and its inactive or expired subscription rows.

    Raises:
        NotFoundError: plan absent
        ConflictError: an active subscription still references the plan
    """
    try:
        with get_db_session() as session:
            exists = session.execute(select(plans.c.id).where(plans.c.id == plan_id)).first()
            if not exists:
                raise NotFoundError("Plan not found")
            active_count = session.execute(
                select(func.count())
                .select_from(user_plans)
                .where(user_plans.c.plan_id == plan_id)
                .where(active_subscription_clause())
            ).scalar_one()
            if active_count:
                raise ConflictError(
                    "Plan has active subscriptions and cannot be deleted",
                    details=[{"active_subscriptions": active_count}],
                )
            session.execute(delete(user_plans).where(user_plans.c.plan_id == plan_id))
            session.execute(delete(plans).where(plans.c.id == plan_id))
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to delete plan", cause=e)

    log_event("info", "plan.deleted", request_id=None, plan_id=plan_id, event_type="plan_deleted")
