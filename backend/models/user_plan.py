"""
backend/models/user_plan.py

Subscription models: the user <-> plan relationship.

Each (user, plan) pair has at most one row. Unsubscribing flips is_active
off; subscribing again flips the same row back on.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from backend.models.plan import Plan


class Subscription(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    plan_id: int
    is_active: bool
    started_at: datetime
    expires_at: Optional[datetime] = None


class SubscriptionResult(BaseModel):
    """Outcome of subscribe: the row plus whether an old row was reactivated."""
    model_config = ConfigDict(frozen=True)

    subscription: Subscription
    reactivated: bool = False


class ActiveSubscription(BaseModel):
    model_config = ConfigDict(frozen=True)

    subscription: Subscription
    plan: Plan


class PlanWithSubscription(Plan):
    is_subscribed: bool = False
    subscription_active: bool = False
