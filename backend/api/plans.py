"""
Plan routes.

- GET    /api/plans              list (annotated for an authenticated caller)
- POST   /api/plans              create (admin)
- GET    /api/plans/subscribe    caller's active subscriptions
- POST   /api/plans/subscribe    subscribe or reactivate
- DELETE /api/plans/subscribe    unsubscribe
- GET    /api/plans/{plan_id}    one plan
- PUT    /api/plans/{plan_id}    update (admin)
- DELETE /api/plans/{plan_id}    delete (admin)
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from backend.core.auth import get_current_user, get_optional_user, require_admin
from backend.features.plans import service as plan_service
from backend.features.subscriptions import service as subscription_service
from backend.models.plan import PlanAudience, PlanCreateRequest, PlanUpdateRequest
from backend.models.user import AuthUser


router = APIRouter(prefix="/api/plans", tags=["plans"])


class SubscribeRequest(BaseModel):
    plan_id: int = Field(..., gt=0)
    expires_at: Optional[datetime] = None


class UnsubscribeRequest(BaseModel):
    plan_id: int = Field(..., gt=0)


@router.get("")
def list_plans(
    plan_for: Optional[PlanAudience] = Query(None),
    user: Optional[AuthUser] = Depends(get_optional_user),
):
    result = plan_service.list_plans(plan_for=plan_for, user_id=user.id if user else None)
    return {"data": {"plans": result}}


@router.post("", status_code=201)
def create_plan(request: PlanCreateRequest, admin: AuthUser = Depends(require_admin)):
    plan = plan_service.create_plan(request)
    return {"data": {"plan": plan}, "message": "Plan created successfully"}


# Declared before /{plan_id} so "subscribe" is not parsed as an id
@router.get("/subscribe")
def list_subscriptions(user: AuthUser = Depends(get_current_user)):
    active = subscription_service.list_active(user.id)
    return {"data": {"subscriptions": active}}


@router.post("/subscribe", status_code=201)
def subscribe(request: SubscribeRequest, user: AuthUser = Depends(get_current_user)):
    result = subscription_service.subscribe(user.id, request.plan_id, request.expires_at)
    if result.reactivated:
        content = {
            "data": {"subscription": result.subscription, "reactivated": True},
            "message": "Subscription reactivated",
        }
        return JSONResponse(status_code=200, content=jsonable_encoder(content))
    return {
        "data": {"subscription": result.subscription, "reactivated": False},
        "message": "Successfully subscribed to plan",
    }


@router.delete("/subscribe")
def unsubscribe(request: UnsubscribeRequest, user: AuthUser = Depends(get_current_user)):
    subscription = subscription_service.unsubscribe(user.id, request.plan_id)
    return {"data": {"subscription": subscription}, "message": "Successfully unsubscribed from plan"}


@router.get("/{plan_id}")
def get_plan(plan_id: int):
    return {"data": {"plan": plan_service.get_plan(plan_id)}}


@router.put("/{plan_id}")
def update_plan(plan_id: int, request: PlanUpdateRequest, admin: AuthUser = Depends(require_admin)):
    plan = plan_service.update_plan(plan_id, request)
    return {"data": {"plan": plan}, "message": "Plan updated successfully"}


@router.delete("/{plan_id}")
def delete_plan(plan_id: int, admin: AuthUser = Depends(require_admin)):
    plan_service.delete_plan(plan_id)
    return {"data": {"plan_id": plan_id}, "message": "Plan deleted successfully"}
