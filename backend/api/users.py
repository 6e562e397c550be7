"""
User routes.

- GET /api/users/me        profile plus stats
- PUT /api/users/me        update email / role
- PUT /api/users/me/plan   legacy free|premium flag (grants nothing)
"""
from fastapi import APIRouter, Depends

from backend.core.auth import get_current_user
from backend.features.users import service as user_service
from backend.models.user import AuthUser, PricingPlanUpdate, UserProfileUpdate


router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me")
def get_me(user: AuthUser = Depends(get_current_user)):
    profile = user_service.get_user(user.id)
    stats = user_service.get_user_stats(user.id)
    return {"data": {"user": profile, "stats": stats}}


@router.put("/me")
def update_me(request: UserProfileUpdate, user: AuthUser = Depends(get_current_user)):
    profile = user_service.update_user_profile(user.id, request)
    return {"data": {"user": profile}, "message": "Profile updated successfully"}


@router.put("/me/plan")
def update_my_plan(request: PricingPlanUpdate, user: AuthUser = Depends(get_current_user)):
    profile = user_service.update_pricing_plan(user.id, request.plan)
    return {"data": {"user": profile}, "message": "Pricing plan updated successfully"}
