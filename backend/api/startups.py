"""
Startup routes.

- GET    /api/startups        public listing (core summaries)
- POST   /api/startups        create (startup owners)
- GET    /api/startups/mine   caller's own startups
- GET    /api/startups/{id}   detail through the access gate
- PUT    /api/startups/{id}   update (owner)
- DELETE /api/startups/{id}   delete (owner)
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from backend.core.auth import get_current_user, get_optional_user, require_role
from backend.core.config import settings
from backend.features.startups import service as startup_service
from backend.features.views.service import record_view
from backend.models.startup import StartupCreateRequest, StartupFilters, StartupUpdateRequest
from backend.models.user import AuthUser, UserRole


router = APIRouter(prefix="/api/startups", tags=["startups"])


@router.get("")
def list_startups(
    industry: Optional[str] = Query(None),
    min_team_size: Optional[int] = Query(None, ge=1),
    max_team_size: Optional[int] = Query(None, ge=1),
    sell_equity: Optional[bool] = Query(None),
    sell_business: Optional[bool] = Query(None),
):
    filters = StartupFilters(
        industry=industry,
        min_team_size=min_team_size,
        max_team_size=max_team_size,
        sell_equity=sell_equity,
        sell_business=sell_business,
    )
    return {"data": {"startups": startup_service.list_public_startups(filters)}}


@router.post("", status_code=201)
def create_startup(
    request: StartupCreateRequest,
    owner: AuthUser = Depends(require_role(UserRole.STARTUP_OWNER)),
):
    startup = startup_service.create_startup(owner, request)
    return {"data": {"startup": startup}, "message": "Startup created successfully"}


@router.get("/mine")
def list_my_startups(user: AuthUser = Depends(get_current_user)):
    return {"data": {"startups": startup_service.list_owned_startups(user)}}


@router.get("/{startup_id}")
def get_startup(
    startup_id: int,
    background_tasks: BackgroundTasks,
    user: Optional[AuthUser] = Depends(get_optional_user),
):
    read = startup_service.get_startup_details(startup_id, user)
    if read.counts_as_view and settings.VIEW_TRACKING_ENABLED:
        # Runs after the response is sent; failures never reach the caller
        background_tasks.add_task(record_view, user.id, startup_id)
    data = {"startup": read.data, "access": read.mode.value}
    if read.allowed_fields:
        data["allowed_fields"] = read.allowed_fields
    return {"data": data}


@router.put("/{startup_id}")
def update_startup(
    startup_id: int,
    request: StartupUpdateRequest,
    user: AuthUser = Depends(get_current_user),
):
    startup = startup_service.update_startup(startup_id, user, request)
    return {"data": {"startup": startup}, "message": "Startup updated successfully"}


@router.delete("/{startup_id}")
def delete_startup(startup_id: int, user: AuthUser = Depends(get_current_user)):
    startup_service.delete_startup(startup_id, user)
    return {"data": {"startup_id": startup_id}, "message": "Startup deleted successfully"}
