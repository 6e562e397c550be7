"""
Favorite routes.

- GET    /api/favorites               caller's favorites
- POST   /api/favorites               {startup_id}
- DELETE /api/favorites               {startup_id}
- GET    /api/favorites/{startup_id}  {is_favorited}
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.core.auth import get_current_user
from backend.features.favorites import service as favorite_service
from backend.models.user import AuthUser


router = APIRouter(prefix="/api/favorites", tags=["favorites"])


class FavoriteRequest(BaseModel):
    startup_id: int = Field(..., gt=0)


@router.get("")
def list_favorites(user: AuthUser = Depends(get_current_user)):
    return {"data": {"favorites": favorite_service.list_favorites(user.id)}}


@router.post("", status_code=201)
def add_favorite(request: FavoriteRequest, user: AuthUser = Depends(get_current_user)):
    favorite = favorite_service.add_favorite(user.id, request.startup_id)
    return {"data": {"favorite": favorite}, "message": "Added to favorites"}


@router.delete("")
def remove_favorite(request: FavoriteRequest, user: AuthUser = Depends(get_current_user)):
    favorite_service.remove_favorite(user.id, request.startup_id)
    return {"data": {"startup_id": request.startup_id}, "message": "Removed from favorites"}


@router.get("/{startup_id}")
def check_favorite(startup_id: int, user: AuthUser = Depends(get_current_user)):
    return {"data": {"is_favorited": favorite_service.is_favorited(user.id, startup_id)}}
