"""
backend/features/favorites/service.py

Favorites: a user's bookmarked startups. Listing exposes the public core
summary only, same as the public startup listing.
"""

from typing import List
from sqlalchemy import select, insert, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backend.core.database import get_db_session, favorites, startups, utcnow
from backend.core.errors import ConflictError, DatabaseError, NotFoundError
from backend.core.logging import log_event
from backend.features.startups.persistence import row_to_summary, summary_columns
from backend.models.startup import FavoriteStartup


def add_favorite(user_id: int, startup_id: int) -> FavoriteStartup:
    """
    Raises:
        NotFoundError: startup absent
        ConflictError: already a favorite
    """
    try:
        with get_db_session() as session:
            exists = session.execute(select(startups.c.id).where(startups.c.id == startup_id)).first()
            if not exists:
                raise NotFoundError("Startup not found")
            session.execute(
                insert(favorites).values(user_id=user_id, startup_id=startup_id, created_at=utcnow())
            )
    except IntegrityError:
        raise ConflictError("Startup is already in favorites")
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to add favorite", cause=e)

    log_event("info", "favorite.added", request_id=None, user_id=user_id, startup_id=startup_id)
    return _get_favorite(user_id, startup_id)


def remove_favorite(user_id: int, startup_id: int) -> None:
    try:
        with get_db_session() as session:
            result = session.execute(
                delete(favorites)
                .where(favorites.c.user_id == user_id)
                .where(favorites.c.startup_id == startup_id)
            )
            if result.rowcount == 0:
                raise NotFoundError("Favorite not found")
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to remove favorite", cause=e)

    log_event("info", "favorite.removed", request_id=None, user_id=user_id, startup_id=startup_id)


def _favorites_query(user_id: int):
    return (
        select(*summary_columns(), favorites.c.created_at.label("favorited_at"))
        .select_from(favorites.join(startups, favorites.c.startup_id == startups.c.id))
        .where(favorites.c.user_id == user_id)
    )


def _to_favorite(row) -> FavoriteStartup:
    return FavoriteStartup(**row_to_summary(row).model_dump(), favorited_at=row.favorited_at)


def _get_favorite(user_id: int, startup_id: int) -> FavoriteStartup:
    with get_db_session() as session:
        row = session.execute(
            _favorites_query(user_id).where(favorites.c.startup_id == startup_id)
        ).first()
    if not row:
        raise NotFoundError("Favorite not found")
    return _to_favorite(row)


def list_favorites(user_id: int) -> List[FavoriteStartup]:
    with get_db_session() as session:
        rows = session.execute(
            _favorites_query(user_id).order_by(favorites.c.created_at.desc(), favorites.c.id.desc())
        ).all()
    return [_to_favorite(row) for row in rows]


def is_favorited(user_id: int, startup_id: int) -> bool:
    with get_db_session() as session:
        row = session.execute(
            select(favorites.c.id)
            .where(favorites.c.user_id == user_id)
            .where(favorites.c.startup_id == startup_id)
        ).first()
    return row is not None
