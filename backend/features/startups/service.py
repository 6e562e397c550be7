"""
backend/features/startups/service.py

Startup profile service.

Handles:
- Create / update / delete, owner only, each one transaction
- Detail reads through the access gate (full, filtered or denied)
- Public listing of core summaries
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from sqlalchemy import select, insert, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backend.core.database import (
    SECTION_TABLES,
    favorites,
    get_db_session,
    startup_views,
    startups,
    utcnow,
)
from backend.core.errors import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    PermissionError,
    PlanRequiredError,
)
from backend.core.logging import log_event
from backend.features.access.gate import authorize_read
from backend.features.startups.persistence import (
    load_startup_details,
    row_to_summary,
    summary_columns,
    upsert_section,
)
from backend.features.views.service import count_views
from backend.features.visibility.filter import filter_startup_details
from backend.models.access import AccessMode, DenialReason
from backend.models.startup import (
    SECTION_NAMES,
    StartupCore,
    StartupCreateRequest,
    StartupDetails,
    StartupFilters,
    StartupSummary,
    StartupUpdateRequest,
)
from backend.models.user import AuthUser, UserRole


@dataclass(frozen=True)
class StartupRead:
    """Result of a detail read: the visible data and how it was decided."""
    mode: AccessMode
    data: Dict[str, Any]
    allowed_fields: List[str] = field(default_factory=list)

    @property
    def counts_as_view(self) -> bool:
        return self.mode == AccessMode.FILTERED


def _get_core(session, startup_id: int):
    return session.execute(select(startups).where(startups.c.id == startup_id)).first()


def _require_owner(session, startup_id: int, user: AuthUser, action: str):
    row = _get_core(session, startup_id)
    if row is None:
        raise NotFoundError("Startup not found")
    if row.user_id != user.id:
        raise PermissionError(f"You are not authorized to {action} this startup")
    return row


def create_startup(owner: AuthUser, data: StartupCreateRequest) -> StartupCore:
    """
    Create a profile: core row first, then every provided section, all in
    one transaction.

    Raises:
        PermissionError: caller is not a startup owner
        DatabaseError: store failure (nothing is left behind)
    """
    if owner.role != UserRole.STARTUP_OWNER:
        raise PermissionError("Only startup owners can create startups")

    try:
        with get_db_session() as session:
            result = session.execute(
                insert(startups).values(
                    user_id=owner.id,
                    created_at=utcnow(),
                    **data.startup.model_dump(),
                )
            )
            startup_id = result.inserted_primary_key[0]
            for section in SECTION_NAMES:
                payload = getattr(data, section)
                if payload is not None:
                    upsert_section(session, startup_id, section, payload.model_dump())
            row = _get_core(session, startup_id)
    except IntegrityError as e:
        raise ConflictError("Startup conflicts with existing data", details=[{"reason": str(e.orig)}])
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create startup", cause=e)

    log_event("info", "startup.created", request_id=None, user_id=owner.id, startup_id=startup_id,
              event_type="startup_created")
    return StartupCore(**row._mapping)


def update_startup(startup_id: int, user: AuthUser, data: StartupUpdateRequest) -> StartupCore:
    """
    Apply a core partial update plus one upsert per provided section as a
    single atomic batch.
    """
    try:
        with get_db_session() as session:
            _require_owner(session, startup_id, user, "update")
            if data.startup is not None:
                core_values = data.startup.model_dump(exclude_unset=True)
                if core_values:
                    session.execute(
                        update(startups).where(startups.c.id == startup_id).values(**core_values)
                    )
            for section in SECTION_NAMES:
                payload = getattr(data, section)
                if payload is not None:
                    values = payload.model_dump(exclude_unset=True)
                    if values:
                        upsert_section(session, startup_id, section, values)
            row = _get_core(session, startup_id)
    except IntegrityError as e:
        raise ConflictError("Startup conflicts with existing data", details=[{"reason": str(e.orig)}])
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to update startup", cause=e)

    log_event("info", "startup.updated", request_id=None, user_id=user.id, startup_id=startup_id,
              event_type="startup_updated")
    return StartupCore(**row._mapping)


def delete_startup(startup_id: int, user: AuthUser) -> None:
    """Remove sections, views, favorites and the core row together."""
    try:
        with get_db_session() as session:
            _require_owner(session, startup_id, user, "delete")
            for table in SECTION_TABLES.values():
                session.execute(delete(table).where(table.c.startup_id == startup_id))
            session.execute(delete(startup_views).where(startup_views.c.startup_id == startup_id))
            session.execute(delete(favorites).where(favorites.c.startup_id == startup_id))
            session.execute(delete(startups).where(startups.c.id == startup_id))
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to delete startup", cause=e)

    log_event("info", "startup.deleted", request_id=None, user_id=user.id, startup_id=startup_id,
              event_type="startup_deleted")


def load_details(startup_id: int) -> StartupDetails:
    with get_db_session() as session:
        details = load_startup_details(session, startup_id)
    if details is None:
        raise NotFoundError("Startup not found")
    return details


def get_startup_details(startup_id: int, user: Optional[AuthUser]) -> StartupRead:
    """
    Read one profile through the access gate.

    Raises:
        NotFoundError: no such startup
        AuthenticationError: anonymous caller
        PlanRequiredError: non-owner without an active plan
    """
    details = load_details(startup_id)
    decision = authorize_read(details.owner_id, user)

    if decision.mode == AccessMode.DENIED:
        if decision.reason == DenialReason.ANONYMOUS:
            raise AuthenticationError(decision.message)
        raise PlanRequiredError(decision.message)

    if decision.mode == AccessMode.FULL:
        owned = details.model_copy(update={"view_count": count_views(startup_id)})
        return StartupRead(mode=AccessMode.FULL, data=owned.model_dump())

    return StartupRead(
        mode=AccessMode.FILTERED,
        data=filter_startup_details(details, decision.tokens),
        allowed_fields=sorted(decision.tokens),
    )


def list_public_startups(filters: Optional[StartupFilters] = None) -> List[StartupSummary]:
    """Always public: core summaries only, never section data."""
    filters = filters or StartupFilters()
    query = select(*summary_columns())
    if filters.industry:
        query = query.where(startups.c.industry == filters.industry)
    if filters.min_team_size is not None:
        query = query.where(startups.c.team_size >= filters.min_team_size)
    if filters.max_team_size is not None:
        query = query.where(startups.c.team_size <= filters.max_team_size)
    if filters.sell_equity is not None:
        query = query.where(startups.c.sell_equity == filters.sell_equity)
    if filters.sell_business is not None:
        query = query.where(startups.c.sell_business == filters.sell_business)

    with get_db_session() as session:
        rows = session.execute(query.order_by(startups.c.created_at.desc(), startups.c.id.desc())).all()
    return [row_to_summary(row) for row in rows]


def list_owned_startups(user: AuthUser) -> List[StartupSummary]:
    with get_db_session() as session:
        rows = session.execute(
            select(*summary_columns())
            .where(startups.c.user_id == user.id)
            .order_by(startups.c.created_at.desc(), startups.c.id.desc())
        ).all()
    return [row_to_summary(row) for row in rows]
