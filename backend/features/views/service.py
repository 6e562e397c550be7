"""
backend/features/views/service.py

View tracking for startup profiles.

record_view is best-effort: it runs after the response has been sent and
never raises. Failures are logged and counted.
"""

import logging
from sqlalchemy import select, insert, func

from backend.core.database import get_db_session, startup_views, utcnow
from backend.core.logging import LOGGER_NAME, log_event
from backend.core.metrics import view_events_failed_total

logger = logging.getLogger(LOGGER_NAME)


def record_view(user_id: int, startup_id: int) -> bool:
    """Insert one view event. Returns False instead of raising on failure."""
    try:
        with get_db_session() as session:
            session.execute(
                insert(startup_views).values(
                    user_id=user_id,
                    startup_id=startup_id,
                    created_at=utcnow(),
                )
            )
    except Exception as e:
        view_events_failed_total.inc()
        log_event(
            "warning",
            "view.record_failed",
            request_id=None,
            user_id=user_id,
            startup_id=startup_id,
            event_type="view_failed",
            extra={"error_message": e},
        )
        return False
    return True


def count_views(startup_id: int) -> int:
    with get_db_session() as session:
        return session.execute(
            select(func.count())
            .select_from(startup_views)
            .where(startup_views.c.startup_id == startup_id)
        ).scalar_one()
