"""
backend/features/startups/persistence.py

Row mapping for startup profiles. One loader assembles the whole aggregate
(core row plus whichever sections exist) in a single session.
"""

from typing import Dict, Optional
from sqlalchemy import select, insert, update

from backend.core.database import SECTION_TABLES, startups
from backend.models.startup import (
    CORE_FIELDS,
    SECTION_MODELS,
    StartupCore,
    StartupDetails,
    StartupSummary,
)


def summary_columns():
    return [startups.c[name] for name in CORE_FIELDS]


def row_to_summary(row) -> StartupSummary:
    mapping = row._mapping
    return StartupSummary(**{name: mapping[name] for name in CORE_FIELDS})


def row_to_core(row) -> StartupCore:
    mapping = row._mapping
    return StartupCore(**{column.name: mapping[column.name] for column in startups.columns})


def _section_values(section: str, row) -> Dict:
    table = SECTION_TABLES[section]
    mapping = row._mapping
    return {
        column.name: mapping[column.name]
        for column in table.columns
        if column.name not in ("id", "startup_id")
    }


def load_startup_details(session, startup_id: int) -> Optional[StartupDetails]:
    """Load the aggregate, or None when the core row does not exist."""
    core_row = session.execute(select(startups).where(startups.c.id == startup_id)).first()
    if core_row is None:
        return None

    sections = {}
    for section, table in SECTION_TABLES.items():
        row = session.execute(select(table).where(table.c.startup_id == startup_id)).first()
        if row is not None:
            # Stored rows bypass input validation on the way out
            sections[section] = SECTION_MODELS[section].model_construct(**_section_values(section, row))
    return StartupDetails(startup=row_to_core(core_row), **sections)


def upsert_section(session, startup_id: int, section: str, values: Dict) -> None:
    """Insert or replace the single row a section may have."""
    table = SECTION_TABLES[section]
    existing = session.execute(
        select(table.c.id).where(table.c.startup_id == startup_id)
    ).first()
    if existing is None:
        session.execute(insert(table).values(startup_id=startup_id, **values))
    else:
        session.execute(update(table).where(table.c.id == existing.id).values(**values))
