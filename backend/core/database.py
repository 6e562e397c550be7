"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (StaticPool for in-memory SQLite)
- Test database support
- Table definitions for users, plans, subscriptions and startup profiles
"""
from typing import Optional
from contextlib import contextmanager
from datetime import datetime, timezone
from sqlalchemy import (
    create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean,
    JSON, Text, Float, Index, ForeignKey, UniqueConstraint, select,
)
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
import logging
import os

from backend.core.config import settings
from backend.core.logging import LOGGER_NAME


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None

logger = logging.getLogger(LOGGER_NAME)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL") or settings.TEST_DATABASE_URL
    if test_url:
        return test_url

    return settings.DATABASE_URL


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "poolclass": QueuePool,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
        "pool_recycle": POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(url, echo=False, **_engine_kwargs(url))

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Everything executed inside the block is one transaction: it commits on
    normal exit and rolls back if the block raises.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def reset_database():
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables()
    create_all_tables()


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(select(1))
        return True
    except Exception as e:
        logger.warning("Database connection check failed: %s", e)
        return False


# Users (identity comes from the external auth layer; this is the local mirror)
users = Table(
    'app_users',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('email', String(255), nullable=False, unique=True),
    Column('auth_uid', String(255), nullable=False, unique=True),
    Column('auth_provider', String(50), nullable=False, default='jwt'),
    Column('role', String(50), nullable=False, default='investor'),
    # Legacy tier flag, superseded by plan subscriptions
    Column('current_pricing_plan', String(50), nullable=False, default='free'),
    Column('created_at', DateTime(timezone=True), default=utcnow, nullable=False),
    Index('idx_app_users_role', 'role'),
)

plans = Table(
    'plans',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('name', String(200), nullable=False),
    Column('plan_for', String(50), nullable=False),
    Column('allowed_fields', JSON, nullable=False),
    Column('price', Float, nullable=False, default=0.0),
    Column('description', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), default=utcnow, nullable=False),
    Index('idx_plans_plan_for', 'plan_for'),
)

# Subscriptions. The (user_id, plan_id) constraint is the authoritative
# guard against duplicate rows when two subscribe calls race.
user_plans = Table(
    'user_plans',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', Integer, ForeignKey('app_users.id'), nullable=False),
    Column('plan_id', Integer, ForeignKey('plans.id'), nullable=False),
    Column('is_active', Boolean, nullable=False, default=True),
    Column('started_at', DateTime(timezone=True), default=utcnow, nullable=False),
    Column('expires_at', DateTime(timezone=True), nullable=True),
    UniqueConstraint('user_id', 'plan_id', name='uq_user_plans_user_plan'),
    Index('idx_user_plans_user_active', 'user_id', 'is_active'),
    Index('idx_user_plans_plan_id', 'plan_id'),
)

# Core section of a startup profile
startups = Table(
    'startups',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', Integer, ForeignKey('app_users.id'), nullable=False),
    Column('name', String(255), nullable=False),
    Column('industry', String(100), nullable=False),
    Column('year_founded', Integer, nullable=False),
    Column('description', Text, nullable=False),
    Column('website_link', String(500), nullable=True),
    Column('founder_background', Text, nullable=True),
    Column('team_size', Integer, nullable=False),
    Column('sell_equity', Boolean, nullable=False, default=False),
    Column('sell_business', Boolean, nullable=False, default=False),
    Column('reason_for_selling', Text, nullable=True),
    Column('desired_buyer_profile', Text, nullable=True),
    Column('asking_price', Float, nullable=True),
    Column('created_at', DateTime(timezone=True), default=utcnow, nullable=False),
    Index('idx_startups_user_id', 'user_id'),
    Index('idx_startups_industry', 'industry'),
)


def _section_table(name: str, *columns) -> Table:
    # At most one row per startup
    return Table(
        name,
        metadata,
        Column('id', Integer, primary_key=True, autoincrement=True),
        Column('startup_id', Integer, ForeignKey('startups.id'), nullable=False, unique=True),
        *columns,
    )


startup_financials = _section_table(
    'startup_financials',
    Column('monthly_revenue', JSON, nullable=True),
    Column('annual_revenue', JSON, nullable=True),
    Column('monthly_profit_loss', Float, nullable=True),
    Column('gross_margin', Float, nullable=True),
    Column('operational_expense', Float, nullable=True),
    Column('cash_runway', Float, nullable=True),
    Column('funding_raised', Float, nullable=True),
    Column('valuation_expectation', Float, nullable=True),
)

startup_traction = _section_table(
    'startup_traction',
    Column('total_customers', Integer, nullable=True),
    Column('monthly_active_customers', Integer, nullable=True),
    Column('customer_growth_yoy', Float, nullable=True),
    Column('customer_retention_rate', Float, nullable=True),
    Column('churn_rate', Float, nullable=True),
    Column('major_clients', Text, nullable=True),
    Column('completed_orders', Integer, nullable=True),
)

startup_sales_marketing = _section_table(
    'startup_sales_marketing',
    Column('sales_channels', Text, nullable=True),
    Column('cac', Float, nullable=True),
    Column('ltv', Float, nullable=True),
    Column('marketing_platforms', Text, nullable=True),
    Column('conversion_rate', Float, nullable=True),
)

startup_operational = _section_table(
    'startup_operational',
    Column('supply_chain_model', Text, nullable=True),
    Column('cogs', Float, nullable=True),
    Column('average_delivery_time', String(100), nullable=True),
    Column('inventory_data', Text, nullable=True),
)

startup_legal = _section_table(
    'startup_legal',
    Column('trade_license_number', String(100), nullable=True),
    Column('tax_id', String(100), nullable=True),
    Column('verified_phone', String(50), nullable=True),
    Column('verified_email', String(255), nullable=True),
    Column('ownership_documents_link', String(500), nullable=True),
    Column('nda_financials_link', String(500), nullable=True),
)

startup_assets = _section_table(
    'startup_assets',
    Column('domain_ownership', String(255), nullable=True),
    Column('patents_or_copyrights', Text, nullable=True),
    Column('source_code_link', String(500), nullable=True),
    Column('software_infrastructure', Text, nullable=True),
    Column('social_media_handles', Text, nullable=True),
)

startup_contacts = _section_table(
    'startup_contacts',
    Column('contact_email', String(255), nullable=True),
    Column('contact_phone', String(50), nullable=True),
)

# Section name -> table, in profile order
SECTION_TABLES = {
    'financials': startup_financials,
    'traction': startup_traction,
    'sales_marketing': startup_sales_marketing,
    'operational': startup_operational,
    'legal': startup_legal,
    'assets': startup_assets,
    'contacts': startup_contacts,
}

startup_views = Table(
    'startup_views',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', Integer, ForeignKey('app_users.id'), nullable=False),
    Column('startup_id', Integer, ForeignKey('startups.id'), nullable=False),
    Column('created_at', DateTime(timezone=True), default=utcnow, nullable=False),
    Index('idx_startup_views_startup', 'startup_id'),
)

favorites = Table(
    'favorites',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', Integer, ForeignKey('app_users.id'), nullable=False),
    Column('startup_id', Integer, ForeignKey('startups.id'), nullable=False),
    Column('created_at', DateTime(timezone=True), default=utcnow, nullable=False),
    UniqueConstraint('user_id', 'startup_id', name='uq_favorites_user_startup'),
    Index('idx_favorites_user_created', 'user_id', 'created_at'),
)
