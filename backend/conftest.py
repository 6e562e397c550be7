# backend/conftest.py
import sys
import os
import pytest
from pathlib import Path

# Test configuration must be in place before backend.core.config is imported
os.environ["ENV"] = "test"
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite://"
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.pop("ADMIN_KEY", None)

# Add backend root to PYTHONPATH
BACKEND_ROOT = Path(__file__).resolve().parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


@pytest.fixture(scope="session")
def db_url():
    """In-memory SQLite; every test gets fresh tables via reset_db."""
    return os.environ["TEST_DATABASE_URL"]


@pytest.fixture(scope="function", autouse=True)
def reset_db(db_url):
    """
    Re-initialise the engine and recreate all tables before each test.

    Also clears in-process metrics so counter assertions start from zero.
    """
    from backend.core.database import init_engine, reset_database
    from backend.core.metrics import METRICS

    init_engine(db_url)
    reset_database()
    METRICS.reset()
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from backend.main import app

    return TestClient(app)


def _make_user(uid: str, role: str):
    from backend.features.users.service import get_or_create_user
    from backend.models.user import AuthUser

    return AuthUser.from_user(get_or_create_user(uid, email=f"{uid}@test.com", role=role))


@pytest.fixture
def owner():
    return _make_user("owner-uid", "startup_owner")


@pytest.fixture
def investor():
    return _make_user("investor-uid", "investor")


@pytest.fixture
def other_investor():
    return _make_user("investor-2-uid", "investor")


def _auth_headers(uid: str, role: str = "investor") -> dict:
    return {"X-User-Id": uid, "X-User-Role": role, "X-User-Email": f"{uid}@test.com"}


@pytest.fixture
def owner_headers(owner):
    return _auth_headers("owner-uid", "startup_owner")


@pytest.fixture
def investor_headers(investor):
    return _auth_headers("investor-uid", "investor")


def _sample_startup_payload(**core_overrides) -> dict:
    core = {
        "name": "Acme Robotics",
        "industry": "robotics",
        "year_founded": 2019,
        "description": "Warehouse picking robots",
        "website_link": "https://acme.example",
        "founder_background": "Ex-logistics engineers",
        "team_size": 12,
        "sell_equity": True,
        "sell_business": False,
        "reason_for_selling": "Growth capital",
        "desired_buyer_profile": "Strategic investor",
        "asking_price": 1500000.0,
    }
    core.update(core_overrides)
    return {
        "startup": core,
        "financials": {
            "monthly_revenue": {"2024-01": 42000.0},
            "annual_revenue": {"2023": 480000.0},
            "monthly_profit_loss": 5000.0,
            "gross_margin": 61.5,
            "operational_expense": 30000.0,
            "cash_runway": 18,
            "funding_raised": 750000.0,
            "valuation_expectation": 6000000.0,
        },
        "traction": {
            "total_customers": 40,
            "monthly_active_customers": 31,
            "customer_growth_yoy": 85.0,
            "customer_retention_rate": 92.0,
            "churn_rate": 3.5,
            "major_clients": "Globex, Initech",
            "completed_orders": 310,
        },
        "legal": {
            "trade_license_number": "TL-1234",
            "tax_id": "TX-9876",
            "verified_email": "legal@acme.example",
        },
        "contacts": {
            "contact_email": "founders@acme.example",
            "contact_phone": "+1-555-0100",
        },
    }


@pytest.fixture
def startup_payload():
    return _sample_startup_payload()


@pytest.fixture
def startup(owner, startup_payload):
    """A persisted startup owned by the owner fixture (no sales/operational/assets sections)."""
    from backend.features.startups.service import create_startup
    from backend.models.startup import StartupCreateRequest

    return create_startup(owner, StartupCreateRequest(**startup_payload))


@pytest.fixture
def make_plan():
    from backend.features.plans.service import create_plan
    from backend.models.plan import PlanCreateRequest

    def _make(allowed_fields, name="Plan", plan_for="investor", price=10.0):
        return create_plan(
            PlanCreateRequest(name=name, plan_for=plan_for, allowed_fields=list(allowed_fields), price=price)
        )

    return _make


@pytest.fixture
def headers_for():
    """Header-auth builder: headers_for("uid", "startup_owner")."""
    return _auth_headers
