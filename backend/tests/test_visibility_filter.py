"""Tests for the field-visibility filter."""
import copy
from datetime import datetime, timezone

from backend.features.visibility.filter import filter_startup_details
from backend.models.plan import AllowedField
from backend.models.startup import (
    CORE_FIELDS,
    FinancialsSection,
    SalesMarketingSection,
    StartupCore,
    StartupDetails,
    TractionSection,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_details(**overrides) -> StartupDetails:
    values = dict(
        startup=StartupCore(
            id=7,
            user_id=99,
            name="Acme",
            industry="robotics",
            year_founded=2019,
            description="Robots",
            team_size=12,
            created_at=NOW,
        ),
        financials=FinancialsSection(
            monthly_revenue={"2024-01": 10.0},
            annual_revenue={"2023": 120.0},
            monthly_profit_loss=3.0,
            gross_margin=50.0,
            operational_expense=7.0,
            cash_runway=12,
            funding_raised=100.0,
            valuation_expectation=1000.0,
        ),
        traction=TractionSection(total_customers=5, churn_rate=2.0, major_clients="Globex"),
    )
    values.update(overrides)
    return StartupDetails(**values)


def test_empty_tokens_yield_empty_output():
    assert filter_startup_details(make_details(), []) == {}
    assert filter_startup_details(make_details(), None) == {}


def test_empty_tokens_drop_view_count_too():
    assert filter_startup_details(make_details(view_count=4), set()) == {}


def test_startup_and_financials_scenario():
    out = filter_startup_details(make_details(), {"startup", "financials"})

    assert out["startup"]["name"] == "Acme"
    assert out["startup"]["industry"] == "robotics"
    assert out["startup"]["id"] == 7
    assert out["financials"] == make_details().financials.model_dump()
    for key in ("traction", "legal", "contacts", "sales_marketing", "operational", "assets"):
        assert key not in out


def test_core_copy_excludes_owner_reference():
    out = filter_startup_details(make_details(), ["startup"])
    assert set(out["startup"]) == set(CORE_FIELDS)
    assert "user_id" not in out["startup"]


def test_section_token_without_source_section_adds_nothing():
    out = filter_startup_details(make_details(), ["legal", "contacts"])
    assert out == {}


def test_field_group_without_section_token_copies_only_its_attributes():
    out = filter_startup_details(make_details(), [AllowedField.STARTUP_REVENUE])
    assert out == {
        "financials": {"monthly_revenue": {"2024-01": 10.0}, "annual_revenue": {"2023": 120.0}}
    }


def test_field_group_is_additive_over_section_grant():
    section_only = filter_startup_details(make_details(), ["financials"])
    with_group = filter_startup_details(make_details(), ["financials", "startup_revenue", "startup_profit"])
    assert with_group["financials"] == section_only["financials"]


def test_multiple_groups_merge_into_one_section():
    out = filter_startup_details(make_details(), ["startup_customers", "startup_growth"])
    assert set(out["traction"]) == {
        "total_customers",
        "monthly_active_customers",
        "major_clients",
        "customer_growth_yoy",
        "customer_retention_rate",
        "churn_rate",
    }
    assert "completed_orders" not in out["traction"]


def test_field_group_with_missing_parent_section_is_skipped():
    out = filter_startup_details(make_details(), ["startup_marketing"])
    assert "sales_marketing" not in out

    details = make_details(sales_marketing=SalesMarketingSection(cac=5.0, sales_channels="direct"))
    out = filter_startup_details(details, ["startup_marketing"])
    assert out["sales_marketing"] == {
        "marketing_platforms": None,
        "cac": 5.0,
        "ltv": None,
        "conversion_rate": None,
    }


def test_view_count_passes_through_with_tokens():
    out = filter_startup_details(make_details(view_count=3), ["startup"])
    assert out["view_count"] == 3


def test_unknown_tokens_are_ignored():
    out = filter_startup_details(make_details(), ["startup", "not_a_token"])
    assert set(out) == {"startup"}


def test_source_is_not_mutated():
    source = make_details().model_dump()
    snapshot = copy.deepcopy(source)
    out = filter_startup_details(source, ["financials", "startup_revenue"])
    out["financials"]["monthly_revenue"] = None
    assert source == snapshot


def test_garbage_input_degrades_to_empty():
    assert filter_startup_details(None, ["startup"]) == {}
    assert filter_startup_details(42, ["startup"]) == {}


def test_core_attributes_stay_nested_under_startup():
    out = filter_startup_details(make_details(view_count=2), ["startup", "startup_revenue"])
    assert set(out) == {"startup", "financials", "view_count"}
    assert set(out["startup"]) == set(CORE_FIELDS)
    assert set(out["financials"]) == {"monthly_revenue", "annual_revenue"}
