"""Tests for the user service."""
import pytest

from backend.core.errors import ConflictError, NotFoundError
from backend.features.favorites.service import add_favorite
from backend.features.startups.service import create_startup
from backend.features.users import service as users
from backend.features.views.service import record_view
from backend.models.startup import StartupCreateRequest
from backend.models.user import PricingTier, UserProfileUpdate, UserRole


def test_get_or_create_is_idempotent():
    first = users.get_or_create_user("uid-1", email="a@test.com", role="startup_owner")
    second = users.get_or_create_user("uid-1", email="ignored@test.com", role="investor")
    assert first.id == second.id
    assert second.role == UserRole.STARTUP_OWNER
    assert second.email == "a@test.com"


def test_new_user_defaults():
    user = users.get_or_create_user("uid-2")
    assert user.role == UserRole.INVESTOR
    assert user.current_pricing_plan == PricingTier.FREE
    assert user.email == users.placeholder_email("uid-2")


def test_unknown_role_claim_falls_back_to_investor():
    assert users.get_or_create_user("uid-3", role="admin").role == UserRole.INVESTOR


def test_get_missing_user():
    with pytest.raises(NotFoundError):
        users.get_user(9999)


def test_update_profile(investor):
    updated = users.update_user_profile(investor.id, UserProfileUpdate(role="startup_owner"))
    assert updated.role == UserRole.STARTUP_OWNER
    assert updated.email == investor.email


def test_update_profile_email_conflict(investor, other_investor):
    with pytest.raises(ConflictError):
        users.update_user_profile(investor.id, UserProfileUpdate(email=other_investor.email))


def test_update_pricing_plan(investor):
    assert users.update_pricing_plan(investor.id, PricingTier.PREMIUM).current_pricing_plan == PricingTier.PREMIUM


def test_user_stats(owner, investor, startup_payload):
    startup = create_startup(owner, StartupCreateRequest(**startup_payload))
    create_startup(owner, StartupCreateRequest(**startup_payload))
    record_view(investor.id, startup.id)
    record_view(investor.id, startup.id)
    add_favorite(investor.id, startup.id)

    owner_stats = users.get_user_stats(owner.id)
    assert owner_stats.startups_count == 2
    assert owner_stats.total_views == 2
    assert owner_stats.favorites_count == 0

    investor_stats = users.get_user_stats(investor.id)
    assert investor_stats.favorites_count == 1
    assert investor_stats.startups_count == 0
