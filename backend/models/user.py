from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserRole(str, Enum):
    STARTUP_OWNER = "startup_owner"
    INVESTOR = "investor"


class PricingTier(str, Enum):
    # Legacy flag; plan subscriptions decide visibility
    FREE = "free"
    PREMIUM = "premium"


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    auth_uid: str
    auth_provider: str = "jwt"
    role: UserRole = UserRole.INVESTOR
    current_pricing_plan: PricingTier = PricingTier.FREE
    created_at: datetime


class AuthUser(BaseModel):
    """Authenticated identity handed to services by the auth layer."""
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: UserRole
    current_pricing_plan: PricingTier = PricingTier.FREE

    @classmethod
    def from_user(cls, user: User) -> "AuthUser":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            current_pricing_plan=user.current_pricing_plan,
        )


class UserProfileUpdate(BaseModel):
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    role: Optional[UserRole] = None


class PricingPlanUpdate(BaseModel):
    plan: PricingTier


class UserStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    startups_count: int = 0
    favorites_count: int = 0
    total_views: int = 0
