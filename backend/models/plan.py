"""
backend/models/plan.py

Plan model and the allowed-field vocabulary.

A plan bundles a list of allowed-field tokens. A token is either a section
name (grants the whole section) or a field group (grants a few attributes
inside one section).
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.core.errors import ValidationError


class AllowedField(str, Enum):
    """Closed vocabulary of plan tokens."""

    # Sections
    STARTUP = "startup"
    FINANCIALS = "financials"
    TRACTION = "traction"
    SALES_MARKETING = "sales_marketing"
    OPERATIONAL = "operational"
    LEGAL = "legal"
    ASSETS = "assets"
    CONTACTS = "contacts"

    # Field groups
    STARTUP_REVENUE = "startup_revenue"
    STARTUP_PROFIT = "startup_profit"
    STARTUP_VALUATION = "startup_valuation"
    STARTUP_CUSTOMERS = "startup_customers"
    STARTUP_GROWTH = "startup_growth"
    STARTUP_MARKETING = "startup_marketing"


ALLOWED_FIELD_VALUES = frozenset(member.value for member in AllowedField)


class PlanAudience(str, Enum):
    INVESTOR = "investor"
    STARTUP_OWNER = "startup_owner"


def token_value(token) -> str:
    """Plain string form of a token (enum members hash differently from str)."""
    if isinstance(token, Enum):
        return str(token.value)
    return str(token)


def normalize_allowed_fields(tokens: Iterable) -> List[str]:
    """Validate tokens against the vocabulary and de-duplicate them.

    First-seen order is kept. Raises ValidationError on an unknown token or
    an empty list.
    """
    result: List[str] = []
    unknown: List[str] = []
    for token in tokens or []:
        value = token_value(token).strip()
        if value not in ALLOWED_FIELD_VALUES:
            unknown.append(value)
            continue
        if value not in result:
            result.append(value)
    if unknown:
        raise ValidationError(
            f"Unknown allowed field(s): {', '.join(unknown)}",
            details=[{"loc": ["allowed_fields"], "msg": "unknown token", "value": value} for value in unknown],
        )
    if not result:
        raise ValidationError("At least one allowed field is required")
    return result


class Plan(BaseModel):
    """
    A purchasable bundle of allowed-field tokens.

    allowed_fields is stored in the order the administrator gave it; readers
    treat it as a set.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    plan_for: PlanAudience
    allowed_fields: List[str]
    price: float = 0.0
    description: Optional[str] = None
    created_at: datetime


class PlanCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    plan_for: PlanAudience
    allowed_fields: List[str] = Field(..., min_length=1)
    price: float = Field(0.0, ge=0)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class PlanUpdateRequest(BaseModel):
    """Partial update; only fields that were sent are applied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    plan_for: Optional[PlanAudience] = None
    allowed_fields: Optional[List[str]] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value
