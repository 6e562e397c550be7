"""
backend/models/startup.py

Startup profile models.

A profile is one aggregate: the mandatory core section plus seven optional
sections (financials, traction, sales_marketing, operational, legal, assets,
contacts). Each section is either present as a whole or None.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.models.user import EMAIL_PATTERN

MIN_YEAR_FOUNDED = 1900

# Section attribute names in storage order. The core list omits user_id:
# ownership is never part of what the "startup" token grants.
CORE_FIELDS = (
    "id",
    "name",
    "industry",
    "year_founded",
    "description",
    "website_link",
    "founder_background",
    "team_size",
    "sell_equity",
    "sell_business",
    "reason_for_selling",
    "desired_buyer_profile",
    "asking_price",
    "created_at",
)

SECTION_NAMES = (
    "financials",
    "traction",
    "sales_marketing",
    "operational",
    "legal",
    "assets",
    "contacts",
)

Percentage = Optional[float]


def _check_year(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    current = datetime.now(timezone.utc).year
    if value < MIN_YEAR_FOUNDED or value > current:
        raise ValueError(f"year_founded must be between {MIN_YEAR_FOUNDED} and {current}")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class FinancialsSection(BaseModel):
    monthly_revenue: Optional[Dict[str, float]] = None
    annual_revenue: Optional[Dict[str, float]] = None
    monthly_profit_loss: Optional[float] = None
    gross_margin: Percentage = Field(default=None, ge=0, le=100)
    operational_expense: Optional[float] = None
    cash_runway: Optional[float] = None
    funding_raised: Optional[float] = None
    valuation_expectation: Optional[float] = None


class TractionSection(BaseModel):
    total_customers: Optional[int] = None
    monthly_active_customers: Optional[int] = None
    customer_growth_yoy: Optional[float] = None
    customer_retention_rate: Percentage = Field(default=None, ge=0, le=100)
    churn_rate: Percentage = Field(default=None, ge=0, le=100)
    major_clients: Optional[str] = None
    completed_orders: Optional[int] = None


class SalesMarketingSection(BaseModel):
    sales_channels: Optional[str] = None
    cac: Optional[float] = None
    ltv: Optional[float] = None
    marketing_platforms: Optional[str] = None
    conversion_rate: Percentage = Field(default=None, ge=0, le=100)


class OperationalSection(BaseModel):
    supply_chain_model: Optional[str] = None
    cogs: Optional[float] = None
    average_delivery_time: Optional[str] = None
    inventory_data: Optional[str] = None


class LegalSection(BaseModel):
    trade_license_number: Optional[str] = None
    tax_id: Optional[str] = None
    verified_phone: Optional[str] = None
    verified_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    ownership_documents_link: Optional[str] = None
    nda_financials_link: Optional[str] = None


class AssetsSection(BaseModel):
    domain_ownership: Optional[str] = None
    patents_or_copyrights: Optional[str] = None
    source_code_link: Optional[str] = None
    software_infrastructure: Optional[str] = None
    social_media_handles: Optional[str] = None


class ContactsSection(BaseModel):
    contact_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    contact_phone: Optional[str] = None


SECTION_MODELS = {
    "financials": FinancialsSection,
    "traction": TractionSection,
    "sales_marketing": SalesMarketingSection,
    "operational": OperationalSection,
    "legal": LegalSection,
    "assets": AssetsSection,
    "contacts": ContactsSection,
}


class StartupCore(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    name: str
    industry: str
    year_founded: int
    description: str
    website_link: Optional[str] = None
    founder_background: Optional[str] = None
    team_size: int
    sell_equity: bool = False
    sell_business: bool = False
    reason_for_selling: Optional[str] = None
    desired_buyer_profile: Optional[str] = None
    asking_price: Optional[float] = None
    created_at: datetime


class StartupSummary(BaseModel):
    """Public listing row: core attributes without the owner reference."""
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    industry: str
    year_founded: int
    description: str
    website_link: Optional[str] = None
    founder_background: Optional[str] = None
    team_size: int
    sell_equity: bool = False
    sell_business: bool = False
    reason_for_selling: Optional[str] = None
    desired_buyer_profile: Optional[str] = None
    asking_price: Optional[float] = None
    created_at: datetime


class StartupDetails(BaseModel):
    """The full aggregate as loaded from storage, before any filtering."""

    startup: StartupCore
    financials: Optional[FinancialsSection] = None
    traction: Optional[TractionSection] = None
    sales_marketing: Optional[SalesMarketingSection] = None
    operational: Optional[OperationalSection] = None
    legal: Optional[LegalSection] = None
    assets: Optional[AssetsSection] = None
    contacts: Optional[ContactsSection] = None
    view_count: Optional[int] = None

    @property
    def owner_id(self) -> int:
        return self.startup.user_id


class StartupCoreInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    industry: str = Field(..., min_length=1, max_length=100)
    year_founded: int
    description: str = Field(..., min_length=1)
    website_link: Optional[str] = Field(default=None, max_length=500)
    founder_background: str = Field(..., min_length=1)
    team_size: int = Field(..., ge=1)
    sell_equity: bool
    sell_business: bool
    reason_for_selling: str = Field(..., min_length=1)
    desired_buyer_profile: str = Field(..., min_length=1)
    asking_price: Optional[float] = Field(default=None, gt=0)

    @field_validator("year_founded")
    @classmethod
    def _year(cls, value: int) -> int:
        return _check_year(value)

    @field_validator("website_link")
    @classmethod
    def _website(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class StartupCoreUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    industry: Optional[str] = Field(default=None, min_length=1, max_length=100)
    year_founded: Optional[int] = None
    description: Optional[str] = Field(default=None, min_length=1)
    website_link: Optional[str] = Field(default=None, max_length=500)
    founder_background: Optional[str] = Field(default=None, min_length=1)
    team_size: Optional[int] = Field(default=None, ge=1)
    sell_equity: Optional[bool] = None
    sell_business: Optional[bool] = None
    reason_for_selling: Optional[str] = Field(default=None, min_length=1)
    desired_buyer_profile: Optional[str] = Field(default=None, min_length=1)
    asking_price: Optional[float] = Field(default=None, gt=0)

    @field_validator("year_founded")
    @classmethod
    def _year(cls, value: Optional[int]) -> Optional[int]:
        return _check_year(value)

    # Omitting a field leaves it unchanged; only these columns cannot be cleared
    @field_validator("name", "industry", "year_founded", "description", "team_size", "sell_equity", "sell_business")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value


class StartupCreateRequest(BaseModel):
    startup: StartupCoreInput
    financials: Optional[FinancialsSection] = None
    traction: Optional[TractionSection] = None
    sales_marketing: Optional[SalesMarketingSection] = None
    operational: Optional[OperationalSection] = None
    legal: Optional[LegalSection] = None
    assets: Optional[AssetsSection] = None
    contacts: Optional[ContactsSection] = None


class StartupUpdateRequest(BaseModel):
    startup: Optional[StartupCoreUpdate] = None
    financials: Optional[FinancialsSection] = None
    traction: Optional[TractionSection] = None
    sales_marketing: Optional[SalesMarketingSection] = None
    operational: Optional[OperationalSection] = None
    legal: Optional[LegalSection] = None
    assets: Optional[AssetsSection] = None
    contacts: Optional[ContactsSection] = None


class StartupFilters(BaseModel):
    industry: Optional[str] = None
    min_team_size: Optional[int] = Field(default=None, ge=1)
    max_team_size: Optional[int] = Field(default=None, ge=1)
    sell_equity: Optional[bool] = None
    sell_business: Optional[bool] = None


class FavoriteStartup(StartupSummary):
    favorited_at: datetime

