"""
backend/features/visibility/filter.py

Field-visibility filter for startup profiles.

Output keeps the aggregate's nested shape rather than flattening it:

    {"startup": {<core attributes>}, "<section>": {...}, ..., "view_count": n}

Core attributes always sit under the "startup" key and user_id is never
among them. A section appears only when granted and present.

Rules, applied in order (later rules only ever add):
1. "startup" copies every core attribute, id included.
2. A section token copies that section whole, if the profile has it.
3. A field-group token copies its attributes into its parent section,
   creating the section entry if needed. Never truncates a section that
   rule 2 already copied.
4. view_count passes through whenever the source carries one.

The filter never raises and never mutates its input. An empty token set
yields {} (view_count is dropped too); deciding that this means "denied" is the
caller's job.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel

from backend.core.logging import LOGGER_NAME
from backend.models.plan import AllowedField, token_value
from backend.models.startup import CORE_FIELDS, SECTION_NAMES

logger = logging.getLogger(LOGGER_NAME)

# token -> (parent section, attributes granted)
FIELD_GROUPS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    AllowedField.STARTUP_REVENUE.value: ("financials", ("monthly_revenue", "annual_revenue")),
    AllowedField.STARTUP_PROFIT.value: ("financials", ("monthly_profit_loss", "gross_margin")),
    AllowedField.STARTUP_VALUATION.value: ("financials", ("valuation_expectation", "funding_raised")),
    AllowedField.STARTUP_CUSTOMERS.value: (
        "traction",
        ("total_customers", "monthly_active_customers", "major_clients"),
    ),
    AllowedField.STARTUP_GROWTH.value: (
        "traction",
        ("customer_growth_yoy", "customer_retention_rate", "churn_rate"),
    ),
    AllowedField.STARTUP_MARKETING.value: (
        "sales_marketing",
        ("marketing_platforms", "cac", "ltv", "conversion_rate"),
    ),
}


def _as_mapping(value: Any) -> Optional[Mapping]:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return value
    return None


def _normalize_tokens(tokens: Optional[Iterable]) -> frozenset:
    if not tokens:
        return frozenset()
    if isinstance(tokens, (str, AllowedField)):
        tokens = [tokens]
    return frozenset(token_value(token) for token in tokens)


def filter_startup_details(details: Any, allowed_fields: Optional[Iterable]) -> Dict[str, Any]:
    """Reduce a loaded profile to what the given tokens grant.

    details may be a StartupDetails or a mapping of the same shape.
    """
    try:
        source = _as_mapping(details)
        tokens = _normalize_tokens(allowed_fields)
    except Exception:
        logger.warning("visibility.filter_input_invalid", exc_info=True)
        return {}
    if source is None or not tokens:
        return {}

    filtered: Dict[str, Any] = {}

    if AllowedField.STARTUP.value in tokens:
        core = _as_mapping(source.get("startup"))
        if core is not None:
            filtered["startup"] = {name: core.get(name) for name in CORE_FIELDS}

    for section in SECTION_NAMES:
        if section not in tokens:
            continue
        data = _as_mapping(source.get(section))
        if data is not None:
            filtered[section] = dict(data)

    for token, (section, attributes) in FIELD_GROUPS.items():
        if token not in tokens:
            continue
        data = _as_mapping(source.get(section))
        if data is None:
            continue
        target = filtered.setdefault(section, {})
        for attribute in attributes:
            target[attribute] = data.get(attribute)

    view_count = source.get("view_count")
    if view_count is not None:
        filtered["view_count"] = view_count

    return filtered
