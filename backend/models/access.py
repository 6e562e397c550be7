"""
backend/models/access.py

Per-request visibility decision for one startup profile.

Start -> owner check -> FULL, otherwise entitlement check -> FILTERED | DENIED.
Nothing here is persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional


class AccessMode(str, Enum):
    FULL = "full"
    FILTERED = "filtered"
    DENIED = "denied"


class DenialReason(str, Enum):
    ANONYMOUS = "anonymous"
    PLAN_REQUIRED = "plan_required"


@dataclass(frozen=True)
class AccessDecision:
    mode: AccessMode
    tokens: FrozenSet[str] = field(default_factory=frozenset)
    reason: Optional[DenialReason] = None
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.mode != AccessMode.DENIED
