"""
backend/features/access/gate.py

Read authorization for startup profiles.

Decision order:
- no requester             -> DENIED (anonymous)
- requester owns the record -> FULL, filter bypassed
- resolved tokens empty     -> DENIED (plan required)
- otherwise                 -> FILTERED with those tokens
"""

from typing import Callable, FrozenSet, Optional

from backend.core.logging import log_event
from backend.core.metrics import access_decisions_total
from backend.features.entitlements.service import resolve_allowed_fields
from backend.models.access import AccessDecision, AccessMode, DenialReason
from backend.models.user import AuthUser

PLAN_REQUIRED_MESSAGE = "You need an active plan to view startup details"
AUTH_REQUIRED_MESSAGE = "Authentication required to view startup details"

Resolver = Callable[[int], FrozenSet[str]]


def authorize_read(
    owner_id: int,
    requester: Optional[AuthUser],
    resolver: Optional[Resolver] = None,
) -> AccessDecision:
    """Decide how much of a profile owned by owner_id the requester may see."""
    if requester is None:
        decision = AccessDecision(
            mode=AccessMode.DENIED,
            reason=DenialReason.ANONYMOUS,
            message=AUTH_REQUIRED_MESSAGE,
        )
    elif requester.id == owner_id:
        decision = AccessDecision(mode=AccessMode.FULL)
    else:
        tokens = frozenset((resolver or resolve_allowed_fields)(requester.id))
        if tokens:
            decision = AccessDecision(mode=AccessMode.FILTERED, tokens=tokens)
        else:
            decision = AccessDecision(
                mode=AccessMode.DENIED,
                reason=DenialReason.PLAN_REQUIRED,
                message=PLAN_REQUIRED_MESSAGE,
            )

    access_decisions_total.inc(labels={"mode": decision.mode.value})
    log_event(
        "info",
        "access.decision",
        request_id=None,
        user_id=requester.id if requester else None,
        event_type=decision.mode.value,
        extra={"mode": decision.mode.value},
    )
    return decision
