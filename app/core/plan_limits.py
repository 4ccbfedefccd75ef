from dataclasses import dataclass
from typing import Dict, Optional

from app.core.config import settings

LIMIT_EXCEEDED = "LimitExceeded"

# Plan limits configuration
# -1 means unlimited
PLAN_LIMITS: Dict[str, Dict[str, int]] = {
    "free": {
        "max_uploads": settings.FREE_UPLOAD_LIMIT,
    },
    "paid": {
        "max_uploads": -1,
    },
}


def get_plan_limit(plan_tier: str, limit_type: str) -> int:
    """Get the limit value for a specific plan and limit type."""
    return PLAN_LIMITS.get(plan_tier, PLAN_LIMITS["free"]).get(limit_type, 0)


def plan_tier_for(has_paid: bool) -> str:
    return "paid" if has_paid else "free"


@dataclass(frozen=True)
class EntitlementDecision:
    allowed: bool
    reason: Optional[str] = None


def check_upload_allowed(
    has_paid: bool,
    upload_count: int,
    limit: Optional[int] = None,
) -> EntitlementDecision:
    """
    Decide whether one more upload may proceed.

    Paid users are never denied. Free users may upload while their
    lifetime upload count is below the free limit.
    """
    if has_paid:
        return EntitlementDecision(allowed=True)

    max_uploads = get_plan_limit("free", "max_uploads") if limit is None else limit
    if max_uploads == -1 or upload_count < max_uploads:
        return EntitlementDecision(allowed=True)
    return EntitlementDecision(allowed=False, reason=LIMIT_EXCEEDED)


def remaining_free_uploads(has_paid: bool, upload_count: int) -> Optional[int]:
    """None for paid users (unlimited)."""
    if has_paid:
        return None
    return max(get_plan_limit("free", "max_uploads") - upload_count, 0)
