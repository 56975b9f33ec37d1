"""Subscription tiers and the limits attached to them."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from pydantic import BaseModel

from .models import SubscriptionTier

logger = logging.getLogger(__name__)

DEFAULT_TIER: SubscriptionTier = "free"


class TierLimits(BaseModel):
    name: str
    price: int
    daily_card_limit: Optional[int]
    module_limit: int
    has_ai_access: bool


TIERS: Dict[str, TierLimits] = {
    "free": TierLimits(
        name="Gratis",
        price=0,
        daily_card_limit=5,
        module_limit=1,
        has_ai_access=False,
    ),
    "premium": TierLimits(
        name="Premium",
        price=99,
        daily_card_limit=None,
        module_limit=100,
        has_ai_access=False,
    ),
    "super": TierLimits(
        name="Super",
        price=199,
        daily_card_limit=None,
        module_limit=100,
        has_ai_access=True,
    ),
}


def normalize_tier(raw: object) -> SubscriptionTier:
    if isinstance(raw, str):
        candidate = raw.strip().lower()
        if candidate in TIERS:
            return candidate  # type: ignore[return-value]
    if raw is not None:
        logger.warning("Unknown subscription tier %r; treating as free", raw)
    return DEFAULT_TIER


def limits_for(tier: str) -> TierLimits:
    return TIERS[normalize_tier(tier)]


def remaining_daily_cards(tier: str, used: int) -> Optional[int]:
    """Cards left today, or ``None`` when the tier has no daily cap."""
    limit = limits_for(tier).daily_card_limit
    if limit is None:
        return None
    return max(0, limit - used)


def has_reached_daily_limit(tier: str, used: int) -> bool:
    remaining = remaining_daily_cards(tier, used)
    return remaining is not None and remaining <= 0


def has_reached_module_limit(tier: str, module_count: int) -> bool:
    return module_count >= limits_for(tier).module_limit


def can_use_ai(tier: str) -> bool:
    return limits_for(tier).has_ai_access


__all__ = [
    "DEFAULT_TIER",
    "TIERS",
    "TierLimits",
    "can_use_ai",
    "has_reached_daily_limit",
    "has_reached_module_limit",
    "limits_for",
    "normalize_tier",
    "remaining_daily_cards",
]
