"""
Price id to tier resolution.

Several price ids may share a tier (monthly and yearly variants), so each tier
is configured with a list of ids. Resolution is a pure lookup: no price id means
the user is on the free plan, and an unknown id means "some paid plan we do not
have limits for", which falls back to STARTER.
"""

from typing import Dict, List, Optional

from portfolio_manager.core import config
from portfolio_manager.core.enums import Tier

DEFAULT_TIER = Tier.STARTER

TIER_DISPLAY_NAMES: Dict[Tier, str] = {
    Tier.FREE: "Free",
    Tier.LITE: "Creator Lite",
    Tier.STARTER: "Creator Pro",
    Tier.GROWTH: "Growth",
    Tier.ENTERPRISE: "Enterprise",
}


def _configured_price_ids() -> Dict[Tier, List[str]]:
    return {
        Tier.LITE: config.PRICE_IDS_LITE,
        Tier.STARTER: config.PRICE_IDS_STARTER,
        Tier.GROWTH: config.PRICE_IDS_GROWTH,
        Tier.ENTERPRISE: config.PRICE_IDS_ENTERPRISE,
    }


def tier_mapping() -> Dict[str, Tier]:
    mapping: Dict[str, Tier] = {}
    for tier, price_ids in _configured_price_ids().items():
        for price_id in price_ids:
            mapping[price_id] = tier
    return mapping


def resolve_tier(price_id: Optional[str]) -> Tier:
    """Map a subscription price id to its logical tier"""
    if not price_id:
        return Tier.FREE

    return tier_mapping().get(price_id, DEFAULT_TIER)


def price_id_for_tier(tier: Tier) -> Optional[str]:
    """First configured price id for a tier; FREE has none"""
    if tier == Tier.FREE:
        return None

    price_ids = _configured_price_ids().get(tier) or []
    return price_ids[0] if price_ids else None


def all_tiers() -> List[Tier]:
    return [tier for tier in Tier]


def tier_display_name(tier: Tier) -> str:
    return TIER_DISPLAY_NAMES[tier]


def tier_requires_price_id(tier: Tier) -> bool:
    return tier != Tier.FREE


def collaborator_sync_tier(owner_tier: Tier) -> Tier:
    """Tier a portfolio's collaborators follow given the owner's current tier"""
    return Tier.GROWTH if owner_tier in Tier.portfolio_tiers() else Tier.FREE
