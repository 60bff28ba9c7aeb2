"""
rallypoint.constants — Shared Constants
========================================

VIP tier catalogue and field limits.  Import from here instead of
duplicating in services and routes.
"""

from __future__ import annotations

from rallypoint.database.models import VipTier

# ---------------------------------------------------------------------------
# Field limits
# ---------------------------------------------------------------------------
THREAD_TITLE_MAX_LENGTH = 200
CLAN_TAG_MAX_LENGTH = 6
DEFAULT_CLAN_MAX_MEMBERS = 50

# ---------------------------------------------------------------------------
# VIP tiers — prices in cents
# ---------------------------------------------------------------------------
VIP_TIERS: dict[VipTier, dict] = {
    VipTier.NONE: {"name": "Free", "price": 0, "features": []},
    VipTier.BRONZE: {
        "name": "Bronze VIP",
        "price": 499,
        "features": [
            "Bronze VIP Badge", "Priority LFG Matching",
            "Custom Profile Banner", "Bronze Discord Role",
        ],
    },
    VipTier.SAPPHIRE: {
        "name": "Sapphire VIP",
        "price": 999,
        "features": [
            "Sapphire VIP Badge", "Priority LFG Matching",
            "Custom Profile Banner", "Sapphire Discord Role",
            "Exclusive Builds Access", "Ad-Free Experience",
        ],
    },
    VipTier.DIAMOND: {
        "name": "Diamond VIP",
        "price": 1999,
        "features": [
            "Diamond VIP Badge", "Priority LFG Matching",
            "Custom Profile Banner", "Diamond Discord Role",
            "Exclusive Builds Access", "Ad-Free Experience",
            "Clan Creation (100 members)", "Priority Support",
        ],
    },
    VipTier.FOUNDERS: {
        "name": "Founders Edition",
        "price": 4999,
        "features": [
            "Founders Badge (Limited)", "All Diamond Features",
            "Founders Discord Role", "Early Access Features",
            "Direct Dev Communication", "Unlimited Clan Size",
            "Custom In-Game Perks",
        ],
    },
}

# None means no cap.
_CLAN_CAPACITY: dict[VipTier, int | None] = {
    VipTier.NONE: DEFAULT_CLAN_MAX_MEMBERS,
    VipTier.BRONZE: DEFAULT_CLAN_MAX_MEMBERS,
    VipTier.SAPPHIRE: DEFAULT_CLAN_MAX_MEMBERS,
    VipTier.DIAMOND: 100,
    VipTier.FOUNDERS: None,
}


def clan_capacity_for(tier: VipTier | str) -> int | None:
    """Max clan size an owner of *tier* may create (``None`` = unlimited)."""
    return _CLAN_CAPACITY[VipTier(tier)]
