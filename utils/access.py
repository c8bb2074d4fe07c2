"""Item types, access tiers, and the capability predicate.

The user-management system itself lives outside this project; the engine
only consumes a ``can_access(capability) -> bool`` callable.
``TierAccessPolicy`` is the default implementation, mapping each capability
to the minimum tier that unlocks it.
"""

from enum import Enum
from typing import Callable


class ItemTypeId(str, Enum):
    """Closed set of item types that widgets can display."""

    COUNTDOWN = "countdown"
    BUDGET = "budget"
    PACKING = "packing"
    ITINERARY = "itinerary"


class AccessTier(str, Enum):
    """User tiers, lowest first."""

    ANONYMOUS = "anonymous"
    STANDARD = "standard"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def includes(self, other: "AccessTier") -> bool:
        """True if this tier has at least the privileges of *other*."""
        return self.rank >= other.rank


_TIER_RANK = {
    AccessTier.ANONYMOUS: 0,
    AccessTier.STANDARD: 1,
    AccessTier.PREMIUM: 2,
}

CanAccess = Callable[[str], bool]

# Capability name -> minimum tier
FEATURES: dict[str, AccessTier] = {
    "countdown": AccessTier.ANONYMOUS,
    "packing": AccessTier.ANONYMOUS,
    "saveData": AccessTier.STANDARD,
    "multipleItems": AccessTier.STANDARD,
    "exportData": AccessTier.STANDARD,
    "budgetTracker": AccessTier.STANDARD,
    "tripPlanner": AccessTier.PREMIUM,
    "unlimitedStorage": AccessTier.PREMIUM,
}


class TierAccessPolicy:
    """Capability check for a single user tier.

    Unknown capabilities are denied.
    """

    def __init__(self, tier: AccessTier | str = AccessTier.ANONYMOUS,
                 features: dict[str, AccessTier] | None = None):
        self.tier = AccessTier(tier)
        self.features = dict(FEATURES if features is None else features)

    def can_access(self, capability: str) -> bool:
        required = self.features.get(capability)
        if required is None:
            return False
        return self.tier.includes(required)

    def __call__(self, capability: str) -> bool:
        return self.can_access(capability)

    def __repr__(self) -> str:
        return f"TierAccessPolicy(tier={self.tier.value})"


def allow_all(capability: str) -> bool:
    """Predicate that grants every capability."""
    return True
