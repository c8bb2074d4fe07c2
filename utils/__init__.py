"""Shared utilities for the trip widget engine."""

# Common utilities
from utils.common import generate_id, now_iso, parse_iso, touch_timestamp, serialize, deep_clone

# Access tiers and item types
from utils.access import ItemTypeId, AccessTier, TierAccessPolicy, FEATURES, allow_all

# Cache
from utils.cache import CollectionCache

# Countdown arithmetic
from utils.countdown import CountdownDelta, countdown_diff

# Validation utilities
from utils.validation import (
    ValidationIssue,
    ValidationResult,
    check_reorder_permutation,
    is_valid_item_name,
)

# Configuration
from utils.config import (
    Config,
    StorageConfig,
    AutoSaveConfig,
    AppConfig,
    WIDGET_CONFIGS,
    PENDING_WIDGET_LINKS,
    AUTO_SAVE_METADATA,
    items_collection,
    draft_slot,
)

__all__ = [
    # Common
    "generate_id",
    "now_iso",
    "parse_iso",
    "touch_timestamp",
    "serialize",
    "deep_clone",
    # Access
    "ItemTypeId",
    "AccessTier",
    "TierAccessPolicy",
    "FEATURES",
    "allow_all",
    # Cache
    "CollectionCache",
    # Countdown
    "CountdownDelta",
    "countdown_diff",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    "check_reorder_permutation",
    "is_valid_item_name",
    # Config
    "Config",
    "StorageConfig",
    "AutoSaveConfig",
    "AppConfig",
    "WIDGET_CONFIGS",
    "PENDING_WIDGET_LINKS",
    "AUTO_SAVE_METADATA",
    "items_collection",
    "draft_slot",
]
