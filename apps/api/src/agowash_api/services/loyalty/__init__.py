"""Loyalty rules: tiers, free-wash coupons, redemption and NFT rendering."""

from .coupons import FreeWashStatus, FreeWashTracker, is_active, is_expired, now_seconds
from .nft import FrameRefresh, NFTService, frame_uri_for_tier, render_nft_metadata
from .redemption import PACKAGE_THRESHOLDS, PackageType, RedemptionService, RedemptionSignature, required_points
from .tiers import Tier, TierTransition, TransitionKind, detect_transition, parse_tier, tier_for_points

__all__ = [
    "FrameRefresh",
    "FreeWashStatus",
    "FreeWashTracker",
    "NFTService",
    "PACKAGE_THRESHOLDS",
    "PackageType",
    "RedemptionService",
    "RedemptionSignature",
    "Tier",
    "TierTransition",
    "TransitionKind",
    "detect_transition",
    "frame_uri_for_tier",
    "is_active",
    "is_expired",
    "now_seconds",
    "parse_tier",
    "render_nft_metadata",
    "required_points",
    "tier_for_points",
]
