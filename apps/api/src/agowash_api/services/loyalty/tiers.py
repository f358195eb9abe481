"""Tier derivation from a point balance."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Tier(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"


class TransitionKind(str, Enum):
    UPGRADED = "upgraded"
    DOWNGRADED = "downgraded"
    UNCHANGED = "unchanged"


SILVER_THRESHOLD = 1000
GOLD_THRESHOLD = 5000

_RANK = {Tier.BRONZE: 0, Tier.SILVER: 1, Tier.GOLD: 2}


def tier_for_points(points: int) -> Tier:
    """Bronze on [0, 1000), Silver on [1000, 5000), Gold from 5000."""

    if points < 0:
        raise ValueError("points must not be negative")
    if points >= GOLD_THRESHOLD:
        return Tier.GOLD
    if points >= SILVER_THRESHOLD:
        return Tier.SILVER
    return Tier.BRONZE


def parse_tier(value: str | None) -> Tier | None:
    if not value:
        return None
    for tier in Tier:
        if tier.value.lower() == value.strip().lower():
            return tier
    return None


def detect_transition(old: Tier, new: Tier) -> TransitionKind:
    if _RANK[new] > _RANK[old]:
        return TransitionKind.UPGRADED
    if _RANK[new] < _RANK[old]:
        return TransitionKind.DOWNGRADED
    return TransitionKind.UNCHANGED


@dataclass(frozen=True, slots=True)
class TierTransition:
    previous: Tier
    current: Tier
    kind: TransitionKind

    @classmethod
    def between(cls, previous: Tier, current: Tier) -> "TierTransition":
        return cls(previous=previous, current=current, kind=detect_transition(previous, current))

    @property
    def changed(self) -> bool:
        return self.kind is not TransitionKind.UNCHANGED

    @property
    def requires_refresh(self) -> bool:
        """A tier change means the NFT rendering is out of date."""

        return self.changed


__all__ = [
    "GOLD_THRESHOLD",
    "SILVER_THRESHOLD",
    "Tier",
    "TierTransition",
    "TransitionKind",
    "detect_transition",
    "parse_tier",
    "tier_for_points",
]
