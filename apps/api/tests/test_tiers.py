import pytest

from agowash_api.services.loyalty import (
    Tier,
    TierTransition,
    TransitionKind,
    detect_transition,
    parse_tier,
    tier_for_points,
)


@pytest.mark.parametrize(
    ("points", "expected"),
    [
        (0, Tier.BRONZE),
        (999, Tier.BRONZE),
        (1000, Tier.SILVER),
        (4999, Tier.SILVER),
        (5000, Tier.GOLD),
        (2**53 - 1, Tier.GOLD),
    ],
)
def test_tier_boundaries(points: int, expected: Tier) -> None:
    assert tier_for_points(points) is expected


def test_negative_points_are_rejected() -> None:
    with pytest.raises(ValueError):
        tier_for_points(-1)


def test_detect_transition_orders_tiers() -> None:
    assert detect_transition(Tier.BRONZE, Tier.SILVER) is TransitionKind.UPGRADED
    assert detect_transition(Tier.BRONZE, Tier.GOLD) is TransitionKind.UPGRADED
    assert detect_transition(Tier.GOLD, Tier.SILVER) is TransitionKind.DOWNGRADED
    assert detect_transition(Tier.SILVER, Tier.SILVER) is TransitionKind.UNCHANGED


def test_transition_requires_refresh_only_when_changed() -> None:
    unchanged = TierTransition.between(Tier.SILVER, Tier.SILVER)
    upgraded = TierTransition.between(Tier.SILVER, Tier.GOLD)

    assert not unchanged.changed and not unchanged.requires_refresh
    assert upgraded.changed and upgraded.requires_refresh


def test_parse_tier_is_case_insensitive() -> None:
    assert parse_tier(" gold ") is Tier.GOLD
    assert parse_tier("") is None
    assert parse_tier(None) is None
    assert parse_tier("Platinum") is None
