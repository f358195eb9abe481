import pytest

from agowash_api.services.ledger import FreeWashCoupon
from agowash_api.services.loyalty import FreeWashTracker, is_active, is_expired

NOW = 1_700_000_000


@pytest.mark.parametrize(
    ("coupon", "active", "expired"),
    [
        (FreeWashCoupon(available=True, used=False, expiry_time=NOW + 1), True, False),
        (FreeWashCoupon(available=True, used=False, expiry_time=NOW), False, True),
        (FreeWashCoupon(available=True, used=True, expiry_time=NOW + 100), False, False),
        (FreeWashCoupon(available=False, used=False, expiry_time=NOW + 100), False, False),
        (FreeWashCoupon(available=False, used=False, expiry_time=0), False, False),
    ],
)
def test_coupon_predicates(coupon: FreeWashCoupon, active: bool, expired: bool) -> None:
    assert is_active(coupon, NOW) is active
    assert is_expired(coupon, NOW) is expired


@pytest.mark.asyncio
async def test_status_reports_remaining_seconds(gateway, chain, member_address) -> None:
    await chain.record_transaction(member_address, NOW)
    tracker = FreeWashTracker(gateway)

    status = await tracker.status(member_address, now=NOW + 3600)

    assert status.as_dict() == {
        "available": True,
        "used": False,
        "expiryTime": NOW + 86_400,
        "isActive": True,
        "secondsRemaining": 86_400 - 3600,
    }


@pytest.mark.asyncio
async def test_status_after_expiry_is_inactive(gateway, chain, member_address) -> None:
    await chain.record_transaction(member_address, NOW)
    tracker = FreeWashTracker(gateway)

    status = await tracker.status(member_address, now=NOW + 86_400)

    assert status.active is False
    assert status.seconds_remaining == 0


@pytest.mark.asyncio
async def test_status_for_member_without_coupon(gateway, member_address) -> None:
    status = await FreeWashTracker(gateway).status(member_address, now=NOW)

    assert status.as_dict()["isActive"] is False
    assert status.coupon.expiry_time == 0
