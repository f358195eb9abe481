import pytest

from agowash_api.core.errors import InsufficientPoints, InvalidPackage
from agowash_api.services.loyalty import PackageType, required_points


def test_required_points_per_package() -> None:
    assert required_points(PackageType.BASIC) == 1000
    assert required_points(2) == 3000
    assert required_points(3) == 5000
    with pytest.raises(InvalidPackage):
        required_points(4)


@pytest.mark.asyncio
async def test_sign_rejects_insufficient_points_before_signing(services, chain, member_address) -> None:
    chain.set_points(member_address, 2999)

    with pytest.raises(InsufficientPoints) as excinfo:
        await services.redemptions.sign(member_address, 2, nonce=7)

    assert excinfo.value.required == 3000
    assert excinfo.value.available == 2999
    assert chain.call_count("signRedeemPackage") == 0


@pytest.mark.asyncio
async def test_sign_rejects_unknown_package(services, chain, member_address) -> None:
    chain.set_points(member_address, 10_000)

    with pytest.raises(InvalidPackage):
        await services.redemptions.sign(member_address, 9, nonce=1)

    assert chain.call_count("getUserPoints") == 0


@pytest.mark.asyncio
async def test_sign_returns_chain_signature(services, chain, member_address) -> None:
    chain.set_points(member_address, 3000)

    signature = await services.redemptions.sign(member_address.upper().replace("0X", "0x"), 2, nonce=7)

    assert signature.address == member_address
    assert signature.required_points == 3000
    assert signature.signature.startswith("0x") and len(signature.signature) == 66
    assert chain.points[member_address] == 3000


@pytest.mark.asyncio
async def test_settled_redemption_invalidates_cache_and_emails_member(
    services, chain, fake_redis, create_member, member_address
) -> None:
    await create_member()
    chain.set_points(member_address, 3500)
    await services.gateway.read_points(member_address)
    chain.set_points(member_address, 500)

    await services.redemptions.handle_redeemed(member_address, 2, 3000)

    assert f"points:{member_address}" not in fake_redis.store
    assert await services.gateway.read_points(member_address) == 500
    events = [event for event in services.notifier.sent_events if event.event_type == "package_redeemed"]
    assert [event.recipient for event in events] == ["budi@example.com"]
