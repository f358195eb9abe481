import pytest

from agowash_api.services.prices import PriceService


@pytest.mark.asyncio
async def test_seed_defaults_only_populates_empty_table(session_factory) -> None:
    async with session_factory() as session:
        service = PriceService(session)
        assert await service.seed_defaults() is True
        assert await service.seed_defaults() is False

        prices = await service.list_prices()

    assert prices == {
        "motor": {
            "reguler": {"kecil": 18000, "sedang": 20000, "besar": 25000},
            "premium": {"kecil": 30000, "sedang": 32000, "besar": 35000},
        },
        "mobil": {"bodyOnly": {"kecil": 55000, "sedang": 60000, "besar": 65000}},
    }


@pytest.mark.asyncio
async def test_list_prices_endpoint_and_admin_update(client, session_factory, admin_address) -> None:
    async with session_factory() as session:
        await PriceService(session).seed_defaults()

    update = {"vehicle": "motor", "serviceType": "premium", "prices": {"kecil": 31000, "sedang": 33000, "besar": 36000}}
    forbidden = await client.put(
        "/api/v1/prices",
        json=update,
        headers={"X-Caller-Address": "0x5555555555555555555555555555555555555555"},
    )
    updated = await client.put("/api/v1/prices", json=update, headers={"X-Caller-Address": admin_address})
    listing = await client.get("/api/v1/prices")

    assert forbidden.status_code == 403
    assert updated.status_code == 200
    assert updated.json() == {
        "success": True,
        "price": {"vehicle": "motor", "serviceType": "premium", "prices": {"kecil": 31000, "sedang": 33000, "besar": 36000}},
    }
    assert listing.json()["motor"]["premium"] == {"kecil": 31000, "sedang": 33000, "besar": 36000}
    assert listing.json()["motor"]["reguler"]["kecil"] == 18000


@pytest.mark.asyncio
async def test_unknown_service_type_is_rejected(client, admin_address) -> None:
    response = await client.put(
        "/api/v1/prices",
        json={"vehicle": "mobil", "serviceType": "interior", "prices": {"kecil": 1, "sedang": 2, "besar": 3}},
        headers={"X-Caller-Address": admin_address},
    )
    assert response.status_code == 422
