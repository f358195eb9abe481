import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from agowash_api.models import User, WashTransaction


def _form(address: str, **overrides) -> dict[str, str]:
    data = {
        "userAddress": address,
        "name": "Siti",
        "motorbikeType": "Yamaha NMAX",
        "dateOfBirth": "1998-07-12",
        "email": "siti@example.com",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_register_user_uploads_metadata_and_mints(client, app_with_services, member_address) -> None:
    _, services = app_with_services

    response = await client.post(
        "/api/v1/users",
        data=_form(member_address),
        files={"photo": ("selfie.png", b"\x89PNG fake", "image/png")},
    )
    await services.tasks.drain(timeout=1.0)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["metadataURI"].startswith("ipfs://bafy")
    assert body["user"]["userAddress"] == member_address
    assert body["user"]["photoUrl"].startswith("https://ipfs.io/ipfs/bafy")
    assert services.chain.nfts[member_address]["metadataURI"] == body["metadataURI"]


@pytest.mark.asyncio
async def test_register_without_photo_uses_placeholder(client, app_with_services, member_address) -> None:
    _, services = app_with_services

    response = await client.post("/api/v1/users", data=_form(member_address))

    assert response.status_code == 201
    assert response.json()["user"]["photoUrl"] == services.settings.default_photo_url


@pytest.mark.asyncio
async def test_blob_store_outage_fails_registration(
    client, app_with_services, session_factory, member_address
) -> None:
    _, services = app_with_services
    services.blob_store.fail_uploads = True

    response = await client.post(
        "/api/v1/users",
        data=_form(member_address),
        files={"photo": ("selfie.jpg", b"jpeg-bytes", "image/jpeg")},
    )

    assert response.status_code == 502
    assert response.json()["error"] == "Blob Store Error"
    async with session_factory() as session:
        assert (await session.execute(select(User))).scalars().all() == []


@pytest.mark.asyncio
async def test_duplicate_registration_is_rejected(client, create_member, member_address) -> None:
    await create_member()

    response = await client.post("/api/v1/users", data=_form(member_address))

    assert response.status_code == 400
    assert response.json() == {
        "error": "User Exists",
        "message": f"User with address {member_address} already exists",
    }


@pytest.mark.asyncio
async def test_invalid_photo_type_is_rejected(client, member_address) -> None:
    response = await client.post(
        "/api/v1/users",
        data=_form(member_address),
        files={"photo": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Only JPEG and PNG images are allowed"


@pytest.mark.asyncio
async def test_invalid_address_is_rejected(client) -> None:
    response = await client.post("/api/v1/users", data=_form("0x1234"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_update_and_delete_user(client, create_member, session_factory, member_address) -> None:
    await create_member()
    async with session_factory() as session:
        session.add(
            WashTransaction(
                user_address=member_address,
                service_date="2026-10-18",
                vehicle_type="Motor Kecil",
                service_type="Reguler",
                price=18000,
            )
        )
        await session.commit()

    fetched = await client.get(f"/api/v1/users/{member_address}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Budi"

    updated = await client.put(f"/api/v1/users/{member_address}", data={"name": "Budi Santoso"})
    assert updated.status_code == 200
    assert updated.json()["user"]["name"] == "Budi Santoso"
    assert updated.json()["user"]["email"] == "budi@example.com"

    deleted = await client.delete(f"/api/v1/users/{member_address}")
    assert deleted.status_code == 200
    assert deleted.json()["transactionsDeleted"] == 1

    async with session_factory() as session:
        assert (await session.execute(select(User))).scalars().all() == []
        assert (await session.execute(select(WashTransaction))).scalars().all() == []

    missing = await client.get(f"/api/v1/users/{member_address}")
    assert missing.status_code == 404
    assert missing.json()["error"] == "User Not Found"


@pytest.mark.asyncio
async def test_update_with_new_photo_rerenders_metadata(
    client, app_with_services, create_member, member_address
) -> None:
    _, services = app_with_services
    await create_member(metadata_uri=None)

    response = await client.put(
        f"/api/v1/users/{member_address}",
        files={"photo": ("new.jpg", b"new-photo", "image/jpeg")},
    )

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["photoUrl"].startswith("https://ipfs.io/ipfs/bafy")
    assert user["metadataURI"].startswith("ipfs://bafy")
    document = await services.blob_store.fetch_json(user["metadataURI"])
    assert document["tier"] == "Bronze"
    assert document["image"].startswith("ipfs://bafy")


@pytest.mark.asyncio
async def test_requests_without_api_key_are_rejected(app_with_services, member_address) -> None:
    app, _ = app_with_services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as anonymous:
        missing = await anonymous.get(f"/api/v1/users/{member_address}")
        wrong = await anonymous.get(
            f"/api/v1/users/{member_address}", headers={"Authorization": "Bearer nope"}
        )

    assert missing.status_code == 401
    assert wrong.status_code == 401


@pytest.mark.asyncio
async def test_api_key_must_match_exactly(app_with_services, create_member, member_address) -> None:
    app, _ = app_with_services
    await create_member()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as caller:
        near_miss = await caller.get(
            f"/api/v1/users/{member_address}", headers={"Authorization": "Bearer test-kez"}
        )
        prefix = await caller.get(f"/api/v1/users/{member_address}", headers={"Authorization": "Bearer test"})
        lower_scheme = await caller.get(
            f"/api/v1/users/{member_address}", headers={"Authorization": "bearer test-key"}
        )

    assert near_miss.status_code == 401
    assert near_miss.json()["detail"] == "Invalid API key"
    assert prefix.status_code == 401
    assert lower_scheme.status_code == 200
