import json

import httpx
import pytest

from agowash_api.core.errors import LedgerUnavailable
from agowash_api.services.blob import BlobStoreError, IpfsBlobStore
from agowash_api.services.ledger import HttpChainClient


def _rpc_client(handler) -> HttpChainClient:
    transport = httpx.MockTransport(handler)
    return HttpChainClient("https://relay.example/rpc", http_client=httpx.AsyncClient(transport=transport))


@pytest.mark.asyncio
async def test_reads_send_json_rpc_requests() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "1200"})

    client = _rpc_client(handler)
    assert await client.get_user_points("0xabc") == "1200"
    await client.get_activity_log("0xabc", 1, 10)
    await client.aclose()

    assert seen[0]["method"] == "getUserPoints"
    assert seen[0]["params"] == ["0xabc"]
    assert seen[1]["params"] == ["0xabc", 1, 10]
    assert seen[1]["id"] == seen[0]["id"] + 1


@pytest.mark.asyncio
async def test_writes_return_transaction_reference() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        result = {"transactionHash": "0xfeed"} if body["method"] == "recordTransaction" else "0xbeef"
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    client = _rpc_client(handler)

    assert (await client.record_transaction("0xabc", 1_700_000_000)).tx_ref == "0xfeed"
    assert (await client.add_admin("0xdef")).tx_ref == "0xbeef"


@pytest.mark.asyncio
async def test_active_free_wash_users_from_parallel_arrays() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": 1, "result": {"users": ["0xa", "0xb"], "expiryTimes": [10, 20]}},
        )

    client = _rpc_client(handler)

    assert await client.get_active_free_wash_users(0, 50) == [
        {"address": "0xa", "expiryTime": 10},
        {"address": "0xb", "expiryTime": 20},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="unavailable"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "reverted"}}),
        httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None}),
    ],
)
async def test_relay_failures_raise_ledger_unavailable(response: httpx.Response) -> None:
    client = _rpc_client(lambda request: response)

    with pytest.raises(LedgerUnavailable) as excinfo:
        await client.mint_loyalty_nft("0xabc", "ipfs://bafy")

    assert excinfo.value.operation == "mintLoyaltyNFT"


@pytest.mark.asyncio
async def test_ipfs_upload_and_gateway_fetch() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v0/add":
            assert request.url.params["pin"] == "true"
            return httpx.Response(200, json={"Name": "metadata.json", "Hash": "bafydoc", "Size": "42"})
        assert str(request.url) == "https://gateway.example/ipfs/bafydoc"
        return httpx.Response(200, json={"tier": "Gold"})

    store = IpfsBlobStore(
        "https://ipfs.example/",
        gateway_url="https://gateway.example/ipfs",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    cid = await store.add_json({"tier": "Gold"})

    assert cid == "bafydoc"
    assert await store.fetch_json(f"ipfs://{cid}") == {"tier": "Gold"}


@pytest.mark.asyncio
async def test_ipfs_failures() -> None:
    store = IpfsBlobStore(
        "https://ipfs.example",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))),
    )

    with pytest.raises(BlobStoreError):
        await store.add_bytes(b"photo", filename="photo.jpg")
    assert await store.fetch_json("ipfs://bafymissing") is None
