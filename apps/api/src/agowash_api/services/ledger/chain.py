"""Clients for the loyalty contract relay.

The relay owns keys, fees and contract encoding; this service only speaks a
small JSON-RPC vocabulary to it. Values are returned raw (wide integers may
arrive as decimal strings) and are range-checked by the ledger gateway.
"""

from __future__ import annotations

import asyncio
import hashlib
import itertools
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

import httpx
from loguru import logger

from agowash_api.core.errors import LedgerUnavailable


@dataclass(slots=True)
class ChainReceipt:
    """Reference to a committed chain write."""

    tx_ref: str


class ChainClient(Protocol):
    async def get_user_points(self, address: str) -> Any: ...

    async def get_nft_metadata(self, address: str) -> Mapping[str, Any]: ...

    async def get_free_wash_status(self, address: str) -> Mapping[str, Any]: ...

    async def get_activity_log(
        self, address: str, page_index: int, page_size: int
    ) -> Sequence[Mapping[str, Any]]: ...

    async def get_admins(self) -> Sequence[str]: ...

    async def get_owner(self) -> str: ...

    async def get_active_free_wash_users(
        self, page_index: int, page_size: int
    ) -> Sequence[Mapping[str, Any]]: ...

    async def record_transaction(self, address: str, timestamp: int) -> ChainReceipt: ...

    async def update_nft_metadata(
        self, address: str, uri: str, tier: str, points: int
    ) -> ChainReceipt: ...

    async def mint_loyalty_nft(self, address: str, uri: str) -> ChainReceipt: ...

    async def add_admin(self, address: str) -> ChainReceipt: ...

    async def remove_admin(self, address: str) -> ChainReceipt: ...

    async def sign_redeem_package(self, address: str, package_type: int, nonce: int) -> str: ...

    async def aclose(self) -> None: ...


class HttpChainClient:
    """JSON-RPC 2.0 client for the contract relay service."""

    def __init__(
        self,
        endpoint_url: str,
        *,
        api_key: str | None = None,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint_url = endpoint_url
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds, headers=headers)
        self._ids = itertools.count(1)

    async def _call(self, method: str, *params: Any) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params)}
        try:
            response = await self._client.post(self._endpoint_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LedgerUnavailable(f"{method} request failed: {exc}", operation=method) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise LedgerUnavailable(f"{method} returned invalid JSON", operation=method) from exc

        if not isinstance(body, Mapping):
            raise LedgerUnavailable(f"{method} returned an unexpected payload", operation=method)
        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, Mapping) else str(error)
            raise LedgerUnavailable(f"{method} rejected: {message}", operation=method)
        return body.get("result")

    async def _write(self, method: str, *params: Any) -> ChainReceipt:
        result = await self._call(method, *params)
        tx_ref = None
        if isinstance(result, Mapping):
            tx_ref = result.get("txRef") or result.get("transactionHash")
        elif isinstance(result, str):
            tx_ref = result
        if not tx_ref:
            raise LedgerUnavailable(f"{method} did not return a transaction reference", operation=method)
        return ChainReceipt(tx_ref=str(tx_ref))

    async def get_user_points(self, address: str) -> Any:
        return await self._call("getUserPoints", address)

    async def get_nft_metadata(self, address: str) -> Mapping[str, Any]:
        return await self._call("getNFTMetadata", address)

    async def get_free_wash_status(self, address: str) -> Mapping[str, Any]:
        return await self._call("getFreeWashStatus", address)

    async def get_activity_log(
        self, address: str, page_index: int, page_size: int
    ) -> Sequence[Mapping[str, Any]]:
        return await self._call("getActivityLog", address, page_index, page_size) or []

    async def get_admins(self) -> Sequence[str]:
        return await self._call("getAdmins") or []

    async def get_owner(self) -> str:
        return await self._call("owner")

    async def get_active_free_wash_users(
        self, page_index: int, page_size: int
    ) -> Sequence[Mapping[str, Any]]:
        result = await self._call("getActiveFreeWashUsers", page_index, page_size)
        if isinstance(result, Mapping):
            # Contract view returns parallel arrays.
            users = result.get("users") or []
            expiry_times = result.get("expiryTimes") or []
            return [
                {"address": user, "expiryTime": expiry}
                for user, expiry in zip(users, expiry_times)
            ]
        return result or []

    async def record_transaction(self, address: str, timestamp: int) -> ChainReceipt:
        return await self._write("recordTransaction", address, timestamp)

    async def update_nft_metadata(
        self, address: str, uri: str, tier: str, points: int
    ) -> ChainReceipt:
        return await self._write("updateNFTMetadata", address, uri, tier, points)

    async def mint_loyalty_nft(self, address: str, uri: str) -> ChainReceipt:
        return await self._write("mintLoyaltyNFT", address, uri)

    async def add_admin(self, address: str) -> ChainReceipt:
        return await self._write("addAdmin", address)

    async def remove_admin(self, address: str) -> ChainReceipt:
        return await self._write("removeAdmin", address)

    async def sign_redeem_package(self, address: str, package_type: int, nonce: int) -> str:
        signature = await self._call("signRedeemPackage", address, package_type, nonce)
        if not isinstance(signature, str) or not signature:
            raise LedgerUnavailable("signRedeemPackage returned no signature", operation="signRedeemPackage")
        return signature

    async def aclose(self) -> None:
        await self._client.aclose()


FREE_WASH_VALIDITY_SECONDS = 24 * 60 * 60


@dataclass
class InMemoryChainClient:
    """In-process ledger for development and tests.

    Each recorded transaction credits ``points_per_transaction`` points and
    grants a free wash valid for 24 hours. ``fail_operations`` makes the named
    calls raise :class:`LedgerUnavailable`; ``delays`` makes them sleep first.
    """

    owner: str = "0x0000000000000000000000000000000000000001"
    points_per_transaction: int = 100
    admins: list[str] = field(default_factory=list)
    points: dict[str, Any] = field(default_factory=dict)
    nfts: dict[str, dict[str, Any]] = field(default_factory=dict)
    free_washes: dict[str, dict[str, Any]] = field(default_factory=dict)
    activity: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    fail_operations: set[str] = field(default_factory=set)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    _tx_counter: int = 0

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def set_points(self, address: str, points: Any) -> None:
        self.points[address.lower()] = points

    async def _enter(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        delay = self.delays.get(operation)
        if delay:
            await asyncio.sleep(delay)
        if operation in self.fail_operations:
            raise LedgerUnavailable(f"{operation} failed (simulated)", operation=operation)

    def _receipt(self) -> ChainReceipt:
        self._tx_counter += 1
        digest = hashlib.sha256(str(self._tx_counter).encode()).hexdigest()
        return ChainReceipt(tx_ref=f"0x{digest}")

    def _log(self, address: str, event_type: str, timestamp: int, data: str = "") -> None:
        self.activity.setdefault(address, []).insert(
            0, {"eventType": event_type, "user": address, "timestamp": timestamp, "data": data}
        )

    async def get_user_points(self, address: str) -> Any:
        await self._enter("getUserPoints", address)
        return self.points.get(address.lower(), 0)

    async def get_nft_metadata(self, address: str) -> Mapping[str, Any]:
        await self._enter("getNFTMetadata", address)
        return dict(
            self.nfts.get(
                address.lower(),
                {"tokenId": 0, "metadataURI": "", "points": 0, "tier": "", "expiryTime": 0, "exists": False},
            )
        )

    async def get_free_wash_status(self, address: str) -> Mapping[str, Any]:
        await self._enter("getFreeWashStatus", address)
        return dict(
            self.free_washes.get(address.lower(), {"available": False, "used": False, "expiryTime": 0})
        )

    async def get_activity_log(
        self, address: str, page_index: int, page_size: int
    ) -> Sequence[Mapping[str, Any]]:
        await self._enter("getActivityLog", address, page_index, page_size)
        entries = self.activity.get(address.lower(), [])
        start = page_index * page_size
        return [dict(entry) for entry in entries[start : start + page_size]]

    async def get_admins(self) -> Sequence[str]:
        await self._enter("getAdmins")
        return list(self.admins)

    async def get_owner(self) -> str:
        await self._enter("owner")
        return self.owner

    async def get_active_free_wash_users(
        self, page_index: int, page_size: int
    ) -> Sequence[Mapping[str, Any]]:
        await self._enter("getActiveFreeWashUsers", page_index, page_size)
        active = [
            {"address": address, "expiryTime": status["expiryTime"]}
            for address, status in self.free_washes.items()
            if status.get("available") and not status.get("used")
        ]
        start = page_index * page_size
        return active[start : start + page_size]

    async def record_transaction(self, address: str, timestamp: int) -> ChainReceipt:
        await self._enter("recordTransaction", address, timestamp)
        key = address.lower()
        self.points[key] = int(self.points.get(key, 0)) + self.points_per_transaction
        self.free_washes[key] = {
            "available": True,
            "used": False,
            "expiryTime": timestamp + FREE_WASH_VALIDITY_SECONDS,
        }
        self._log(key, "TransactionRecorded", timestamp)
        return self._receipt()

    async def update_nft_metadata(
        self, address: str, uri: str, tier: str, points: int
    ) -> ChainReceipt:
        await self._enter("updateNFTMetadata", address, uri, tier, points)
        key = address.lower()
        record = self.nfts.get(key)
        if record is None or not record.get("exists"):
            raise LedgerUnavailable(f"no NFT minted for {address}", operation="updateNFTMetadata")
        record.update({"metadataURI": uri, "tier": tier, "points": points})
        return self._receipt()

    async def mint_loyalty_nft(self, address: str, uri: str) -> ChainReceipt:
        await self._enter("mintLoyaltyNFT", address, uri)
        key = address.lower()
        self.nfts[key] = {
            "tokenId": len(self.nfts) + 1,
            "metadataURI": uri,
            "points": int(self.points.get(key, 0)),
            "tier": "Bronze",
            "expiryTime": 0,
            "exists": True,
        }
        return self._receipt()

    async def add_admin(self, address: str) -> ChainReceipt:
        await self._enter("addAdmin", address)
        if address.lower() not in {admin.lower() for admin in self.admins}:
            self.admins.append(address)
        return self._receipt()

    async def remove_admin(self, address: str) -> ChainReceipt:
        await self._enter("removeAdmin", address)
        self.admins = [admin for admin in self.admins if admin.lower() != address.lower()]
        return self._receipt()

    async def sign_redeem_package(self, address: str, package_type: int, nonce: int) -> str:
        await self._enter("signRedeemPackage", address, package_type, nonce)
        digest = hashlib.sha256(f"{address.lower()}:{package_type}:{nonce}".encode()).hexdigest()
        return f"0x{digest}"

    async def aclose(self) -> None:
        logger.debug("In-memory chain client closed")


__all__ = ["ChainClient", "ChainReceipt", "HttpChainClient", "InMemoryChainClient"]
