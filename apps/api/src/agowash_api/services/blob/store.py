"""Content-addressed storage for NFT metadata documents and photos."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping, Protocol

import httpx
from loguru import logger

from agowash_api.core.errors import LoyaltyError

IPFS_SCHEME = "ipfs://"


class BlobStoreError(LoyaltyError):
    """Upload or fetch against the blob store failed."""

    title = "Blob Store Error"


class BlobStore(Protocol):
    async def add_bytes(self, data: bytes, *, filename: str = "blob") -> str: ...

    async def add_json(self, document: Mapping[str, Any]) -> str: ...

    async def fetch_json(self, uri: str) -> dict[str, Any] | None: ...

    def gateway_url(self, cid: str) -> str: ...

    async def aclose(self) -> None: ...


def cid_from_uri(uri: str) -> str:
    if uri.startswith(IPFS_SCHEME):
        return uri[len(IPFS_SCHEME) :]
    return uri.rsplit("/ipfs/", 1)[-1]


class IpfsBlobStore:
    """IPFS HTTP API client (``/api/v0/add``) with gateway reads."""

    def __init__(
        self,
        api_url: str,
        *,
        gateway_url: str = "https://ipfs.io/ipfs/",
        project_id: str | None = None,
        project_secret: str | None = None,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._gateway_url = gateway_url if gateway_url.endswith("/") else f"{gateway_url}/"
        auth = httpx.BasicAuth(project_id, project_secret or "") if project_id else None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds, auth=auth)

    async def add_bytes(self, data: bytes, *, filename: str = "blob") -> str:
        try:
            response = await self._client.post(
                f"{self._api_url}/api/v0/add",
                params={"pin": "true"},
                files={"file": (filename, data)},
            )
            response.raise_for_status()
            cid = response.json()["Hash"]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.error("Error uploading to IPFS", error=str(exc))
            raise BlobStoreError("Failed to upload to IPFS") from exc
        logger.info("Uploaded to IPFS", cid=cid, size=len(data))
        return cid

    async def add_json(self, document: Mapping[str, Any]) -> str:
        return await self.add_bytes(json.dumps(document).encode("utf-8"), filename="metadata.json")

    async def fetch_json(self, uri: str) -> dict[str, Any] | None:
        if not uri:
            return None
        url = self.gateway_url(cid_from_uri(uri)) if not uri.startswith("http") else uri
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            document = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not fetch IPFS document", uri=uri, error=str(exc))
            return None
        return document if isinstance(document, dict) else None

    def gateway_url(self, cid: str) -> str:
        return f"{self._gateway_url}{cid}"

    async def aclose(self) -> None:
        await self._client.aclose()


class InMemoryBlobStore:
    """Content-addressed dictionary for development and tests."""

    def __init__(self, *, gateway_url: str = "https://ipfs.io/ipfs/") -> None:
        self.blobs: dict[str, bytes] = {}
        self._gateway_url = gateway_url
        self.fail_uploads = False

    async def add_bytes(self, data: bytes, *, filename: str = "blob") -> str:
        if self.fail_uploads:
            raise BlobStoreError("Failed to upload to IPFS")
        cid = "bafy" + hashlib.sha256(data).hexdigest()[:52]
        self.blobs[cid] = data
        return cid

    async def add_json(self, document: Mapping[str, Any]) -> str:
        return await self.add_bytes(json.dumps(document, sort_keys=True).encode("utf-8"))

    async def fetch_json(self, uri: str) -> dict[str, Any] | None:
        data = self.blobs.get(cid_from_uri(uri)) if uri else None
        if data is None:
            return None
        return json.loads(data)

    def gateway_url(self, cid: str) -> str:
        return f"{self._gateway_url}{cid}"

    async def aclose(self) -> None:
        return None


__all__ = [
    "BlobStore",
    "BlobStoreError",
    "IPFS_SCHEME",
    "InMemoryBlobStore",
    "IpfsBlobStore",
    "cid_from_uri",
]
