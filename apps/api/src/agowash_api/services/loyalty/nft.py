"""NFT metadata rendering and tier-frame refresh."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agowash_api.core.errors import NFTNotFound, UserNotFound
from agowash_api.core.settings import get_settings
from agowash_api.models import User
from agowash_api.services.blob import IPFS_SCHEME, BlobStore
from agowash_api.services.broadcast import Broadcaster, NFTUpdated
from agowash_api.services.ledger import LedgerGateway, normalize_address

from .tiers import Tier, tier_for_points

NFT_NAME = "AGO WASH Loyalty NFT"
NFT_DESCRIPTION = "AGO WASH Loyalty Program NFT"


def render_nft_metadata(image: str, tier: Tier | str = Tier.BRONZE, frame: str | None = None) -> dict[str, Any]:
    tier_name = tier.value if isinstance(tier, Tier) else str(tier)
    return {
        "name": NFT_NAME,
        "description": NFT_DESCRIPTION,
        "image": image,
        "tier": tier_name,
        "frame": frame,
        "attributes": [{"trait_type": "Tier", "value": tier_name}],
    }


def default_frame_cids() -> dict[Tier, str | None]:
    settings = get_settings()
    return {
        Tier.BRONZE: settings.bronze_frame_cid,
        Tier.SILVER: settings.silver_frame_cid,
        Tier.GOLD: settings.gold_frame_cid,
    }


def frame_uri_for_tier(tier: Tier, frame_cids: Mapping[Tier, str | None]) -> str | None:
    cid = frame_cids.get(tier)
    return f"{IPFS_SCHEME}{cid}" if cid else None


@dataclass(slots=True)
class FrameRefresh:
    address: str
    tier: Tier
    points: int
    metadata_uri: str
    tx_ref: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "tier": self.tier.value,
            "points": self.points,
            "metadataURI": self.metadata_uri,
            "txRef": self.tx_ref,
        }


class NFTService:
    """Re-renders a member's NFT document for their current tier."""

    def __init__(
        self,
        gateway: LedgerGateway,
        blob_store: BlobStore,
        broadcaster: Broadcaster,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        frame_cids: Mapping[Tier, str | None] | None = None,
        default_photo_url: str | None = None,
    ) -> None:
        self._gateway = gateway
        self._blob_store = blob_store
        self._broadcaster = broadcaster
        self._session_factory = session_factory
        self._frame_cids = frame_cids if frame_cids is not None else default_frame_cids()
        self._default_photo_url = default_photo_url or get_settings().default_photo_url

    async def refresh_frame(self, address: str) -> FrameRefresh:
        address = normalize_address(address)
        async with self._session_factory() as session:
            user = (
                await session.execute(select(User).where(User.user_address == address))
            ).scalar_one_or_none()
            if user is None:
                raise UserNotFound(address)

            points = await self._gateway.read_points(address)
            tier = tier_for_points(points)
            current = await self._gateway.read_nft_metadata(address)
            if not current.exists:
                raise NFTNotFound(address)

            image = user.photo_url or self._default_photo_url
            document = await self._blob_store.fetch_json(current.metadata_uri) if current.metadata_uri else None
            if document and document.get("image"):
                image = document["image"]

            rendered = render_nft_metadata(image, tier, frame_uri_for_tier(tier, self._frame_cids))
            cid = await self._blob_store.add_json(rendered)
            metadata_uri = f"{IPFS_SCHEME}{cid}"
            receipt = await self._gateway.write_nft_metadata(address, metadata_uri, tier.value, points)

            user.metadata_uri = metadata_uri
            await session.commit()

        logger.info(
            "NFT frame refreshed",
            category="blockchain",
            address=address,
            tier=tier.value,
            tx_ref=receipt.tx_ref,
        )
        self._broadcaster.publish(NFTUpdated(address=address, tier=tier.value, metadata_uri=metadata_uri))
        return FrameRefresh(
            address=address,
            tier=tier,
            points=points,
            metadata_uri=metadata_uri,
            tx_ref=receipt.tx_ref,
        )


__all__ = [
    "NFTService",
    "FrameRefresh",
    "NFT_NAME",
    "default_frame_cids",
    "frame_uri_for_tier",
    "render_nft_metadata",
]
