"""Member registration and profile maintenance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agowash_api.core.errors import UserAlreadyExists, UserNotFound
from agowash_api.core.settings import get_settings
from agowash_api.models import User
from agowash_api.services.background import BackgroundTaskRunner
from agowash_api.services.blob import IPFS_SCHEME, BlobStore, BlobStoreError
from agowash_api.services.ledger import LedgerGateway, normalize_address
from agowash_api.services.loyalty import Tier, frame_uri_for_tier, parse_tier, render_nft_metadata
from agowash_api.services.loyalty.nft import default_frame_cids
from agowash_api.services.transactions import TransactionStore


@dataclass(slots=True)
class Photo:
    content: bytes
    filename: str = "photo"


@dataclass(slots=True)
class UserRegistration:
    address: str
    name: str
    motorbike_type: str
    date_of_birth: str
    email: str


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "userAddress": user.user_address,
        "name": user.name,
        "motorbikeType": user.motorbike_type,
        "dateOfBirth": user.date_of_birth,
        "email": user.email,
        "photoUrl": user.photo_url,
        "metadataURI": user.metadata_uri,
    }


class UserService:
    def __init__(
        self,
        session: AsyncSession,
        gateway: LedgerGateway,
        blob_store: BlobStore,
        task_runner: BackgroundTaskRunner,
        *,
        default_photo_url: str | None = None,
    ) -> None:
        self._session = session
        self._gateway = gateway
        self._blob_store = blob_store
        self._tasks = task_runner
        self._default_photo_url = default_photo_url or get_settings().default_photo_url

    async def _find(self, address: str) -> User | None:
        result = await self._session.execute(select(User).where(User.user_address == address))
        return result.scalar_one_or_none()

    async def get(self, address: str) -> User:
        address = normalize_address(address)
        user = await self._find(address)
        if user is None:
            raise UserNotFound(address)
        return user

    async def _upload_photo(self, photo: Photo, address: str) -> tuple[str, str] | None:
        """Returns ``(ipfs_uri, gateway_url)``, or ``None`` when the upload failed."""
        try:
            cid = await self._blob_store.add_bytes(photo.content, filename=photo.filename)
        except BlobStoreError as exc:
            logger.error("Photo upload failed, keeping placeholder", address=address, error=str(exc))
            return None
        logger.info("Photo uploaded", address=address, cid=cid)
        return f"{IPFS_SCHEME}{cid}", self._blob_store.gateway_url(cid)

    async def register(self, registration: UserRegistration, photo: Photo | None = None) -> User:
        address = normalize_address(registration.address)
        if await self._find(address) is not None:
            raise UserAlreadyExists(address)

        photo_url = self._default_photo_url
        image = photo_url
        if photo is not None:
            uploaded = await self._upload_photo(photo, address)
            if uploaded is not None:
                image, photo_url = uploaded

        metadata_cid = await self._blob_store.add_json(render_nft_metadata(image, Tier.BRONZE))
        metadata_uri = f"{IPFS_SCHEME}{metadata_cid}"

        user = User(
            user_address=address,
            name=registration.name,
            motorbike_type=registration.motorbike_type,
            date_of_birth=registration.date_of_birth,
            email=registration.email,
            photo_url=photo_url,
            metadata_uri=metadata_uri,
        )
        self._session.add(user)
        await self._session.commit()
        logger.info("User registered", address=address, metadata_uri=metadata_uri)

        self._tasks.submit("mint_loyalty_nft", self._mint(address, metadata_uri))
        return user

    async def _mint(self, address: str, metadata_uri: str) -> None:
        receipt = await self._gateway.mint_loyalty_nft(address, metadata_uri)
        logger.info("NFT minted", category="blockchain", address=address, tx_ref=receipt.tx_ref)

    async def update(self, address: str, changes: dict[str, Any], photo: Photo | None = None) -> User:
        user = await self.get(address)
        for field in ("name", "motorbike_type", "date_of_birth", "email"):
            value = changes.get(field)
            if value:
                setattr(user, field, value)

        if photo is not None:
            uploaded = await self._upload_photo(photo, user.user_address)
            if uploaded is not None:
                image, photo_url = uploaded
                try:
                    user.metadata_uri = await self._rerender_metadata(user.metadata_uri, image)
                except BlobStoreError as exc:
                    logger.error("Metadata upload failed, keeping previous photo", address=user.user_address, error=str(exc))
                else:
                    user.photo_url = photo_url

        await self._session.commit()
        logger.info("User updated", address=user.user_address)
        return user

    async def _rerender_metadata(self, current_uri: str | None, image: str) -> str:
        tier = Tier.BRONZE
        if current_uri:
            document = await self._blob_store.fetch_json(current_uri)
            if document:
                tier = parse_tier(document.get("tier")) or Tier.BRONZE
        frame = frame_uri_for_tier(tier, default_frame_cids())
        cid = await self._blob_store.add_json(render_nft_metadata(image, tier, frame))
        return f"{IPFS_SCHEME}{cid}"

    async def delete(self, address: str) -> int:
        """Delete the member and their transactions; returns removed transactions."""
        user = await self.get(address)
        removed = await TransactionStore(self._session).delete_user_transactions(user.user_address)
        await self._session.delete(user)
        await self._session.commit()
        logger.info("User data deleted", address=user.user_address, transactions=removed)
        return removed


__all__ = ["Photo", "UserRegistration", "UserService", "serialize_user"]
