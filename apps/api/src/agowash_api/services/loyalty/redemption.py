"""Points-for-package redemption."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agowash_api.core.errors import InsufficientPoints, InvalidPackage
from agowash_api.models import User
from agowash_api.services.ledger import LedgerGateway, normalize_address
from agowash_api.services.notifications import NotificationService


class PackageType(IntEnum):
    BASIC = 1
    PREMIUM = 2
    DELUXE = 3


PACKAGE_THRESHOLDS: dict[PackageType, int] = {
    PackageType.BASIC: 1000,
    PackageType.PREMIUM: 3000,
    PackageType.DELUXE: 5000,
}


def required_points(package_type: int) -> int:
    try:
        return PACKAGE_THRESHOLDS[PackageType(package_type)]
    except ValueError as exc:
        raise InvalidPackage(package_type) from exc


@dataclass(slots=True)
class RedemptionSignature:
    address: str
    package_type: int
    nonce: int
    signature: str
    required_points: int


class RedemptionService:
    """Authorises package redemptions and reacts to settled ones.

    Signing never mutates the ledger: the member submits the signature to the
    contract, which deducts the points.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        notifier: NotificationService,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._gateway = gateway
        self._notifier = notifier
        self._session_factory = session_factory

    async def sign(self, address: str, package_type: int, nonce: int) -> RedemptionSignature:
        address = normalize_address(address)
        required = required_points(package_type)
        available = await self._gateway.read_points(address)
        if available < required:
            logger.info(
                "Redemption rejected for insufficient points",
                address=address,
                package_type=package_type,
                required=required,
                available=available,
            )
            raise InsufficientPoints(required=required, available=available)

        signature = await self._gateway.sign_redeem_package(address, package_type, nonce)
        logger.info(
            "Signature generated for package redemption",
            category="blockchain",
            address=address,
            package_type=package_type,
            nonce=nonce,
        )
        return RedemptionSignature(
            address=address,
            package_type=package_type,
            nonce=nonce,
            signature=signature,
            required_points=required,
        )

    async def handle_redeemed(self, address: str, package_type: int, points_spent: int) -> None:
        """Apply a redemption the contract has settled."""

        address = normalize_address(address)
        await self._gateway.invalidate_user(address)
        async with self._session_factory() as session:
            result = await session.execute(select(User.email).where(User.user_address == address))
            email = result.scalar_one_or_none()
        logger.info(
            "Package redemption settled",
            category="blockchain",
            address=address,
            package_type=package_type,
            points_spent=points_spent,
        )
        await self._notifier.notify_package_redeemed(email, package_type, points_spent)


__all__ = [
    "PACKAGE_THRESHOLDS",
    "PackageType",
    "RedemptionService",
    "RedemptionSignature",
    "required_points",
]
