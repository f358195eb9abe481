"""Free-wash coupon state derived from the ledger's expiry timestamp."""

from __future__ import annotations

import time
from dataclasses import dataclass

from agowash_api.services.ledger import FreeWashCoupon, LedgerGateway


def now_seconds() -> int:
    return int(time.time())


def is_active(coupon: FreeWashCoupon, now: int) -> bool:
    return coupon.available and not coupon.used and now < coupon.expiry_time


def is_expired(coupon: FreeWashCoupon, now: int) -> bool:
    """Granted and unused, but past its expiry."""

    return coupon.available and not coupon.used and now >= coupon.expiry_time


@dataclass(slots=True)
class FreeWashStatus:
    coupon: FreeWashCoupon
    active: bool
    seconds_remaining: int

    def as_dict(self) -> dict[str, object]:
        return {
            "available": self.coupon.available,
            "used": self.coupon.used,
            "expiryTime": self.coupon.expiry_time,
            "isActive": self.active,
            "secondsRemaining": self.seconds_remaining,
        }


class FreeWashTracker:
    """Query coupon state for a user through the ledger gateway."""

    def __init__(self, gateway: LedgerGateway) -> None:
        self._gateway = gateway

    async def status(self, address: str, *, now: int | None = None) -> FreeWashStatus:
        coupon = await self._gateway.read_free_wash_status(address)
        current = now_seconds() if now is None else now
        active = is_active(coupon, current)
        remaining = max(coupon.expiry_time - current, 0) if active else 0
        return FreeWashStatus(coupon=coupon, active=active, seconds_remaining=remaining)


__all__ = ["FreeWashStatus", "FreeWashTracker", "is_active", "is_expired", "now_seconds"]
