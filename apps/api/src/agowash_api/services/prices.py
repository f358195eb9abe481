"""Service price list per vehicle class and service type."""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agowash_api.models import ServicePrice

VEHICLES: dict[str, tuple[str, ...]] = {
    "motor": ("reguler", "premium"),
    "mobil": ("bodyOnly",),
}

DEFAULT_PRICES: list[dict[str, Any]] = [
    {"vehicle": "motor", "serviceType": "reguler", "prices": {"kecil": 18000, "sedang": 20000, "besar": 25000}},
    {"vehicle": "motor", "serviceType": "premium", "prices": {"kecil": 30000, "sedang": 32000, "besar": 35000}},
    {"vehicle": "mobil", "serviceType": "bodyOnly", "prices": {"kecil": 55000, "sedang": 60000, "besar": 65000}},
]


def _serialize(entry: ServicePrice) -> dict[str, Any]:
    return {
        "vehicle": entry.vehicle,
        "serviceType": entry.service_type,
        "prices": {"kecil": entry.price_small, "sedang": entry.price_medium, "besar": entry.price_large},
    }


class PriceService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def seed_defaults(self) -> bool:
        """Insert the default price list into an empty table."""
        count = await self._session.scalar(select(func.count(ServicePrice.id)))
        if count:
            return False
        for default in DEFAULT_PRICES:
            prices = default["prices"]
            self._session.add(
                ServicePrice(
                    vehicle=default["vehicle"],
                    service_type=default["serviceType"],
                    price_small=prices["kecil"],
                    price_medium=prices["sedang"],
                    price_large=prices["besar"],
                )
            )
        await self._session.commit()
        logger.info("Default prices initialized", category="price")
        return True

    async def list_prices(self) -> dict[str, dict[str, dict[str, int]]]:
        response: dict[str, dict[str, dict[str, int]]] = {
            vehicle: {service: {} for service in services} for vehicle, services in VEHICLES.items()
        }
        result = await self._session.execute(select(ServicePrice))
        for entry in result.scalars():
            if entry.service_type in response.get(entry.vehicle, {}):
                response[entry.vehicle][entry.service_type] = _serialize(entry)["prices"]
        return response

    async def update_price(
        self,
        vehicle: str,
        service_type: str,
        *,
        small: int,
        medium: int,
        large: int,
        admin_address: str | None = None,
    ) -> dict[str, Any]:
        vehicle = vehicle.lower()
        result = await self._session.execute(
            select(ServicePrice).where(ServicePrice.vehicle == vehicle, ServicePrice.service_type == service_type)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = ServicePrice(vehicle=vehicle, service_type=service_type)
            self._session.add(entry)
        entry.price_small = small
        entry.price_medium = medium
        entry.price_large = large
        await self._session.commit()
        logger.info(
            "Price updated",
            category="admin",
            admin_address=admin_address,
            vehicle=vehicle,
            service_type=service_type,
        )
        return _serialize(entry)


__all__ = ["DEFAULT_PRICES", "PriceService", "VEHICLES"]
