from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agowash_api.api.dependencies.security import require_admin, require_api_key
from agowash_api.db.session import get_session
from agowash_api.schemas.loyalty import PriceUpdate
from agowash_api.services.prices import PriceService

router = APIRouter(prefix="/prices", tags=["prices"], dependencies=[Depends(require_api_key)])


@router.get("")
async def list_prices(session: AsyncSession = Depends(get_session)) -> dict[str, Any]:
    return await PriceService(session).list_prices()


@router.put("")
async def update_price(
    payload: PriceUpdate,
    admin_address: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    price = await PriceService(session).update_price(
        payload.vehicle,
        payload.service_type,
        small=payload.prices.kecil,
        medium=payload.prices.sedang,
        large=payload.prices.besar,
        admin_address=admin_address,
    )
    return {"success": True, "price": price}
