"""Ledger reads, NFT frame refresh, redemption and admin management."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path, Query, status

from agowash_api.api.dependencies.security import require_admin, require_api_key
from agowash_api.api.dependencies.services import get_services
from agowash_api.schemas.loyalty import ADDRESS_PATTERN, AdminChange, RedemptionSettled, RedemptionSignRequest
from agowash_api.services.container import ServiceContainer
from agowash_api.services.loyalty import tier_for_points

router = APIRouter(prefix="/ledger", tags=["ledger"], dependencies=[Depends(require_api_key)])


@router.get("/free-washes/active")
async def active_free_washes(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, alias="pageSize", ge=1, le=200),
    _: str = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    entries = await services.gateway.read_active_free_wash_users(page, page_size)
    return {
        "page": page,
        "pageSize": page_size,
        "users": [{"userAddress": entry.address, "expiryTime": entry.expiry_time} for entry in entries],
    }


@router.post("/redemptions/sign")
async def sign_redemption(
    payload: RedemptionSignRequest,
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    signed = await services.redemptions.sign(payload.user_address, payload.package_type, payload.nonce)
    return {
        "userAddress": signed.address,
        "packageType": signed.package_type,
        "nonce": signed.nonce,
        "requiredPoints": signed.required_points,
        "signature": signed.signature,
    }


@router.post("/redemptions/settled", status_code=status.HTTP_202_ACCEPTED)
async def redemption_settled(
    payload: RedemptionSettled,
    _: str = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    await services.redemptions.handle_redeemed(payload.user_address, payload.package_type, payload.points_spent)
    return {"success": True}


@router.post("/admins", status_code=status.HTTP_201_CREATED)
async def add_admin(
    payload: AdminChange,
    _: str = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    receipt = await services.gateway.write_admin("add", payload.address)
    return {"success": True, "txRef": receipt.tx_ref}


@router.delete("/admins/{address}")
async def remove_admin(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    _: str = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    receipt = await services.gateway.write_admin("remove", address)
    return {"success": True, "txRef": receipt.tx_ref}


@router.get("/{address}/points")
async def user_points(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    points = await services.gateway.read_points(address)
    return {"userAddress": address.lower(), "points": points, "tier": tier_for_points(points).value}


@router.get("/{address}/free-wash")
async def free_wash_status(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    status_ = await services.free_washes.status(address)
    return {"userAddress": address.lower(), **status_.as_dict()}


@router.get("/{address}/activity")
async def activity_log(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, alias="pageSize", ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    entries = await services.gateway.read_activity_log(address, page, page_size)
    return {
        "userAddress": address.lower(),
        "page": page,
        "pageSize": page_size,
        "activities": [entry.to_payload() for entry in entries],
    }


@router.post("/{address}/nft-frame")
async def refresh_nft_frame(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    _: str = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    refreshed = await services.nft_service.refresh_frame(address)
    return {"success": True, **refreshed.as_dict()}
