"""Member registration and profile endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, UploadFile, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from agowash_api.api.dependencies.security import require_api_key
from agowash_api.api.dependencies.services import get_services
from agowash_api.db.session import get_session
from agowash_api.schemas.loyalty import ADDRESS_PATTERN, DATE_PATTERN
from agowash_api.services.container import ServiceContainer
from agowash_api.services.users import Photo, UserRegistration, UserService, serialize_user

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_api_key)])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
ALLOWED_PHOTO_TYPES = {"image/jpeg", "image/png"}
MAX_PHOTO_BYTES = 2 * 1024 * 1024


async def _read_photo(upload: UploadFile | None) -> Photo | None:
    if upload is None or not upload.filename:
        return None
    if upload.content_type not in ALLOWED_PHOTO_TYPES:
        logger.warning("Rejected photo upload", category="security", content_type=upload.content_type)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only JPEG and PNG images are allowed")
    content = await upload.read()
    if len(content) > MAX_PHOTO_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File too large (max 2MB)")
    return Photo(content=content, filename=upload.filename)


def _user_service(session: AsyncSession, services: ServiceContainer) -> UserService:
    return UserService(
        session,
        services.gateway,
        services.blob_store,
        services.tasks,
        default_photo_url=services.settings.default_photo_url,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_user(
    user_address: str = Form(..., alias="userAddress", pattern=ADDRESS_PATTERN),
    name: str = Form(..., min_length=1, max_length=100),
    motorbike_type: str = Form(..., alias="motorbikeType", min_length=1, max_length=100),
    date_of_birth: str = Form(..., alias="dateOfBirth", pattern=DATE_PATTERN),
    email: str = Form(..., pattern=EMAIL_PATTERN),
    photo: UploadFile | None = File(None),
    session: AsyncSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    user = await _user_service(session, services).register(
        UserRegistration(
            address=user_address,
            name=name,
            motorbike_type=motorbike_type,
            date_of_birth=date_of_birth,
            email=email,
        ),
        await _read_photo(photo),
    )
    return {"success": True, "metadataURI": user.metadata_uri, "user": serialize_user(user)}


@router.get("/{address}")
async def get_user(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    session: AsyncSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    user = await _user_service(session, services).get(address)
    return serialize_user(user)


@router.put("/{address}")
async def update_user(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    name: str | None = Form(None, min_length=1, max_length=100),
    motorbike_type: str | None = Form(None, alias="motorbikeType", min_length=1, max_length=100),
    date_of_birth: str | None = Form(None, alias="dateOfBirth", pattern=DATE_PATTERN),
    email: str | None = Form(None, pattern=EMAIL_PATTERN),
    photo: UploadFile | None = File(None),
    session: AsyncSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    changes = {
        "name": name,
        "motorbike_type": motorbike_type,
        "date_of_birth": date_of_birth,
        "email": email,
    }
    user = await _user_service(session, services).update(address, changes, await _read_photo(photo))
    return {"success": True, "metadataURI": user.metadata_uri, "user": serialize_user(user)}


@router.delete("/{address}")
async def delete_user(
    address: str = Path(..., pattern=ADDRESS_PATTERN),
    session: AsyncSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    removed = await _user_service(session, services).delete(address)
    return {"success": True, "message": "User data deleted successfully", "transactionsDeleted": removed}
