import re
import secrets

from fastapi import Depends, Header, HTTPException, Query, status

from agowash_api.api.dependencies.services import get_services
from agowash_api.schemas.loyalty import ADDRESS_PATTERN
from agowash_api.services.container import ServiceContainer

_ADDRESS_RE = re.compile(ADDRESS_PATTERN)


async def require_api_key(
    authorization: str = Header("", alias="Authorization"),
    services: ServiceContainer = Depends(get_services),
) -> None:
    expected = services.settings.api_key
    if not expected:
        return

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is required",
        )
    if not secrets.compare_digest(token.strip().encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )


async def require_admin(
    x_caller_address: str | None = Header(None, alias="X-Caller-Address"),
    caller_address: str | None = Query(None, alias="callerAddress"),
    services: ServiceContainer = Depends(get_services),
) -> str:
    """Resolve the caller's wallet address and check it against the ledger's admin set."""

    address = x_caller_address or caller_address
    if not address:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Caller address is required",
        )
    if not _ADDRESS_RE.match(address):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid caller address",
        )
    if not await services.gateway.is_admin(address):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return address.lower()
