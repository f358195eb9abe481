"""Wash transaction recording and admin reports."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agowash_api.api.dependencies.security import require_admin, require_api_key
from agowash_api.api.dependencies.services import get_services
from agowash_api.db.session import get_session
from agowash_api.schemas.loyalty import DATE_PATTERN, TransactionCreate
from agowash_api.services.container import ServiceContainer
from agowash_api.services.transactions import TransactionRequest, TransactionStore

router = APIRouter(prefix="/transactions", tags=["transactions"], dependencies=[Depends(require_api_key)])


@router.post("")
async def record_transaction(
    payload: TransactionCreate,
    session: AsyncSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    outcome = await services.orchestrator.record(
        session,
        TransactionRequest(
            address=payload.user_address,
            service_date=payload.date,
            vehicle_type=payload.vehicle_type.value,
            service_type=payload.service_type.value,
            price=payload.price,
        ),
    )
    return outcome.as_response()


@router.get("")
async def transactions_by_date(
    date: str = Query(..., pattern=DATE_PATTERN),
    _: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return {"transactions": await TransactionStore(session).transactions_by_date(date)}


@router.get("/analytics")
async def transaction_analytics(
    _: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return await TransactionStore(session).analytics()


@router.get("/monitoring")
async def transaction_monitoring(
    _: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    report = await TransactionStore(session).monitoring()
    background = services.tasks.snapshot()
    report["recentErrors"] = background["failures"][-5:][::-1]
    report["pendingTasks"] = background["pending"]
    report["ledger"] = services.metrics.snapshot().as_dict()
    return report
