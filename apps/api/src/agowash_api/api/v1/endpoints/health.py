from __future__ import annotations

from typing import Any, Dict, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from agowash_api.api.dependencies.services import get_services
from agowash_api.services.container import ServiceContainer

router = APIRouter()


class ComponentStatus(BaseModel):
    status: Literal["ready", "disabled", "degraded", "error"]
    detail: str | None = Field(default=None, description="Human readable status detail")


class ReadinessPayload(BaseModel):
    status: Literal["ready", "degraded", "error"]
    components: Dict[str, ComponentStatus]
    ledger: Dict[str, Any]
    background: Dict[str, Any]


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(services: ServiceContainer = Depends(get_services)) -> ReadinessPayload:
    components: Dict[str, ComponentStatus] = {}
    status: Literal["ready", "degraded", "error"] = "ready"

    # The cache is advisory, so an outage only degrades the service.
    if await services.cache.ping():
        components["cache"] = ComponentStatus(status="ready")
    else:
        components["cache"] = ComponentStatus(status="degraded", detail="Cache store unreachable")
        status = "degraded"

    watcher = services.watcher
    if services.settings.free_wash_watcher_enabled:
        running = watcher.is_running
        components["free_wash_watcher"] = ComponentStatus(
            status="ready" if running else "degraded",
            detail=None if running else "Free wash expiry watcher not running",
        )
        if not running:
            status = "degraded"
    else:
        components["free_wash_watcher"] = ComponentStatus(
            status="disabled",
            detail="Free wash watcher disabled via settings",
        )

    return ReadinessPayload(
        status=status,
        components=components,
        ledger=services.metrics.snapshot().as_dict(),
        background=services.tasks.snapshot(),
    )
