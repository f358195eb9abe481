"""Coordinates recording a wash: local pending record, chain write, side effects."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from agowash_api.core.errors import LedgerUnavailable, LoyaltyError, UserNotFound
from agowash_api.models import WashTransaction
from agowash_api.services.background import BackgroundTaskRunner
from agowash_api.services.broadcast import Broadcaster, BroadcastEvent, TierChanged, TransactionRecorded
from agowash_api.services.ledger import ChainReceipt, LedgerGateway, normalize_address
from agowash_api.services.loyalty import (
    NFTService,
    Tier,
    TierTransition,
    TransitionKind,
    parse_tier,
    tier_for_points,
)
from agowash_api.services.notifications import NotificationService

from .store import TransactionStore

T = TypeVar("T")


class OrchestrationState(str, Enum):
    INITIATED = "initiated"
    LOCALLY_PERSISTED = "locally_persisted"
    CHAIN_CONFIRMED = "chain_confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass(slots=True)
class TransactionRequest:
    address: str
    service_date: str
    vehicle_type: str
    service_type: str
    price: int


@dataclass(slots=True)
class TransactionOutcome:
    tx_ref: str
    state: OrchestrationState
    points: int | None = None
    tier: Tier | None = None
    transition: TierTransition | None = None

    def as_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "txRef": self.tx_ref,
            "points": self.points,
            "tier": self.tier.value if self.tier else None,
            "tierChange": self.transition.kind.value if self.transition else None,
        }


class TransactionOrchestrator:
    """Runs one transaction-record request through its state machine.

    ``Initiated -> LocallyPersisted -> ChainConfirmed`` on success, or
    ``Initiated -> LocallyPersisted -> RolledBack`` when the chain write fails
    or exceeds ``chain_timeout_seconds``. Notifications and broadcasts run
    after confirmation as best-effort tasks and never change the outcome.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        notifier: NotificationService,
        broadcaster: Broadcaster,
        task_runner: BackgroundTaskRunner,
        *,
        chain_timeout_seconds: float,
        nft_service: NFTService | None = None,
        auto_refresh_nft: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._gateway = gateway
        self._notifier = notifier
        self._broadcaster = broadcaster
        self._tasks = task_runner
        self._chain_timeout = chain_timeout_seconds
        self._nft_service = nft_service
        self._auto_refresh_nft = auto_refresh_nft
        self._clock = clock

    async def record(self, session: AsyncSession, request: TransactionRequest) -> TransactionOutcome:
        store = TransactionStore(session)
        address = normalize_address(request.address)
        state = OrchestrationState.INITIATED

        user = await store.find_user_by_address(address)
        if user is None:
            raise UserNotFound(address)
        email = user.email
        prior_tier = await self._baseline_tier(address)

        record = await store.create_pending_transaction(
            address=address,
            service_date=request.service_date,
            vehicle_type=request.vehicle_type,
            service_type=request.service_type,
            price=request.price,
        )
        state = self._advance(address, state, OrchestrationState.LOCALLY_PERSISTED)

        receipt = await self._write_or_roll_back(store, record, address)

        try:
            await store.confirm_transaction(record, receipt.tx_ref)
        except Exception:
            logger.exception(
                "Chain write committed but local confirmation failed",
                category="blockchain",
                address=address,
                tx_ref=receipt.tx_ref,
            )
            raise
        state = self._advance(address, state, OrchestrationState.CHAIN_CONFIRMED)

        outcome = TransactionOutcome(tx_ref=receipt.tx_ref, state=state)
        await self._after_confirmation(outcome, request, address, email, prior_tier)
        return outcome

    async def _write_or_roll_back(
        self, store: TransactionStore, record: WashTransaction, address: str
    ) -> ChainReceipt:
        timestamp = int(self._clock())
        try:
            return await asyncio.wait_for(
                self._gateway.write_transaction(address, timestamp),
                timeout=self._chain_timeout,
            )
        except asyncio.TimeoutError as exc:
            await self._roll_back(store, record, address, reason="timeout")
            raise LedgerUnavailable(
                f"recordTransaction timed out after {self._chain_timeout}s",
                operation="recordTransaction",
            ) from exc
        except asyncio.CancelledError:
            await self._roll_back(store, record, address, reason="cancelled")
            raise
        except Exception as exc:
            await self._roll_back(store, record, address, reason=str(exc))
            raise

    async def _roll_back(
        self, store: TransactionStore, record: WashTransaction, address: str, *, reason: str
    ) -> None:
        await store.delete_pending_transaction(record)
        self._advance(address, OrchestrationState.LOCALLY_PERSISTED, OrchestrationState.ROLLED_BACK, reason=reason)

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        """Apply the chain timeout to a read made while the caller waits."""
        return await asyncio.wait_for(awaitable, timeout=self._chain_timeout)

    async def _baseline_tier(self, address: str) -> Tier | None:
        """Tier derived from the balance as it stood before this transaction."""
        try:
            return tier_for_points(await self._bounded(self._gateway.read_points(address)))
        except asyncio.TimeoutError:
            logger.warning("Prior points read timed out", category="blockchain", address=address)
        except LoyaltyError as exc:
            logger.warning("Could not read prior points", category="blockchain", address=address, error=str(exc))
        return None

    async def _snapshot_tier(self, address: str) -> Tier:
        try:
            metadata = await self._bounded(self._gateway.read_nft_metadata(address))
        except (asyncio.TimeoutError, LoyaltyError) as exc:
            logger.warning("Could not read NFT snapshot", category="blockchain", address=address, error=repr(exc))
            return Tier.BRONZE
        return parse_tier(metadata.tier) or Tier.BRONZE

    async def _after_confirmation(
        self,
        outcome: TransactionOutcome,
        request: TransactionRequest,
        address: str,
        email: str | None,
        prior_tier: Tier | None,
    ) -> None:
        try:
            # The write just invalidated points:{address}, so this is a fresh chain read.
            points = await self._bounded(self._gateway.read_points(address))
        except (asyncio.TimeoutError, LoyaltyError) as exc:
            logger.warning(
                "Fresh points read unavailable, settling tier in background",
                category="blockchain",
                address=address,
                tx_ref=outcome.tx_ref,
                error=repr(exc),
            )
            self._tasks.submit("settle_tier_change", self._settle_tier_change(address, prior_tier))
        else:
            previous = prior_tier or await self._snapshot_tier(address)
            outcome.points = points
            outcome.tier = tier_for_points(points)
            outcome.transition = TierTransition.between(previous, outcome.tier)
            self._announce_transition(address, outcome.transition, points)

        self._publish(
            TransactionRecorded(
                address=address,
                tx_ref=outcome.tx_ref,
                service_date=request.service_date,
                vehicle_type=request.vehicle_type,
                service_type=request.service_type,
                price=request.price,
            )
        )
        self._tasks.submit(
            "notify_free_wash_activated",
            self._notifier.notify_free_wash_activated(email, request.service_date),
        )

    async def _settle_tier_change(self, address: str, prior_tier: Tier | None) -> None:
        points = await self._gateway.read_points(address)
        previous = prior_tier or await self._snapshot_tier(address)
        self._announce_transition(address, TierTransition.between(previous, tier_for_points(points)), points)

    def _announce_transition(self, address: str, transition: TierTransition, points: int) -> None:
        if not transition.changed:
            return
        logger.info(
            "Tier transition detected",
            address=address,
            previous=transition.previous.value,
            tier=transition.current.value,
            kind=transition.kind.value,
        )
        self._tasks.submit(
            "notify_tier_change",
            self._notifier.notify_tier_change(
                address,
                points,
                transition.current.value,
                direction=transition.kind.value,
            ),
        )
        self._publish(
            TierChanged(
                address=address,
                previous_tier=transition.previous.value,
                tier=transition.current.value,
                points=points,
                upgraded=transition.kind is TransitionKind.UPGRADED,
            )
        )
        if self._auto_refresh_nft and self._nft_service is not None and transition.requires_refresh:
            self._tasks.submit("refresh_nft_frame", self._nft_service.refresh_frame(address))

    def _publish(self, event: BroadcastEvent) -> None:
        try:
            self._broadcaster.publish(event)
        except Exception:
            logger.exception("Broadcast failed", event=event.kind.value)

    def _advance(
        self,
        address: str,
        current: OrchestrationState,
        target: OrchestrationState,
        **context: Any,
    ) -> OrchestrationState:
        logger.info(
            "Transaction state changed",
            address=address,
            previous_state=current.value,
            state=target.value,
            **context,
        )
        return target


__all__ = [
    "OrchestrationState",
    "TransactionOrchestrator",
    "TransactionOutcome",
    "TransactionRequest",
]
