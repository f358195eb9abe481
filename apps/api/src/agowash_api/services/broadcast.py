"""Typed real-time events fanned out to connected subscribers."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator

from loguru import logger


class EventKind(str, Enum):
    TRANSACTION_RECORDED = "transaction:recorded"
    TIER_UPGRADED = "tier:upgraded"
    TIER_DOWNGRADED = "tier:downgraded"
    NFT_UPDATED = "nft:updated"
    FREE_WASH_EXPIRED = "freeWash:expired"


@dataclass(frozen=True, slots=True)
class TransactionRecorded:
    address: str
    tx_ref: str
    service_date: str
    vehicle_type: str
    service_type: str
    price: int

    kind = EventKind.TRANSACTION_RECORDED

    def payload(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "txRef": self.tx_ref,
            "date": self.service_date,
            "vehicleType": self.vehicle_type,
            "serviceType": self.service_type,
            "price": self.price,
        }


@dataclass(frozen=True, slots=True)
class TierChanged:
    address: str
    previous_tier: str
    tier: str
    points: int
    upgraded: bool

    @property
    def kind(self) -> EventKind:
        return EventKind.TIER_UPGRADED if self.upgraded else EventKind.TIER_DOWNGRADED

    def payload(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "previousTier": self.previous_tier,
            "tier": self.tier,
            "points": self.points,
        }


@dataclass(frozen=True, slots=True)
class NFTUpdated:
    address: str
    tier: str
    metadata_uri: str

    kind = EventKind.NFT_UPDATED

    def payload(self) -> dict[str, Any]:
        return {"address": self.address, "tier": self.tier, "metadataURI": self.metadata_uri}


@dataclass(frozen=True, slots=True)
class FreeWashExpired:
    address: str
    expiry_time: int

    kind = EventKind.FREE_WASH_EXPIRED

    def payload(self) -> dict[str, Any]:
        return {"address": self.address, "expiryTime": self.expiry_time}


BroadcastEvent = TransactionRecorded | TierChanged | NFTUpdated | FreeWashExpired


@dataclass(slots=True)
class EventEnvelope:
    kind: EventKind
    payload: dict[str, Any]
    emitted_at: float = field(default_factory=time.time)

    def as_message(self) -> dict[str, Any]:
        return {"event": self.kind.value, "data": self.payload, "emittedAt": self.emitted_at}


class Subscription:
    """Bounded per-subscriber queue; the oldest event is dropped on overflow."""

    def __init__(self, broadcaster: "Broadcaster", queue_size: int) -> None:
        self._broadcaster = broadcaster
        self.queue: asyncio.Queue[EventEnvelope] = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0

    def offer(self, envelope: EventEnvelope) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(envelope)

    async def get(self) -> EventEnvelope:
        return await self.queue.get()

    async def __aiter__(self) -> AsyncIterator[EventEnvelope]:
        while True:
            yield await self.queue.get()

    def close(self) -> None:
        self._broadcaster.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Broadcaster:
    """Fan-out registry. Publishing never blocks and never fails the caller."""

    def __init__(self, *, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscribers: list[Subscription] = []
        self._history: list[EventEnvelope] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def history(self) -> list[EventEnvelope]:
        """Most recent events, bounded by the queue size."""
        return list(self._history)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self._queue_size)
        self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def publish(self, event: BroadcastEvent) -> EventEnvelope:
        envelope = EventEnvelope(kind=event.kind, payload=event.payload())
        self._history.append(envelope)
        if len(self._history) > self._queue_size:
            del self._history[0]
        for subscription in list(self._subscribers):
            subscription.offer(envelope)
        logger.debug(
            "Broadcast event published",
            event=envelope.kind.value,
            subscribers=len(self._subscribers),
        )
        return envelope


__all__ = [
    "BroadcastEvent",
    "Broadcaster",
    "EventEnvelope",
    "EventKind",
    "FreeWashExpired",
    "NFTUpdated",
    "Subscription",
    "TierChanged",
    "TransactionRecorded",
]
