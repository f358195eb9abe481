"""Worker that notices free-wash coupons passing their expiry."""

from __future__ import annotations

import asyncio
from typing import Dict

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agowash_api.core.settings import settings
from agowash_api.models import User
from agowash_api.services.broadcast import Broadcaster, FreeWashExpired
from agowash_api.services.ledger import FreeWashCoupon, LedgerGateway
from agowash_api.services.loyalty import is_active, now_seconds
from agowash_api.services.notifications import NotificationService

MAX_PAGES = 100


class FreeWashExpiryWatcher:
    """Polls the ledger's active coupons and reports each expiry once.

    A coupon that drops out of the active list before its expiry time was
    used, not expired, and is forgotten without a notification.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        notifier: NotificationService,
        broadcaster: Broadcaster,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        interval_seconds: int | None = None,
        page_size: int | None = None,
    ) -> None:
        self._gateway = gateway
        self._notifier = notifier
        self._broadcaster = broadcaster
        self._session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.free_wash_watcher_interval_seconds
        self._page_size = page_size or settings.free_wash_watcher_page_size
        self._tracked: dict[str, int] = {}
        self._notified: dict[str, int] = {}
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.is_running: bool = False

    @property
    def notified_addresses(self) -> set[str]:
        return set(self._notified)

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        self.is_running = True
        logger.info(
            "Free wash expiry watcher started",
            interval_seconds=self.interval_seconds,
            page_size=self._page_size,
        )

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self.is_running = False
        logger.info("Free wash expiry watcher stopped")

    async def _active_coupons(self) -> dict[str, int]:
        coupons: dict[str, int] = {}
        for page in range(1, MAX_PAGES + 1):
            entries = await self._gateway.read_active_free_wash_users(page, self._page_size)
            for entry in entries:
                coupons[entry.address] = entry.expiry_time
            if len(entries) < self._page_size:
                break
        return coupons

    async def run_once(self, *, now: int | None = None) -> Dict[str, int]:
        current = now_seconds() if now is None else now
        listed = await self._active_coupons()

        expired: dict[str, int] = {}
        still_active: dict[str, int] = {}
        for address, expiry_time in listed.items():
            coupon = FreeWashCoupon(available=True, used=False, expiry_time=expiry_time)
            if is_active(coupon, current):
                still_active[address] = expiry_time
            else:
                expired[address] = expiry_time
        for address, expiry_time in self._tracked.items():
            if address not in listed and expiry_time <= current:
                expired[address] = expiry_time

        notified = 0
        for address, expiry_time in expired.items():
            if self._notified.get(address) == expiry_time:
                continue
            await self._report_expiry(address, expiry_time)
            self._notified[address] = expiry_time
            notified += 1

        # Only coupons the ledger still lists can be reported again; a new expiry
        # or a dropped entry ends the dedupe record.
        self._notified = {
            address: expiry_time
            for address, expiry_time in self._notified.items()
            if listed.get(address) == expiry_time
        }
        self._tracked = still_active
        summary = {"active": len(still_active), "expired": len(expired), "notified": notified}
        logger.info("Free wash expiry sweep completed", **summary)
        return summary

    async def _report_expiry(self, address: str, expiry_time: int) -> None:
        async with self._session_factory() as session:
            result = await session.execute(select(User.email).where(User.user_address == address))
            email = result.scalar_one_or_none()
        self._broadcaster.publish(FreeWashExpired(address=address, expiry_time=expiry_time))
        try:
            await self._notifier.notify_free_wash_expired(email)
        except Exception:
            logger.exception("Free wash expiry notification failed", category="notification", address=address)

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as exc:
                logger.exception("Free wash expiry iteration failed", error=str(exc))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue


__all__ = ["FreeWashExpiryWatcher"]
