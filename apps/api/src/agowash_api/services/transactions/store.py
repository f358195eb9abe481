"""Persistence for users' wash transactions within a request's unit of work."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agowash_api.models import User, WashTransaction, WashTransactionStatus


class TransactionStore:
    """Store operations used by the transaction orchestrator and admin reports.

    ``create_pending_transaction`` only flushes: the record stays inside the
    session's open transaction until ``confirm_transaction`` commits it or
    ``delete_pending_transaction`` rolls it back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_user_by_address(self, address: str) -> User | None:
        stmt = select(User).where(User.user_address == address.lower())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_pending_transaction(
        self,
        *,
        address: str,
        service_date: str,
        vehicle_type: str,
        service_type: str,
        price: int,
    ) -> WashTransaction:
        record = WashTransaction(
            user_address=address.lower(),
            service_date=service_date,
            vehicle_type=vehicle_type,
            service_type=service_type,
            price=price,
            status=WashTransactionStatus.PENDING,
            recorded_on_chain=False,
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(record)
        await self._session.flush()
        return record

    async def confirm_transaction(self, record: WashTransaction, tx_ref: str) -> WashTransaction:
        record.status = WashTransactionStatus.CONFIRMED
        record.recorded_on_chain = True
        record.chain_tx_ref = tx_ref
        record.confirmed_at = datetime.now(timezone.utc)
        await self._session.commit()
        return record

    async def delete_pending_transaction(self, record: WashTransaction | None = None) -> None:
        await self._session.rollback()

    async def transactions_for_user(self, address: str, service_date: str | None = None) -> list[WashTransaction]:
        stmt = select(WashTransaction).where(WashTransaction.user_address == address.lower())
        if service_date:
            stmt = stmt.where(WashTransaction.service_date == service_date)
        result = await self._session.execute(stmt.order_by(WashTransaction.created_at.desc()))
        return list(result.scalars())

    async def transactions_by_date(self, service_date: str) -> list[dict[str, Any]]:
        stmt = (
            select(WashTransaction, User.name)
            .outerjoin(User, User.user_address == WashTransaction.user_address)
            .where(
                WashTransaction.service_date == service_date,
                WashTransaction.status == WashTransactionStatus.CONFIRMED,
            )
            .order_by(WashTransaction.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [
            {
                "userAddress": record.user_address,
                "userName": name or "Unknown",
                "date": record.service_date,
                "vehicleType": record.vehicle_type,
                "serviceType": record.service_type,
                "price": record.price,
                "txRef": record.chain_tx_ref,
                "createdAt": record.created_at.isoformat() if record.created_at else None,
            }
            for record, name in result.all()
        ]

    async def analytics(self, *, now: datetime | None = None, days: int = 30) -> dict[str, Any]:
        """Counts and revenue per vehicle/service type, plus a daily series."""

        by_type_stmt = (
            select(
                WashTransaction.vehicle_type,
                WashTransaction.service_type,
                func.count(WashTransaction.id),
                func.coalesce(func.sum(WashTransaction.price), 0),
            )
            .where(WashTransaction.status == WashTransactionStatus.CONFIRMED)
            .group_by(WashTransaction.vehicle_type, WashTransaction.service_type)
            .order_by(func.count(WashTransaction.id).desc())
        )
        by_type = [
            {
                "vehicleType": vehicle_type,
                "serviceType": service_type,
                "count": int(count),
                "totalRevenue": int(revenue),
            }
            for vehicle_type, service_type, count, revenue in (await self._session.execute(by_type_stmt)).all()
        ]

        daily = await self._daily_series(now=now, days=days)
        return {
            "transactionsByType": by_type,
            "transactionsByDate": [
                {"date": day, "count": values["count"], "revenue": values["revenue"]}
                for day, values in daily
            ],
        }

    async def monitoring(self, *, now: datetime | None = None, days: int = 7) -> dict[str, Any]:
        daily = await self._daily_series(now=now, days=days)
        return {"dailyTransactions": [{"date": day, "count": values["count"]} for day, values in daily]}

    async def delete_user_transactions(self, address: str) -> int:
        result = await self._session.execute(
            delete(WashTransaction).where(WashTransaction.user_address == address.lower())
        )
        return int(result.rowcount or 0)

    async def _daily_series(self, *, now: datetime | None, days: int) -> list[tuple[str, dict[str, int]]]:
        current = now or datetime.now(timezone.utc)
        cutoff = current - timedelta(days=days)
        stmt = select(WashTransaction.created_at, WashTransaction.price).where(
            WashTransaction.status == WashTransactionStatus.CONFIRMED,
            WashTransaction.created_at >= cutoff,
        )
        buckets: dict[str, dict[str, int]] = defaultdict(lambda: {"count": 0, "revenue": 0})
        for created_at, price in (await self._session.execute(stmt)).all():
            day = created_at.date().isoformat()
            buckets[day]["count"] += 1
            buckets[day]["revenue"] += int(price or 0)
        return sorted(buckets.items())


__all__ = ["TransactionStore"]
