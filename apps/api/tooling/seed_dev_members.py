"""Seed development loyalty members and the default price list."""

from __future__ import annotations

import asyncio
import os
from typing import TypedDict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from agowash_api.core.settings import settings
from agowash_api.models.user import User
from agowash_api.services.prices import PriceService


class SeedMember(TypedDict):
    user_address: str
    name: str
    motorbike_type: str
    date_of_birth: str
    email: str


DEV_MEMBERS: list[SeedMember] = [
    {
        "user_address": os.getenv("DEV_MEMBER_ADDRESS", "0x00000000000000000000000000000000000000a1").lower(),
        "name": "Member QA",
        "motorbike_type": "Honda Beat",
        "date_of_birth": "1995-04-12",
        "email": os.getenv("DEV_MEMBER_EMAIL", "member@agowash.dev").lower(),
    },
    {
        "user_address": os.getenv("DEV_ADMIN_ADDRESS", settings.chain_dev_owner_address).lower(),
        "name": "Admin QA",
        "motorbike_type": "Yamaha NMAX",
        "date_of_birth": "1990-01-01",
        "email": os.getenv("DEV_ADMIN_EMAIL", "admin@agowash.dev").lower(),
    },
]


async def seed_members(session: AsyncSession) -> None:
    for member in DEV_MEMBERS:
        with session.no_autoflush:
            existing = await session.execute(select(User).where(User.user_address == member["user_address"]))
        record = existing.scalar_one_or_none()

        if record:
            record.name = member["name"]
            record.email = member["email"]
        else:
            session.add(
                User(
                    **member,
                    photo_url=settings.default_photo_url,
                )
            )
    await session.commit()


async def main() -> None:
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        async with session_factory() as session:
            await seed_members(session)
            await PriceService(session).seed_defaults()
        print("Development members and prices ready ✅")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
