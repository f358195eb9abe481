import asyncio

import pytest
from sqlalchemy import select

from agowash_api.core.errors import LedgerUnavailable, UserNotFound
from agowash_api.models import WashTransaction, WashTransactionStatus
from agowash_api.services.broadcast import EventKind
from agowash_api.services.loyalty import Tier, TransitionKind
from agowash_api.services.transactions import (
    OrchestrationState,
    TransactionOrchestrator,
    TransactionRequest,
)


def _request(address: str, **overrides) -> TransactionRequest:
    values = {
        "address": address,
        "service_date": "2026-10-18",
        "vehicle_type": "Motor Kecil",
        "service_type": "Reguler",
        "price": 18000,
    }
    values.update(overrides)
    return TransactionRequest(**values)


async def _stored_transactions(session_factory) -> list[WashTransaction]:
    async with session_factory() as session:
        result = await session.execute(select(WashTransaction))
        return list(result.scalars())


@pytest.mark.asyncio
async def test_successful_record_commits_confirmed_transaction(
    services, session_factory, create_member, chain, member_address
) -> None:
    await create_member()

    async with session_factory() as session:
        outcome = await services.orchestrator.record(session, _request(member_address.upper().replace("0X", "0x")))
    await services.tasks.drain(timeout=1.0)

    assert outcome.state is OrchestrationState.CHAIN_CONFIRMED
    assert outcome.points == 100
    assert outcome.tier is Tier.BRONZE
    assert outcome.transition.kind is TransitionKind.UNCHANGED
    stored = await _stored_transactions(session_factory)
    assert len(stored) == 1
    assert stored[0].status is WashTransactionStatus.CONFIRMED
    assert stored[0].recorded_on_chain is True
    assert stored[0].chain_tx_ref == outcome.tx_ref
    assert stored[0].user_address == member_address
    assert chain.call_count("recordTransaction") == 1


@pytest.mark.asyncio
async def test_unknown_member_is_rejected_without_side_effects(services, session_factory, chain) -> None:
    stranger = "0x9999999999999999999999999999999999999999"

    async with session_factory() as session:
        with pytest.raises(UserNotFound):
            await services.orchestrator.record(session, _request(stranger))

    assert await _stored_transactions(session_factory) == []
    assert chain.call_count("recordTransaction") == 0
    assert services.broadcaster.history == []


@pytest.mark.asyncio
async def test_chain_failure_rolls_back_local_record(
    services, session_factory, create_member, chain, member_address
) -> None:
    await create_member()
    chain.fail_operations.add("recordTransaction")

    async with session_factory() as session:
        with pytest.raises(LedgerUnavailable):
            await services.orchestrator.record(session, _request(member_address))
    await services.tasks.drain(timeout=1.0)

    assert await _stored_transactions(session_factory) == []
    assert services.notifier.sent_events == []
    assert services.broadcaster.history == []


@pytest.mark.asyncio
async def test_chain_timeout_rolls_back_and_reports_ledger_error(
    services, session_factory, create_member, chain, member_address
) -> None:
    await create_member()
    chain.delays["recordTransaction"] = 0.5
    orchestrator = TransactionOrchestrator(
        services.gateway,
        services.notifier,
        services.broadcaster,
        services.tasks,
        chain_timeout_seconds=0.05,
    )

    async with session_factory() as session:
        with pytest.raises(LedgerUnavailable) as excinfo:
            await orchestrator.record(session, _request(member_address))

    assert "timed out" in str(excinfo.value)
    assert await _stored_transactions(session_factory) == []


@pytest.mark.asyncio
async def test_cancelled_request_rolls_back(
    services, session_factory, create_member, chain, member_address
) -> None:
    await create_member()
    chain.delays["recordTransaction"] = 0.5

    async def run() -> None:
        async with session_factory() as session:
            await services.orchestrator.record(session, _request(member_address))

    task = asyncio.create_task(run())
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await _stored_transactions(session_factory) == []


@pytest.mark.asyncio
async def test_crossing_silver_threshold_notifies_and_broadcasts_once(
    services, session_factory, create_member, chain, member_address
) -> None:
    await create_member()
    chain.set_points(member_address, 950)
    chain.points_per_transaction = 60

    async with session_factory() as session:
        first = await services.orchestrator.record(session, _request(member_address))
    async with session_factory() as session:
        second = await services.orchestrator.record(session, _request(member_address))
    await services.tasks.drain(timeout=1.0)

    assert first.points == 1010
    assert first.tier is Tier.SILVER
    assert first.transition.kind is TransitionKind.UPGRADED
    assert second.points == 1070
    assert second.transition.kind is TransitionKind.UNCHANGED

    tier_emails = [event for event in services.notifier.sent_events if event.event_type == "tier_change"]
    assert len(tier_emails) == 1
    assert tier_emails[0].recipient == "ops@agowash.test"
    assert tier_emails[0].metadata == {
        "address": member_address,
        "points": 1010,
        "tier": "Silver",
        "direction": "upgraded",
    }

    kinds = [envelope.kind for envelope in services.broadcaster.history]
    assert kinds == [
        EventKind.TIER_UPGRADED,
        EventKind.TRANSACTION_RECORDED,
        EventKind.TRANSACTION_RECORDED,
    ]
    assert services.broadcaster.history[0].payload == {
        "address": member_address,
        "previousTier": "Bronze",
        "tier": "Silver",
        "points": 1010,
    }


@pytest.mark.asyncio
async def test_free_wash_email_sent_to_member_after_confirmation(
    services, session_factory, create_member, member_address
) -> None:
    await create_member(email="member@example.com")

    async with session_factory() as session:
        await services.orchestrator.record(session, _request(member_address))
    await services.tasks.drain(timeout=1.0)

    events = [event for event in services.notifier.sent_events if event.event_type == "free_wash_activated"]
    assert [event.recipient for event in events] == ["member@example.com"]
    assert events[0].metadata == {"date": "2026-10-18"}


@pytest.mark.asyncio
async def test_notification_failure_does_not_change_outcome(
    services, session_factory, create_member, member_address
) -> None:
    await create_member()

    class BrokenBackend:
        async def send_email(self, *args, **kwargs):
            raise ConnectionError("smtp unreachable")

    services.notifier._backend = BrokenBackend()

    async with session_factory() as session:
        outcome = await services.orchestrator.record(session, _request(member_address))
    await services.tasks.drain(timeout=1.0)

    assert outcome.state is OrchestrationState.CHAIN_CONFIRMED
    assert len(await _stored_transactions(session_factory)) == 1
    assert services.notifier.sent_events == []


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_change_outcome(
    services, session_factory, create_member, member_address, monkeypatch
) -> None:
    await create_member()

    def explode(event):
        raise RuntimeError("subscriber blew up")

    monkeypatch.setattr(services.broadcaster, "publish", explode)

    async with session_factory() as session:
        outcome = await services.orchestrator.record(session, _request(member_address))

    assert outcome.state is OrchestrationState.CHAIN_CONFIRMED


@pytest.mark.asyncio
async def test_auto_refresh_updates_nft_frame_on_tier_change(
    services, session_factory, create_member, chain, member_address
) -> None:
    await create_member()
    await chain.mint_loyalty_nft(member_address, "ipfs://bafyinitial")
    chain.set_points(member_address, 4990)
    orchestrator = TransactionOrchestrator(
        services.gateway,
        services.notifier,
        services.broadcaster,
        services.tasks,
        chain_timeout_seconds=1.0,
        nft_service=services.nft_service,
        auto_refresh_nft=True,
    )

    async with session_factory() as session:
        outcome = await orchestrator.record(session, _request(member_address))
    await services.tasks.drain(timeout=1.0)

    assert outcome.tier is Tier.GOLD
    assert chain.nfts[member_address]["tier"] == "Gold"
    assert chain.call_count("updateNFTMetadata") == 1
    assert services.tasks.failures == []


@pytest.mark.asyncio
async def test_slow_points_reads_do_not_hold_confirmed_transaction(
    services, session_factory, create_member, chain, member_address
) -> None:
    await create_member()
    chain.set_points(member_address, 950)
    chain.points_per_transaction = 60
    chain.delays["getUserPoints"] = 0.3
    orchestrator = TransactionOrchestrator(
        services.gateway,
        services.notifier,
        services.broadcaster,
        services.tasks,
        chain_timeout_seconds=0.05,
    )

    loop = asyncio.get_running_loop()
    started = loop.time()
    async with session_factory() as session:
        outcome = await orchestrator.record(session, _request(member_address))
    elapsed = loop.time() - started

    assert elapsed < 0.25
    assert outcome.state is OrchestrationState.CHAIN_CONFIRMED
    assert outcome.points is None
    assert outcome.as_response()["tier"] is None
    assert len(await _stored_transactions(session_factory)) == 1

    assert await services.tasks.drain(timeout=2.0)
    tier_emails = [event for event in services.notifier.sent_events if event.event_type == "tier_change"]
    assert [email.metadata["points"] for email in tier_emails] == [1010]
    assert tier_emails[0].metadata["tier"] == "Silver"
