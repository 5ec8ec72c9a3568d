"""Concurrency tests for confirm_payment."""

import asyncio

import pytest

from conftest import TX_HASH
from socialpay.core.types import OutcomeStatus


@pytest.mark.asyncio
async def test_concurrent_confirms_submit_once(orchestrator, mock_ledger):
    """
    Two /confirm commands for the same initiator race.
    Exactly one may reach the ledger; the other must see no pending payment.
    """

    async def slow_submit(_signed):
        # Simulate broadcast latency so both confirms overlap
        await asyncio.sleep(0.05)
        return TX_HASH

    mock_ledger.pay_to_handle_with_signature.side_effect = slow_submit
    await orchestrator.request_payment(7, "bob", "@alice", "10")

    results = await asyncio.gather(
        orchestrator.confirm_payment(7),
        orchestrator.confirm_payment(7),
    )

    statuses = sorted(r.status.value for r in results)
    assert statuses == [OutcomeStatus.NO_PENDING_PAYMENT.value, OutcomeStatus.SETTLED.value]
    assert mock_ledger.pay_to_handle_with_signature.await_count == 1


@pytest.mark.asyncio
async def test_many_concurrent_confirms_settle_exactly_once(orchestrator, mock_ledger):
    await orchestrator.request_payment(7, "bob", "@alice", "10")

    results = await asyncio.gather(*(orchestrator.confirm_payment(7) for _ in range(10)))

    settled = [r for r in results if r.status == OutcomeStatus.SETTLED]
    assert len(settled) == 1
    assert mock_ledger.pay_to_handle_with_signature.await_count == 1


@pytest.mark.asyncio
async def test_different_initiators_do_not_block_each_other(orchestrator, mock_ledger):
    """
    Initiator A's submission only completes once B's submission has started.
    If confirms were serialized across initiators this would deadlock.
    """
    b_submitted = asyncio.Event()

    async def submit(signed):
        if signed.intent.handle == "alice":
            await b_submitted.wait()
            return "0x" + "aa" * 32
        b_submitted.set()
        return "0x" + "bb" * 32

    mock_ledger.pay_to_handle_with_signature.side_effect = submit
    await orchestrator.request_payment(1, "bob", "@alice", "1")
    await orchestrator.request_payment(2, "carol", "@dave", "2")

    results = await asyncio.wait_for(
        asyncio.gather(orchestrator.confirm_payment(1), orchestrator.confirm_payment(2)),
        timeout=5,
    )

    assert [r.status for r in results] == [OutcomeStatus.SETTLED, OutcomeStatus.SETTLED]
    assert mock_ledger.pay_to_handle_with_signature.await_count == 2
