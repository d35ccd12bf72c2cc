"""
Test the network saga reactions and the retry wrapper.
"""

import pytest

from evm_crawler.framework import EventPublisher
from evm_crawler.indexer.saga import NetworkSaga, execute_with_retry
from evm_crawler.network import (
    NetworkInitializedEvent,
    NetworkBlocksAddedEvent,
    NetworkReorganizedEvent,
    NetworkClearedEvent,
)

from fakes import RecordingCommandFactory, RecordingQueue, make_chain


def registered_saga(settings, queue=None):
    publisher = EventPublisher()
    queue = queue or RecordingQueue()
    commands = RecordingCommandFactory()
    NetworkSaga(queue, commands, settings).register(publisher)
    return publisher, queue, commands


@pytest.mark.asyncio
async def test_initialized_starts_queue(settings):
    """Test initialization starts the queue after the resumed height."""
    publisher, queue, _ = registered_saga(settings)

    await publisher.publish(NetworkInitializedEvent(aggregate_id="network", request_id="r", block_height=41))

    assert queue.calls == [("start", 41)]


@pytest.mark.asyncio
async def test_blocks_added_confirms_batch(settings):
    """Test a committed batch is confirmed by its hashes."""
    publisher, queue, _ = registered_saga(settings)
    blocks = make_chain(0, 1)

    await publisher.publish(NetworkBlocksAddedEvent(
        aggregate_id="network", request_id="r", block_height=1, payload={"blocks": blocks}
    ))

    assert queue.calls == [("confirm", [b["hash"] for b in blocks])]


@pytest.mark.asyncio
async def test_reorganized_rewinds_queue(settings):
    """Test a reorganisation moves the queue back to the fork point."""
    publisher, queue, _ = registered_saga(settings)

    await publisher.publish(NetworkReorganizedEvent(aggregate_id="network", request_id="r", block_height=7))

    assert queue.calls == [("reorganize", 7)]


@pytest.mark.asyncio
async def test_cleared_reinitializes(settings):
    """Test clearing the data triggers a fresh initialization."""
    publisher, queue, commands = registered_saga(settings)

    await publisher.publish(NetworkClearedEvent(aggregate_id="network", request_id="r", block_height=-1))

    assert len(commands.init_calls) == 1
    assert commands.init_calls[0]
    assert queue.calls == []


@pytest.mark.asyncio
async def test_transient_failure_is_retried(settings):
    """Test a failing reaction succeeds on a later attempt."""
    publisher, queue, _ = registered_saga(settings, RecordingQueue(failures=2))

    await publisher.publish(NetworkReorganizedEvent(aggregate_id="network", request_id="r", block_height=3))

    assert queue.calls == [("reorganize", 3)]


@pytest.mark.asyncio
async def test_exhausted_retries_drop_event(settings):
    """Test the event is dropped without raising after the last attempt."""
    publisher, queue, _ = registered_saga(settings, RecordingQueue(failures=10))

    await publisher.publish(NetworkReorganizedEvent(aggregate_id="network", request_id="r", block_height=3))

    assert queue.calls == []
    assert queue.failures == 10 - settings.saga_max_retries


@pytest.mark.asyncio
async def test_execute_with_retry_backoff(monkeypatch):
    """Test the wait time doubles between attempts."""
    waits = []

    async def fake_sleep(delay):
        waits.append(delay)

    monkeypatch.setattr("evm_crawler.indexer.saga.asyncio.sleep", fake_sleep)

    attempts = []

    async def command(event):
        attempts.append(event)
        raise RuntimeError("boom")

    handler = execute_with_retry(command, max_retries=4, retry_delay=0.5)
    await handler(NetworkInitializedEvent(aggregate_id="network", request_id="r", block_height=0))

    assert len(attempts) == 4
    assert waits == [0.5, 1.0, 2.0]
