import asyncio
from datetime import timedelta

import pytest

from messenger.domain.chat import LongPollBridge, MessageStore
from messenger.domain.chat.models import Message, utcnow


def _bridge(timeout: float = 0.2) -> tuple[MessageStore, LongPollBridge]:
	store = MessageStore()
	store.open("c-1")
	return store, LongPollBridge(store, timeout_seconds=timeout)


async def _wait_until_parked(bridge: LongPollBridge, conversation_id: str) -> None:
	for _ in range(100):
		if bridge.parked(conversation_id):
			return
		await asyncio.sleep(0.005)
	raise AssertionError("poll never parked")


@pytest.mark.asyncio
async def test_poll_returns_backlog_immediately():
	store, bridge = _bridge()
	message = store.append("c-1", Message.system("c-1", "hello"))
	result = await bridge.poll("c-1", message.timestamp - timedelta(seconds=1))
	assert result == [message]
	assert bridge.parked() == 0


@pytest.mark.asyncio
async def test_poll_times_out_with_empty_list():
	_, bridge = _bridge(timeout=0.05)
	assert await bridge.poll("c-1", utcnow()) == []
	assert bridge.parked("c-1") == 0


@pytest.mark.asyncio
async def test_notify_resolves_parked_waiters_with_single_message():
	store, bridge = _bridge(timeout=2.0)
	since = utcnow()
	first = asyncio.create_task(bridge.poll("c-1", since))
	second = asyncio.create_task(bridge.poll("c-1", since))
	await _wait_until_parked(bridge, "c-1")
	await asyncio.sleep(0)
	assert bridge.parked("c-1") == 2

	trigger = store.append("c-1", Message.system("c-1", "one"))
	assert bridge.notify("c-1", trigger) == 2
	store.append("c-1", Message.system("c-1", "two"))

	assert await first == [trigger]
	assert await second == [trigger]
	assert bridge.parked() == 0


@pytest.mark.asyncio
async def test_notify_other_conversation_leaves_waiter_parked():
	store, bridge = _bridge(timeout=0.1)
	store.open("c-2")
	task = asyncio.create_task(bridge.poll("c-1", utcnow()))
	await _wait_until_parked(bridge, "c-1")
	assert bridge.notify("c-2", Message.system("c-2", "elsewhere")) == 0
	assert await task == []


@pytest.mark.asyncio
async def test_cancelled_poll_is_discarded():
	_, bridge = _bridge(timeout=2.0)
	task = asyncio.create_task(bridge.poll("c-1", utcnow()))
	await _wait_until_parked(bridge, "c-1")
	task.cancel()
	with pytest.raises(asyncio.CancelledError):
		await task
	assert bridge.parked() == 0


@pytest.mark.asyncio
async def test_close_releases_everyone():
	_, bridge = _bridge(timeout=2.0)
	task = asyncio.create_task(bridge.poll("c-1", utcnow()))
	await _wait_until_parked(bridge, "c-1")
	bridge.close()
	assert await task == []
