import asyncio

import pytest

from messenger.domain.chat.models import PUBLIC_CONVERSATION_ID, utcnow
from messenger.settings import settings


async def _wait_until_parked(chat_router) -> None:
	for _ in range(200):
		if chat_router.bridge.parked(PUBLIC_CONVERSATION_ID):
			return
		await asyncio.sleep(0.005)
	raise AssertionError("poll never parked")


@pytest.mark.asyncio
async def test_poll_times_out_with_empty_list(api_client, chat_router):
	since = utcnow().isoformat()
	response = await api_client.get(f"/api/poll/{PUBLIC_CONVERSATION_ID}", params={"since": since})
	assert response.status_code == 200
	assert response.json() == {"messages": [], "timestamp": since}
	assert chat_router.bridge.parked() == 0


@pytest.mark.asyncio
async def test_poll_resolves_with_posted_message(api_client, chat_router):
	settings.longpoll_timeout_seconds = 5.0
	since = utcnow().isoformat()
	poll = asyncio.create_task(
		api_client.get(f"/api/poll/{PUBLIC_CONVERSATION_ID}", params={"since": since})
	)
	await _wait_until_parked(chat_router)

	posted = await api_client.post(
		f"/api/messages/{PUBLIC_CONVERSATION_ID}",
		json={"userId": "u-1", "username": "alice", "text": "wake up"},
	)
	assert posted.status_code == 200

	response = await asyncio.wait_for(poll, timeout=2.0)
	body = response.json()
	assert [message["content"] for message in body["messages"]] == ["wake up"]
	assert body["timestamp"] == posted.json()["message"]["timestamp"]


@pytest.mark.asyncio
async def test_poll_returns_backlog_immediately(api_client, chat_router):
	settings.longpoll_timeout_seconds = 5.0
	since = utcnow().isoformat()
	await chat_router.post_message(PUBLIC_CONVERSATION_ID, "u-1", "alice", "early")
	response = await asyncio.wait_for(
		api_client.get(f"/api/poll/{PUBLIC_CONVERSATION_ID}", params={"since": since}),
		timeout=2.0,
	)
	assert [message["content"] for message in response.json()["messages"]] == ["early"]


@pytest.mark.asyncio
async def test_poll_unknown_conversation(api_client):
	response = await api_client.get("/api/poll/missing")
	assert response.status_code == 404
