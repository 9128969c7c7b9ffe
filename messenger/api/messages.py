"""FastAPI routes for the REST/long-poll messaging profile."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from messenger.api.deps import get_router
from messenger.domain.chat import schemas
from messenger.domain.chat.models import Message, utcnow
from messenger.domain.chat.router import FanoutRouter
from messenger.domain.errors import MessengerError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["messages"])

_DISCONNECT_CHECK_INTERVAL = 1.0


def _as_http_error(exc: Exception) -> HTTPException:
	if isinstance(exc, MessengerError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _parse_since(value: Optional[str]) -> Optional[datetime]:
	if value is None or not value.strip():
		return None
	try:
		parsed = datetime.fromisoformat(value.strip())
	except ValueError as exc:
		raise ValidationError("Invalid since timestamp") from exc
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


def _envelope(messages: List[Message], since: Optional[datetime]) -> dict:
	if messages:
		marker = messages[-1].timestamp
	else:
		marker = since or utcnow()
	return {
		"messages": [message.to_dict() for message in messages],
		"timestamp": marker.isoformat(),
	}


def _open_conversation(chat: FanoutRouter, conversation_id: str) -> str:
	conversation = chat.conversations.get_or_fail(conversation_id)
	chat.messages.open(conversation.id)
	return conversation.id


async def _wait_for_disconnect(request: Request) -> None:
	while True:
		await asyncio.sleep(_DISCONNECT_CHECK_INTERVAL)
		if await request.is_disconnected():
			return


@router.get("/messages/{conversation_id}")
async def list_messages_endpoint(
	conversation_id: str,
	since: Optional[str] = Query(default=None),
	chat: FanoutRouter = Depends(get_router),
) -> dict:
	try:
		marker = _parse_since(since)
		key = _open_conversation(chat, conversation_id)
		messages = chat.messages.since(key, marker)
	except MessengerError as exc:
		raise _as_http_error(exc) from exc
	return _envelope(messages, marker)


@router.post("/messages/{conversation_id}")
async def post_message_endpoint(
	conversation_id: str,
	payload: Optional[schemas.PostMessageRequest] = None,
	chat: FanoutRouter = Depends(get_router),
) -> dict:
	body = payload or schemas.PostMessageRequest()
	missing = body.missing_fields()
	try:
		if missing:
			raise ValidationError(f"Missing required fields: {', '.join(missing)}")
		message = await chat.post_message(conversation_id, body.userId, body.username, body.text)
	except MessengerError as exc:
		raise _as_http_error(exc) from exc
	logger.info("rest_message_posted", extra={"conversation_id": conversation_id, "user_id": body.userId})
	return {"success": True, "message": message.to_dict()}


@router.get("/users")
async def list_users_endpoint(chat: FanoutRouter = Depends(get_router)) -> dict:
	users = chat.sessions.online_users()
	return {
		"users": [user.to_dict() for user in users],
		"timestamp": utcnow().isoformat(),
	}


@router.get("/poll/{conversation_id}")
async def poll_endpoint(
	conversation_id: str,
	request: Request,
	since: Optional[str] = Query(default=None),
	chat: FanoutRouter = Depends(get_router),
) -> dict:
	try:
		marker = _parse_since(since)
		key = _open_conversation(chat, conversation_id)
	except MessengerError as exc:
		raise _as_http_error(exc) from exc

	poll_task = asyncio.create_task(chat.bridge.poll(key, marker))
	watch_task = asyncio.create_task(_wait_for_disconnect(request))
	try:
		await asyncio.wait({poll_task, watch_task}, return_when=asyncio.FIRST_COMPLETED)
	finally:
		for task in (poll_task, watch_task):
			if not task.done():
				task.cancel()
		await asyncio.gather(poll_task, watch_task, return_exceptions=True)

	if poll_task.cancelled():
		# client went away; nobody reads this body
		logger.info("longpoll_client_gone", extra={"conversation_id": key})
		return _envelope([], marker)
	return _envelope(poll_task.result(), marker)
