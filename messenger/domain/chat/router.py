"""Fanout router: the per-connection chat protocol state machine.

Every client intent arrives through :meth:`FanoutRouter.dispatch`. The
router validates it against the registries it owns, mutates state, and
hands the resulting events to an :class:`EventSink` addressed by
connection id. Broadcast groups are tracked in :class:`RoomMembership`, so
none of this depends on a live transport.

Handlers run to completion between awaits on a single event loop, which
gives a total order of ``message:new`` per conversation without locks.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from messenger.domain.chat import policy, schemas
from messenger.domain.chat.conversations import ConversationRegistry
from messenger.domain.chat.longpoll import LongPollBridge
from messenger.domain.chat.models import (
	PUBLIC_CONVERSATION_ID,
	Conversation,
	ConversationKey,
	Message,
	new_id,
	utcnow,
)
from messenger.domain.chat.rooms import RoomMembership
from messenger.domain.chat.store import MessageStore
from messenger.domain.errors import InvalidCredentials, MessengerError, PayloadError, WrongPassword
from messenger.domain.identity import CredentialStore, SessionRegistry, User
from messenger.obs import metrics as obs_metrics
from messenger.settings import settings

logger = logging.getLogger(__name__)


class EventSink(Protocol):
	async def deliver(self, connection_id: str, event: str, payload: Any) -> None:
		...


class _DetachedSink:
	"""Sink used until a transport attaches; drops every event."""

	async def deliver(self, connection_id: str, event: str, payload: Any) -> None:
		return None


class FanoutRouter:
	def __init__(
		self,
		*,
		credentials: CredentialStore | None = None,
		sessions: SessionRegistry | None = None,
		conversations: ConversationRegistry | None = None,
		messages: MessageStore | None = None,
		rooms: RoomMembership | None = None,
		bridge: LongPollBridge | None = None,
		sink: EventSink | None = None,
		require_authentication: bool | None = None,
	) -> None:
		self.credentials = credentials or CredentialStore()
		self.sessions = sessions or SessionRegistry()
		self.conversations = conversations or ConversationRegistry()
		self.messages = messages or MessageStore()
		self.rooms = rooms or RoomMembership()
		self.bridge = bridge or LongPollBridge(self.messages)
		self._sink: EventSink = sink or _DetachedSink()
		self._require_authentication = require_authentication
		self.messages.open(PUBLIC_CONVERSATION_ID)
		self._handlers: Dict[type, Callable[[str, Any], Awaitable[None]]] = {
			schemas.AuthenticateIntent: self._authenticate,
			schemas.ChangePasswordIntent: self._change_password,
			schemas.JoinIntent: self._join,
			schemas.JoinByInviteIntent: self._join_by_invite,
			schemas.CreateConversationIntent: self._create_conversation,
			schemas.SendIntent: self._send,
			schemas.PrivateMessageIntent: self._send_private,
			schemas.ClearIntent: self._clear,
			schemas.ListConversationsIntent: self._list_conversations,
			schemas.LogoutIntent: self._logout,
		}

	@property
	def require_authentication(self) -> bool:
		if self._require_authentication is None:
			return settings.require_authentication
		return self._require_authentication

	def attach(self, sink: EventSink) -> None:
		self._sink = sink

	async def dispatch(self, connection_id: str, event: str, payload: Any) -> None:
		"""Run one client intent; recoverable errors go back to the caller only."""
		try:
			intent = schemas.parse_intent(event, payload)
		except PayloadError as exc:
			obs_metrics.inc_intent(event, "rejected")
			logger.warning("socket_payload_rejected", extra={"event": event, "sid": connection_id})
			await self._emit(connection_id, "error", {"message": exc.detail})
			return
		handler = self._handlers[type(intent)]
		try:
			await handler(connection_id, intent)
		except MessengerError as exc:
			obs_metrics.inc_intent(event, exc.code)
			logger.info("socket_intent_refused", extra={"event": event, "sid": connection_id, "code": exc.code})
			await self._emit(connection_id, "error", {"message": exc.detail})
			return
		obs_metrics.inc_intent(event, "ok")

	async def disconnect(self, connection_id: str) -> None:
		"""Transport-level disconnect: drop rooms and session, refresh presence.

		Membership is kept, so the user shows up again in participant lists
		once a new connection binds the same id.
		"""
		self.rooms.drop(connection_id)
		user = self.sessions.unbind(connection_id)
		if user is None:
			return
		for conversation in self.conversations.list_joined_by(user.id):
			await self._broadcast_participants(conversation.id)

	async def post_message(self, conversation_id: str, user_id: str, username: str, text: str) -> Message:
		"""REST equivalent of ``message:send``; follows the same fanout path."""
		conversation = self.conversations.get_or_fail(conversation_id)
		self.messages.open(conversation.id)
		message = Message(
			id=new_id(),
			conversation_id=conversation.id,
			user_id=user_id,
			username=username,
			content=text,
			type="text",
			timestamp=utcnow(),
		)
		await self._publish(conversation.id, message)
		return message

	# Intent handlers

	async def _authenticate(self, connection_id: str, intent: schemas.AuthenticateIntent) -> None:
		current = self.sessions.lookup_by_connection(connection_id)
		if current is not None and current.is_authenticated:
			await self._emit(connection_id, "auth:failed", {"message": "Already authenticated"})
			return
		try:
			if intent.is_new_user:
				user_id = self.credentials.register(intent.username, intent.password)
			elif self.credentials.verify(intent.username, intent.password):
				user_id = self.credentials.user_id_for(intent.username)
			else:
				raise WrongPassword()
		except InvalidCredentials as exc:
			logger.info("auth_failed", extra={"sid": connection_id, "username": intent.username, "reason": exc.detail})
			await self._emit(connection_id, "auth:failed", {"message": exc.detail})
			return
		profile = intent.user or schemas.UserPayload()
		if profile.id and profile.id != user_id:
			# identity comes from the credential record only
			logger.warning("auth_client_id_ignored", extra={"sid": connection_id, "user_id": user_id})
		user = User(
			id=user_id,
			username=intent.username,
			email=profile.email,
			is_authenticated=True,
		)
		if current is not None:
			self.sessions.unbind(connection_id)
		self.sessions.bind(connection_id, user)
		logger.info("auth_succeeded", extra={"sid": connection_id, "user_id": user.id, "new_user": intent.is_new_user})
		await self._emit(connection_id, "auth:success", {"user": user.to_dict()})

	async def _change_password(self, connection_id: str, intent: schemas.ChangePasswordIntent) -> None:
		user = policy.ensure_session(self.sessions.lookup_by_connection(connection_id), require_authentication=True)
		try:
			self.credentials.change_password(user.username, intent.current_password, intent.new_password)
		except InvalidCredentials as exc:
			await self._emit(connection_id, "password:change-failed", {"message": exc.detail})
			return
		await self._emit(connection_id, "password:changed", {})

	async def _join(self, connection_id: str, intent: schemas.JoinIntent) -> None:
		user = self._joining_user(connection_id, intent.user)
		if user is None:
			return
		conversation = self.conversations.get_or_fail(intent.conversation_id)
		policy.ensure_can_view(conversation, user)
		await self._enter(connection_id, user, conversation)

	async def _join_by_invite(self, connection_id: str, intent: schemas.JoinByInviteIntent) -> None:
		user = self._joining_user(connection_id, intent.user)
		if user is None:
			return
		conversation = self.conversations.find_by_invite_code(intent.invite_code)
		await self._enter(connection_id, user, conversation)

	async def _create_conversation(self, connection_id: str, intent: schemas.CreateConversationIntent) -> None:
		user = self._session_user(connection_id)
		if user is None:
			return
		conversation = self.conversations.create(intent.name, intent.type, user.id)
		self.messages.open(conversation.id)
		await self._emit(connection_id, "conversation:created", conversation.to_dict())

	async def _list_conversations(self, connection_id: str, intent: schemas.ListConversationsIntent) -> None:
		user = self._session_user(connection_id)
		if user is None:
			return
		visible = self.conversations.list_visible_to(user.id)
		await self._emit(connection_id, "conversations:list", [conversation.to_dict() for conversation in visible])

	async def _send(self, connection_id: str, intent: schemas.SendIntent) -> None:
		user = self._session_user(connection_id)
		if user is None:
			return
		conversation = self.conversations.get(intent.conversation_id)
		if conversation is None or not self.messages.has(conversation.id):
			return
		if not conversation.has_participant(user.id):
			logger.debug("send_dropped_not_participant", extra={"sid": connection_id, "conversation_id": conversation.id})
			return
		message = Message(
			id=new_id(),
			conversation_id=conversation.id,
			user_id=user.id,
			username=user.username,
			content=intent.content,
			type=intent.type,
			timestamp=utcnow(),
		)
		await self._publish(conversation.id, message)

	async def _send_private(self, connection_id: str, intent: schemas.PrivateMessageIntent) -> None:
		sender = self._session_user(connection_id)
		if sender is None:
			return
		policy.ensure_not_self(sender.id, intent.recipient_id)
		key = ConversationKey.from_participants(sender.id, intent.recipient_id)
		message = Message(
			id=new_id(),
			conversation_id=key.conversation_id,
			user_id=sender.id,
			username=sender.username,
			content=intent.content,
			type="private",
			timestamp=utcnow(),
			recipient_id=intent.recipient_id,
		)
		self.messages.append_private(key.conversation_id, message)
		obs_metrics.inc_private_message()
		payload = message.to_dict()
		await self._emit(connection_id, "message:private:new", payload)
		recipient_connection = self.sessions.lookup_connection_for(intent.recipient_id)
		if recipient_connection is not None and recipient_connection != connection_id:
			await self._emit(recipient_connection, "message:private:new", payload)

	async def _clear(self, connection_id: str, intent: schemas.ClearIntent) -> None:
		user = self._session_user(connection_id)
		if user is None:
			return
		conversation = self.conversations.get(intent.conversation_id)
		if conversation is None or not self.messages.has(conversation.id):
			return
		policy.ensure_can_clear(conversation, user)
		self.messages.clear(conversation.id)
		notice = Message.system(conversation.id, f"Chat cleared by {user.username}")
		await self._broadcast(conversation.id, "conversation:cleared", {"conversationId": conversation.id})
		await self._publish(conversation.id, notice)

	async def _logout(self, connection_id: str, intent: schemas.LogoutIntent) -> None:
		user = self.sessions.lookup_by_connection(connection_id)
		if user is None:
			return
		self.rooms.drop(connection_id)
		for conversation in self.conversations.list_joined_by(user.id):
			self.conversations.remove_participant(conversation.id, user.id)
			if self.messages.has(conversation.id):
				await self._publish(conversation.id, Message.system(conversation.id, f"{user.username} left the conversation"))
			await self._broadcast_participants(conversation.id)
		self.sessions.unbind(connection_id)
		logger.info("user_logged_out", extra={"sid": connection_id, "user_id": user.id})

	# Helpers

	def _session_user(self, connection_id: str) -> Optional[User]:
		user = self.sessions.lookup_by_connection(connection_id)
		if user is None and not self.require_authentication:
			return None
		return policy.ensure_session(user, require_authentication=self.require_authentication)

	def _joining_user(self, connection_id: str, profile: Optional[schemas.UserPayload]) -> Optional[User]:
		if (
			not self.require_authentication
			and self.sessions.lookup_by_connection(connection_id) is None
			and profile is not None
			and profile.id
			and profile.username
		):
			self.sessions.bind(connection_id, User(id=profile.id, username=profile.username, email=profile.email))
		return self._session_user(connection_id)

	async def _enter(self, connection_id: str, user: User, conversation: Conversation) -> None:
		self.conversations.add_participant(conversation.id, user.id)
		self.rooms.subscribe(conversation.id, connection_id)
		self.messages.open(conversation.id)
		snapshot = self.messages.history(conversation.id, settings.history_snapshot_limit)
		await self._emit(
			connection_id,
			"conversation:history",
			{"conversation": conversation.to_dict(), "messages": [message.to_dict() for message in snapshot]},
		)
		await self._broadcast_participants(conversation.id)
		await self._publish(conversation.id, Message.system(conversation.id, f"{user.username} joined the conversation"))
		logger.info("conversation_joined", extra={"sid": connection_id, "user_id": user.id, "conversation_id": conversation.id})

	async def _publish(self, conversation_id: str, message: Message) -> None:
		self.messages.append(conversation_id, message)
		await self._broadcast(conversation_id, "message:new", message.to_dict())
		self.bridge.notify(conversation_id, message)

	async def _broadcast_participants(self, conversation_id: str) -> None:
		users = self.conversations.resolve_participant_users(conversation_id, self.sessions)
		await self._broadcast(conversation_id, "conversation:participants", [user.to_dict() for user in users])

	async def _broadcast(self, conversation_id: str, event: str, payload: Any) -> None:
		for connection_id in self.rooms.members(conversation_id):
			await self._emit(connection_id, event, payload)

	async def _emit(self, connection_id: str, event: str, payload: Any) -> None:
		await self._sink.deliver(connection_id, event, payload)
