"""Conversation registry: metadata, invite codes and membership."""

from __future__ import annotations

import logging
import secrets
from typing import Dict, List, Optional, TYPE_CHECKING

from messenger.domain.chat.models import (
	PUBLIC_CONVERSATION_ID,
	SYSTEM_USER_ID,
	Conversation,
	new_id,
)
from messenger.domain.errors import NotFound
from messenger.obs import metrics as obs_metrics

if TYPE_CHECKING:  # pragma: no cover - typing only
	from messenger.domain.identity import SessionRegistry, User

logger = logging.getLogger(__name__)

INVITE_CODE_BYTES = 6  # 8 url-safe characters


class ConversationRegistry:
	"""Owns every Conversation for the lifetime of the process.

	The public conversation is created up front and is never removed.
	"""

	def __init__(self) -> None:
		self._conversations: Dict[str, Conversation] = {}
		self._by_invite: Dict[str, str] = {}
		self._conversations[PUBLIC_CONVERSATION_ID] = Conversation(
			id=PUBLIC_CONVERSATION_ID,
			name="General Chat",
			type="public",
			created_by=SYSTEM_USER_ID,
		)

	def __len__(self) -> int:
		return len(self._conversations)

	def get(self, conversation_id: str) -> Optional[Conversation]:
		return self._conversations.get(conversation_id)

	def get_or_fail(self, conversation_id: str) -> Conversation:
		conversation = self._conversations.get(conversation_id)
		if conversation is None:
			raise NotFound("Conversation not found")
		return conversation

	def create(self, name: str, type: str, creator_id: str) -> Conversation:
		conversation_id = new_id()
		while conversation_id in self._conversations:
			conversation_id = new_id()
		conversation = Conversation(
			id=conversation_id,
			name=name,
			type=type,
			created_by=creator_id,
			participants={creator_id: None},
		)
		if conversation.is_private():
			conversation.invite_code = self._new_invite_code()
			self._by_invite[conversation.invite_code] = conversation.id
		self._conversations[conversation.id] = conversation
		obs_metrics.inc_conversation_created(type)
		logger.info(
			"conversation_created",
			extra={"conversation_id": conversation.id, "conversation_type": type, "user_id": creator_id},
		)
		return conversation

	def find_by_invite_code(self, code: str) -> Conversation:
		conversation_id = self._by_invite.get(code) if code else None
		conversation = self._conversations.get(conversation_id) if conversation_id else None
		if conversation is None or not conversation.is_active or not conversation.is_private():
			raise NotFound("Invalid invite code")
		return conversation

	def add_participant(self, conversation_id: str, user_id: str) -> Conversation:
		conversation = self.get_or_fail(conversation_id)
		conversation.participants.setdefault(user_id, None)
		return conversation

	def remove_participant(self, conversation_id: str, user_id: str) -> None:
		conversation = self._conversations.get(conversation_id)
		if conversation is not None:
			conversation.participants.pop(user_id, None)

	def list_visible_to(self, user_id: str) -> List[Conversation]:
		return [
			conversation
			for conversation in self._conversations.values()
			if not conversation.is_private() or conversation.has_participant(user_id)
		]

	def list_joined_by(self, user_id: str) -> List[Conversation]:
		return [conversation for conversation in self._conversations.values() if conversation.has_participant(user_id)]

	def resolve_participant_users(self, conversation_id: str, sessions: "SessionRegistry") -> List["User"]:
		"""Map participant ids to live users; offline participants are omitted."""
		conversation = self.get_or_fail(conversation_id)
		users = (sessions.lookup_user(user_id) for user_id in conversation.participants)
		return [user for user in users if user is not None]

	def _new_invite_code(self) -> str:
		code = secrets.token_urlsafe(INVITE_CODE_BYTES)
		while code in self._by_invite:
			code = secrets.token_urlsafe(INVITE_CODE_BYTES)
		return code
