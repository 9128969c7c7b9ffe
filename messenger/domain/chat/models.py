"""Domain models for conversations and messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

import ulid

PUBLIC_CONVERSATION_ID = "public"
SYSTEM_USER_ID = "system"
SYSTEM_USERNAME = "System"

ConversationType = str
MessageType = str


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def new_id() -> str:
	return ulid.new().str


@dataclass(slots=True)
class ConversationKey:
	"""Canonical representation of a 1:1 private thread."""

	user_a: str
	user_b: str

	@classmethod
	def from_participants(cls, user_one: str, user_two: str) -> "ConversationKey":
		ordered = tuple(sorted((str(user_one), str(user_two))))
		return cls(user_a=ordered[0], user_b=ordered[1])

	@property
	def conversation_id(self) -> str:
		return f"private_{self.user_a}_{self.user_b}"


@dataclass(slots=True)
class Conversation:
	id: str
	name: str
	type: ConversationType
	created_by: str
	created_at: datetime = field(default_factory=utcnow)
	# dict keys double as an insertion-ordered set
	participants: Dict[str, None] = field(default_factory=dict)
	is_active: bool = True
	invite_code: Optional[str] = None

	def is_private(self) -> bool:
		return self.type == "private"

	def has_participant(self, user_id: str) -> bool:
		return user_id in self.participants

	def to_dict(self) -> dict:
		payload = {
			"id": self.id,
			"name": self.name,
			"type": self.type,
			"createdBy": self.created_by,
			"createdAt": self.created_at.isoformat(),
			"participants": list(self.participants),
			"isActive": self.is_active,
		}
		if self.invite_code is not None:
			payload["inviteCode"] = self.invite_code
		return payload


@dataclass(frozen=True, slots=True)
class Message:
	"""A single chat message, immutable once created."""

	id: str
	conversation_id: str
	user_id: str
	username: str
	content: str
	type: MessageType
	timestamp: datetime
	recipient_id: Optional[str] = None

	@classmethod
	def system(cls, conversation_id: str, content: str) -> "Message":
		return cls(
			id=new_id(),
			conversation_id=conversation_id,
			user_id=SYSTEM_USER_ID,
			username=SYSTEM_USERNAME,
			content=content,
			type="system",
			timestamp=utcnow(),
		)

	def to_dict(self) -> dict:
		payload = {
			"id": self.id,
			"conversationId": self.conversation_id,
			"userId": self.user_id,
			"username": self.username,
			"content": self.content,
			"type": self.type,
			"timestamp": self.timestamp.isoformat(),
		}
		if self.recipient_id is not None:
			payload["recipientId"] = self.recipient_id
			payload["senderId"] = self.user_id
			payload["isRead"] = False
		return payload
