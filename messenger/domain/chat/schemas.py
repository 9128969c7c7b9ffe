"""Pydantic schemas for chat intents and REST payloads.

Each client->server socket event maps to exactly one intent model; payloads
that do not validate against it are rejected before any state is touched.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from messenger.domain.errors import PayloadError


class _WireModel(BaseModel):
	model_config = ConfigDict(
		alias_generator=to_camel,
		populate_by_name=True,
		str_strip_whitespace=True,
		extra="ignore",
	)


class UserPayload(_WireModel):
	id: Optional[str] = Field(default=None, max_length=128)
	username: Optional[str] = Field(default=None, max_length=64)
	email: Optional[str] = Field(default=None, max_length=256)


class Intent(_WireModel):
	"""Base class for every client-issued intent."""


class _CredentialIntent(Intent):
	# passwords are hashed byte-for-byte, whitespace included
	model_config = ConfigDict(str_strip_whitespace=False)


class AuthenticateIntent(_CredentialIntent):
	username: str = Field(..., min_length=1, max_length=64)
	password: str = Field(..., min_length=1, max_length=256)
	is_new_user: bool = False
	user: Optional[UserPayload] = None

	@field_validator("username", mode="before")
	@classmethod
	def _strip_username(cls, value: Any) -> Any:
		return value.strip() if isinstance(value, str) else value


class ChangePasswordIntent(_CredentialIntent):
	current_password: str = Field(..., min_length=1, max_length=256)
	new_password: str = Field(..., min_length=1, max_length=256)


class JoinIntent(Intent):
	conversation_id: str = Field(..., min_length=1)
	user: Optional[UserPayload] = None


class JoinByInviteIntent(Intent):
	invite_code: str = Field(..., min_length=1, max_length=32)
	user: Optional[UserPayload] = None


class CreateConversationIntent(Intent):
	name: str = Field(..., min_length=1, max_length=80)
	type: Literal["public", "private"] = "public"


class SendIntent(Intent):
	conversation_id: str = Field(..., min_length=1)
	content: str = Field(..., min_length=1, max_length=4000)
	type: Literal["text", "emoji"] = "text"


class PrivateMessageIntent(Intent):
	recipient_id: str = Field(..., min_length=1)
	content: str = Field(..., min_length=1, max_length=4000)


class ClearIntent(Intent):
	conversation_id: str = Field(..., min_length=1)


class ListConversationsIntent(Intent):
	pass


class LogoutIntent(Intent):
	pass


INTENTS: dict[str, type[Intent]] = {
	"user:authenticate": AuthenticateIntent,
	"user:change-password": ChangePasswordIntent,
	"conversation:join": JoinIntent,
	"conversation:join-by-invite": JoinByInviteIntent,
	"conversation:create": CreateConversationIntent,
	"message:send": SendIntent,
	"message:private": PrivateMessageIntent,
	"conversation:clear": ClearIntent,
	"conversations:list": ListConversationsIntent,
	"user:logout": LogoutIntent,
}


def parse_intent(event: str, payload: Any) -> Intent:
	"""Validate a raw socket payload into its tagged intent model."""
	model = INTENTS.get(event)
	if model is None:
		raise PayloadError(event, "Unknown event")
	if payload is None:
		payload = {}
	if not isinstance(payload, dict):
		raise PayloadError(event)
	try:
		return model.model_validate(payload)
	except PydanticValidationError as exc:
		raise PayloadError(event) from exc


class PostMessageRequest(BaseModel):
	userId: Optional[str] = None
	username: Optional[str] = None
	text: Optional[str] = Field(default=None, max_length=4000)

	def missing_fields(self) -> list[str]:
		return [name for name in ("userId", "username", "text") if not (getattr(self, name) or "").strip()]
