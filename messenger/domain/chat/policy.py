"""Policy helpers for conversations."""

from __future__ import annotations

from typing import Optional

from messenger.domain.chat import models
from messenger.domain.errors import AuthenticationRequired, PermissionDenied, ValidationError
from messenger.domain.identity import User


def ensure_session(user: Optional[User], *, require_authentication: bool) -> User:
	if user is None or (require_authentication and not user.is_authenticated):
		raise AuthenticationRequired()
	return user


def ensure_can_view(conversation: models.Conversation, user: User) -> None:
	if conversation.is_private() and not conversation.has_participant(user.id):
		raise PermissionDenied()


def ensure_can_clear(conversation: models.Conversation, user: User) -> None:
	if not conversation.has_participant(user.id):
		raise PermissionDenied()
	# Private conversations may only be cleared by their creator.
	if conversation.is_private() and conversation.created_by != user.id:
		raise PermissionDenied()


def ensure_not_self(sender_id: str, recipient_id: str) -> None:
	if sender_id == recipient_id:
		raise ValidationError("Cannot message yourself")
