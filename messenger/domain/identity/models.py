"""Domain models for user identity and credentials."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _now() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class User:
	"""A connected user as seen by the chat surfaces."""

	id: str
	username: str
	email: Optional[str] = None
	is_online: bool = False
	joined_at: datetime = field(default_factory=_now)
	is_authenticated: bool = False

	def to_dict(self) -> dict:
		payload = {
			"id": self.id,
			"username": self.username,
			"isOnline": self.is_online,
			"joinedAt": self.joined_at.isoformat(),
			"isAuthenticated": self.is_authenticated,
		}
		if self.email:
			payload["email"] = self.email
		return payload


@dataclass(slots=True)
class CredentialRecord:
	username: str
	user_id: str
	password_hash: bytes
	salt: bytes
