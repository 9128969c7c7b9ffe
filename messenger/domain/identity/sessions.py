"""Live connection <-> user bindings."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from messenger.domain.identity.models import User

logger = logging.getLogger(__name__)


class SessionRegistry:
	"""Bidirectional map between connection ids and bound users.

	A user holds at most one *addressable* connection: binding a second
	connection for the same user id re-points direct delivery at the newest
	one (last wins). The older connection keeps its own binding until it
	disconnects; it is never forcibly closed.
	"""

	def __init__(self) -> None:
		self._by_connection: Dict[str, User] = {}
		self._by_user: Dict[str, str] = {}

	def __len__(self) -> int:
		return len(self._by_user)

	def bind(self, connection_id: str, user: User) -> User:
		previous = self._by_connection.get(connection_id)
		if previous is not None and previous.id != user.id:
			self._drop_user_pointer(previous.id, connection_id)
		stale = self._by_user.get(user.id)
		if stale is not None and stale != connection_id:
			logger.info("session_rebound", extra={"user_id": user.id, "stale_sid": stale, "sid": connection_id})
		user.is_online = True
		self._by_connection[connection_id] = user
		self._by_user[user.id] = connection_id
		return user

	def lookup_by_connection(self, connection_id: str) -> Optional[User]:
		return self._by_connection.get(connection_id)

	def lookup_connection_for(self, user_id: str) -> Optional[str]:
		return self._by_user.get(user_id)

	def lookup_user(self, user_id: str) -> Optional[User]:
		connection_id = self._by_user.get(user_id)
		if connection_id is None:
			return None
		return self._by_connection.get(connection_id)

	def unbind(self, connection_id: str) -> Optional[User]:
		user = self._by_connection.pop(connection_id, None)
		if user is None:
			return None
		self._drop_user_pointer(user.id, connection_id)
		if user.id not in self._by_user:
			user.is_online = False
		return user

	def online_users(self) -> List[User]:
		return [user for user in (self.lookup_user(user_id) for user_id in self._by_user) if user is not None]

	def _drop_user_pointer(self, user_id: str, connection_id: str) -> None:
		if self._by_user.get(user_id) == connection_id:
			del self._by_user[user_id]
