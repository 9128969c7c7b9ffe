"""Broadcast group membership, independent of the transport."""

from __future__ import annotations

from typing import Dict, List


class RoomMembership:
	"""Maps conversation ids to the connection ids subscribed to them."""

	def __init__(self) -> None:
		self._members: Dict[str, Dict[str, None]] = {}
		self._rooms_by_connection: Dict[str, Dict[str, None]] = {}

	def subscribe(self, conversation_id: str, connection_id: str) -> None:
		self._members.setdefault(conversation_id, {})[connection_id] = None
		self._rooms_by_connection.setdefault(connection_id, {})[conversation_id] = None

	def unsubscribe(self, conversation_id: str, connection_id: str) -> None:
		members = self._members.get(conversation_id)
		if members is not None:
			members.pop(connection_id, None)
			if not members:
				del self._members[conversation_id]
		rooms = self._rooms_by_connection.get(connection_id)
		if rooms is not None:
			rooms.pop(conversation_id, None)
			if not rooms:
				del self._rooms_by_connection[connection_id]

	def members(self, conversation_id: str) -> List[str]:
		return list(self._members.get(conversation_id, ()))

	def rooms_of(self, connection_id: str) -> List[str]:
		return list(self._rooms_by_connection.get(connection_id, ()))

	def is_subscribed(self, conversation_id: str, connection_id: str) -> bool:
		return connection_id in self._members.get(conversation_id, {})

	def drop(self, connection_id: str) -> List[str]:
		"""Remove a connection from every room and return the rooms it left."""
		rooms = self.rooms_of(connection_id)
		for conversation_id in rooms:
			self.unsubscribe(conversation_id, connection_id)
		return rooms
