"""Bounded in-memory message logs."""

from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Deque, Dict, List

from messenger.domain.chat.models import Message
from messenger.domain.errors import NotFound
from messenger.obs import metrics as obs_metrics
from messenger.settings import settings

DEFAULT_HISTORY_LIMIT = 50


class MessageStore:
	"""Per-conversation logs plus per-pair private threads.

	Each log keeps only the most recent ``capacity`` entries in insertion
	order; appending past the cap evicts the oldest entry.
	"""

	def __init__(self, capacity: int | None = None) -> None:
		self.capacity = capacity or settings.message_log_cap()
		self._logs: Dict[str, Deque[Message]] = {}
		self._private: Dict[str, Deque[Message]] = {}

	def open(self, conversation_id: str) -> None:
		self._logs.setdefault(conversation_id, deque(maxlen=self.capacity))

	def has(self, conversation_id: str) -> bool:
		return conversation_id in self._logs

	def __len__(self) -> int:
		return len(self._logs)

	def append(self, conversation_id: str, message: Message) -> Message:
		self._log(conversation_id).append(message)
		obs_metrics.inc_message_appended(message.type)
		return message

	def history(self, conversation_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Message]:
		log = self._log(conversation_id)
		if limit <= 0:
			return []
		return list(log)[-limit:]

	def count(self, conversation_id: str) -> int:
		return len(self._log(conversation_id))

	def clear(self, conversation_id: str) -> None:
		self._log(conversation_id).clear()

	def since(self, conversation_id: str, timestamp: datetime | None) -> List[Message]:
		log = self._log(conversation_id)
		if timestamp is None:
			return list(log)
		return [message for message in log if message.timestamp > timestamp]

	def append_private(self, pair_key: str, message: Message) -> Message:
		thread = self._private.setdefault(pair_key, deque(maxlen=self.capacity))
		thread.append(message)
		obs_metrics.inc_message_appended(message.type)
		return message

	def history_private(self, pair_key: str) -> List[Message]:
		return list(self._private.get(pair_key, ()))

	def _log(self, conversation_id: str) -> Deque[Message]:
		log = self._logs.get(conversation_id)
		if log is None:
			raise NotFound("Conversation not found")
		return log
