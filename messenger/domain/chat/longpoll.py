"""Long-poll fallback for clients without a persistent channel."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from messenger.domain.chat.models import Message
from messenger.domain.chat.store import MessageStore
from messenger.obs import metrics as obs_metrics
from messenger.settings import settings

logger = logging.getLogger(__name__)


class LongPollBridge:
	"""Parks poll requests until a message arrives or the wait times out.

	A parked waiter is resolved by ``notify`` with a single-element list
	holding the message that triggered it; anything else that lands before
	the client polls again is picked up by the ``since`` check on that next
	poll.
	"""

	def __init__(self, store: MessageStore, *, timeout_seconds: float | None = None) -> None:
		self._store = store
		self._timeout = timeout_seconds
		self._waiters: Dict[str, Set[asyncio.Future]] = {}

	@property
	def timeout(self) -> float:
		return self._timeout if self._timeout is not None else settings.longpoll_timeout_seconds

	def parked(self, conversation_id: Optional[str] = None) -> int:
		if conversation_id is not None:
			return len(self._waiters.get(conversation_id, ()))
		return sum(len(waiters) for waiters in self._waiters.values())

	async def poll(self, conversation_id: str, since: datetime | None) -> List[Message]:
		pending = self._store.since(conversation_id, since)
		if pending:
			obs_metrics.inc_longpoll_resolution("immediate")
			return pending
		future: asyncio.Future = asyncio.get_running_loop().create_future()
		self._waiters.setdefault(conversation_id, set()).add(future)
		obs_metrics.longpoll_parked(1)
		try:
			messages = await asyncio.wait_for(future, timeout=self.timeout)
		except asyncio.TimeoutError:
			obs_metrics.inc_longpoll_resolution("timeout")
			return []
		except asyncio.CancelledError:
			obs_metrics.inc_longpoll_resolution("aborted")
			raise
		finally:
			self._discard(conversation_id, future)
			obs_metrics.longpoll_parked(-1)
		obs_metrics.inc_longpoll_resolution("notified")
		return messages

	def notify(self, conversation_id: str, message: Message) -> int:
		waiters = self._waiters.pop(conversation_id, None)
		if not waiters:
			return 0
		resolved = 0
		for future in waiters:
			if not future.done():
				future.set_result([message])
				resolved += 1
		logger.debug("longpoll_notified", extra={"conversation_id": conversation_id, "resolved": resolved})
		return resolved

	def close(self) -> None:
		"""Release every parked waiter with an empty result, used on shutdown."""
		for waiters in self._waiters.values():
			for future in waiters:
				if not future.done():
					future.set_result([])
		self._waiters.clear()

	def _discard(self, conversation_id: str, future: asyncio.Future) -> None:
		waiters = self._waiters.get(conversation_id)
		if waiters is None:
			return
		waiters.discard(future)
		if not waiters:
			del self._waiters[conversation_id]
