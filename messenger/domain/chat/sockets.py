"""Socket.IO namespace for the chat protocol."""

from __future__ import annotations

import logging
from typing import Any, Optional

import socketio

from messenger.domain.chat.router import FanoutRouter
from messenger.obs import logging as obs_logging
from messenger.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_LIFECYCLE_EVENTS = frozenset({"connect", "disconnect"})


class MessengerNamespace(socketio.AsyncNamespace):
	"""Adapts Socket.IO events to the fanout router and delivers its output.

	Every client event (``conversation:join``, ``message:send`` ...) is routed
	through :meth:`FanoutRouter.dispatch`. This namespace is the handler
	boundary: unexpected failures are logged and the intent becomes a no-op,
	the connection stays up.
	"""

	def __init__(self, router: FanoutRouter, namespace: str = "/") -> None:
		super().__init__(namespace)
		self.router = router
		router.attach(self)

	async def trigger_event(self, event: str, *args: Any) -> Any:
		if event in _LIFECYCLE_EVENTS:
			return await super().trigger_event(event, *args)
		if not args:
			return None
		sid = args[0]
		payload = args[1] if len(args) > 1 else None
		await self._handle(sid, event, payload)
		return None

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		logger.info("socket_connected", extra={"sid": sid})

	async def on_disconnect(self, sid: str, reason: Any = None) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		tokens = self._bind_context(sid, "disconnect")
		try:
			await self.router.disconnect(sid)
		except Exception:
			logger.exception("socket_disconnect_error", extra={"sid": sid})
		finally:
			obs_logging.reset_context(tokens)
		logger.info("socket_disconnected", extra={"sid": sid, "reason": str(reason) if reason is not None else None})

	async def deliver(self, connection_id: str, event: str, payload: Any) -> None:
		obs_metrics.socket_event(self.namespace, event)
		await self.emit(event, payload, room=connection_id)

	async def _handle(self, sid: str, event: str, payload: Any) -> None:
		tokens = self._bind_context(sid, event)
		try:
			await self.router.dispatch(sid, event, payload)
		except Exception:
			logger.exception("socket_handler_error", extra={"sid": sid, "event": event})
		finally:
			obs_logging.reset_context(tokens)

	def _bind_context(self, sid: str, event: str) -> dict:
		user = self.router.sessions.lookup_by_connection(sid)
		return obs_logging.bind_context(route=event, sid=sid, user_id=user.id if user else None)
