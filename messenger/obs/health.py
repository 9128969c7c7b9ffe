"""Health check helpers for liveness and the service snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from messenger.domain.chat.models import utcnow

if TYPE_CHECKING:  # pragma: no cover
	from messenger.domain.chat.router import FanoutRouter


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


def snapshot(router: "FanoutRouter") -> Dict[str, Any]:
	"""Counts of online users and known conversations at call time."""
	return {
		"status": "OK",
		"users": len(router.sessions),
		"conversations": len(router.conversations),
		"timestamp": utcnow().isoformat(),
	}
