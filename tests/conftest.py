from typing import Any, List, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from messenger.domain.chat.router import FanoutRouter
from messenger.main import app
from messenger.settings import settings

_TEST_OVERRIDES = {
	# Argon2 floor values keep the credential tests fast
	"password_time_cost": 1,
	"password_memory_cost": 1024,
	"password_parallelism": 1,
	"longpoll_timeout_seconds": 0.2,
	"require_authentication": True,
	"message_profile": "socket",
}


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Cheap hashing and a short long-poll window for every test."""
	originals = {name: getattr(settings, name) for name in _TEST_OVERRIDES}
	for name, value in _TEST_OVERRIDES.items():
		setattr(settings, name, value)
	try:
		yield
	finally:
		for name, value in originals.items():
			setattr(settings, name, value)


class RecordingSink:
	"""Event sink that keeps every delivery in order."""

	def __init__(self) -> None:
		self.events: List[Tuple[str, str, Any]] = []

	async def deliver(self, connection_id: str, event: str, payload: Any) -> None:
		self.events.append((connection_id, event, payload))

	def received(self, connection_id: str, event: str | None = None) -> List[Tuple[str, Any]]:
		return [
			(name, payload)
			for target, name, payload in self.events
			if target == connection_id and (event is None or name == event)
		]

	def names(self, connection_id: str) -> List[str]:
		return [name for name, _ in self.received(connection_id)]

	def payloads(self, connection_id: str, event: str) -> List[Any]:
		return [payload for _, payload in self.received(connection_id, event)]

	def clear(self) -> None:
		self.events.clear()


@pytest.fixture
def sink() -> RecordingSink:
	return RecordingSink()


@pytest.fixture
def router(sink) -> FanoutRouter:
	return FanoutRouter(sink=sink)


@pytest.fixture
def login(router):
	"""Register (or log in) a user on a connection and return the bound user."""

	async def _login(sid: str, username: str, password: str = "p4ss", *, new: bool = True):
		await router.dispatch(
			sid,
			"user:authenticate",
			{"username": username, "password": password, "isNewUser": new},
		)
		return router.sessions.lookup_by_connection(sid)

	return _login


@pytest.fixture
def chat_router():
	original = app.state.router
	fresh = FanoutRouter()
	app.state.router = fresh
	try:
		yield fresh
	finally:
		fresh.bridge.close()
		app.state.router = original


@pytest_asyncio.fixture
async def api_client(chat_router):
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
