"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

log = logging.getLogger(__name__)


REQUEST_COUNTER = Counter(
	"messenger_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"messenger_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

SOCKET_CLIENTS = Gauge(
	"messenger_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"messenger_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

INTENTS = Counter(
	"messenger_intents_total",
	"Client intents processed by the fanout router",
	["event", "outcome"],
)

MESSAGES_APPENDED = Counter(
	"messenger_messages_appended_total",
	"Messages appended to conversation logs and private threads",
	["type"],
)

PRIVATE_MESSAGES = Counter(
	"messenger_private_messages_total",
	"Direct messages routed between users",
)

AUTH_ATTEMPTS = Counter(
	"messenger_auth_attempts_total",
	"Credential store operations",
	["mode", "result"],
)

CONVERSATIONS_CREATED = Counter(
	"messenger_conversations_created_total",
	"Conversations created",
	["type"],
)

LONGPOLL_PARKED = Gauge(
	"messenger_longpoll_parked",
	"Long-poll requests currently parked",
)

LONGPOLL_RESOLUTIONS = Counter(
	"messenger_longpoll_resolutions_total",
	"Long-poll requests by how they completed",
	["outcome"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_intent(event: str, outcome: str) -> None:
	INTENTS.labels(event=event, outcome=outcome).inc()


def inc_message_appended(kind: str) -> None:
	MESSAGES_APPENDED.labels(type=kind).inc()


def inc_private_message() -> None:
	PRIVATE_MESSAGES.inc()


def inc_auth_attempt(mode: str, result: str) -> None:
	AUTH_ATTEMPTS.labels(mode=mode, result=result).inc()


def inc_conversation_created(kind: str) -> None:
	CONVERSATIONS_CREATED.labels(type=kind).inc()


def longpoll_parked(delta: int) -> None:
	LONGPOLL_PARKED.inc(delta)


def inc_longpoll_resolution(outcome: str) -> None:
	LONGPOLL_RESOLUTIONS.labels(outcome=outcome).inc()
