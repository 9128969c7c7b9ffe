from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from messenger.api import messages, ops
from messenger.api.errors import install_error_handlers
from messenger.api.middleware_request_id import RequestIdMiddleware
from messenger.domain.chat.router import FanoutRouter
from messenger.domain.chat.sockets import MessengerNamespace
from messenger.obs import init as obs_init
from messenger.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	chat: FanoutRouter = app.state.router
	logger.info(
		"messenger_started",
		extra={
			"require_authentication": chat.require_authentication,
			"message_profile": settings.message_profile,
			"log_cap": chat.messages.capacity,
		},
	)
	try:
		yield
	finally:
		chat.bridge.close()
		logger.info("messenger_stopped")


app = FastAPI(title="Messenger", lifespan=lifespan)
app.state.router = FanoutRouter()
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["*"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
allow_credentials = "*" not in allow_origins

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=allow_credentials,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*" if "*" in allow_origins else allow_origins)
messenger_namespace = MessengerNamespace(app.state.router)
sio.register_namespace(messenger_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

# Ensure every request carries an X-Request-Id and make it available on request.state
app.add_middleware(RequestIdMiddleware)

app.include_router(messages.router, tags=["messages"])
app.include_router(ops.router, tags=["ops"])
