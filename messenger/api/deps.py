"""FastAPI dependencies shared by the HTTP routers."""

from __future__ import annotations

from fastapi import Request

from messenger.domain.chat.router import FanoutRouter


def get_router(request: Request) -> FanoutRouter:
	return request.app.state.router
