"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from messenger.api.request_id import get_request_id
from messenger.domain.errors import MessengerError

logger = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(MessengerError)
    async def messenger_exc_handler(request: Request, exc: MessengerError):  # type: ignore[override]
        rid = get_request_id(request)
        logger.info("http_domain_error", extra={"code": exc.code, "status": exc.status_code})
        payload = {"detail": exc.detail, "code": exc.code, "request_id": rid}
        return JSONResponse(status_code=exc.status_code, content=payload, headers={"X-Request-Id": rid})

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {"detail": exc.detail, "request_id": rid}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {"detail": "validation_error", "errors": exc.errors(), "request_id": rid}
        return JSONResponse(status_code=422, content=payload)
