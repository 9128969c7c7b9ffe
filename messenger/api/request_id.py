"""Request ID helper for endpoints.

The request id is stored on ``request.state`` by the request-id middleware
and bound into the logging context by the observability middleware.
Either source is accepted; the state attribute wins.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from messenger.obs import logging as obs_logging

REQUEST_ID_ATTR = obs_logging.REQUEST_ID_ATTR


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    """Return the current request id if bound, else a default."""
    if request is not None:
        rid = getattr(request.state, REQUEST_ID_ATTR, None)
        if rid:
            return rid
    rid = obs_logging.current_request_id()
    return rid or default
