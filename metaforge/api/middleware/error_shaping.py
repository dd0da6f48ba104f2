from __future__ import annotations

import logging
import traceback
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from metaforge.core.errors import ConfigurationError

log = logging.getLogger("metaforge.errors")


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    - Never return stack traces to clients
    - Preserve request_id if present
    - A factory that cannot be built answers 503, anything else 500
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except ConfigurationError as e:
            rid = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
            log.error("Factory not configured: %s rid=%s path=%s", e, rid, request.url.path)
            return JSONResponse(status_code=503, content=_payload("Service Unavailable", rid))
        except Exception as e:
            rid = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
            log.error(
                "Unhandled error: %s rid=%s path=%s\n%s",
                str(e),
                rid,
                request.url.path,
                traceback.format_exc(),
            )
            return JSONResponse(status_code=500, content=_payload("Internal Server Error", rid))


def _payload(detail: str, rid: str | None) -> dict:
    payload = {"detail": detail}
    if rid:
        payload["request_id"] = rid
    return payload
