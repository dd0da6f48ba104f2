from __future__ import annotations

from fastapi import FastAPI

from metaforge import __version__
from metaforge.api.endpoints import health
from metaforge.api.endpoints import metrics_export
from metaforge.api.endpoints import objects
from metaforge.api.middleware.error_shaping import SafeErrorMiddleware
from metaforge.api.middleware.request_context import RequestContextMiddleware

app = FastAPI(
    title="Metaforge Object Factory API",
    version=__version__,
)

# ------------------------------------------------------------
# Middleware stack
# Note: Starlette reverses add_middleware order; the LAST call is the
# OUTERMOST wrapper.
#   SafeErrorMiddleware -> RequestContextMiddleware -> handler
# ------------------------------------------------------------
app.add_middleware(RequestContextMiddleware)
app.add_middleware(SafeErrorMiddleware)

app.include_router(health.router)
app.include_router(metrics_export.router)
app.include_router(objects.router)
