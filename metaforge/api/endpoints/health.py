from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from metaforge.api.deps import get_factory
from metaforge.core.factory import ObjectFactory
from metaforge.observability.metrics import inc_named

router = APIRouter()


@router.get("/health/live")
async def live():
    inc_named("health_live")
    return {"status": "ok"}


@router.get("/health/ready")
def ready(factory: ObjectFactory = Depends(get_factory)):
    """
    Ready once discovery has bound at least one record type and the primary
    store still accepts writes.
    """
    inc_named("health_ready")

    problems: list[str] = []
    stats = factory.get_creation_statistics()
    if stats.bound_types == 0:
        problems.append("no_bound_types")
    if getattr(factory.primary_store, "read_only", False):
        problems.append("primary_store_read_only")

    if problems:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "problems": problems},
        )
    return {"status": "ready", "bound_types": stats.bound_types}
