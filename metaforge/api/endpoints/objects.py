from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from starlette.responses import JSONResponse

from metaforge.api.deps import get_factory
from metaforge.core.errors import TypeResolutionError
from metaforge.core.factory import ObjectFactory
from metaforge.observability.metrics import inc_named

router = APIRouter(prefix="/api/v1", tags=["objects"])


def _known_type(factory: ObjectFactory, type_name: str) -> str:
    entry = factory.catalog.get(type_name)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Unknown object type: {type_name}")
    return entry.name


# ------------------------------------------------------------
# Types
# ------------------------------------------------------------
@router.get("/types")
def list_types(factory: ObjectFactory = Depends(get_factory)):
    return {"types": factory.get_supported_types()}


@router.get("/types/{type_name}/schema")
def type_schema(type_name: str, factory: ObjectFactory = Depends(get_factory)):
    try:
        return {"type": type_name, "parameters": factory.get_parameter_schemas(type_name)}
    except TypeResolutionError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/types/{type_name}/capabilities")
def type_capabilities(type_name: str, factory: ObjectFactory = Depends(get_factory)):
    caps = factory.discover_capabilities(type_name)
    if not caps.success:
        raise HTTPException(status_code=404, detail=caps.error)
    return caps.to_dict()


@router.get("/statistics")
def statistics(factory: ObjectFactory = Depends(get_factory)):
    return factory.get_creation_statistics().to_dict()


@router.get("/status")
def status(factory: ObjectFactory = Depends(get_factory)):
    return factory.get_status()


# ------------------------------------------------------------
# Objects
# ------------------------------------------------------------
@router.post("/objects/{type_name}")
def create_object(
    type_name: str,
    params: Optional[Dict[str, Any]] = Body(None),
    factory: ObjectFactory = Depends(get_factory),
):
    """
    Create an object from a loose property map.

    201 with the result on success; 404 for an unknown type; 400 with the
    full result (errors, warnings) for any other failure.
    """
    _known_type(factory, type_name)
    result = factory.create_object(type_name, params or {})
    inc_named("objects_create")
    return JSONResponse(status_code=201 if result.success else 400, content=result.to_dict())


@router.get("/objects/{type_name}/{name}")
def get_object(type_name: str, name: str, factory: ObjectFactory = Depends(get_factory)):
    canonical = _known_type(factory, type_name)
    found = factory.inspect_object(canonical, name)
    if found is None:
        raise HTTPException(status_code=404, detail=f"{canonical} '{name}' not found")
    return found


@router.post("/objects/{type_name}/{name}/{method_name}")
def modify_object(
    type_name: str,
    name: str,
    method_name: str,
    params: Optional[Dict[str, Any]] = Body(None),
    factory: ObjectFactory = Depends(get_factory),
):
    canonical = _known_type(factory, type_name)
    result = factory.execute_modification(canonical, name, method_name, params or {})
    inc_named("objects_modify")
    return JSONResponse(status_code=200 if result.success else 400, content=result.to_dict())


# ------------------------------------------------------------
# Models
# ------------------------------------------------------------
@router.get("/models")
def list_models(factory: ObjectFactory = Depends(get_factory)):
    return {"models": factory.list_models()}


@router.get("/models/{model}/objects")
def model_objects(model: str, factory: ObjectFactory = Depends(get_factory)):
    return {"model": model, "objects": factory.list_objects_for_model(model)}
