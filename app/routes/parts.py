"""
Part endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from app.deps import get_request_context, raise_for_service_error
from core.context import RequestContext
from core.services import part_associations, parts


router = APIRouter(prefix="/parts", tags=["parts"])


@router.post("", status_code=201)
async def create_part(
    payload: dict = Body(...),
    context: RequestContext = Depends(get_request_context),
):
    result = parts.part_create(
        name=payload.get("name"),
        description=payload.get("description"),
        context=context,
    )
    return raise_for_service_error(result)


@router.get("")
async def list_parts(limit: int = 100):
    return raise_for_service_error(parts.part_list(limit=limit))


@router.get("/{part_id}")
async def get_part(part_id: int):
    return raise_for_service_error(parts.part_get(part_id=part_id))


@router.delete("/{part_id}")
async def delete_part(
    part_id: int,
    context: RequestContext = Depends(get_request_context),
):
    return raise_for_service_error(parts.part_delete(part_id=part_id, context=context))


@router.get("/{part_id}/associations")
async def list_part_associations(
    part_id: int,
    direction: str = "both",
    type: str | None = None,
    limit: int = 100,
):
    result = part_associations.part_association_list(
        part_id=part_id,
        direction=direction,
        type=type,
        limit=limit,
    )
    return raise_for_service_error(result)
