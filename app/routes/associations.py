"""
Part association endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from app.deps import get_request_context, raise_for_service_error
from core.context import RequestContext
from core.services import part_associations


router = APIRouter(prefix="/associations", tags=["associations"])

_UPDATABLE_FIELDS = (
    "type",
    "other_type",
    "comment",
    "owner_id",
    "other_id",
    "clear_other_type",
    "clear_comment",
)


@router.post("", status_code=201)
async def create_association(
    payload: dict = Body(...),
    context: RequestContext = Depends(get_request_context),
):
    result = part_associations.part_association_add(
        owner_id=payload.get("owner_id"),
        other_id=payload.get("other_id"),
        type=payload.get("type", "other"),
        other_type=payload.get("other_type"),
        comment=payload.get("comment"),
        context=context,
    )
    return raise_for_service_error(result)


@router.get("/{association_id}")
async def get_association(association_id: int):
    result = part_associations.part_association_get(association_id=association_id)
    return raise_for_service_error(result)


@router.patch("/{association_id}")
async def update_association(
    association_id: int,
    payload: dict = Body(...),
    context: RequestContext = Depends(get_request_context),
):
    fields = {key: payload[key] for key in _UPDATABLE_FIELDS if key in payload}
    result = part_associations.part_association_update(
        association_id=association_id,
        context=context,
        **fields,
    )
    return raise_for_service_error(result)


@router.delete("/{association_id}")
async def delete_association(
    association_id: int,
    context: RequestContext = Depends(get_request_context),
):
    result = part_associations.part_association_delete(
        association_id=association_id,
        context=context,
    )
    return raise_for_service_error(result)
