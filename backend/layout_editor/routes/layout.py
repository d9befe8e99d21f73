"""
Layout Route

GET  /layout - Fetch the stored layout (edited or original)
POST /layout - Merge sparse object edits into the stored layout

FULLY TRACED with LangSmith.
"""

from fastapi import APIRouter, Depends, Query
from langsmith import traceable

from layout_editor.core.room_service import RoomService
from layout_editor.models.api import ERROR_RESPONSES, LayoutResponse, UpdateLayoutRequest
from layout_editor.routes.deps import room_service, session_id_param


router = APIRouter(prefix="/layout", tags=["Layout"], responses=ERROR_RESPONSES)


@router.get("", response_model=LayoutResponse, response_model_exclude_none=True)
async def get_layout(
    updated: bool = Query(True, description="Return the edited layout instead of the original analysis"),
    service: RoomService = Depends(room_service),
    session_id: str = Depends(session_id_param)
) -> LayoutResponse:
    """Return the current layout, or the original one with updated=false."""
    document = service.get_layout(session_id=session_id, prefer_updated=updated)
    return LayoutResponse(layout=document, updated=updated)


@router.post("", response_model=LayoutResponse, response_model_exclude_none=True)
@traceable(name="update_layout_endpoint", run_type="chain", tags=["api", "layout", "merge"])
async def update_layout(
    body: UpdateLayoutRequest,
    service: RoomService = Depends(room_service),
    session_id: str = Depends(session_id_param)
) -> LayoutResponse:
    """
    Apply object edits.

    Each entry names an object and carries only the fields to change.
    Unknown names are added as new objects; objects not mentioned are kept.
    Style and colour palette cannot be edited here.
    """
    document = await service.update(body.objects, session_id=session_id)
    return LayoutResponse(
        layout=document,
        updated=True,
        message=f"Applied {len(body.objects)} edit(s). Layout has {len(document.objects)} objects."
    )
