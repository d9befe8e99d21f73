"""
Render Route

POST /render - Re-render the room from the current layout
GET  /render - Fetch the last render (image/jpeg)

FULLY TRACED with LangSmith.
"""

import base64

from fastapi import APIRouter, Depends, Request, Response
from langsmith import traceable

from layout_editor.config import get_settings
from layout_editor.core.room_service import RoomService
from layout_editor.models.api import ERROR_RESPONSES, RenderRequest, RenderResponse
from layout_editor.routes.deps import room_service, session_id_param


router = APIRouter(prefix="/render", tags=["Rendering"], responses=ERROR_RESPONSES)


@router.post("", response_model=RenderResponse)
@traceable(name="render_room_endpoint", run_type="chain", tags=["api", "render", "image"])
async def render_room(
    request: Request,
    body: RenderRequest = None,
    service: RoomService = Depends(room_service),
    session_id: str = Depends(session_id_param)
) -> RenderResponse:
    """
    Render the current layout with the Gemini image model.

    The uploaded photo is used as the reference image. The result replaces
    any previous render of the session.
    """
    body = body or RenderRequest()
    image = await service.render(
        session_id=session_id,
        room_type=body.room_type,
        style_hint=body.style_hint,
        is_cancelled=request.is_disconnected
    )
    settings = get_settings()
    return RenderResponse(
        image_base64=base64.b64encode(image).decode("utf-8"),
        image_url=f"{settings.api_prefix}/render?session_id={session_id}"
    )


@router.get("", response_class=Response, responses={200: {"content": {"image/jpeg": {}}}})
async def get_render(
    service: RoomService = Depends(room_service),
    session_id: str = Depends(session_id_param)
) -> Response:
    """Return the stored render as JPEG."""
    return Response(content=service.get_render(session_id=session_id), media_type="image/jpeg")
