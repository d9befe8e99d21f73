"""
Analyze Route

POST /analyze - Analyze a room photo and store its furniture layout.
Uses Gemini for vision analysis; the result becomes both the original
and the current layout of the session.

FULLY TRACED with LangSmith.
"""

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from langsmith import traceable

from layout_editor.config import get_settings
from layout_editor.core.exceptions import InvalidImageError
from layout_editor.core.images import decode_base64_image, detect_mime_type
from layout_editor.core.room_service import RoomService
from layout_editor.models.api import ERROR_RESPONSES, AnalyzeRequest, LayoutResponse
from layout_editor.routes.deps import room_service, session_id_param


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/analyze", tags=["Analysis"], responses=ERROR_RESPONSES)


async def _analyze(
    image_bytes: bytes,
    request: Request,
    service: RoomService,
    session_id: str
) -> LayoutResponse:
    settings = get_settings()
    if len(image_bytes) > settings.max_upload_bytes:
        raise InvalidImageError(
            f"Image is {len(image_bytes)} bytes; the limit is {settings.max_upload_bytes}"
        )

    mime_type = detect_mime_type(image_bytes)
    if mime_type not in settings.allowed_image_types:
        raise InvalidImageError(f"Invalid image type {mime_type}. Allowed: {settings.allowed_image_types}")

    document = await service.analyze(
        image_bytes,
        mime_type,
        session_id=session_id,
        is_cancelled=request.is_disconnected
    )
    return LayoutResponse(
        layout=document,
        updated=False,
        message=f"Detected {len(document.objects)} objects. Style: {document.style.value}."
    )


@router.post("", response_model=LayoutResponse, response_model_exclude_none=True)
@traceable(name="analyze_room_endpoint", run_type="chain", tags=["api", "vision"])
async def analyze_room(
    body: AnalyzeRequest,
    request: Request,
    service: RoomService = Depends(room_service),
    session_id: str = Depends(session_id_param)
) -> LayoutResponse:
    """
    Analyze a base64 encoded room photo.

    This endpoint:
    1. Sends the photo to Gemini Vision
    2. Validates the returned layout (objects, style, 5-colour palette)
    3. Stores it as the session's original and current layout

    On unusable model output the raw answer is returned with the error.
    """
    image_bytes = decode_base64_image(body.image_base64)
    return await _analyze(image_bytes, request, service, session_id)


@router.post("/upload", response_model=LayoutResponse, response_model_exclude_none=True)
@traceable(name="analyze_room_upload", run_type="chain", tags=["api", "vision", "upload"])
async def analyze_room_upload(
    request: Request,
    file: UploadFile = File(...),
    service: RoomService = Depends(room_service),
    session_id: str = Depends(session_id_param)
) -> LayoutResponse:
    """
    Analyze a room photo uploaded as a file.

    Accepts: JPEG, PNG, WebP
    """
    settings = get_settings()
    if file.content_type not in settings.allowed_image_types:
        raise InvalidImageError(
            f"Invalid file type {file.content_type}. Allowed: {settings.allowed_image_types}"
        )

    contents = await file.read()
    logger.info(f"Received upload {file.filename} ({len(contents)} bytes)")
    return await _analyze(contents, request, service, session_id)
