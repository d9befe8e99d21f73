"""
API Schemas

Request and response bodies for the HTTP endpoints.
Layout bodies reuse the camelCase wire form of LayoutDocument.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from layout_editor.models.layout import LayoutDocument


class AnalyzeRequest(BaseModel):
    """Request body for /analyze endpoint."""
    image_base64: str = Field(..., description="Base64 encoded room photo, data URL prefix allowed")


class LayoutResponse(BaseModel):
    """A stored layout."""
    layout: LayoutDocument
    updated: bool = Field(..., description="Whether this is the edited layout or the original analysis")
    message: str = ""


class UpdateLayoutRequest(BaseModel):
    """
    Request body for POST /layout.

    Entries are kept as raw objects so the merger can tell which fields
    were actually sent and report a missing name as INVALID_EDIT.
    """
    objects: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [{"objects": [{"name": "bed", "x": 0.5}, {"name": "lamp", "x": 0.1, "y": 0.1, "width": 0.1, "height": 0.3}]}]
        }
    }


class RenderRequest(BaseModel):
    """Request body for POST /render."""
    room_type: Optional[str] = Field(None, max_length=60, description="e.g. 'bedroom', 'office'")
    style_hint: Optional[str] = Field(None, max_length=60, description="Overrides the analyzed style in the prompt")


class RenderResponse(BaseModel):
    """Response from POST /render."""
    image_base64: str = Field(..., description="Base64 encoded JPEG")
    image_url: str = Field(..., description="Where the stored render can be fetched")


class HealthResponse(BaseModel):
    status: str
    version: str
    message: str = ""


class ErrorResponse(BaseModel):
    """
    Structured error body returned for every room editor failure.
    Error-specific details (errors, kind, raw_text, index...) ride along.
    """
    detail: str
    error_code: str

    model_config = {"extra": "allow"}


ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid image or request"},
    404: {"model": ErrorResponse, "description": "Nothing stored yet for the session"},
    409: {"model": ErrorResponse, "description": "Not analyzed yet, or superseded by a newer operation"},
    422: {"model": ErrorResponse, "description": "Invalid edit or layout"},
    500: {"model": ErrorResponse, "description": "Service misconfigured"},
    502: {"model": ErrorResponse, "description": "Vision or image model failed"},
    504: {"model": ErrorResponse, "description": "Model call timed out"},
}
