"""
Analysis State

Defines the shared state passed between the analysis graph nodes.
This is the "memory" of one analyze call as it turns a photo into a layout.
"""

from typing import Any, Optional, TypedDict

from layout_editor.models.layout import LayoutDocument


class AnalysisState(TypedDict):
    """
    Shared state for the analysis LangGraph workflow.

    Each node fills in its part; the service reads the final state.
    """

    # === Input ===
    image_bytes: bytes                          # Uploaded room photo
    mime_type: str                              # e.g. "image/jpeg"

    # === Vision ===
    raw_text: str                               # Model answer, kept verbatim

    # === Parsing ===
    payload: Optional[Any]                      # Decoded JSON before validation

    # === Output ===
    document: Optional[LayoutDocument]          # Validated layout


def create_initial_state(image_bytes: bytes, mime_type: str) -> AnalysisState:
    """
    Create initial analysis state from an uploaded photo.

    Args:
        image_bytes: Room photo bytes
        mime_type: Photo MIME type

    Returns:
        Initial AnalysisState ready for processing
    """
    return AnalysisState(
        image_bytes=image_bytes,
        mime_type=mime_type,
        raw_text="",
        payload=None,
        document=None
    )
