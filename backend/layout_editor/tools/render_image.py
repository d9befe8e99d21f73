"""
Render Image Tool

Re-renders the room photo so it reflects an edited layout.
Used by RoomService.render.

FULLY TRACED with LangSmith - all Gemini image generation calls are tracked.
"""

import asyncio
import functools
import logging
from typing import Optional

from google import genai
from google.genai import types
from langsmith import traceable

from layout_editor.config import get_settings
from layout_editor.core.exceptions import RenderError
from layout_editor.models.layout import LayoutDocument


logger = logging.getLogger(__name__)


def _pct(value: Optional[float]) -> str:
    return "?" if value is None else f"{value * 100:.0f}%"


def build_render_prompt(
    document: LayoutDocument,
    has_base_image: bool,
    room_type: Optional[str] = None,
    style_hint: Optional[str] = None
) -> str:
    """
    Describe the layout to the image model.

    Positions are given as percentages of the frame, matching the
    normalized coordinates stored in the layout.
    """
    lines = []
    for obj in document.objects:
        name = obj.name.replace("_", " ")
        lines.append(
            f"- {name.upper()}: left {_pct(obj.x)}, top {_pct(obj.y)}, "
            f"width {_pct(obj.width)}, height {_pct(obj.height)}"
        )
    objects_text = "\n".join(lines) if lines else "- (no furniture)"

    style = style_hint or document.style.value
    room = room_type or "room"
    palette = ", ".join(document.color_palette)

    if has_base_image:
        intro = f"Edit this photo of a {room} so the furniture matches the layout below."
        keep = (
            "1. Keep the same camera angle, walls, windows and lighting as the original photo\n"
            "2. Move each listed item to its new position; keep items not listed as they are\n"
        )
    else:
        intro = f"Generate a photorealistic image of a {style} {room} with this furniture layout."
        keep = (
            "1. Use a natural eye-level camera angle\n"
            "2. Place each listed item at its position in the frame\n"
        )

    return f"""{intro}

FURNITURE LAYOUT (positions as fractions of the image, top-left origin):
{objects_text}

STYLE: {style}
COLOR PALETTE: {palette}

REQUIREMENTS:
{keep}3. Furniture must not overlap - maintain clear spacing
4. Keep furniture proportions and scale consistent
5. Use the color palette for walls, textiles and decor

Generate the rendered room image."""


class GeminiImageRenderer:
    """
    Image renderer backed by the Gemini image model.
    All methods are traced with LangSmith for full observability.
    """

    def __init__(self, client: genai.Client = None, model: str = None):
        settings = get_settings()
        if client is None:
            if not settings.google_api_key:
                raise ValueError("GOOGLE_API_KEY environment variable is not set")
            client = genai.Client(api_key=settings.google_api_key)
        self.client = client
        self.model = model or settings.render_image_model_name

    @traceable(
        name="render_image_tool.render",
        run_type="tool",
        tags=["tool", "image", "render"],
        metadata={"description": "Render the room with the edited layout"}
    )
    async def render(
        self,
        document: LayoutDocument,
        base_image: Optional[bytes] = None,
        base_mime_type: str = "image/jpeg",
        room_type: Optional[str] = None,
        style_hint: Optional[str] = None
    ) -> bytes:
        """
        Render the layout, editing base_image when one is given.

        Returns:
            Raw image bytes

        Raises:
            RenderError: If the model returned no image
        """
        prompt = build_render_prompt(document, base_image is not None, room_type, style_hint)

        contents = [prompt]
        if base_image is not None:
            contents.insert(0, types.Part.from_bytes(data=base_image, mime_type=base_mime_type))

        return await self._call_gemini_image(contents)

    @traceable(
        name="gemini_render_image_call",
        run_type="llm",
        tags=["gemini", "image", "render", "api-call"],
        metadata={"model_type": "gemini-image"}
    )
    async def _call_gemini_image(self, contents: list) -> bytes:
        """
        Make the actual Gemini image API call.

        Any text the model sent instead of an image is attached to the
        RenderError for diagnostics.
        """
        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    temperature=0.5
                )
            )
        except Exception as e:
            raise RenderError(f"Image generation failed: {e}") from e

        text_parts = []
        content = response.candidates[0].content if response.candidates else None
        if content is not None:
            for part in content.parts or []:
                if getattr(part, "inline_data", None) and part.inline_data.data:
                    return part.inline_data.data
                if getattr(part, "text", None):
                    text_parts.append(part.text)

        raise RenderError("No image generated in response", raw_response="\n".join(text_parts))


@functools.lru_cache()
def get_image_renderer() -> GeminiImageRenderer:
    """Cached so the Gemini client is created once."""
    return GeminiImageRenderer()
