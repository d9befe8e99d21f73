"""
Vision Node

Handles room photo analysis using Gemini Vision.
FULLY TRACED with LangSmith - including Gemini API calls.

The analyzer only talks to the model and returns its raw answer; parsing
and validation happen in the analysis graph so a bad answer can be kept
for diagnostics.
"""

import asyncio
import functools
import logging

from google import genai
from google.genai import types
from langsmith import traceable

from layout_editor.config import get_settings
from layout_editor.core.exceptions import AnalysisError
from layout_editor.models.layout import PALETTE_SIZE, RoomStyle


logger = logging.getLogger(__name__)


STYLE_CHOICES = " | ".join(f'"{s.value}"' for s in RoomStyle)

ROOM_ANALYSIS_PROMPT = f"""Analyze this room image and describe its layout.
Return a JSON object with this structure (no markdown, no backticks, no explanations):
{{
    "objects": [
        {{"name": "bed", "x": 0.2, "y": 0.5, "width": 0.4, "height": 0.3}},
        {{"name": "desk", "x": 0.7, "y": 0.3, "width": 0.2, "height": 0.15}}
    ],
    "style": {STYLE_CHOICES},
    "colorPalette": ["#RRGGBB", "#RRGGBB", "#RRGGBB", "#RRGGBB", "#RRGGBB"]
}}

Guidelines:
- Detect and list all visible furniture or decorative items (bed, desk, chair, lamp, rug, curtain, chandelier, etc.).
- Give every object a unique name. If there are several of a kind, number them: "chair_1", "chair_2".
- x and y are the top-left corner of the object, width and height its size,
  all as fractions of the image between 0 and 1.
- Choose exactly one style.
- Include exactly {PALETTE_SIZE} dominant colors as #RRGGBB hex codes (no color names or explanations).
- Do not include explanations - only valid JSON.
"""


class GeminiVisionAnalyzer:
    """
    Vision analyzer backed by Gemini.
    All methods are traced with LangSmith.
    """

    def __init__(self, client: genai.Client = None, model: str = None):
        settings = get_settings()
        if client is None:
            if not settings.google_api_key:
                raise ValueError("GOOGLE_API_KEY environment variable is not set")
            client = genai.Client(api_key=settings.google_api_key)
        self.client = client
        self.model = model or settings.vision_model_name

    @traceable(
        name="gemini_vision_call",
        run_type="llm",
        tags=["gemini", "vision", "api-call"],
        metadata={"model_type": "gemini-vision"}
    )
    async def analyze(self, image_bytes: bytes, mime_type: str) -> str:
        """
        Send the room photo to Gemini and return its raw text answer.
        """
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            temperature=0.1  # Low temperature for more stable coordinates
        )

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    ROOM_ANALYSIS_PROMPT
                ],
                config=config
            )
        except Exception as e:
            logger.error(f"Vision call failed: {e}")
            raise AnalysisError(
                f"Vision call failed: {e}",
                kind=AnalysisError.UPSTREAM_ERROR,
                raw_text=str(e)
            ) from e

        text = response.text or ""
        logger.info("Vision model %s answered with %d characters", self.model, len(text))
        return text


@functools.lru_cache()
def get_vision_analyzer() -> GeminiVisionAnalyzer:
    """
    Get a singleton instance of GeminiVisionAnalyzer.
    Cached to avoid re-initializing the Gemini client on every request.
    """
    return GeminiVisionAnalyzer()
