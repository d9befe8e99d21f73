"""
Shared fixtures: sample layouts, tiny images and fake model collaborators.
"""

import asyncio
import io
import json
import time

import pytest
from PIL import Image

from layout_editor.core.room_service import RoomService
from layout_editor.core.storage import InMemoryBackend
from layout_editor.models.layout import LayoutDocument


PALETTE = ["#FFFFFF", "#000000", "#A0522D", "#F5F5DC", "#708090"]


def make_image_bytes(image_format: str = "PNG", size=(8, 8), color=(200, 120, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


def layout_payload(**overrides) -> dict:
    payload = {
        "objects": [
            {"name": "bed", "x": 0.2, "y": 0.5, "width": 0.4, "height": 0.3},
            {"name": "desk", "x": 0.7, "y": 0.3, "width": 0.2, "height": 0.15},
        ],
        "style": "modern",
        "colorPalette": list(PALETTE),
    }
    payload.update(overrides)
    return payload


class FakeAnalyzer:
    """Stands in for the Gemini vision analyzer."""

    def __init__(self, answer=None, delay: float = 0.0, error: Exception = None):
        self.answers = [answer if answer is not None else json.dumps(layout_payload())]
        self.delay = delay
        self.error = error
        self.calls = 0

    def queue(self, *answers):
        self.answers = list(answers)

    async def analyze(self, image_bytes: bytes, mime_type: str) -> str:
        answer = self.answers[min(self.calls, len(self.answers) - 1)]
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return answer


class FakeRenderer:
    """Stands in for the Gemini image renderer."""

    def __init__(self, image: bytes = None, delay: float = 0.0, error: Exception = None):
        self.image = make_image_bytes() if image is None else image
        self.delay = delay
        self.error = error
        self.calls = []

    async def render(self, document, base_image=None, base_mime_type="image/jpeg",
                     room_type=None, style_hint=None) -> bytes:
        self.calls.append({
            "document": document,
            "base_image": base_image,
            "base_mime_type": base_mime_type,
            "room_type": room_type,
            "style_hint": style_hint,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.image


class SlowBackend(InMemoryBackend):
    """In-memory backend whose reads and writes take a little while."""

    def __init__(self, delay: float = 0.01):
        super().__init__()
        self.delay = delay

    def get_json(self, key):
        time.sleep(self.delay)
        return super().get_json(key)

    def put_json(self, key, value):
        time.sleep(self.delay)
        super().put_json(key, value)


@pytest.fixture
def base_document() -> LayoutDocument:
    return LayoutDocument.model_validate(layout_payload())


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def service(backend, analyzer, renderer) -> RoomService:
    return RoomService(
        backend=backend,
        analyzer=analyzer,
        renderer=renderer,
        vision_timeout=1.0,
        render_timeout=1.0,
    )


@pytest.fixture
def photo() -> bytes:
    return make_image_bytes("JPEG")
