"""
Tests for the Render Image Tool

Run with: pytest tests/test_render_image.py -v
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from layout_editor.core.exceptions import RenderError
from layout_editor.core.merger import merge_layout
from layout_editor.tools.render_image import GeminiImageRenderer, build_render_prompt


def gemini_response(*parts):
    content = SimpleNamespace(parts=list(parts))
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)])


def image_part(data: bytes):
    return SimpleNamespace(inline_data=SimpleNamespace(data=data), text=None)


def text_part(text: str):
    return SimpleNamespace(inline_data=None, text=text)


def make_renderer(response) -> GeminiImageRenderer:
    client = MagicMock()
    client.models.generate_content.return_value = response
    return GeminiImageRenderer(client=client, model="test-image-model")


# ============ Prompt ============

def test_prompt_describes_layout(base_document):
    prompt = build_render_prompt(base_document, has_base_image=True, room_type="bedroom")

    assert "BED: left 20%, top 50%, width 40%, height 30%" in prompt
    assert "DESK: left 70%, top 30%" in prompt
    assert "STYLE: modern" in prompt
    assert ", ".join(base_document.color_palette) in prompt
    assert "photo of a bedroom" in prompt


def test_prompt_style_hint_overrides_style(base_document):
    prompt = build_render_prompt(base_document, has_base_image=False, style_hint="rustic")
    assert "STYLE: rustic" in prompt
    assert "Generate a photorealistic image of a rustic room" in prompt


def test_prompt_marks_unknown_geometry(base_document):
    doc = merge_layout(base_document, [{"name": "floor_lamp", "x": 0.1}])
    prompt = build_render_prompt(doc, has_base_image=True)
    assert "FLOOR LAMP: left 10%, top ?, width ?, height ?" in prompt


# ============ Gemini Calls ============

async def test_render_returns_inline_image(base_document):
    renderer = make_renderer(gemini_response(text_part("Here you go"), image_part(b"png-bytes")))

    image = await renderer.render(base_document, base_image=b"photo", base_mime_type="image/png")

    assert image == b"png-bytes"
    kwargs = renderer.client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "test-image-model"
    assert len(kwargs["contents"]) == 2
    assert isinstance(kwargs["contents"][1], str)
    print("✓ Render returned inline image data")


async def test_render_without_base_image_sends_prompt_only(base_document):
    renderer = make_renderer(gemini_response(image_part(b"png-bytes")))

    await renderer.render(base_document)

    contents = renderer.client.models.generate_content.call_args.kwargs["contents"]
    assert len(contents) == 1
    assert "Generate a photorealistic image" in contents[0]


async def test_render_text_only_response_fails(base_document):
    renderer = make_renderer(gemini_response(text_part("I cannot edit this image.")))

    with pytest.raises(RenderError) as exc_info:
        await renderer.render(base_document)
    assert exc_info.value.raw_response == "I cannot edit this image."


async def test_render_no_candidates_fails(base_document):
    renderer = make_renderer(SimpleNamespace(candidates=[]))

    with pytest.raises(RenderError):
        await renderer.render(base_document)


async def test_render_client_error_wrapped(base_document):
    client = MagicMock()
    client.models.generate_content.side_effect = RuntimeError("quota exceeded")
    renderer = GeminiImageRenderer(client=client, model="test-image-model")

    with pytest.raises(RenderError) as exc_info:
        await renderer.render(base_document)
    assert "quota exceeded" in exc_info.value.message
