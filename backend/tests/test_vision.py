"""
Tests for the Vision Analyzer and the analysis graph

Run with: pytest tests/test_vision.py -v
"""

import json
from unittest.mock import MagicMock

import pytest

from layout_editor.agents.graph import compile_analysis_graph, run_analysis
from layout_editor.agents.vision_node import ROOM_ANALYSIS_PROMPT, GeminiVisionAnalyzer
from layout_editor.core.exceptions import AnalysisError
from layout_editor.models.layout import RoomStyle
from layout_editor.vision.labels import normalize_layout_payload, normalize_object_name, normalize_style

from conftest import FakeAnalyzer, layout_payload


# ============ Unit Tests (No API calls) ============

@pytest.mark.parametrize("raw,expected", [
    ("bed", "bed"),
    ("Night Stand", "night_stand"),
    ("  coffee-table ", "coffee_table"),
    ("Chair_2", "chair_2"),
])
def test_normalize_object_name(raw, expected):
    assert normalize_object_name(raw) == expected


def test_normalize_object_name_leaves_non_strings():
    assert normalize_object_name(None) is None
    assert normalize_object_name(3) == 3


@pytest.mark.parametrize("raw,expected", [
    ("Modern", "modern"),
    ("minimal", "minimalist"),
    ("Contemporary", "modern"),
    ("open  plan", "open"),
    ("baroque", "baroque"),
])
def test_normalize_style(raw, expected):
    assert normalize_style(raw) == expected


def test_normalize_payload_does_not_touch_input():
    payload = layout_payload(objects=[{"name": "Night Stand", "x": 0.1}], style="Cosy")
    normalized = normalize_layout_payload(payload)

    assert normalized["objects"][0]["name"] == "night_stand"
    assert normalized["style"] == "cozy"
    assert payload["objects"][0]["name"] == "Night Stand"


def test_prompt_lists_every_style():
    for style in RoomStyle:
        assert f'"{style.value}"' in ROOM_ANALYSIS_PROMPT
    assert "colorPalette" in ROOM_ANALYSIS_PROMPT
    print("✓ Prompt covers all styles")


# ============ Analyzer (mocked Gemini client) ============

async def test_analyzer_returns_raw_text():
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text='{"objects": []}')
    analyzer = GeminiVisionAnalyzer(client=client, model="test-vision-model")

    text = await analyzer.analyze(b"jpeg-bytes", "image/jpeg")

    assert text == '{"objects": []}'
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "test-vision-model"
    assert kwargs["contents"][1] == ROOM_ANALYSIS_PROMPT
    assert kwargs["config"].response_mime_type == "application/json"


async def test_analyzer_empty_response_text():
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text=None)
    analyzer = GeminiVisionAnalyzer(client=client, model="test-vision-model")

    assert await analyzer.analyze(b"jpeg-bytes", "image/jpeg") == ""


async def test_analyzer_wraps_provider_failure():
    client = MagicMock()
    client.models.generate_content.side_effect = RuntimeError("503 UNAVAILABLE")
    analyzer = GeminiVisionAnalyzer(client=client, model="test-vision-model")

    with pytest.raises(AnalysisError) as exc_info:
        await analyzer.analyze(b"jpeg-bytes", "image/jpeg")

    assert exc_info.value.kind == AnalysisError.UPSTREAM_ERROR
    assert "503 UNAVAILABLE" in exc_info.value.raw_text


def test_analyzer_requires_api_key(monkeypatch):
    from layout_editor.config import get_settings

    monkeypatch.setenv("GOOGLE_API_KEY", "")
    get_settings.cache_clear()
    try:
        with pytest.raises(ValueError):
            GeminiVisionAnalyzer()
    finally:
        get_settings.cache_clear()


# ============ Analysis Graph ============

async def test_graph_produces_document():
    app = compile_analysis_graph(FakeAnalyzer(), timeout=1.0)
    state = await run_analysis(app, b"img", "image/png")

    assert state["document"].object_names() == ["bed", "desk"]
    assert json.loads(state["raw_text"]) == layout_payload()


async def test_graph_clamp_policy():
    answer = json.dumps(layout_payload(
        objects=[{"name": "bed", "x": 0.2, "y": 0.5, "width": 1.2, "height": 0.3}]
    ))
    app = compile_analysis_graph(FakeAnalyzer(answer), timeout=1.0, coordinate_policy="clamp")
    state = await run_analysis(app, b"img", "image/png")

    assert state["document"].objects[0].width == 1.0


async def test_graph_missing_geometry_is_schema_invalid():
    answer = json.dumps(layout_payload(objects=[{"name": "lamp", "x": 0.1}]))
    app = compile_analysis_graph(FakeAnalyzer(answer), timeout=1.0)

    with pytest.raises(AnalysisError) as exc_info:
        await run_analysis(app, b"img", "image/png")

    assert exc_info.value.kind == AnalysisError.SCHEMA_INVALID
    assert [e["field"] for e in exc_info.value.errors] == [
        "objects[0].y", "objects[0].width", "objects[0].height"
    ]


async def test_graph_non_object_json_is_schema_invalid():
    app = compile_analysis_graph(FakeAnalyzer("[1, 2, 3]"), timeout=1.0)

    with pytest.raises(AnalysisError) as exc_info:
        await run_analysis(app, b"img", "image/png")
    assert exc_info.value.kind == AnalysisError.SCHEMA_INVALID
    assert exc_info.value.raw_text == "[1, 2, 3]"


async def test_graph_wraps_analyzer_failure():
    app = compile_analysis_graph(FakeAnalyzer(error=ConnectionError("connection reset")), timeout=1.0)

    with pytest.raises(AnalysisError) as exc_info:
        await run_analysis(app, b"img", "image/png")
    assert exc_info.value.kind == AnalysisError.UPSTREAM_ERROR
    assert exc_info.value.raw_text == "connection reset"
