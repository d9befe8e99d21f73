"""
LangGraph Workflow

Analysis workflow that turns an uploaded room photo into a validated layout:
VisionNode → ParseNode → ValidateNode → END

Nodes raise the room editor exceptions directly; LangGraph propagates
them out of ainvoke to the caller.
"""

import asyncio
import logging
from typing import Any, Dict

from langgraph.graph import END, StateGraph

from layout_editor.core.exceptions import (
    AnalysisError,
    LayoutValidationError,
    RoomEditorError,
    UpstreamTimeoutError,
)
from layout_editor.core.validation import parse_layout_text, validate_layout
from layout_editor.models.state import AnalysisState, create_initial_state
from layout_editor.vision.labels import normalize_layout_payload


logger = logging.getLogger(__name__)


# ============ Nodes ============

def make_vision_node(analyzer, timeout: float):
    """Vision node bound to an analyzer and its time budget."""

    async def vision_node(state: AnalysisState) -> Dict[str, Any]:
        try:
            raw_text = await asyncio.wait_for(
                analyzer.analyze(state["image_bytes"], state["mime_type"]),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            raise UpstreamTimeoutError("vision analysis", timeout)
        except RoomEditorError:
            raise
        except Exception as e:
            raise AnalysisError(
                f"Vision call failed: {e}",
                kind=AnalysisError.UPSTREAM_ERROR,
                raw_text=str(e)
            ) from e
        return {"raw_text": raw_text or ""}

    return vision_node


def parse_node(state: AnalysisState) -> Dict[str, Any]:
    """Decode the model answer and normalize names and style."""
    payload = parse_layout_text(state["raw_text"])
    return {"payload": normalize_layout_payload(payload)}


def make_validate_node(coordinate_policy: str):

    def validate_node(state: AnalysisState) -> Dict[str, Any]:
        try:
            document = validate_layout(
                state["payload"],
                coordinate_policy=coordinate_policy,
                require_geometry=True
            )
        except LayoutValidationError as e:
            raise AnalysisError(
                f"Vision output is not a valid layout: {e.message}",
                kind=AnalysisError.SCHEMA_INVALID,
                raw_text=state["raw_text"],
                errors=e.errors
            ) from e

        logger.info(
            "Analysis produced %d objects, style=%s",
            len(document.objects), document.style.value
        )
        return {"document": document}

    return validate_node


# ============ Graph Definition ============

def create_analysis_graph(analyzer, timeout: float, coordinate_policy: str = "reject") -> StateGraph:
    """
    Create the LangGraph workflow for room analysis.

    Flow:
        START → vision → parse → validate → END
    """
    graph = StateGraph(AnalysisState)

    graph.add_node("vision", make_vision_node(analyzer, timeout))
    graph.add_node("parse", parse_node)
    graph.add_node("validate", make_validate_node(coordinate_policy))

    graph.set_entry_point("vision")
    graph.add_edge("vision", "parse")
    graph.add_edge("parse", "validate")
    graph.add_edge("validate", END)

    return graph


def compile_analysis_graph(analyzer, timeout: float, coordinate_policy: str = "reject"):
    """Compile the analysis graph for execution."""
    return create_analysis_graph(analyzer, timeout, coordinate_policy).compile()


# ============ Execution Helpers ============

async def run_analysis(app, image_bytes: bytes, mime_type: str) -> AnalysisState:
    """
    Run a compiled analysis graph on one photo.

    Returns:
        Final AnalysisState with the validated document
    """
    initial_state = create_initial_state(image_bytes=image_bytes, mime_type=mime_type)
    return await app.ainvoke(initial_state)
