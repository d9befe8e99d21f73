"""
Room Service

Orchestrates the three room operations and the state they move through:

    Empty → Analyzed → Edited → Rendered

- analyze: photo → validated layout, stored as both original and current
- update: sparse edits merged into the stored layout, stored as current
- render: current layout → new image, stored under a fixed name

Each session has an asyncio.Lock. update holds it for the whole
read-merge-write. analyze and render release it while the model runs and
re-check, before committing, that nothing newer has superseded them.
Storage calls run in a worker thread so file I/O never blocks the loop.

Session bookkeeping is held weakly: once no operation references a
session, its entry is dropped.

FULLY TRACED with LangSmith.
"""

import asyncio
import functools
import logging
import weakref
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from langsmith import traceable

from layout_editor.agents.graph import compile_analysis_graph, run_analysis
from layout_editor.config import get_settings
from layout_editor.core.exceptions import (
    AnalysisError,
    InvalidImageError,
    LayoutNotFoundError,
    PreconditionError,
    RenderError,
    RequestCancelledError,
    RoomEditorError,
    StaleResultError,
    UpstreamTimeoutError,
)
from layout_editor.core.images import to_jpeg
from layout_editor.core.layout_store import LayoutStore
from layout_editor.core.merger import EditInput, coerce_edits, merge_layout
from layout_editor.core.storage import InMemoryBackend, JsonFileBackend, StorageBackend
from layout_editor.core.validation import validate_layout
from layout_editor.models.layout import LayoutDocument


logger = logging.getLogger(__name__)

CancelCheck = Callable[[], Awaitable[bool]]


@dataclass
class SessionState:
    """In-process bookkeeping for one room session."""
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    analysis_ticket: int = 0        # last analyze started
    epoch: int = 0                  # bumped by each committed analyze
    render_ticket: int = 0          # last render started
    committed_render: int = 0       # ticket of the render on disk


class RoomService:
    """
    Analyze / update / render for room sessions.

    Args:
        backend: Storage backend shared by all sessions
        analyzer: Object with async analyze(image_bytes, mime_type) -> str
        renderer: Object with async render(document, base_image, base_mime_type,
            room_type, style_hint) -> bytes
        coordinate_policy: "reject" or "clamp" for out-of-range coordinates
        merge_base: "current" (edits accumulate) or "original"
        validate_after_merge: Validate the merged layout before saving it
        vision_timeout: Seconds allowed for the vision call
        render_timeout: Seconds allowed for the render call
    """

    def __init__(
        self,
        backend: StorageBackend,
        analyzer,
        renderer,
        coordinate_policy: str = "reject",
        merge_base: str = "current",
        validate_after_merge: bool = True,
        vision_timeout: float = 60.0,
        render_timeout: float = 120.0,
    ):
        if merge_base not in ("current", "original"):
            raise ValueError(f"Unknown merge base: {merge_base!r}")

        self.backend = backend
        self.analyzer = analyzer
        self.renderer = renderer
        self.coordinate_policy = coordinate_policy
        self.merge_base = merge_base
        self.validate_after_merge = validate_after_merge
        self.vision_timeout = vision_timeout
        self.render_timeout = render_timeout

        self._analysis_app = compile_analysis_graph(analyzer, vision_timeout, coordinate_policy)
        self._sessions: "weakref.WeakValueDictionary[str, SessionState]" = weakref.WeakValueDictionary()

    def store(self, session_id: str = "default") -> LayoutStore:
        return LayoutStore(self.backend, session_id)

    def _session(self, session_id: str) -> SessionState:
        session = self._sessions.get(session_id)
        if session is None:
            session = SessionState()
            self._sessions[session_id] = session
        return session

    def active_sessions(self) -> int:
        """Number of sessions with an operation in flight."""
        return len(self._sessions)

    async def _ensure_not_cancelled(self, is_cancelled: Optional[CancelCheck], operation: str) -> None:
        if is_cancelled is not None and await is_cancelled():
            logger.warning("%s finished after the client went away; result discarded", operation)
            raise RequestCancelledError(f"{operation} was cancelled by the client; result discarded")

    # ============ Analyze ============

    @traceable(name="room_service.analyze", run_type="chain", tags=["service", "analyze"])
    async def analyze(
        self,
        image_bytes: bytes,
        mime_type: str,
        session_id: str = "default",
        is_cancelled: Optional[CancelCheck] = None,
    ) -> LayoutDocument:
        """
        Analyze a room photo and start a new layout session.

        Raises:
            AnalysisError: Vision call failed, or its output was not JSON or not a valid layout
            UpstreamTimeoutError: Vision call exceeded its time budget
            StaleResultError: A newer analyze started for the session meanwhile
            RequestCancelledError: The caller went away before the result was stored
        """
        session = self._session(session_id)
        store = self.store(session_id)

        session.analysis_ticket += 1
        ticket = session.analysis_ticket

        try:
            final_state = await run_analysis(self._analysis_app, image_bytes, mime_type)
        except AnalysisError as e:
            logger.warning("Analysis failed for session %s (%s): %s", session_id, e.kind, e.message)
            if e.kind != AnalysisError.UPSTREAM_ERROR:
                await asyncio.to_thread(store.save_raw_analysis, e.raw_text)
            raise

        await self._ensure_not_cancelled(is_cancelled, "analyze")

        document = final_state["document"]
        async with session.lock:
            if ticket != session.analysis_ticket:
                raise StaleResultError("A newer analysis was started for this session; result discarded")

            await asyncio.to_thread(store.save_base_image, image_bytes, mime_type)
            await asyncio.to_thread(store.save_original, document)
            await asyncio.to_thread(store.save_current, document)
            await asyncio.to_thread(store.save_raw_analysis, final_state["raw_text"])
            session.epoch += 1

        logger.info("Session %s analyzed: %d objects", session_id, len(document.objects))
        return document

    # ============ Update ============

    @traceable(name="room_service.update", run_type="chain", tags=["service", "update"])
    async def update(self, edits: Sequence[EditInput], session_id: str = "default") -> LayoutDocument:
        """
        Merge edits into the stored layout and save the result as current.

        Raises:
            PreconditionError: No layout has been analyzed yet
            InvalidEditError: An edit has no name or malformed fields
            LayoutValidationError: The merged layout breaks the layout contract
        """
        session = self._session(session_id)
        store = self.store(session_id)

        async with session.lock:
            if not await asyncio.to_thread(store.has_layout):
                raise PreconditionError("Analyze a room photo before editing its layout")

            edits = coerce_edits(edits)
            if self.merge_base == "original":
                base = await asyncio.to_thread(store.load_original)
            else:
                base = await asyncio.to_thread(store.load_current, True)

            merged = merge_layout(base, edits)
            if self.validate_after_merge:
                merged = validate_layout(
                    merged,
                    coordinate_policy=self.coordinate_policy,
                    require_geometry=False
                )
            await asyncio.to_thread(store.save_current, merged)

        logger.info(
            "Session %s updated: %d edit(s), %d objects",
            session_id, len(edits), len(merged.objects)
        )
        return merged

    # ============ Render ============

    @traceable(name="room_service.render", run_type="chain", tags=["service", "render"])
    async def render(
        self,
        session_id: str = "default",
        room_type: Optional[str] = None,
        style_hint: Optional[str] = None,
        is_cancelled: Optional[CancelCheck] = None,
    ) -> bytes:
        """
        Render the current layout and store the image as JPEG.

        A failed render leaves the stored layouts as they are.

        Raises:
            PreconditionError: No layout has been analyzed yet
            RenderError: The model call failed or returned no usable image
            UpstreamTimeoutError: Render call exceeded its time budget
            StaleResultError: The room was re-analyzed, or a newer render landed first
            RequestCancelledError: The caller went away before the image was stored
        """
        session = self._session(session_id)
        store = self.store(session_id)

        async with session.lock:
            if not await asyncio.to_thread(store.has_layout):
                raise PreconditionError("Analyze a room photo before rendering")
            document = await asyncio.to_thread(store.load_current, True)
            base = await asyncio.to_thread(store.load_base_image)
            epoch = session.epoch
            session.render_ticket += 1
            ticket = session.render_ticket

        base_image, base_mime_type = base if base else (None, "image/jpeg")
        try:
            image = await asyncio.wait_for(
                self.renderer.render(
                    document,
                    base_image=base_image,
                    base_mime_type=base_mime_type,
                    room_type=room_type,
                    style_hint=style_hint
                ),
                timeout=self.render_timeout
            )
        except asyncio.TimeoutError:
            raise UpstreamTimeoutError("image render", self.render_timeout)
        except RoomEditorError:
            raise
        except Exception as e:
            raise RenderError(f"Image generation failed: {e}", raw_response=str(e)) from e

        if not image:
            raise RenderError("Image model returned no image data")
        try:
            image = to_jpeg(image)
        except InvalidImageError as e:
            raise RenderError(f"Image model returned unusable data: {e.message}") from e

        await self._ensure_not_cancelled(is_cancelled, "render")

        async with session.lock:
            if session.epoch != epoch:
                raise StaleResultError("The room was re-analyzed while rendering; result discarded")
            if ticket < session.committed_render:
                raise StaleResultError("A newer render already completed; result discarded")
            await asyncio.to_thread(store.save_render, image)
            session.committed_render = ticket

        logger.info("Session %s rendered: %d bytes", session_id, len(image))
        return image

    # ============ Reads ============

    def get_layout(self, session_id: str = "default", prefer_updated: bool = True) -> LayoutDocument:
        """Raises LayoutNotFoundError if nothing was analyzed yet."""
        return self.store(session_id).load_current(prefer_updated=prefer_updated)

    def get_render(self, session_id: str = "default") -> bytes:
        image = self.store(session_id).load_render()
        if image is None:
            raise LayoutNotFoundError(f"Nothing has been rendered for session '{session_id}' yet")
        return image


def build_backend(settings) -> StorageBackend:
    if settings.storage_backend == "memory":
        return InMemoryBackend()
    return JsonFileBackend(settings.storage_dir)


@functools.lru_cache()
def get_room_service() -> RoomService:
    """
    Get the process-wide RoomService.
    Cached so session locks and Gemini clients are shared across requests.
    """
    from layout_editor.agents.vision_node import get_vision_analyzer
    from layout_editor.tools.render_image import get_image_renderer

    settings = get_settings()
    return RoomService(
        backend=build_backend(settings),
        analyzer=get_vision_analyzer(),
        renderer=get_image_renderer(),
        coordinate_policy=settings.coordinate_policy,
        merge_base=settings.merge_base,
        validate_after_merge=settings.validate_after_merge,
        vision_timeout=settings.vision_timeout_seconds,
        render_timeout=settings.render_timeout_seconds,
    )
