"""
Layout Store

Session-scoped access to the persisted layout records:

- "original": the validated analysis result, written once per analyze
- "current": the latest full layout after edits, replaced on each update

Alongside the layouts it keeps the uploaded photo (render reference), the
latest render under a fixed name, and the model's raw answer for
diagnostics. Nothing outside this class touches the backend keys.
"""

import logging
from typing import Optional, Tuple

from layout_editor.core.exceptions import LayoutNotFoundError
from layout_editor.core.storage import StorageBackend
from layout_editor.models.layout import LayoutDocument


logger = logging.getLogger(__name__)

ORIGINAL_KEY = "original"
CURRENT_KEY = "current"
BASE_IMAGE_KEY = "base_image"
RENDER_KEY = "renderedImage.jpeg"
RAW_ANALYSIS_KEY = "raw_analysis"


class LayoutStore:
    """Layout records for one room session."""

    def __init__(self, backend: StorageBackend, session_id: str = "default"):
        self.backend = backend
        self.session_id = session_id

    def _key(self, name: str) -> str:
        return f"{self.session_id}/{name}"

    def _load(self, name: str) -> Optional[LayoutDocument]:
        data = self.backend.get_json(self._key(name))
        if data is None:
            return None
        # Stored records were validated before they were written
        return LayoutDocument.model_validate(data)

    def _save(self, name: str, doc: LayoutDocument) -> None:
        self.backend.put_json(self._key(name), doc.to_json_dict())
        logger.debug("Saved %s layout for session %s (%d objects)", name, self.session_id, len(doc.objects))

    # ============ Layouts ============

    def load_original(self) -> LayoutDocument:
        doc = self._load(ORIGINAL_KEY)
        if doc is None:
            raise LayoutNotFoundError(
                f"No layout has been analyzed for session '{self.session_id}' yet"
            )
        return doc

    def save_original(self, doc: LayoutDocument) -> None:
        self._save(ORIGINAL_KEY, doc)

    def load_current(self, prefer_updated: bool = True) -> LayoutDocument:
        """
        Load the edited layout, or the original one.

        With prefer_updated the "current" record is returned, falling back
        to "original" if no current record was written.
        """
        if prefer_updated:
            doc = self._load(CURRENT_KEY)
            if doc is not None:
                return doc
        return self.load_original()

    def save_current(self, doc: LayoutDocument) -> None:
        self._save(CURRENT_KEY, doc)

    def has_layout(self) -> bool:
        return self.backend.get_json(self._key(ORIGINAL_KEY)) is not None

    # ============ Images & Diagnostics ============

    def save_base_image(self, data: bytes, mime_type: str) -> None:
        self.backend.put_bytes(self._key(BASE_IMAGE_KEY), data)
        self.backend.put_json(self._key(BASE_IMAGE_KEY + "_meta"), {"mime_type": mime_type})

    def load_base_image(self) -> Optional[Tuple[bytes, str]]:
        data = self.backend.get_bytes(self._key(BASE_IMAGE_KEY))
        if data is None:
            return None
        meta = self.backend.get_json(self._key(BASE_IMAGE_KEY + "_meta")) or {}
        return data, meta.get("mime_type", "image/jpeg")

    def save_render(self, data: bytes) -> None:
        self.backend.put_bytes(self._key(RENDER_KEY), data)

    def load_render(self) -> Optional[bytes]:
        return self.backend.get_bytes(self._key(RENDER_KEY))

    def save_raw_analysis(self, text: str) -> None:
        self.backend.put_bytes(self._key(RAW_ANALYSIS_KEY + ".txt"), (text or "").encode("utf-8"))

    def load_raw_analysis(self) -> Optional[str]:
        data = self.backend.get_bytes(self._key(RAW_ANALYSIS_KEY + ".txt"))
        return None if data is None else data.decode("utf-8")
