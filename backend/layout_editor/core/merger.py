"""
Layout Merger

Reconciles a sparse list of object edits into a full layout.

Rules:
- An edit whose name matches a stored object overwrites only the fields
  it carries; the object keeps its position in the list.
- An edit with an unknown name becomes a new object, appended in the
  order the edits were given.
- Style and colour palette are never touched by edits.
- The base document is never modified; a new document is returned.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence, Union

from pydantic import ValidationError

from layout_editor.core.exceptions import InvalidEditError
from layout_editor.models.layout import LayoutDocument, LayoutObject, LayoutObjectEdit


logger = logging.getLogger(__name__)

EditInput = Union[LayoutObjectEdit, Mapping[str, Any]]


def coerce_edits(edits: Sequence[EditInput]) -> List[LayoutObjectEdit]:
    """
    Turn raw edit entries into LayoutObjectEdit values.

    Raises:
        InvalidEditError: If an entry is malformed or has no name
    """
    coerced = []
    for index, edit in enumerate(edits):
        if not isinstance(edit, LayoutObjectEdit):
            if not isinstance(edit, Mapping):
                raise InvalidEditError(
                    f"Edit #{index} must be an object, got {type(edit).__name__}",
                    index=index,
                )
            try:
                edit = LayoutObjectEdit.model_validate(dict(edit))
            except ValidationError as e:
                err = e.errors()[0]
                field = ".".join(str(p) for p in err["loc"])
                raise InvalidEditError(f"Edit #{index}: {field}: {err['msg']}", index=index) from e

        if not edit.name:
            raise InvalidEditError(f"Edit #{index} is missing a name", index=index)
        coerced.append(edit)
    return coerced


def merge_layout(base: LayoutDocument, edits: Sequence[EditInput]) -> LayoutDocument:
    """
    Merge edits into base and return the resulting layout.

    Args:
        base: Stored layout to merge into (left untouched)
        edits: Sparse object edits; each must carry a name

    Returns:
        A new LayoutDocument

    Raises:
        InvalidEditError: If any edit lacks a name
    """
    edits = coerce_edits(edits)

    # Left to right, so the last edit for a name wins
    by_name: Dict[str, LayoutObjectEdit] = {}
    for edit in edits:
        by_name[edit.name] = edit

    merged: List[LayoutObject] = []
    for obj in base.objects:
        edit = by_name.get(obj.name)
        if edit is None:
            merged.append(obj)
        else:
            merged.append(obj.model_copy(update=edit.changes()))

    existing = set(base.object_names())
    appended = set()
    for edit in edits:
        if edit.name in existing or edit.name in appended:
            continue
        final = by_name[edit.name]
        merged.append(LayoutObject(name=final.name, **final.changes()))
        appended.add(edit.name)

    if appended:
        logger.debug("Merge added %d new object(s): %s", len(appended), sorted(appended))

    return base.model_copy(update={
        "objects": merged,
        "color_palette": list(base.color_palette),
    })
