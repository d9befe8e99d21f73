"""
Layout Validation

Checks a candidate layout (model output or a merge result) against the
layout contract and turns pydantic errors into field-addressed messages
a client can act on.

Coordinate range handling is a policy:
- "reject": any coordinate outside [0, 1] is a validation error
- "clamp": out-of-range coordinates are pulled back into [0, 1]
"""

import json
import re
from typing import Any, Dict, List, Sequence, Tuple, Union

from pydantic import ValidationError

from layout_editor.core.exceptions import AnalysisError, LayoutValidationError
from layout_editor.models.layout import GEOMETRY_FIELDS, LayoutDocument, LayoutObject


COORDINATE_POLICIES = ("reject", "clamp")

_CODE_FENCE = re.compile(r"```(?:json)?\s*|```", re.IGNORECASE)


def _format_loc(loc: Sequence[Union[str, int]]) -> str:
    """('objects', 1, 'x') -> 'objects[1].x'"""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _pydantic_errors(exc: ValidationError) -> List[Dict[str, str]]:
    return [
        {"field": _format_loc(err["loc"]) or "layout", "message": err["msg"]}
        for err in exc.errors()
    ]


def _check_geometry(
    obj: LayoutObject,
    index: int,
    coordinate_policy: str,
    require_geometry: bool,
) -> Tuple[LayoutObject, List[Dict[str, str]]]:
    errors = []
    clamped = {}

    for field in GEOMETRY_FIELDS:
        value = getattr(obj, field)
        path = f"objects[{index}].{field}"

        if value is None:
            if require_geometry:
                errors.append({"field": path, "message": "Field required"})
            continue

        if 0.0 <= value <= 1.0:
            continue

        if coordinate_policy == "clamp":
            clamped[field] = min(1.0, max(0.0, value))
        else:
            errors.append({
                "field": path,
                "message": f"{value} is outside the normalized range [0, 1]",
            })

    if clamped:
        obj = obj.model_copy(update=clamped)
    return obj, errors


def validate_layout(
    data: Any,
    coordinate_policy: str = "reject",
    require_geometry: bool = True,
) -> LayoutDocument:
    """
    Validate a layout and return it as a LayoutDocument.

    Args:
        data: A mapping in wire form (camelCase keys) or a LayoutDocument
        coordinate_policy: "reject" or "clamp" for out-of-range coordinates
        require_geometry: Whether every object must carry x, y, width and height

    Raises:
        LayoutValidationError: With one {field, message} entry per problem
    """
    if coordinate_policy not in COORDINATE_POLICIES:
        raise ValueError(f"Unknown coordinate policy: {coordinate_policy!r}")

    if isinstance(data, LayoutDocument):
        data = data.to_json_dict()

    if not isinstance(data, dict):
        raise LayoutValidationError([
            {"field": "layout", "message": f"expected a JSON object, got {type(data).__name__}"}
        ])

    try:
        document = LayoutDocument.model_validate(data)
    except ValidationError as e:
        raise LayoutValidationError(_pydantic_errors(e)) from e

    errors = []
    objects = []
    for index, obj in enumerate(document.objects):
        checked, obj_errors = _check_geometry(obj, index, coordinate_policy, require_geometry)
        objects.append(checked)
        errors.extend(obj_errors)

    if errors:
        raise LayoutValidationError(errors)

    if objects != document.objects:
        document = document.model_copy(update={"objects": objects})
    return document


def parse_layout_text(raw_text: str) -> Any:
    """
    Parse the model's answer as JSON.

    Models often wrap JSON in ```json fences despite being told not to,
    so fences are stripped first.

    Raises:
        AnalysisError: kind "invalid_json", with the raw text attached
    """
    cleaned = _CODE_FENCE.sub("", raw_text or "").strip()
    if not cleaned:
        raise AnalysisError(
            "Vision model returned an empty response",
            kind=AnalysisError.INVALID_JSON,
            raw_text=raw_text or "",
        )

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisError(
            f"Failed to parse vision response as JSON: {e}",
            kind=AnalysisError.INVALID_JSON,
            raw_text=raw_text,
        ) from e
