# layout_editor/vision/labels.py
"""
Name and style normalization for vision output.

Gemini might say "Night Stand" in one run and "night_stand" in the next.
Object names are the identity key for edits, so we normalize them once,
before the layout is stored, and clients edit the stored names verbatim.
"""

from typing import Any

from layout_editor.models.layout import RoomStyle


STYLE_VALUES = {style.value for style in RoomStyle}

# Common model answers -> canonical styles
STYLE_ALIASES = {
    "minimal": "minimalist",
    "minimalistic": "minimalist",
    "scandinavian": "minimalist",
    "contemporary": "modern",
    "mid century modern": "modern",
    "mid-century modern": "modern",
    "warm": "cozy",
    "cosy": "cozy",
    "farmhouse": "rustic",
    "loft": "industrial",
    "open plan": "open",
    "open concept": "open",
}


def normalize_object_name(name: Any) -> Any:
    """'Night Stand' -> 'night_stand'. Non-strings are returned untouched for validation to reject."""
    if not isinstance(name, str):
        return name
    key = name.strip().lower().replace("-", " ").replace("_", " ")
    return "_".join(key.split())


def normalize_style(style: Any) -> Any:
    if not isinstance(style, str):
        return style
    key = " ".join(style.strip().lower().split())
    if key in STYLE_VALUES:
        return key
    return STYLE_ALIASES.get(key, key)


def normalize_layout_payload(payload: Any) -> Any:
    """Apply name and style normalization to a decoded vision answer."""
    if not isinstance(payload, dict):
        return payload

    normalized = dict(payload)
    if "style" in normalized:
        normalized["style"] = normalize_style(normalized["style"])

    objects = normalized.get("objects")
    if isinstance(objects, list):
        normalized["objects"] = [
            {**obj, "name": normalize_object_name(obj.get("name"))}
            if isinstance(obj, dict) and "name" in obj else obj
            for obj in objects
        ]
    return normalized
