"""
Room Layout Models

Pydantic models for the structured furniture layout produced by the
vision analyzer and mutated by client edits.

Coordinates are normalized to the unit square: (0, 0) is the top-left of
the photo and (1, 1) the bottom-right.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from typing_extensions import Annotated


HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
PALETTE_SIZE = 5
GEOMETRY_FIELDS = ("x", "y", "width", "height")

HexColor = Annotated[str, StringConstraints(pattern=HEX_COLOR_PATTERN)]


class RoomStyle(str, Enum):
    """Overall decor style of the room. Exactly one per layout."""
    MODERN = "modern"
    COZY = "cozy"
    MINIMALIST = "minimalist"
    RUSTIC = "rustic"
    INDUSTRIAL = "industrial"
    GAMING = "gaming"
    OPEN = "open"


class LayoutObject(BaseModel):
    """One piece of furniture or decor, identified by its name."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
        json_schema_extra={
            "examples": [{"name": "bed", "x": 0.2, "y": 0.5, "width": 0.4, "height": 0.3}]
        },
    )

    name: str = Field(..., min_length=1, description="Unique identifier within the layout, e.g. 'bed'")
    x: Optional[float] = Field(None, description="Left edge, 0-1")
    y: Optional[float] = Field(None, description="Top edge, 0-1")
    width: Optional[float] = Field(None, description="Width as a fraction of the image, 0-1")
    height: Optional[float] = Field(None, description="Height as a fraction of the image, 0-1")

    def missing_geometry(self) -> List[str]:
        return [f for f in GEOMETRY_FIELDS if getattr(self, f) is None]


class LayoutDocument(BaseModel):
    """Full layout of one room: objects, style and dominant colours."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    objects: List[LayoutObject] = Field(default_factory=list)
    style: RoomStyle
    color_palette: List[HexColor] = Field(
        ...,
        alias="colorPalette",
        min_length=PALETTE_SIZE,
        max_length=PALETTE_SIZE,
        description="Exactly five dominant colours as #RRGGBB",
    )

    @field_validator("objects")
    @classmethod
    def names_are_unique(cls, objects: List[LayoutObject]) -> List[LayoutObject]:
        seen = set()
        for obj in objects:
            if obj.name in seen:
                raise ValueError(f"duplicate object name '{obj.name}'")
            seen.add(obj.name)
        return objects

    def object_names(self) -> List[str]:
        return [obj.name for obj in self.objects]

    def get_object(self, name: str) -> Optional[LayoutObject]:
        return next((obj for obj in self.objects if obj.name == name), None)

    def to_json_dict(self) -> Dict[str, Any]:
        """Wire/storage form: camelCase keys, absent coordinates omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LayoutObjectEdit(BaseModel):
    """
    Sparse change to one object.

    Only the fields the client actually sent are applied; presence is
    tracked by pydantic's model_fields_set, so an omitted field keeps its
    stored value. A coordinate sent as null is rejected.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, allow_inf_nan=False)

    name: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @field_validator(*GEOMETRY_FIELDS, mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must be a number when provided")
        return value

    def changes(self) -> Dict[str, float]:
        """Geometry fields explicitly present in this edit."""
        return {f: getattr(self, f) for f in GEOMETRY_FIELDS if f in self.model_fields_set}


class EditRequest(BaseModel):
    """Body of an update: a sparse list of object edits."""
    objects: List[LayoutObjectEdit] = Field(default_factory=list)
