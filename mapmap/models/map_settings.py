"""Settings models for map instances and load operations.

Options are merged field by field with dataclasses.replace(); there is no
generic deep merging of nested mappings.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional, Tuple

from mapmap.core.config import (
    CANONICAL_KEY,
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_EXTENT_FILL,
    DEFAULT_FOCAL_CENTER,
    DEFAULT_KEY_FIELD,
)


@dataclass(frozen=True)
class FocalCenter:
    """Point of the canvas the map is centered on, in canvas fractions."""

    x: float = DEFAULT_FOCAL_CENTER[0]
    y: float = DEFAULT_FOCAL_CENTER[1]

    def __post_init__(self):
        """Validate that the focal center lies strictly inside the canvas."""
        for axis, value in (("x", self.x), ("y", self.y)):
            if not 0 < value < 1:
                raise ValueError(f"Focal center {axis} must be between 0 and 1 (exclusive), got {value}")

    @property
    def bias(self) -> Tuple[float, float]:
        """
        Fit tightening factors per axis.

        1.0 for a centered map, shrinking towards 0 as the focal center moves
        to an edge, so that the geometry still fits on the near side.
        """
        return (1 - 2 * abs(0.5 - self.x), 1 - 2 * abs(0.5 - self.y))


@dataclass(frozen=True)
class Canvas:
    """Size of the drawing area in canvas units."""

    width: float = DEFAULT_CANVAS_WIDTH
    height: float = DEFAULT_CANVAS_HEIGHT

    def __post_init__(self):
        """Validate canvas size."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas size must be positive, got {self.width}x{self.height}")

    @property
    def center(self) -> Tuple[float, float]:
        """Pixel center of the canvas."""
        return (self.width / 2, self.height / 2)


@dataclass(frozen=True)
class ExtentOptions:
    """Options for fitting the projection to geometry."""

    fill: float = DEFAULT_EXTENT_FILL  # fraction of the canvas the geometry may cover

    def __post_init__(self):
        """Validate fill fraction."""
        if not 0 < self.fill <= 1:
            raise ValueError(f"Extent fill must be in (0, 1], got {self.fill}")


@dataclass(frozen=True)
class GeometryOptions:
    """Options for one geometry load."""

    layers: Optional[Tuple[str, ...]] = None  # objects to extract, or target layer name
    key_field: Optional[str] = DEFAULT_KEY_FIELD  # property normalized into canonical_key
    index: Optional[int] = None  # explicit layer position in the store

    def __post_init__(self):
        """Normalize a single layer name into a tuple."""
        if isinstance(self.layers, str):
            object.__setattr__(self, "layers", (self.layers,))
        elif self.layers is not None:
            object.__setattr__(self, "layers", tuple(self.layers))


@dataclass
class MapSettings:
    """Per-instance map settings."""

    canvas: Canvas = field(default_factory=Canvas)
    focal_center: FocalCenter = field(default_factory=FocalCenter)
    extent: ExtentOptions = field(default_factory=ExtentOptions)
    key_field: str = DEFAULT_KEY_FIELD
    identify_properties: Tuple[str, ...] = (CANONICAL_KEY,)

    def __post_init__(self):
        """Validate and normalize settings."""
        if isinstance(self.identify_properties, str):
            self.identify_properties = (self.identify_properties,)
        else:
            self.identify_properties = tuple(self.identify_properties)
        if not self.identify_properties:
            raise ValueError("identify_properties cannot be empty")

    def override(self, **changes) -> "MapSettings":
        """
        Create a copy with some fields replaced.

        Args:
            **changes: Field values; None values are ignored

        Returns:
            New MapSettings instance
        """
        valid = {f.name for f in fields(self)}
        unknown = set(changes) - valid
        if unknown:
            raise ValueError(f"Unknown map settings: {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MapSettings":
        """
        Create settings from a dictionary (loaded from YAML).

        Args:
            data: Dictionary with optional width, height, center, fill,
                  key_field and identify keys

        Returns:
            MapSettings instance
        """
        center = data.get("center", DEFAULT_FOCAL_CENTER)
        identify = data.get("identify", (CANONICAL_KEY,))
        return cls(
            canvas=Canvas(
                width=data.get("width", DEFAULT_CANVAS_WIDTH),
                height=data.get("height", DEFAULT_CANVAS_HEIGHT),
            ),
            focal_center=FocalCenter(x=center[0], y=center[1]),
            extent=ExtentOptions(fill=data.get("fill", DEFAULT_EXTENT_FILL)),
            key_field=data.get("key_field", DEFAULT_KEY_FIELD),
            identify_properties=identify,
        )
