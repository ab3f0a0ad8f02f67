"""Feature and Layer dataclasses for the layer store.

Geometry is kept as a GeoJSON geometry mapping, coordinates in [lon, lat] order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mapmap.core.config import CANONICAL_KEY


def stringify(value: Any) -> str:
    """
    Convert a property value to the string used for key comparisons.

    Integral floats lose their fractional part so that a CSV "12" and a
    GeoJSON 12.0 compare equal. Booleans are rendered lower-case.

    Args:
        value: Any property value

    Returns:
        String representation
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_key(value: Any) -> str:
    """Lower-cased string form of a key value."""
    return stringify(value).lower()


@dataclass(eq=False)
class Feature:
    """
    A single geographic feature.

    Attributes:
        geometry: GeoJSON geometry mapping (may be None for null geometries)
        properties: Arbitrary key-value attributes, merged data lands here
        id: Optional GeoJSON feature id
        canonical_key: Normalized lookup key, kept apart from properties
    """

    geometry: dict | None
    properties: dict = field(default_factory=dict)
    id: Any = None
    canonical_key: str | None = None

    def normalize_key(self, key_field: str) -> str | None:
        """
        Derive canonical_key from a source property.

        Reads from the user properties only, so calling this repeatedly
        yields the same key.

        Args:
            key_field: Name of the property holding the key

        Returns:
            The canonical key, or None if the property is absent
        """
        value = self.properties.get(key_field)
        if value is not None:
            self.canonical_key = normalize_key(value)
        return self.canonical_key

    def get_value(self, name: str) -> Any:
        """Property value by name, with CANONICAL_KEY mapped to canonical_key."""
        if name == CANONICAL_KEY:
            return self.canonical_key
        return self.properties.get(name)

    def merge(self, attributes: dict) -> None:
        """Shallow-merge attributes into the property bag."""
        self.properties.update(attributes)

    def to_geojson(self, **extra_properties) -> dict:
        """
        Convert back to a GeoJSON Feature mapping.

        Args:
            **extra_properties: Properties added on top of the feature's own

        Returns:
            GeoJSON Feature dictionary
        """
        result = {
            "type": "Feature",
            "geometry": self.geometry,
            "properties": {**self.properties, **extra_properties},
        }
        if self.id is not None:
            result["id"] = self.id
        return result

    @classmethod
    def from_geojson(cls, data: dict) -> Feature:
        """
        Create a feature from a GeoJSON Feature mapping or a bare geometry.

        Args:
            data: GeoJSON Feature or geometry dictionary

        Returns:
            Feature instance
        """
        if data.get("type") == "Feature":
            return cls(
                geometry=data.get("geometry"),
                properties=dict(data.get("properties") or {}),
                id=data.get("id"),
            )
        return cls(geometry=data)


@dataclass
class Layer:
    """A named, ordered collection of features."""

    name: str
    features: list[Feature] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self):
        return iter(self.features)
