"""Conversion of loaded geometry payloads into layers of the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mapmap.core.config import LAYER_NAME_PREFIX
from mapmap.core.errors import GeometryFormatError
from mapmap.core.layer_store import LayerStore
from mapmap.core.topology import TopologyDecoder, is_topology
from mapmap.models.feature import Feature
from mapmap.models.map_settings import GeometryOptions

logger = logging.getLogger(__name__)

GEOMETRY_TYPES = {
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "GeometryCollection",
}


@dataclass
class DerivedLayer:
    """A layer computed from already loaded geometry."""

    name: str
    features: list[Feature] = field(default_factory=list)
    index: int | None = None  # explicit position, appended if None


class GeometryIngestor:
    """Writes parsed geometry into a LayerStore.

    Methods here mutate the store and must run inside a geometry Sequencer turn.
    """

    def __init__(self, store: LayerStore):
        """
        Initialize ingestor.

        Args:
            store: Layer store receiving the layers
        """
        self.store = store
        self._layer_counter = 0

    def next_layer_name(self) -> str:
        """Generate a layer name unique within this ingestor."""
        name = f"{LAYER_NAME_PREFIX}{self._layer_counter}"
        self._layer_counter += 1
        return name

    def ingest(self, payload, options: GeometryOptions, source: str = "<memory>") -> list[str]:
        """
        Parse a payload and store its layers.

        Args:
            payload: Decoded topology, FeatureCollection, Feature or geometry
            options: Layer selection, key field and position
            source: Source name for log and error messages

        Returns:
            Names of the layers written, in store order of writing

        Raises:
            GeometryFormatError: If the payload is not a recognized geometry document
        """
        if is_topology(payload):
            return self._ingest_topology(payload, options)

        kind = payload.get("type") if isinstance(payload, dict) else None
        if kind == "FeatureCollection":
            features = [Feature.from_geojson(f) for f in payload.get("features") or []]
        elif kind == "Feature" or kind in GEOMETRY_TYPES:
            features = [Feature.from_geojson(payload)]
        else:
            raise GeometryFormatError(source, f"not a GeoJSON or topology document (type: {kind!r})")

        name = options.layers[0] if options.layers else self.next_layer_name()
        self._normalize(features, options.key_field)
        self._write(name, features, options.index)
        logger.info(f"Loaded layer '{name}' ({len(features)} features) from {source}")
        return [name]

    def _ingest_topology(self, topology: dict, options: GeometryOptions) -> list[str]:
        decoder = TopologyDecoder(topology)
        names = list(options.layers) if options.layers else decoder.object_names()
        written = []
        for name in names:
            features = decoder.features(name)
            if features is None:
                logger.debug(f"Topology has no object '{name}', skipping")
                continue
            self._normalize(features, options.key_field)
            index = None if options.index is None else options.index + len(written)
            self._write(name, features, index)
            written.append(name)
            logger.info(f"Loaded layer '{name}' ({len(features)} features) from topology")
        return written

    def apply_derived(self, derived: DerivedLayer | list[DerivedLayer]) -> list[str]:
        """
        Store layers computed from existing geometry.

        Args:
            derived: One derived layer or a list of them

        Returns:
            Names of the layers written
        """
        if isinstance(derived, DerivedLayer):
            derived = [derived]
        written = []
        for layer in derived:
            if not isinstance(layer, DerivedLayer):
                raise TypeError(f"Geometry transforms must return DerivedLayer objects, got {type(layer).__name__}")
            self._write(layer.name, layer.features, layer.index)
            written.append(layer.name)
        logger.info(f"Derived {len(written)} layers: {', '.join(written)}")
        return written

    @staticmethod
    def _normalize(features: list[Feature], key_field: str | None) -> None:
        if not key_field:
            return
        missing = 0
        for feature in features:
            if feature.normalize_key(key_field) is None:
                missing += 1
        if missing:
            logger.debug(f"{missing} of {len(features)} features have no '{key_field}' property")

    def _write(self, name: str, features: list[Feature], index: int | None) -> None:
        if index is None:
            self.store.append_layer(name, features)
        else:
            self.store.insert_layer_at(index, name, features)
