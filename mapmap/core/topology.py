"""Conversion of topology documents (TopoJSON) into GeoJSON features.

A topology stores shared line work once, as a list of arcs. Geometries refer
to arcs by index, with a negative index ``~i`` meaning arc ``i`` reversed.
Quantized topologies carry a ``transform``; their arcs are delta-encoded
integer positions.
"""

from __future__ import annotations

import logging

from mapmap.models.feature import Feature

logger = logging.getLogger(__name__)


def is_topology(payload) -> bool:
    """Check whether a payload is a topology document."""
    return isinstance(payload, dict) and payload.get("type") == "Topology"


class TopologyDecoder:
    """Expands the named objects of one topology document into features."""

    def __init__(self, topology: dict):
        """
        Initialize decoder and decode all arcs once.

        Args:
            topology: Topology document
        """
        self.topology = topology
        self.objects: dict = topology.get("objects") or {}
        transform = topology.get("transform")
        if transform:
            self._scale = transform["scale"]
            self._translate = transform["translate"]
        else:
            self._scale = None
            self._translate = None
        self.arcs = [self._decode_arc(arc) for arc in topology.get("arcs") or []]

    def object_names(self) -> list[str]:
        """Names of the object collections, in document order."""
        return list(self.objects.keys())

    def features(self, name: str) -> list[Feature] | None:
        """
        Convert a named object into features.

        A GeometryCollection yields one feature per member geometry; any other
        object yields a single feature.

        Args:
            name: Object name

        Returns:
            List of features, or None if the topology has no such object
        """
        obj = self.objects.get(name)
        if obj is None:
            return None
        if obj.get("type") == "GeometryCollection":
            return [self._feature(geometry) for geometry in obj.get("geometries") or []]
        return [self._feature(obj)]

    def _feature(self, obj: dict) -> Feature:
        return Feature(
            geometry=self._geometry(obj),
            properties=dict(obj.get("properties") or {}),
            id=obj.get("id"),
        )

    def _geometry(self, obj: dict) -> dict | None:
        kind = obj.get("type")
        if kind is None:
            return None
        if kind == "GeometryCollection":
            return {"type": kind, "geometries": [self._geometry(g) for g in obj.get("geometries") or []]}
        if kind == "Point":
            coordinates = self._point(obj["coordinates"])
        elif kind == "MultiPoint":
            coordinates = [self._point(p) for p in obj["coordinates"]]
        elif kind == "LineString":
            coordinates = self._line(obj["arcs"])
        elif kind == "MultiLineString":
            coordinates = [self._line(arcs) for arcs in obj["arcs"]]
        elif kind == "Polygon":
            coordinates = [self._ring(arcs) for arcs in obj["arcs"]]
        elif kind == "MultiPolygon":
            coordinates = [[self._ring(arcs) for arcs in polygon] for polygon in obj["arcs"]]
        else:
            logger.debug(f"Skipping unknown topology geometry type: {kind}")
            return None
        return {"type": kind, "coordinates": coordinates}

    def _point(self, position: list) -> list:
        if self._scale is None:
            return list(position)
        return [
            position[0] * self._scale[0] + self._translate[0],
            position[1] * self._scale[1] + self._translate[1],
            *position[2:],
        ]

    def _decode_arc(self, arc: list) -> list:
        if self._scale is None:
            return [list(p) for p in arc]
        x = y = 0
        points = []
        for position in arc:
            x += position[0]
            y += position[1]
            points.append([
                x * self._scale[0] + self._translate[0],
                y * self._scale[1] + self._translate[1],
                *position[2:],
            ])
        return points

    def _line(self, arc_indexes: list[int]) -> list:
        points: list = []
        for index in arc_indexes:
            arc = self.arcs[~index][::-1] if index < 0 else self.arcs[index]
            if points:
                # consecutive arcs share their joining position
                points.pop()
            points.extend(list(p) for p in arc)
        if len(points) == 1:
            points.append(list(points[0]))
        return points

    def _ring(self, arc_indexes: list[int]) -> list:
        points = self._line(arc_indexes)
        while points and len(points) < 4:
            points.append(list(points[0]))
        return points
