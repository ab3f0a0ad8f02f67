"""Exceptions raised by map loading and ingestion."""


class MapError(Exception):
    """Base class for errors raised by mapmap."""


class SourceError(MapError):
    """A geometry or data source could not be fetched or decoded."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class GeometryFormatError(SourceError):
    """A payload was loaded but is not GeoJSON or a topology document."""
