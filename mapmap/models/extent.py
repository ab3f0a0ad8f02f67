"""Data model for geographic extents."""

from dataclasses import dataclass


@dataclass
class Extent:
    """Geographic extent defined by lat/lon bounds."""

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def is_valid(self) -> bool:
        """
        Check if extent has valid bounds.

        A degenerate extent (a single point or a straight meridian/parallel
        line) is valid.

        Returns:
            True if min values do not exceed max values and all are in range
        """
        return (self.min_lon <= self.max_lon and
                self.min_lat <= self.max_lat and
                -180 <= self.min_lon <= 180 and
                -180 <= self.max_lon <= 180 and
                -90 <= self.min_lat <= 90 and
                -90 <= self.max_lat <= 90)

    @property
    def center(self) -> tuple[float, float]:
        """Midpoint as (lon, lat)."""
        return ((self.min_lon + self.max_lon) / 2, (self.min_lat + self.max_lat) / 2)

