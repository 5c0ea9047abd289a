"""Data model for geographic sectors."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Sector:
    """Geographic rectangle defined by a south-west corner and angular deltas.

    All values are in degrees. A sector whose values are unset (NaN) or that
    has zero width or height is empty.
    """

    min_latitude: float = math.nan
    min_longitude: float = math.nan
    delta_latitude: float = math.nan
    delta_longitude: float = math.nan

    @classmethod
    def empty(cls) -> "Sector":
        """Create an empty sector."""
        return cls()

    @classmethod
    def full_sphere(cls) -> "Sector":
        """Create a sector covering the whole globe."""
        return cls(-90.0, -180.0, 180.0, 360.0)

    @classmethod
    def from_degrees(
        cls, min_latitude: float, min_longitude: float, delta_latitude: float, delta_longitude: float
    ) -> "Sector":
        """
        Create a sector from its south-west corner and deltas.

        Args:
            min_latitude: Southern edge in degrees
            min_longitude: Western edge in degrees
            delta_latitude: Height in degrees
            delta_longitude: Width in degrees

        Returns:
            Sector instance
        """
        return cls(float(min_latitude), float(min_longitude), float(delta_latitude), float(delta_longitude))

    @classmethod
    def from_bounds(cls, min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> "Sector":
        """
        Create a sector from west/south/east/north bounds.

        Args:
            min_lon: Western edge in degrees
            min_lat: Southern edge in degrees
            max_lon: Eastern edge in degrees
            max_lat: Northern edge in degrees

        Returns:
            Sector instance
        """
        return cls.from_degrees(min_lat, min_lon, max_lat - min_lat, max_lon - min_lon)

    @property
    def max_latitude(self) -> float:
        return self.min_latitude + self.delta_latitude

    @property
    def max_longitude(self) -> float:
        return self.min_longitude + self.delta_longitude

    def is_empty(self) -> bool:
        """
        Check if the sector covers no area.

        Returns:
            True if any value is unset or the width or height is zero
        """
        values = (self.min_latitude, self.min_longitude, self.delta_latitude, self.delta_longitude)
        if any(math.isnan(value) for value in values):
            return True
        return self.delta_latitude == 0 or self.delta_longitude == 0

    def union(self, other: "Sector") -> "Sector":
        """
        Compute the smallest sector containing this sector and another.

        An empty sector does not contribute to the union.

        Args:
            other: Sector to combine with

        Returns:
            New sector covering both inputs
        """
        if other.is_empty():
            return self
        if self.is_empty():
            return other

        min_lat = min(self.min_latitude, other.min_latitude)
        min_lon = min(self.min_longitude, other.min_longitude)
        max_lat = max(self.max_latitude, other.max_latitude)
        max_lon = max(self.max_longitude, other.max_longitude)
        return Sector.from_bounds(min_lon, min_lat, max_lon, max_lat)

    def to_dict(self) -> dict[str, float]:
        """
        Convert sector to dictionary.

        Returns:
            Dictionary with 'north', 'south', 'east', 'west' bounds in degrees
        """
        return {
            "north": self.max_latitude,
            "south": self.min_latitude,
            "east": self.max_longitude,
            "west": self.min_longitude,
        }
