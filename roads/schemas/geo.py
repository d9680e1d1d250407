"""
Geographic value types shared by every service.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from roads.schemas.validators import (
    AzimuthOptional,
    DistanceOptional,
    Latitude,
    Longitude,
)


class Coordinate(BaseModel):
    """A WGS84 position in degrees."""

    model_config = ConfigDict(frozen=True)

    lat: Latitude
    lon: Longitude

    @classmethod
    def from_lon_lat(cls, lon: float, lat: float) -> "Coordinate":
        """Build from engine order (longitude first)."""
        return cls(lat=lat, lon=lon)

    def to_lon_lat(self) -> tuple[float, float]:
        """Return the (longitude, latitude) pair the engine expects."""
        return (self.lon, self.lat)


class BoundingBox(BaseModel):
    """
    Axis-aligned box given by its south-west and north-east corners.

    The corners are not checked against each other; callers are expected
    to pass a box with southwest <= northeast on both axes.
    """

    model_config = ConfigDict(frozen=True)

    southwest: Coordinate
    northeast: Coordinate

    @classmethod
    def from_bounds(
        cls,
        south: float,
        west: float,
        north: float,
        east: float,
    ) -> "BoundingBox":
        """Build from the four edge values in degrees."""
        return cls(
            southwest=Coordinate(lat=south, lon=west),
            northeast=Coordinate(lat=north, lon=east),
        )

    def as_osmium_bbox(self) -> str:
        """Render as osmium's 'LEFT,BOTTOM,RIGHT,TOP' selector."""
        return (
            f"{self.southwest.lon},{self.southwest.lat},"
            f"{self.northeast.lon},{self.northeast.lat}"
        )


class Location(BaseModel):
    """
    A query point, usually produced by snapping.

    ``lat``/``lon`` hold the position that was queried. When the location
    comes from the snapper, ``road_position`` holds the point on the road
    network the engine matched it to and ``hint`` lets later queries
    against the same graph skip the nearest-segment search.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    lat: Latitude
    lon: Longitude
    azimuth: AzimuthOptional = None
    distance: DistanceOptional = None  # meters from query point to road
    hint: Optional[str] = None
    road_position: Optional[Coordinate] = Field(default=None)

    @classmethod
    def at(cls, coordinate: Coordinate, name: Optional[str] = None) -> "Location":
        """Raw, unsnapped location at a coordinate."""
        return cls(name=name, lat=coordinate.lat, lon=coordinate.lon)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lon=self.lon)
