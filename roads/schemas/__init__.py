"""
Pydantic schemas for geographic values.
"""

from roads.schemas.geo import BoundingBox, Coordinate, Location

__all__ = [
    "BoundingBox",
    "Coordinate",
    "Location",
]
