"""
roads: OpenStreetMap subsetting, OSRM graph building, snapping and
many-to-many routing matrices.
"""
from roads.schemas.geo import BoundingBox, Coordinate, Location
from roads.services import (
    Approach,
    FallbackCoordinate,
    MetricKind,
    OSRMClient,
    Profile,
    SnappingKind,
    Verbosity,
    create_graph_files,
    route_many_to_many,
    snap_location,
    subset_file,
)

__all__ = [
    "BoundingBox",
    "Coordinate",
    "Location",
    "Approach",
    "FallbackCoordinate",
    "MetricKind",
    "OSRMClient",
    "Profile",
    "SnappingKind",
    "Verbosity",
    "create_graph_files",
    "route_many_to_many",
    "snap_location",
    "subset_file",
]
