"""
Snapping raw positions onto the road network.
"""
import logging
import math
from typing import Optional, Sequence, Union

from roads.core.exceptions import ConfigurationException
from roads.core.logging import log_operation
from roads.schemas.geo import Coordinate, Location
from roads.services.engine import (
    Approach,
    NearestQuery,
    RoutingEngine,
    SnappingKind,
)

logger = logging.getLogger(__name__)

# Bearing tolerance accepted by the engine, in degrees
MAX_AZIMUTH_RANGE = 180


def snap_location(
    engine: RoutingEngine,
    position: Union[Coordinate, Location],
    *,
    max_results: int = 1,
    radius: Optional[float] = None,
    azimuth: Optional[float] = None,
    azimuth_range: int = 15,
    snapping: SnappingKind = SnappingKind.DEFAULT,
    approach: Approach = Approach.UNRESTRICTED,
    excludes: Sequence[str] = (),
) -> list[Location]:
    """
    Snap one position to the nearest road segments.

    Args:
        engine: Opened routable graph
        position: Query position
        max_results: Maximum number of candidate segments
        radius: Search radius in meters (None: unlimited)
        azimuth: Travel direction in degrees; restricts candidates to
            segments within azimuth_range of it
        azimuth_range: Allowed bearing deviation in degrees
        snapping: Whether small disconnected components may be matched
        approach: Side of the road the location must be approached from
        excludes: Road classes to exclude (e.g. "toll", "ferry")

    Returns:
        Locations in the engine's ranking, nearest first. Each keeps the
        query lat/lon and azimuth; the matched road point is available as
        ``road_position`` and the engine hint as ``hint``. An empty list
        means nothing was found within the constraints.

    Raises:
        ConfigurationException: If azimuth is not finite or azimuth_range
            is outside 0..180
    """
    if azimuth is not None and not math.isfinite(azimuth):
        raise ConfigurationException(
            f"azimuth must be a finite number of degrees, got {azimuth}"
        )
    if not 0 <= azimuth_range <= MAX_AZIMUTH_RANGE:
        raise ConfigurationException(
            f"azimuth_range must be between 0 and {MAX_AZIMUTH_RANGE}, got {azimuth_range}",
            details={"azimuth_range": azimuth_range},
        )

    coordinate = Coordinate(lat=position.lat, lon=position.lon)

    query = NearestQuery(
        coordinate=coordinate,
        number=max_results,
        radius=radius,
        bearing=(round(azimuth) % 360, azimuth_range) if azimuth is not None else None,
        snapping=snapping,
        approach=approach,
        excludes=tuple(excludes),
    )

    with log_operation("nearest", max_results=max_results):
        waypoints = engine.nearest(query)

    return [
        Location(
            name=waypoint.name or None,
            lat=coordinate.lat,
            lon=coordinate.lon,
            azimuth=azimuth,
            distance=waypoint.distance,
            hint=waypoint.hint,
            road_position=waypoint.location,
        )
        for waypoint in waypoints
    ]
