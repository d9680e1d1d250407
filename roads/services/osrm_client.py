"""
OSRM (Open Source Routing Machine) HTTP client.

Queries an osrm-routed server that serves one opened graph.

Features:
- Nearest service for snapping single coordinates
- Table service normalized into flat origin-major buffers
- Blocking calls, no retries; engine faults surface as OSRMException
"""
import logging
from typing import Optional

import httpx
import numpy as np

from roads.core.config import settings
from roads.core.exceptions import OSRMException
from roads.schemas.geo import Coordinate
from roads.services.engine import (
    UNREACHABLE,
    BufferLayout,
    NearestQuery,
    RoutingEngine,
    TableQuery,
    TableResponse,
    Waypoint,
)

logger = logging.getLogger(__name__)


def format_coordinates(coordinates: list[Coordinate]) -> str:
    """Render coordinates as OSRM's 'lon,lat;lon,lat;...'."""
    return ";".join(f"{c.lon},{c.lat}" for c in coordinates)


def _flatten(rows: Optional[list]) -> np.ndarray:
    if not rows:
        return np.empty(0, dtype=np.float32)
    return np.array(
        [UNREACHABLE if value is None else value for row in rows for value in row],
        dtype=np.float32,
    )


class OSRMClient(RoutingEngine):
    """
    Client for an osrm-routed server.

    The server is the opened, read-only routable graph; one client can be
    shared by any number of snap and table callers.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        profile: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.OSRM_URL).rstrip("/")
        self.profile = profile or settings.OSRM_PROFILE
        self.timeout = timeout or httpx.Timeout(
            settings.OSRM_TIMEOUT, connect=settings.OSRM_CONNECT_TIMEOUT
        )
        self._client = httpx.Client(timeout=self.timeout, transport=transport)

    def __enter__(self) -> "OSRMClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, service: str, coordinates: str, params: dict) -> dict:
        """
        Issue one GET against an OSRM service.

        Args:
            service: OSRM service name (nearest, table)
            coordinates: Pre-formatted coordinate path segment
            params: Query parameters

        Returns:
            JSON response data

        Raises:
            OSRMException: On transport errors or a non-Ok response code
        """
        url = f"{self.base_url}/{service}/v1/{self.profile}/{coordinates}"

        try:
            response = self._client.get(url, params=params)
        except httpx.RequestError as e:
            raise OSRMException(
                f"OSRM {service} network error: {e}",
                details={"service": service, "url": url},
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise OSRMException(
                f"OSRM {service} returned non-JSON response (HTTP {response.status_code})",
                details={"service": service, "status_code": response.status_code},
            ) from e

        # OSRM reports query errors (HTTP 400) with a code and message body
        if data.get("code") != "Ok":
            raise OSRMException(
                data.get("message", f"Unknown OSRM error (HTTP {response.status_code})"),
                details={"service": service},
                code=data.get("code"),
            )

        return data

    def nearest(self, query: NearestQuery) -> list[Waypoint]:
        """
        Find the road points nearest to one coordinate.

        Returns:
            Waypoints in the engine's ranking, nearest first
        """
        params: dict = {"number": query.number}

        if query.radius is not None:
            params["radiuses"] = str(query.radius)
        if query.bearing is not None:
            bearing, tolerance = query.bearing
            params["bearings"] = f"{bearing},{tolerance}"
        params["snapping"] = query.snapping.value
        params["approaches"] = query.approach.value
        if query.excludes:
            params["exclude"] = ",".join(query.excludes)

        data = self._request("nearest", format_coordinates([query.coordinate]), params)

        waypoints = [
            Waypoint(
                name=waypoint.get("name", ""),
                location=Coordinate.from_lon_lat(*waypoint["location"]),
                distance=waypoint.get("distance", 0.0),
                hint=waypoint.get("hint"),
            )
            for waypoint in data.get("waypoints", [])
        ]
        logger.debug(f"OSRM nearest returned {len(waypoints)} waypoints")
        return waypoints

    def table(self, query: TableQuery) -> TableResponse:
        """
        Compute costs between every source and destination.

        OSRM answers with nested origin-major arrays and null for pairs it
        cannot route; they are flattened into origin-major buffers with
        UNREACHABLE in place of null.
        """
        params: dict = {
            "sources": ";".join(map(str, query.sources)),
            "destinations": ";".join(map(str, query.destinations)),
            "annotations": ",".join(kind.value for kind in query.annotations),
        }

        if any(hint is not None for hint in query.hints):
            params["hints"] = ";".join(hint or "" for hint in query.hints)
        if any(radius is not None for radius in query.radiuses):
            params["radiuses"] = ";".join(
                "unlimited" if radius is None else str(radius) for radius in query.radiuses
            )
        if query.fallback_speed is not None:
            params["fallback_speed"] = str(query.fallback_speed)
        if query.fallback_coordinate is not None:
            params["fallback_coordinate"] = query.fallback_coordinate.value
        if query.scale_factor is not None:
            params["scale_factor"] = str(query.scale_factor)

        data = self._request("table", format_coordinates(list(query.coordinates)), params)

        # dimensions as reported by the server; without any annotation the
        # buffers stay empty and the query's dimensions are kept
        nested = data.get("durations") or data.get("distances")
        if nested:
            rows, cols = len(nested), len(nested[0])
        else:
            rows, cols = len(query.sources), len(query.destinations)
        return TableResponse(
            rows=rows,
            cols=cols,
            durations=_flatten(data.get("durations")),
            distances=_flatten(data.get("distances")),
            layout=BufferLayout.ORIGIN_MAJOR,
        )

    def health_check(self) -> bool:
        """Check that the server answers a nearest query."""
        try:
            self.nearest(NearestQuery(coordinate=Coordinate(lat=0.0, lon=0.0)))
            return True
        except OSRMException as e:
            # NoSegment still proves the server is up and serving a graph
            return e.code is not None
