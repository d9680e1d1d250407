"""
Pytest configuration and fixtures.
"""
from typing import Optional

import numpy as np
import pytest

from roads.schemas.geo import Coordinate, Location
from roads.services.engine import (
    UNREACHABLE,
    BufferLayout,
    MetricKind,
    NearestQuery,
    RoutingEngine,
    TableQuery,
    TableResponse,
    Waypoint,
)


class StubEngine(RoutingEngine):
    """
    In-memory routing engine over fixed full cost matrices.

    Answers table queries by slicing the matrices with the query's
    sources/destinations, applies scale_factor to reachable costs and
    emits the buffer in the configured layout.
    """

    def __init__(
        self,
        durations: np.ndarray,
        distances: np.ndarray,
        layout: BufferLayout = BufferLayout.ORIGIN_MAJOR,
        empty: tuple[MetricKind, ...] = (),
        waypoints: Optional[list[Waypoint]] = None,
    ):
        self.durations = np.asarray(durations, dtype=np.float32)
        self.distances = np.asarray(distances, dtype=np.float32)
        self.layout = layout
        self.empty = empty
        self.waypoints = waypoints or []
        self.table_queries: list[TableQuery] = []
        self.nearest_queries: list[NearestQuery] = []

    def nearest(self, query: NearestQuery) -> list[Waypoint]:
        self.nearest_queries.append(query)
        return self.waypoints[: query.number]

    def _buffer(self, full: np.ndarray, query: TableQuery) -> np.ndarray:
        block = full[np.ix_(query.sources, query.destinations)].copy()
        if query.scale_factor is not None:
            reachable = np.isfinite(block)
            block[reachable] = block[reachable] * np.float32(query.scale_factor)
        if self.layout is BufferLayout.DESTINATION_MAJOR:
            return block.T.reshape(-1)
        return block.reshape(-1)

    def table(self, query: TableQuery) -> TableResponse:
        self.table_queries.append(query)
        durations = self._buffer(self.durations, query)
        distances = self._buffer(self.distances, query)
        if MetricKind.DURATION in self.empty:
            durations = np.empty(0, dtype=np.float32)
        if MetricKind.DISTANCE in self.empty:
            distances = np.empty(0, dtype=np.float32)
        return TableResponse(
            rows=len(query.sources),
            cols=len(query.destinations),
            durations=durations,
            distances=distances,
            layout=self.layout,
        )


@pytest.fixture
def hamburg_locations():
    """Four snapped Hamburg locations; the last one has no hint."""
    return [
        Location(name="Rathausmarkt", lat=53.5511, lon=9.9937, hint="hint-city"),
        Location(name="Flughafen", lat=53.6325, lon=10.006, hint="hint-airport"),
        Location(name="Hafen", lat=53.5301, lon=9.9691, hint="hint-port"),
        Location(name="Altona", lat=53.5503, lon=9.9355),
    ]


@pytest.fixture
def asymmetric_durations():
    """
    Durations (seconds) with one-way effects: every i -> j differs from
    j -> i.
    """
    return np.array(
        [
            [0.0, 1260.0, 540.0, 610.0],
            [1380.0, 0.0, 1500.0, 1710.0],
            [600.0, 1440.0, 0.0, 830.0],
            [650.0, 1650.0, 870.0, 0.0],
        ],
        dtype=np.float32,
    )


@pytest.fixture
def asymmetric_distances():
    """Distances (meters) matching asymmetric_durations."""
    return np.array(
        [
            [0.0, 11200.0, 3100.0, 4300.0],
            [11900.0, 0.0, 13800.0, 15100.0],
            [3400.0, 13100.0, 0.0, UNREACHABLE],
            [4500.0, 14800.0, 5200.0, 0.0],
        ],
        dtype=np.float32,
    )


@pytest.fixture
def stub_engine(asymmetric_durations, asymmetric_distances):
    """Origin-major stub engine; location 3 cannot reach location 4."""
    durations = asymmetric_durations.copy()
    durations[2, 3] = UNREACHABLE
    return StubEngine(durations, asymmetric_distances)


@pytest.fixture
def make_engine(asymmetric_durations, asymmetric_distances):
    """Factory for stub engines with a custom layout or missing annotations."""

    def _make(durations=None, distances=None, **kwargs) -> StubEngine:
        return StubEngine(
            asymmetric_durations if durations is None else durations,
            asymmetric_distances if distances is None else distances,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_waypoints():
    """Nearest results for a query next to Hamburg city hall."""
    return [
        Waypoint(
            name="Rathausmarkt",
            location=Coordinate(lat=53.55079, lon=9.99322),
            distance=4.2,
            hint="hint-0",
        ),
        Waypoint(
            name="Mönckebergstraße",
            location=Coordinate(lat=53.55112, lon=9.99501),
            distance=11.7,
            hint="hint-1",
        ),
        Waypoint(
            name="",
            location=Coordinate(lat=53.55021, lon=9.99288),
            distance=19.3,
            hint=None,
        ),
    ]
