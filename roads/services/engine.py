"""
Routing engine contract.

The path finding, graph partitioning and nearest-segment search all live
in OSRM. This module fixes the shape of the conversation with it:

- Closed enumerations whose values are the engine's own constants
- Query and response types for the nearest and table services
- Per-stage option sets for the graph build toolchain
- Abstract interfaces implemented by the HTTP client and the toolchain
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from roads.schemas.geo import Coordinate

# Cost stored for origin/destination pairs the engine cannot connect
UNREACHABLE = float("inf")


class Profile(str, Enum):
    """Built-in OSRM routing profiles."""

    CAR = "car"
    BICYCLE = "bicycle"
    FOOT = "foot"
    # not shipped with osrm-backend; install truck.lua into OSRM_PROFILES_DIR
    TRUCK = "truck"


class Verbosity(str, Enum):
    """Toolchain log level."""

    NONE = "NONE"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class SnappingKind(str, Enum):
    """Which edges a coordinate may snap to."""

    DEFAULT = "default"  # only edges reachable from the big component
    ANY = "any"  # any edge, including small disconnected components


class Approach(str, Enum):
    """Side of the road a waypoint must be approached from."""

    UNRESTRICTED = "unrestricted"
    CURB = "curb"
    OPPOSITE = "opposite"


class MetricKind(str, Enum):
    """Table annotation (cost measure)."""

    DURATION = "duration"  # seconds
    DISTANCE = "distance"  # meters


class FallbackCoordinate(str, Enum):
    """Coordinate used for straight-line fallback of unroutable pairs."""

    INPUT = "input"
    SNAPPED = "snapped"


class BufferLayout(str, Enum):
    """Memory order of a flat table buffer."""

    ORIGIN_MAJOR = "origin_major"  # index = origin * cols + destination
    DESTINATION_MAJOR = "destination_major"  # index = destination * rows + origin


# =============================================================================
# Query / response types
# =============================================================================

@dataclass(frozen=True)
class NearestQuery:
    """Single-coordinate nearest segment query."""

    coordinate: Coordinate
    number: int = 1
    radius: Optional[float] = None  # meters
    bearing: Optional[tuple[int, int]] = None  # (degrees, tolerance)
    snapping: SnappingKind = SnappingKind.DEFAULT
    approach: Approach = Approach.UNRESTRICTED
    excludes: tuple[str, ...] = ()


@dataclass(frozen=True)
class Waypoint:
    """Road point returned by the nearest service, best match first."""

    name: str
    location: Coordinate
    distance: float  # meters from the query coordinate
    hint: Optional[str] = None


@dataclass(frozen=True)
class TableQuery:
    """
    Many-to-many query.

    ``sources`` and ``destinations`` are engine (0-based) positions into
    ``coordinates``. ``hints`` and ``radiuses`` are either empty or have
    one entry per coordinate.
    """

    coordinates: tuple[Coordinate, ...]
    sources: tuple[int, ...]
    destinations: tuple[int, ...]
    hints: tuple[Optional[str], ...] = ()
    radiuses: tuple[Optional[float], ...] = ()
    annotations: tuple[MetricKind, ...] = (MetricKind.DURATION,)
    fallback_speed: Optional[float] = None
    fallback_coordinate: Optional[FallbackCoordinate] = None
    scale_factor: Optional[float] = None


@dataclass(frozen=True)
class TableResponse:
    """
    Flat cost buffers returned by the table service.

    ``rows`` counts origins and ``cols`` destinations. A buffer is empty
    when the engine returned no values for that annotation; unroutable
    pairs hold ``UNREACHABLE`` inside a non-empty buffer.
    """

    rows: int
    cols: int
    durations: Sequence[float] = ()
    distances: Sequence[float] = ()
    layout: BufferLayout = BufferLayout.ORIGIN_MAJOR

    def buffer(self, metric: MetricKind) -> Sequence[float]:
        if metric is MetricKind.DURATION:
            return self.durations
        return self.distances


# =============================================================================
# Graph build stage options
# =============================================================================

@dataclass(frozen=True)
class ExtractOptions:
    """Options of the extract stage."""

    profile: Path
    verbosity: Verbosity = Verbosity.INFO
    threads: int = 1
    data_version: str = ""
    small_component_size: int = 1000
    with_osm_metadata: bool = False
    parse_conditional_restrictions: bool = False
    location_dependent_data: tuple[str, ...] = ()
    disable_location_cache: bool = False
    dump_nbg_graph: bool = False


@dataclass(frozen=True)
class PartitionOptions:
    """Options of the partition stage."""

    verbosity: Verbosity = Verbosity.INFO
    threads: int = 1
    balance: float = 1.2
    boundary: float = 0.25
    optimizing_cuts: int = 10
    small_component_size: int = 1000
    max_cell_sizes: tuple[int, ...] = (128, 4096, 65536, 2097152)


@dataclass(frozen=True)
class CustomizeOptions:
    """Options of the customize stage."""

    verbosity: Verbosity = Verbosity.INFO
    threads: int = 1
    segment_speed_files: tuple[str, ...] = ()
    turn_penalty_files: tuple[str, ...] = ()
    edge_weight_updates_over_factor: float = 0.0
    parse_conditionals_from_now: int = 0
    time_zone_file: str = ""


# =============================================================================
# Engine interfaces
# =============================================================================

class RoutingEngine(ABC):
    """Query side of an opened, routable graph."""

    @abstractmethod
    def nearest(self, query: NearestQuery) -> list[Waypoint]:
        """Return road points near the query coordinate, nearest first."""
        pass

    @abstractmethod
    def table(self, query: TableQuery) -> TableResponse:
        """Return cost buffers for every source/destination pair."""
        pass


class GraphToolchain(ABC):
    """Build side: turns an OSM file into MLD graph files."""

    @abstractmethod
    def extract(self, osm_path: Path, options: ExtractOptions) -> None:
        pass

    @abstractmethod
    def partition(self, graph_base: Path, options: PartitionOptions) -> None:
        pass

    @abstractmethod
    def customize(self, graph_base: Path, options: CustomizeOptions) -> None:
        pass
