"""
Services module.

Orchestrates the external road-network tools:
- osmium region subsetting
- OSRM graph building (extract, partition, customize)
- Snapping positions to the road network
- Many-to-many duration/distance matrices
"""
from roads.services.engine import (
    UNREACHABLE,
    Approach,
    BufferLayout,
    FallbackCoordinate,
    GraphToolchain,
    MetricKind,
    Profile,
    RoutingEngine,
    SnappingKind,
    TableQuery,
    TableResponse,
    Verbosity,
    Waypoint,
)
from roads.services.graph_builder import (
    GraphBuildOptions,
    build_graph,
    create_graph_files,
    derive_graph_base_path,
    graph_exists,
)
from roads.services.matrix import ManyToManyResult, route_many_to_many
from roads.services.osrm_client import OSRMClient
from roads.services.osrm_toolchain import OSRMToolchain
from roads.services.snapping import snap_location
from roads.services.subset import ProcessResult, subset_file

__all__ = [
    # Engine contract
    "UNREACHABLE",
    "Approach",
    "BufferLayout",
    "FallbackCoordinate",
    "GraphToolchain",
    "MetricKind",
    "Profile",
    "RoutingEngine",
    "SnappingKind",
    "TableQuery",
    "TableResponse",
    "Verbosity",
    "Waypoint",
    # Engine implementations
    "OSRMClient",
    "OSRMToolchain",
    # Operations
    "GraphBuildOptions",
    "build_graph",
    "create_graph_files",
    "derive_graph_base_path",
    "graph_exists",
    "ManyToManyResult",
    "route_many_to_many",
    "snap_location",
    "ProcessResult",
    "subset_file",
]
