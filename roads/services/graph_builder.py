"""
Multi-Level Dijkstra graph building.

Turns an OSM extract into a routable OSRM graph in three dependent stages:
1. extract   - apply the routing profile and write the edge-based graph
2. partition - recursively bisect the graph into cells
3. customize - compute cell metrics for the current weights

All stages operate on the same graph base path, derived from the input
file name, and the graph files land next to the input file.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from roads.core.config import settings
from roads.core.exceptions import ConfigurationException
from roads.core.logging import log_operation
from roads.services.engine import (
    CustomizeOptions,
    ExtractOptions,
    GraphToolchain,
    PartitionOptions,
    Profile,
    Verbosity,
)
from roads.services.osrm_toolchain import OSRMToolchain

logger = logging.getLogger(__name__)

OSM_SUFFIXES = (".osm", ".bz2", ".pbf")
GRAPH_SUFFIX = ".osrm"

# Files customize leaves behind; their presence means the graph is routable
MLD_GRAPH_SUFFIXES = (
    ".partition",
    ".cells",
    ".cell_metrics",
    ".mldgr",
    ".enw",
    ".cnbg",
    ".ebg",
)

ProfileValue = Union[Profile, str, Path]
ProfileArg = Union[ProfileValue, Callable[[Path], ProfileValue]]


def derive_graph_base_path(osm_path: Union[str, Path]) -> Path:
    """
    Derive the graph base path from an OSM file path.

    Strips every trailing .osm/.bz2/.pbf suffix and appends .osrm once,
    so "city.osm.pbf" and "city.osm.bz2" both become "city.osrm".
    """
    path = Path(osm_path)
    while path.suffix in OSM_SUFFIXES:
        path = path.with_suffix("")
    return path.with_name(path.name + GRAPH_SUFFIX)


def graph_files(graph_base: Union[str, Path]) -> list[Path]:
    """Paths of the MLD artifacts belonging to a graph base path."""
    base = Path(graph_base)
    return [base.with_name(base.name + suffix) for suffix in MLD_GRAPH_SUFFIXES]


def graph_exists(graph_base: Union[str, Path]) -> bool:
    """Check whether a complete MLD graph has been built at graph_base."""
    return all(path.is_file() for path in graph_files(graph_base))


def resolve_profile(profile: ProfileArg, osm_path: Union[str, Path]) -> Path:
    """
    Resolve a profile argument to a profile script path.

    Args:
        profile: Built-in Profile, path to a .lua profile, or a callable
            taking the OSM path and returning one of those
        osm_path: Input OSM file, passed to callable profiles

    Returns:
        Path to the profile script

    Raises:
        ConfigurationException: If the profile cannot be resolved
    """
    if callable(profile) and not isinstance(profile, (Profile, str, Path)):
        resolved = profile(Path(osm_path))
        if not isinstance(resolved, (Profile, str, Path)):
            raise ConfigurationException(
                "Profile function must return a Profile or a profile path",
                details={"returned": repr(resolved)},
            )
        profile = resolved

    if isinstance(profile, Profile):
        return Path(settings.OSRM_PROFILES_DIR) / f"{profile.value}.lua"
    if isinstance(profile, (str, Path)) and str(profile):
        return Path(profile)

    raise ConfigurationException(
        f"Unsupported profile: {profile!r}",
        details={"profile": repr(profile)},
    )


@dataclass(frozen=True)
class GraphBuildOptions:
    """
    Combined option set of the three build stages.

    verbosity and threads apply to every stage; small_component_size is
    shared by extract and partition.
    """

    # Common
    verbosity: Verbosity = Verbosity.INFO
    threads: int = 1
    # Extract
    data_version: str = ""
    with_osm_metadata: bool = False
    parse_conditional_restrictions: bool = False
    location_dependent_data: tuple[str, ...] = ()
    disable_location_cache: bool = False
    dump_nbg_graph: bool = False
    # Extract and partition
    small_component_size: int = 1000
    # Partition
    balance: float = 1.2
    boundary: float = 0.25
    optimizing_cuts: int = 10
    max_cell_sizes: tuple[int, ...] = (128, 4096, 65536, 2097152)
    # Customize
    segment_speed_files: tuple[str, ...] = ()
    turn_penalty_files: tuple[str, ...] = ()
    edge_weight_updates_over_factor: float = 0.0
    parse_conditionals_from_now: int = 0
    time_zone_file: str = ""

    def extract_options(self, profile: Path) -> ExtractOptions:
        return ExtractOptions(
            profile=profile,
            verbosity=self.verbosity,
            threads=self.threads,
            data_version=self.data_version,
            small_component_size=self.small_component_size,
            with_osm_metadata=self.with_osm_metadata,
            parse_conditional_restrictions=self.parse_conditional_restrictions,
            location_dependent_data=self.location_dependent_data,
            disable_location_cache=self.disable_location_cache,
            dump_nbg_graph=self.dump_nbg_graph,
        )

    def partition_options(self) -> PartitionOptions:
        return PartitionOptions(
            verbosity=self.verbosity,
            threads=self.threads,
            balance=self.balance,
            boundary=self.boundary,
            optimizing_cuts=self.optimizing_cuts,
            small_component_size=self.small_component_size,
            max_cell_sizes=self.max_cell_sizes,
        )

    def customize_options(self) -> CustomizeOptions:
        return CustomizeOptions(
            verbosity=self.verbosity,
            threads=self.threads,
            segment_speed_files=self.segment_speed_files,
            turn_penalty_files=self.turn_penalty_files,
            edge_weight_updates_over_factor=self.edge_weight_updates_over_factor,
            parse_conditionals_from_now=self.parse_conditionals_from_now,
            time_zone_file=self.time_zone_file,
        )


def build_graph(
    osm_path: Union[str, Path],
    profile: ProfileArg = Profile.CAR,
    options: Optional[GraphBuildOptions] = None,
    toolchain: Optional[GraphToolchain] = None,
) -> Path:
    """
    Run extract, partition and customize in order.

    Stages are not retried. The first failure propagates unchanged and
    leaves whatever files the earlier stages wrote; delete them and
    rebuild.

    Returns:
        The graph base path (<input without OSM suffixes>.osrm)
    """
    osm_path = Path(osm_path)
    options = options or GraphBuildOptions()
    toolchain = toolchain or OSRMToolchain()

    graph_base = derive_graph_base_path(osm_path)
    profile_path = resolve_profile(profile, osm_path)

    logger.info(
        f"Building MLD graph {graph_base} from {osm_path} "
        f"(profile={profile_path}, threads={options.threads})"
    )

    with log_operation("extract", osm_path=str(osm_path), profile=str(profile_path)):
        toolchain.extract(osm_path, options.extract_options(profile_path))

    with log_operation("partition", graph_base=str(graph_base)):
        toolchain.partition(graph_base, options.partition_options())

    with log_operation("customize", graph_base=str(graph_base)):
        toolchain.customize(graph_base, options.customize_options())

    return graph_base


def create_graph_files(
    osm_path: Union[str, Path],
    *,
    toolchain: Optional[GraphToolchain] = None,
    profile: ProfileArg = Profile.CAR,
    verbosity: Verbosity = Verbosity.INFO,
    threads: int = 1,
    data_version: str = "",
    with_osm_metadata: bool = False,
    parse_conditional_restrictions: bool = False,
    location_dependent_data: Sequence[str] = (),
    disable_location_cache: bool = False,
    dump_nbg_graph: bool = False,
    small_component_size: int = 1000,
    balance: float = 1.2,
    boundary: float = 0.25,
    optimizing_cuts: int = 10,
    max_cell_sizes: Sequence[int] = (128, 4096, 65536, 2097152),
    segment_speed_files: Sequence[str] = (),
    turn_penalty_files: Sequence[str] = (),
    edge_weight_updates_over_factor: float = 0.0,
    parse_conditionals_from_now: int = 0,
    time_zone_file: str = "",
) -> Path:
    """
    Create MLD graph files next to an OSM file.

    Args:
        osm_path: Input .osm, .osm.bz2 or .osm.pbf file
        toolchain: Stage runner (default: osrm-backend binaries)
        profile: Built-in Profile, .lua path, or callable of osm_path
        verbosity: Log level of every stage
        threads: Thread count of every stage
        data_version: Data version string (extract)
        with_osm_metadata: Use OSM metadata while parsing (extract)
        parse_conditional_restrictions: Keep conditional restrictions (extract)
        location_dependent_data: GeoJSON files of location data (extract)
        disable_location_cache: Disable the node location cache (extract)
        dump_nbg_graph: Dump the node-based graph for debugging (extract)
        small_component_size: Small component threshold (extract, partition)
        balance: Bisection balance (partition)
        boundary: Fraction of embedded nodes used as sources/sinks (partition)
        optimizing_cuts: Cuts tried per bisection (partition)
        max_cell_sizes: Maximum cell size per level (partition)
        segment_speed_files: Speed lookup CSV files (customize)
        turn_penalty_files: Turn penalty lookup CSV files (customize)
        edge_weight_updates_over_factor: Log weight updates above factor (customize)
        parse_conditionals_from_now: UTC timestamp for conditionals (customize)
        time_zone_file: GeoJSON time zone boundaries (customize)

    Returns:
        The graph base path, e.g. "hamburg.osrm" for "hamburg.osm.pbf"
    """
    options = GraphBuildOptions(
        verbosity=verbosity,
        threads=threads,
        data_version=data_version,
        with_osm_metadata=with_osm_metadata,
        parse_conditional_restrictions=parse_conditional_restrictions,
        location_dependent_data=tuple(location_dependent_data),
        disable_location_cache=disable_location_cache,
        dump_nbg_graph=dump_nbg_graph,
        small_component_size=small_component_size,
        balance=balance,
        boundary=boundary,
        optimizing_cuts=optimizing_cuts,
        max_cell_sizes=tuple(max_cell_sizes),
        segment_speed_files=tuple(segment_speed_files),
        turn_penalty_files=tuple(turn_penalty_files),
        edge_weight_updates_over_factor=edge_weight_updates_over_factor,
        parse_conditionals_from_now=parse_conditionals_from_now,
        time_zone_file=time_zone_file,
    )
    return build_graph(osm_path, profile=profile, options=options, toolchain=toolchain)
