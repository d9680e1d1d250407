"""
osrm-backend command line toolchain.

Runs osrm-extract, osrm-partition and osrm-customize as blocking
subprocesses. Each options dataclass is translated flag by flag; the
binaries own all threading, file formats and output naming.
"""
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from roads.core.config import settings
from roads.core.exceptions import OSRMException
from roads.services.engine import (
    CustomizeOptions,
    ExtractOptions,
    GraphToolchain,
    PartitionOptions,
)

logger = logging.getLogger(__name__)


class OSRMToolchain(GraphToolchain):
    """
    Graph build stages backed by the osrm-backend binaries.

    A non-zero exit status aborts with OSRMException carrying the stage
    name, the exit status and the tail of the tool output.
    """

    OUTPUT_TAIL_LINES = 20

    def __init__(self, bin_dir: Optional[str] = None):
        self.bin_dir = bin_dir if bin_dir is not None else settings.OSRM_BIN_DIR

    def _binary(self, name: str) -> str:
        if self.bin_dir:
            return os.path.join(self.bin_dir, name)
        return name

    def extract_command(self, osm_path: Path, options: ExtractOptions) -> list[str]:
        cmd = [
            self._binary("osrm-extract"),
            "--verbosity", options.verbosity.value,
            "--threads", str(options.threads),
            "--profile", str(options.profile),
            "--small-component-size", str(options.small_component_size),
        ]
        if options.data_version:
            cmd += ["--data_version", options.data_version]
        if options.with_osm_metadata:
            cmd.append("--with-osm-metadata")
        if options.parse_conditional_restrictions:
            cmd.append("--parse-conditional-restrictions")
        for path in options.location_dependent_data:
            cmd += ["--location-dependent-data", path]
        if options.disable_location_cache:
            cmd.append("--disable-location-cache")
        if options.dump_nbg_graph:
            cmd.append("--dump-nbg-graph")
        cmd.append(str(osm_path))
        return cmd

    def partition_command(self, graph_base: Path, options: PartitionOptions) -> list[str]:
        return [
            self._binary("osrm-partition"),
            "--verbosity", options.verbosity.value,
            "--threads", str(options.threads),
            "--balance", str(options.balance),
            "--boundary", str(options.boundary),
            "--optimizing-cuts", str(options.optimizing_cuts),
            "--small-component-size", str(options.small_component_size),
            "--max-cell-sizes", ",".join(str(size) for size in options.max_cell_sizes),
            str(graph_base),
        ]

    def customize_command(self, graph_base: Path, options: CustomizeOptions) -> list[str]:
        cmd = [
            self._binary("osrm-customize"),
            "--verbosity", options.verbosity.value,
            "--threads", str(options.threads),
        ]
        for path in options.segment_speed_files:
            cmd += ["--segment-speed-file", path]
        for path in options.turn_penalty_files:
            cmd += ["--turn-penalty-file", path]
        if options.edge_weight_updates_over_factor:
            cmd += [
                "--edge-weight-updates-over-factor",
                str(options.edge_weight_updates_over_factor),
            ]
        if options.parse_conditionals_from_now:
            cmd += ["--parse-conditionals-from-now", str(options.parse_conditionals_from_now)]
        if options.time_zone_file:
            cmd += ["--time-zone-file", options.time_zone_file]
        cmd.append(str(graph_base))
        return cmd

    def _run(self, stage: str, cmd: list[str]) -> None:
        logger.debug(f"Running osrm {stage}: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise OSRMException(
                f"osrm {stage} binary not found: {cmd[0]}",
                details={"stage": stage, "binary": cmd[0]},
            ) from e

        if result.returncode != 0:
            output = result.stderr or result.stdout or ""
            tail = "\n".join(output.strip().splitlines()[-self.OUTPUT_TAIL_LINES:])
            raise OSRMException(
                f"osrm {stage} failed with exit status {result.returncode}: {tail or 'no output'}",
                details={
                    "stage": stage,
                    "returncode": result.returncode,
                    "args": cmd,
                },
            )

    def extract(self, osm_path: Path, options: ExtractOptions) -> None:
        self._run("extract", self.extract_command(osm_path, options))

    def partition(self, graph_base: Path, options: PartitionOptions) -> None:
        self._run("partition", self.partition_command(graph_base, options))

    def customize(self, graph_base: Path, options: CustomizeOptions) -> None:
        self._run("customize", self.customize_command(graph_base, options))
