"""
Region subsetting with osmium-tool.

Cuts a smaller OSM file out of a large extract by bounding box, polygon
file or osmium extract config. The options are validated and translated
one to one into an ``osmium extract`` invocation; the tool's own output
is not interpreted.
"""
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from roads.core.config import settings
from roads.core.exceptions import ConfigurationException, OsmiumException
from roads.core.logging import log_operation
from roads.schemas.geo import BoundingBox

logger = logging.getLogger(__name__)

StrOrList = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of an external process run."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self) -> "ProcessResult":
        """Raise OsmiumException unless the process exited with status 0."""
        if not self.ok:
            err = self.stderr.strip() or "osmium extract failed"
            raise OsmiumException(
                f"osmium exited with status {self.returncode}: {err}",
                details={"returncode": self.returncode, "args": self.args},
            )
        return self


def _as_list(value: StrOrList) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def build_extract_command(
    input_file: str,
    *,
    bbox: Optional[BoundingBox] = None,
    config_file: Optional[str] = None,
    polygon_file: Optional[str] = None,
    output_file: Optional[str] = None,
    output_directory: Optional[str] = None,
    strategy: str = "complete_ways",
    strategy_options: StrOrList = None,
    set_bounds: bool = False,
    clean: StrOrList = None,
    with_history: bool = False,
    input_format: Optional[str] = None,
    output_format: Optional[str] = None,
    fsync: bool = False,
    generator: Optional[str] = None,
    output_header: Optional[str] = None,
    overwrite: bool = False,
    verbose: bool = False,
    progress: bool = False,
    no_progress: bool = False,
) -> list[str]:
    """
    Build the osmium extract argument vector.

    Raises:
        ConfigurationException: If not exactly one of bbox, config_file and
            polygon_file is given, or neither output_file nor
            output_directory is given
    """
    selectors = [bbox is not None, config_file is not None, polygon_file is not None]
    if sum(selectors) != 1:
        raise ConfigurationException(
            "Exactly one of bbox, config_file, or polygon_file must be provided",
            details={"selectors_given": sum(selectors)},
        )

    if output_file is None and output_directory is None:
        raise ConfigurationException(
            "At least one of output_file or output_directory must be provided"
        )

    cmd = [settings.OSMIUM_BINARY, "extract"]

    # Extraction method
    if bbox is not None:
        cmd += ["-b", bbox.as_osmium_bbox()]
    elif config_file is not None:
        cmd += ["-c", str(config_file)]
    else:
        cmd += ["-p", str(polygon_file)]

    # Strategy options
    cmd += ["-s", strategy]
    for option in _as_list(strategy_options):
        cmd += ["-S", option]
    if set_bounds:
        cmd.append("--set-bounds")
    clean_attributes = _as_list(clean)
    if clean_attributes:
        cmd += ["--clean", ",".join(clean_attributes)]

    # History
    if with_history:
        cmd.append("-H")

    # Input / output formats
    if input_format is not None:
        cmd += ["-F", input_format]
    if output_format is not None:
        cmd += ["-f", output_format]
    if fsync:
        cmd.append("--fsync")
    if generator is not None:
        cmd += ["--generator", generator]
    if output_file is not None:
        cmd += ["-o", str(output_file)]
    if output_directory is not None:
        cmd += ["-d", str(output_directory)]
    if overwrite:
        cmd.append("-O")
    if output_header is not None:
        cmd += ["--output-header", output_header]

    # Common
    if verbose:
        cmd.append("-v")
    if progress:
        cmd.append("--progress")
    if no_progress:
        cmd.append("--no-progress")

    cmd.append(str(input_file))
    return cmd


def subset_file(input_file: str, **options) -> ProcessResult:
    """
    Extract a region of an OSM file with osmium.

    Accepts the same keyword options as build_extract_command. Validation
    happens before the process is started. The exit status is returned
    as-is; use ProcessResult.check() to turn a failure into an exception.

    Example:
        subset_file(
            "germany-latest.osm.pbf",
            bbox=BoundingBox.from_bounds(53.54, 9.98, 53.57, 10.01),
            output_file="hamburg.osm.pbf",
            overwrite=True,
        )
    """
    cmd = build_extract_command(input_file, **options)

    with log_operation("subset", input_file=str(input_file)):
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise OsmiumException(
                f"osmium binary not found: {cmd[0]}",
                details={"binary": cmd[0]},
            ) from e

    if completed.returncode != 0:
        logger.warning(
            f"osmium extract exited with status {completed.returncode}: "
            f"{(completed.stderr or '').strip()}"
        )

    return ProcessResult(
        args=cmd,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
