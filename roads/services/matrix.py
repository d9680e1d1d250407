"""
Many-to-many cost matrices.

Builds one table query from a list of locations and two 1-based index
subsets, then turns the engine's flat cost buffer into a
(origins x destinations) numpy matrix of the requested metric.

Conventions:
- Durations are seconds, distances meters, as reported by the engine
- Unroutable pairs hold UNREACHABLE (inf) unless a fallback speed is set
- A location to itself always costs exactly 0
"""
import logging
import numbers
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from roads.core.exceptions import (
    AnnotationMissingException,
    ConfigurationException,
    DataIntegrityException,
)
from roads.core.logging import log_operation
from roads.schemas.geo import Location
from roads.services.engine import (
    BufferLayout,
    FallbackCoordinate,
    MetricKind,
    RoutingEngine,
    TableQuery,
    TableResponse,
)

logger = logging.getLogger(__name__)

# Requested for every metric; the metric is picked client side.
REQUESTED_ANNOTATIONS = (MetricKind.DURATION, MetricKind.DISTANCE)


@dataclass(frozen=True)
class ManyToManyResult:
    """
    Cost matrix between selected locations.

    ``metrics[i, j]`` is the cost from ``locations[origin_indices[i] - 1]``
    to ``locations[destination_indices[j] - 1]``.
    """

    locations: list[Location]
    origin_indices: list[int]  # 1-based
    destination_indices: list[int]  # 1-based
    metrics: np.ndarray  # float32, (len(origin_indices), len(destination_indices))
    metric_kind: MetricKind

    @property
    def shape(self) -> tuple[int, int]:
        return (len(self.origin_indices), len(self.destination_indices))

    def cost(self, origin: int, destination: int) -> float:
        """Cost between two locations given by their 1-based indices."""
        try:
            i = self.origin_indices.index(origin)
            j = self.destination_indices.index(destination)
        except ValueError:
            raise KeyError(f"Pair ({origin}, {destination}) is not part of this matrix")
        return float(self.metrics[i, j])


def _coerce_metric(metric: Union[MetricKind, str]) -> MetricKind:
    try:
        return MetricKind(metric)
    except ValueError:
        raise ConfigurationException(
            f"Unsupported metric: {metric!r}",
            details={"supported": [kind.value for kind in MetricKind]},
        )


def _check_indices(name: str, indices: Sequence[int], n_locations: int) -> list[int]:
    indices = list(indices)
    non_integral = [
        index for index in indices
        if isinstance(index, bool) or not isinstance(index, numbers.Integral)
    ]
    if non_integral:
        raise ConfigurationException(
            f"{name} must be integers, got {non_integral}",
            details={name: [repr(index) for index in indices]},
        )
    indices = [int(index) for index in indices]
    if not indices:
        raise ConfigurationException(f"{name} must not be empty")
    invalid = [index for index in indices if index < 1 or index > n_locations]
    if invalid:
        raise ConfigurationException(
            f"{name} must be between 1 and {n_locations}, got {invalid}",
            details={name: indices, "locations": n_locations},
        )
    return indices


def reshape_table(
    response: TableResponse,
    metric: MetricKind,
) -> np.ndarray:
    """
    Turn the flat buffer of one annotation into an (origins, destinations) matrix.

    Raises:
        AnnotationMissingException: If the annotation's buffer is empty
        DataIntegrityException: If the buffer size is not rows * cols
    """
    buffer = np.asarray(response.buffer(metric), dtype=np.float32)
    if buffer.size == 0:
        raise AnnotationMissingException(metric.value)

    rows, cols = response.rows, response.cols
    if buffer.size != rows * cols:
        raise DataIntegrityException(
            f"Table '{metric.value}' buffer holds {buffer.size} values, "
            f"expected {rows} x {cols}",
            details={"annotation": metric.value, "size": int(buffer.size), "rows": rows, "cols": cols},
        )

    if response.layout is BufferLayout.DESTINATION_MAJOR:
        return buffer.reshape(cols, rows).T.copy()
    return buffer.reshape(rows, cols)


def route_many_to_many(
    engine: RoutingEngine,
    locations: Sequence[Location],
    *,
    origin_indices: Optional[Sequence[int]] = None,
    destination_indices: Optional[Sequence[int]] = None,
    metric: Union[MetricKind, str] = MetricKind.DURATION,
    fallback_speed: Optional[float] = None,
    fallback_coordinate: Optional[FallbackCoordinate] = None,
    scale_factor: Optional[float] = None,
    radius: Optional[float] = None,
) -> ManyToManyResult:
    """
    Compute the cost matrix between origin and destination locations.

    Args:
        engine: Opened routable graph
        locations: Locations to route between; hints are forwarded
        origin_indices: 1-based origin positions (default: all)
        destination_indices: 1-based destination positions (default: all)
        metric: DURATION (seconds) or DISTANCE (meters)
        fallback_speed: Straight-line speed (m/s) for unroutable pairs;
            forces the input coordinate as fallback coordinate
        fallback_coordinate: Fallback coordinate mode, forwarded only
            when no fallback_speed is given
        scale_factor: Multiplier the engine applies to reachable costs
        radius: Snapping radius in meters for every location

    Returns:
        ManyToManyResult with a float32 (origins x destinations) matrix

    Raises:
        ConfigurationException: Unsupported metric or invalid indices
        AnnotationMissingException: Engine returned no values for metric
        DataIntegrityException: Engine buffer does not match the query
    """
    metric = _coerce_metric(metric)
    locations = list(locations)
    n = len(locations)

    origins = _check_indices(
        "origin_indices",
        range(1, n + 1) if origin_indices is None else origin_indices,
        n,
    )
    destinations = _check_indices(
        "destination_indices",
        range(1, n + 1) if destination_indices is None else destination_indices,
        n,
    )

    # straight-line fallback is always measured from the input coordinate
    if fallback_speed is not None:
        fallback_coordinate = FallbackCoordinate.INPUT

    query = TableQuery(
        coordinates=tuple(location.coordinate for location in locations),
        sources=tuple(index - 1 for index in origins),
        destinations=tuple(index - 1 for index in destinations),
        hints=tuple(location.hint for location in locations),
        radiuses=tuple(radius for _ in locations) if radius is not None else (),
        annotations=REQUESTED_ANNOTATIONS,
        fallback_speed=fallback_speed,
        fallback_coordinate=fallback_coordinate,
        scale_factor=scale_factor,
    )

    with log_operation("table", origins=len(origins), destinations=len(destinations)):
        response = engine.table(query)

    if (response.rows, response.cols) != (len(origins), len(destinations)):
        raise DataIntegrityException(
            f"Table response is {response.rows} x {response.cols}, "
            f"expected {len(origins)} x {len(destinations)}",
            details={
                "rows": response.rows,
                "cols": response.cols,
                "origins": len(origins),
                "destinations": len(destinations),
            },
        )

    matrix = reshape_table(response, metric)

    # same location on both sides costs nothing, whatever the engine reports
    matrix = np.where(
        np.equal.outer(np.asarray(origins), np.asarray(destinations)),
        np.float32(0.0),
        matrix,
    ).astype(np.float32)

    logger.debug(f"Computed {matrix.shape[0]}x{matrix.shape[1]} {metric.value} matrix")

    return ManyToManyResult(
        locations=locations,
        origin_indices=origins,
        destination_indices=destinations,
        metrics=matrix,
        metric_kind=metric,
    )
