"""
Shared Pydantic validators for geographic values.

Coordinates are kept at single precision, which is what the routing
engine stores internally.
"""

from typing import Annotated, Any

import numpy as np
from pydantic import BeforeValidator, Field


def _to_single(v: Any, label: str) -> float:
    if v is None:
        raise ValueError(f"{label} is required")

    try:
        value = float(v)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {label.lower()} value: {v}")

    if np.isnan(value):
        raise ValueError(f"{label} must be a number, got NaN")

    return float(np.float32(value))


def validate_latitude(v: Any) -> float:
    """
    Validate latitude value.

    Latitude must be between -90 and 90 degrees.
    """
    lat = _to_single(v, "Latitude")
    if lat < -90 or lat > 90:
        raise ValueError(f"Latitude must be between -90 and 90, got {lat}")
    return lat


def validate_longitude(v: Any) -> float:
    """
    Validate longitude value.

    Longitude must be between -180 and 180 degrees.
    """
    lon = _to_single(v, "Longitude")
    if lon < -180 or lon > 180:
        raise ValueError(f"Longitude must be between -180 and 180, got {lon}")
    return lon


def validate_azimuth_optional(v: Any) -> float | None:
    """Validate optional azimuth, normalized into [0, 360)."""
    if v is None:
        return None
    return _to_single(v, "Azimuth") % 360.0


def validate_distance_optional(v: Any) -> float | None:
    """Validate optional non-negative distance in meters."""
    if v is None:
        return None
    distance = _to_single(v, "Distance")
    if distance < 0:
        raise ValueError(f"Distance must be positive, got {distance}")
    return distance


# Annotated types for use in Pydantic models
Latitude = Annotated[
    float,
    BeforeValidator(validate_latitude),
    Field(description="Latitude in degrees (-90 to 90)"),
]

Longitude = Annotated[
    float,
    BeforeValidator(validate_longitude),
    Field(description="Longitude in degrees (-180 to 180)"),
]

AzimuthOptional = Annotated[
    float | None,
    BeforeValidator(validate_azimuth_optional),
    Field(description="Heading in degrees clockwise from north"),
]

DistanceOptional = Annotated[
    float | None,
    BeforeValidator(validate_distance_optional),
    Field(description="Distance in meters"),
]
