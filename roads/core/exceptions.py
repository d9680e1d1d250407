"""
Standardized exception hierarchy.

Every error raised by the library derives from AppException and carries:
- A unique error code for programmatic handling
- A human readable message
- Optional structured details (paths, stage names, annotations)

Three families are distinguished:
- Configuration errors, raised before any external call is made
- External service errors, raised when OSRM or osmium fail
- Data integrity errors, raised when an engine response is inconsistent
"""
from typing import Any, Dict, Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class AppException(Exception):
    """Base exception for all library errors."""

    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message or self.message
        self.details = details
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a serializable error payload."""
        payload: Dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationException(AppException):
    """Invalid caller-supplied options, detected before any external call."""
    error_code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"


# =============================================================================
# External Service Exceptions
# =============================================================================

class ExternalServiceException(AppException):
    """External process or service error."""
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "External service failed"


class OSRMException(ExternalServiceException):
    """OSRM toolchain or routing server error."""
    error_code = "OSRM_ERROR"
    message = "OSRM routing engine failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        # engine-reported code, e.g. "InvalidQuery" or "NoSegment"
        self.code = code
        if code:
            details = {**(details or {}), "engine_code": code}
        super().__init__(message=message, details=details)


class OsmiumException(ExternalServiceException):
    """osmium-tool process error."""
    error_code = "OSMIUM_ERROR"
    message = "osmium process failed"


# =============================================================================
# Data Integrity Exceptions
# =============================================================================

class DataIntegrityException(AppException):
    """Engine response is inconsistent with the issued query."""
    error_code = "DATA_INTEGRITY_ERROR"
    message = "Engine response failed integrity checks"


class AnnotationMissingException(DataIntegrityException):
    """Requested table annotation came back empty."""
    error_code = "ANNOTATION_MISSING"

    def __init__(self, annotation: str):
        self.annotation = annotation
        super().__init__(
            message=f"Table response contains no '{annotation}' values",
            details={"annotation": annotation},
        )
