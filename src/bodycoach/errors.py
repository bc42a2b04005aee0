"""
Error types surfaced to callers.

Every error here is recoverable: callers show the message and keep the
local state as it was.
"""

from typing import Optional


class CoachError(Exception):
    """Base class for user-visible, recoverable errors."""


class InvalidBundleError(CoachError, ValueError):
    """Export file is malformed or missing required arrays."""

    def __init__(self, message: str = "Invalid export file."):
        super().__init__(message)


class SchemaVersionError(CoachError):
    """Export file was written with a different schema version."""

    def __init__(self, expected: int, found: Optional[int]):
        self.expected = expected
        self.found = found
        super().__init__(f"Unsupported schema version: expected {expected}, found {found}.")


class CatalogError(CoachError):
    """Exercise catalog could not be loaded."""


class PoseEstimationError(CoachError):
    """Pose model failed or returned unusable keypoints for an image."""
