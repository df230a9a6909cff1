"""Exception types raised by the sphere reprojection package.

Every error derives from :class:`SphereReprojectionError` and from the
builtin exception that matches its kind, so callers can catch either.
"""

from __future__ import annotations


class SphereReprojectionError(Exception):
    """Base class for all sphere reprojection errors."""


class InvalidCameraDimensions(SphereReprojectionError, ValueError):
    """A camera or bitmap has a non-positive width or height."""


class InvalidRotationMatrix(SphereReprojectionError, ValueError):
    """A matrix is not a proper 3x3 rotation within tolerance."""


class ConversionError(SphereReprojectionError, ValueError):
    """A coordinate conversion received input it cannot map."""


class MissingRotation(SphereReprojectionError, LookupError):
    """An image id has no rotation in the batch lookup."""

    def __init__(self, image_id: object) -> None:
        super().__init__(f"No rotation for image id {image_id!r}")
        self.image_id = image_id


class SourceLoadFailure(SphereReprojectionError, OSError):
    """The source spherical image could not be read."""


class OutputWriteFailure(SphereReprojectionError, OSError):
    """An output patch could not be written."""


class BatchCancelled(SphereReprojectionError):
    """A batch item was skipped because the batch was cancelled."""
