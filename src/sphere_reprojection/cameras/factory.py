"""Camera builders for pinhole and equirectangular sphere cameras."""

from __future__ import annotations

import math

from sphere_reprojection.cameras.base import PINHOLE, SPHERE, Camera
from sphere_reprojection.math_utils.coordinates import (
    DEFAULT_FIELD_OF_VIEW,
    check_dimensions,
)


def pinhole_focal_length(
    height: int,
    field_of_view: float = DEFAULT_FIELD_OF_VIEW,
) -> float:
    """Compute the focal length that spans *field_of_view* over *height*.

    Args:
        height: Image height in pixels.
        field_of_view: Vertical field of view in degrees, in ``(0, 180)``.

    Returns:
        ``(height / 2) / tan(fov / 2)`` in pixels.

    Raises:
        ValueError: If *field_of_view* is outside ``(0, 180)``.
    """
    if not 0.0 < field_of_view < 180.0:
        raise ValueError(
            f"Field of view must be in (0, 180) degrees, "
            f"got {field_of_view}",
        )
    return (height / 2.0) / math.tan(math.radians(field_of_view) / 2.0)


def pinhole_camera(
    width: int,
    height: int,
    field_of_view: float = DEFAULT_FIELD_OF_VIEW,
) -> Camera:
    """Build a pinhole camera centred on the image.

    Raises:
        InvalidCameraDimensions: If width or height is not positive.
    """
    check_dimensions(width, height)
    return Camera(
        model=PINHOLE,
        width=int(width),
        height=int(height),
        focal_length=pinhole_focal_length(height, field_of_view),
        cx=width / 2.0,
        cy=height / 2.0,
    )


def sphere_camera(width: int, height: int) -> Camera:
    """Build an equirectangular camera.

    Pixel x spans longitude ``[-180, 180]`` and pixel y spans latitude
    ``[90, -90]``. The 2:1 aspect ratio is not enforced.

    Raises:
        InvalidCameraDimensions: If width or height is not positive.
    """
    check_dimensions(width, height)
    return Camera(model=SPHERE, width=int(width), height=int(height))


def create_camera(model: str, width: int, height: int, **kwargs: float) -> Camera:
    """Create a camera by model name.

    Args:
        model: ``"pinhole"`` or ``"sphere"``.
        width: Image width in pixels.
        height: Image height in pixels.
        **kwargs: ``field_of_view`` for pinhole cameras.

    Raises:
        ValueError: If *model* is not recognized.
    """
    model = model.lower().strip()

    if model == PINHOLE:
        return pinhole_camera(width, height, **kwargs)

    if model in (SPHERE, "equirect", "spherical"):
        return sphere_camera(width, height)

    raise ValueError(
        f"Unknown camera model: {model!r}. "
        f"Supported: 'pinhole', 'sphere'."
    )
