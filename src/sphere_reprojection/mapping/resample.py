"""Resample pinhole patches out of an equirectangular image.

Both entry points inverse-map every destination pixel: the pixel
centre is back-projected through the pinhole camera, rotated into the
sphere frame, converted to a source pixel and bilinearly sampled.
They differ only in how the rotated ray becomes a source coordinate:

* :func:`spherical_to_patch` rotates the 3D bearing vector and runs it
  through the sphere camera's forward projection.
* :func:`spherical_to_tangent` treats the normalized point as a
  coordinate on the gnomonic plane tangent at the patch centre and
  applies the closed-form inverse gnomonic projection.

Each call returns a freshly allocated :class:`Bitmap`.
"""

from __future__ import annotations

import logging

import numpy as np

from sphere_reprojection.cameras.base import Camera, lon_lat_to_pixel
from sphere_reprojection.imaging.bitmap import Bitmap
from sphere_reprojection.math_utils.coordinates import (
    check_dimensions,
    normalized_points_to_bearing_vectors,
)
from sphere_reprojection.math_utils.rotations import (
    rotation_to_tangent_angles,
    validate_rotation,
)

logger = logging.getLogger(__name__)


def check_cameras(sphere_camera: Camera, pinhole_camera: Camera) -> None:
    """Validate the source/target camera pair for resampling."""
    check_dimensions(sphere_camera.width, sphere_camera.height)
    check_dimensions(pinhole_camera.width, pinhole_camera.height)
    if not sphere_camera.is_sphere:
        raise ValueError(
            f"Source camera must be a sphere camera, "
            f"got {sphere_camera.model!r}",
        )
    if not pinhole_camera.is_pinhole:
        raise ValueError(
            f"Target camera must be a pinhole camera, "
            f"got {pinhole_camera.model!r}",
        )


def pixel_centres(camera: Camera) -> np.ndarray:
    """Return the ``(H * W, 2)`` pixel centres of *camera*, row-major."""
    u, v = np.meshgrid(
        np.arange(camera.width, dtype=np.float64) + 0.5,
        np.arange(camera.height, dtype=np.float64) + 0.5,
    )
    return np.column_stack([u.ravel(), v.ravel()])


def spherical_source_pixels(
    sphere_camera: Camera,
    rotation: np.ndarray,
    pinhole_camera: Camera,
) -> np.ndarray:
    """Source pixel of every patch pixel via the full sphere projection.

    Returns:
        ``(H * W, 2)`` unwrapped sphere pixel coordinates.
    """
    normalized = pinhole_camera.image_to_world(pixel_centres(pinhole_camera))
    bearings = normalized_points_to_bearing_vectors(normalized)
    return sphere_camera.world_to_image(bearings @ rotation.T)


def tangent_source_pixels(
    sphere_camera: Camera,
    rotation: np.ndarray,
    pinhole_camera: Camera,
) -> np.ndarray:
    """Source pixel of every patch pixel via inverse gnomonic projection.

    With ``k = 1 / sqrt(1 + x^2 + n^2)`` for east/north plane
    coordinates ``(x, n)``:

        lat = asin(k * (sin lat0 + n * cos lat0))
        lon = lon0 + atan2(x, cos lat0 - n * sin lat0)

    Returns:
        ``(H * W, 2)`` unwrapped sphere pixel coordinates.
    """
    lon0, lat0, rot = np.radians(rotation_to_tangent_angles(rotation))
    normalized = pinhole_camera.image_to_world(pixel_centres(pinhole_camera))

    # Roll into the tangent plane's east/north frame (north is -y).
    c, s = np.cos(rot), np.sin(rot)
    east = c * normalized[:, 0] - s * normalized[:, 1]
    north = -(s * normalized[:, 0] + c * normalized[:, 1])

    k = 1.0 / np.sqrt(1.0 + east * east + north * north)
    sin_lat = k * (np.sin(lat0) + north * np.cos(lat0))
    lat = np.arcsin(np.clip(sin_lat, -1.0, 1.0))
    lon = lon0 + np.arctan2(east, np.cos(lat0) - north * np.sin(lat0))

    return lon_lat_to_pixel(
        sphere_camera, np.degrees(np.column_stack([lon, lat])),
    )


def _sample_patch(
    sphere_camera: Camera,
    sphere_bitmap: Bitmap,
    source_pixels: np.ndarray,
    pinhole_camera: Camera,
) -> Bitmap:
    # The bitmap may be stored at a different resolution than the camera.
    sx = sphere_bitmap.width / float(sphere_camera.width)
    sy = sphere_bitmap.height / float(sphere_camera.height)
    shape = (pinhole_camera.height, pinhole_camera.width)
    map_x = (source_pixels[:, 0] * sx).reshape(shape)
    map_y = (source_pixels[:, 1] * sy).reshape(shape)
    return Bitmap(sphere_bitmap.sample(map_x, map_y))


def spherical_to_patch(
    sphere_camera: Camera,
    sphere_bitmap: Bitmap,
    rotation: np.ndarray,
    pinhole_camera: Camera,
) -> Bitmap:
    """Generate a pinhole patch through the full spherical projection.

    Args:
        sphere_camera: Equirectangular source camera.
        sphere_bitmap: Source image, read only.
        rotation: Rotation from the pinhole frame to the sphere frame.
        pinhole_camera: Target camera; defines the output size.

    Returns:
        A new bitmap of ``pinhole_camera`` size with the source's
        channels and dtype.

    Raises:
        InvalidRotationMatrix: If *rotation* is not a proper rotation.
        InvalidCameraDimensions: If either camera has a non-positive
            side.
    """
    check_cameras(sphere_camera, pinhole_camera)
    R = validate_rotation(rotation)
    logger.debug(
        "Sphere patch %d x %d, forward axis %s",
        pinhole_camera.width, pinhole_camera.height,
        np.round(R[:, 2], 4),
    )
    pixels = spherical_source_pixels(sphere_camera, R, pinhole_camera)
    return _sample_patch(sphere_camera, sphere_bitmap, pixels, pinhole_camera)


def spherical_to_tangent(
    sphere_camera: Camera,
    sphere_bitmap: Bitmap,
    rotation: np.ndarray,
    pinhole_camera: Camera,
) -> Bitmap:
    """Generate a pinhole patch through the tangent-plane projection.

    Same contract as :func:`spherical_to_patch`. Intended for narrower
    fields of view.
    """
    check_cameras(sphere_camera, pinhole_camera)
    R = validate_rotation(rotation)
    logger.debug(
        "Tangent patch %d x %d, centre (lon, lat, rot) = %s",
        pinhole_camera.width, pinhole_camera.height,
        tuple(round(a, 3) for a in rotation_to_tangent_angles(R)),
    )
    pixels = tangent_source_pixels(sphere_camera, R, pinhole_camera)
    return _sample_patch(sphere_camera, sphere_bitmap, pixels, pinhole_camera)
