"""Conversions between normalized points, bearing vectors and lon/lat.

Axis convention (camera frame): +x right, +y down, +z forward.
Longitude is measured from +z towards +x, latitude is positive above
the horizon (towards -y):

    lon = atan2(x, z)
    lat = atan2(-y, hypot(x, z))

Normalized points live on the ``z = 1`` plane. All angles are in
degrees. Every batch function accepts an ``(N, k)`` array-like and
returns an ``(N, m)`` float64 array in the same order.
"""

from __future__ import annotations

import math

import numpy as np

from sphere_reprojection.errors import ConversionError, InvalidCameraDimensions

DEFAULT_FIELD_OF_VIEW = 45.0


def check_dimensions(width: int, height: int) -> None:
    """Raise ``InvalidCameraDimensions`` unless both sides are positive."""
    if width <= 0 or height <= 0:
        raise InvalidCameraDimensions(
            f"Width and height must be positive, got {width} x {height}",
        )


def _as_rows(values: object, ncols: int, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return arr.reshape(0, ncols)
    if arr.ndim != 2 or arr.shape[1] != ncols:
        raise ConversionError(
            f"Expected {name} with shape (N, {ncols}), got {arr.shape}",
        )
    if not np.all(np.isfinite(arr)):
        raise ConversionError(f"{name} contain non-finite values")
    return arr


def _as_single(value: object, ncols: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (ncols,):
        raise ConversionError(
            f"Expected a {name} of length {ncols}, got shape {arr.shape}",
        )
    return arr[np.newaxis, :]


# ---------------------------------------------------------------------------
# Error magnitudes
# ---------------------------------------------------------------------------

def _camera_plane_scale(
    width: int,
    height: int,
    field_of_view: float,
) -> float:
    """Pixels per unit of the normalized plane at the principal point.

    The field of view is applied to both axes, so a non-square image has
    different focal lengths along x and y; the isotropic factor is their
    geometric mean.
    """
    check_dimensions(width, height)
    t = math.tan(math.radians(field_of_view) / 2.0)
    fx = (width / 2.0) / t
    fy = (height / 2.0) / t
    return math.sqrt(fx * fy)


def _sphere_plane_scale(width: int, height: int) -> float:
    """Pixels per radian of an equirectangular image (geometric mean)."""
    check_dimensions(width, height)
    sx = width / (2.0 * math.pi)
    sy = height / math.pi
    return math.sqrt(sx * sy)


def image_plane_to_camera_plane_error(
    width: int,
    height: int,
    image_error: float,
    field_of_view: float = DEFAULT_FIELD_OF_VIEW,
) -> float:
    """Normalize a pixel error to the camera (normalized) plane.

    Args:
        width: Camera width in pixels.
        height: Camera height in pixels.
        image_error: Error magnitude in pixels.
        field_of_view: Field of view the focal lengths are derived from.

    Returns:
        Error magnitude on the ``z = 1`` plane.

    Raises:
        InvalidCameraDimensions: If width or height is not positive.
    """
    return image_error / _camera_plane_scale(width, height, field_of_view)


def camera_plane_to_image_plane_error(
    width: int,
    height: int,
    camera_error: float,
    field_of_view: float = DEFAULT_FIELD_OF_VIEW,
) -> float:
    """Inverse of :func:`image_plane_to_camera_plane_error`."""
    return camera_error * _camera_plane_scale(width, height, field_of_view)


def image_plane_to_sphere_plane_error(
    width: int,
    height: int,
    image_error: float,
) -> float:
    """Normalize a pixel error of an equirectangular image to radians.

    Args:
        width: Sphere camera width in pixels.
        height: Sphere camera height in pixels.
        image_error: Error magnitude in pixels.

    Returns:
        Angular error magnitude in radians.

    Raises:
        InvalidCameraDimensions: If width or height is not positive.
    """
    return image_error / _sphere_plane_scale(width, height)


def sphere_plane_to_image_plane_error(
    width: int,
    height: int,
    sphere_error: float,
) -> float:
    """Inverse of :func:`image_plane_to_sphere_plane_error`."""
    return sphere_error * _sphere_plane_scale(width, height)


# ---------------------------------------------------------------------------
# Normalized points <-> bearing vectors
# ---------------------------------------------------------------------------

def normalized_points_to_bearing_vectors(points: object) -> np.ndarray:
    """Lift ``(N, 2)`` normalized points to ``(N, 3)`` unit vectors."""
    pts = _as_rows(points, 2, "normalized points")
    rays = np.column_stack([pts, np.ones(len(pts))])
    return rays / np.linalg.norm(rays, axis=1, keepdims=True)


def normalized_point_to_bearing_vector(point: object) -> np.ndarray:
    """Embed ``(x, y)`` as ``(x, y, 1)`` and normalize to unit length.

    Raises:
        ConversionError: If the point is malformed or not finite.
    """
    return normalized_points_to_bearing_vectors(
        _as_single(point, 2, "normalized point"),
    )[0]


def bearing_vectors_to_normalized_points(vectors: object) -> np.ndarray:
    """Project ``(N, 3)`` bearing vectors onto the ``z = 1`` plane.

    Raises:
        ConversionError: If any vector has ``z <= 0``.
    """
    vecs = _as_rows(vectors, 3, "bearing vectors")
    behind = vecs[:, 2] <= 0.0
    if np.any(behind):
        idx = int(np.flatnonzero(behind)[0])
        raise ConversionError(
            f"Bearing vector {idx} has z = {vecs[idx, 2]:g}; "
            "points on or behind the camera plane have no pinhole image",
        )
    return vecs[:, :2] / vecs[:, 2:3]


def bearing_vector_to_normalized_point(vector: object) -> np.ndarray:
    """Divide ``(x, y)`` by ``z``; fails for ``z <= 0``."""
    return bearing_vectors_to_normalized_points(
        _as_single(vector, 3, "bearing vector"),
    )[0]


# ---------------------------------------------------------------------------
# Bearing vectors <-> lon/lat
# ---------------------------------------------------------------------------

def bearing_vectors_to_lon_lats(vectors: object) -> np.ndarray:
    """Convert ``(N, 3)`` vectors to ``(N, 2)`` ``[lon, lat]`` in degrees.

    Vectors need not be unit length but must be non-zero.
    """
    vecs = _as_rows(vectors, 3, "bearing vectors")
    if np.any(np.linalg.norm(vecs, axis=1) == 0.0):
        raise ConversionError("Zero-length bearing vector has no direction")
    x, y, z = vecs[:, 0], vecs[:, 1], vecs[:, 2]
    lon = np.degrees(np.arctan2(x, z))
    lat = np.degrees(np.arctan2(-y, np.hypot(x, z)))
    return np.column_stack([lon, lat])


def bearing_vector_to_lon_lat(vector: object) -> np.ndarray:
    """Single-vector form of :func:`bearing_vectors_to_lon_lats`."""
    return bearing_vectors_to_lon_lats(
        _as_single(vector, 3, "bearing vector"),
    )[0]


def lon_lats_to_bearing_vectors(lon_lats: object) -> np.ndarray:
    """Convert ``(N, 2)`` ``[lon, lat]`` degrees to unit vectors.

    Longitude is unconstrained (periodic). Latitude must lie in
    ``[-90, 90]``.

    Raises:
        ConversionError: If a latitude is outside ``[-90, 90]``.
    """
    ll = _as_rows(lon_lats, 2, "lon/lat pairs")
    if np.any(np.abs(ll[:, 1]) > 90.0 + 1e-9):
        raise ConversionError("Latitude must lie in [-90, 90] degrees")
    lon = np.radians(ll[:, 0])
    lat = np.radians(np.clip(ll[:, 1], -90.0, 90.0))
    cos_lat = np.cos(lat)
    return np.column_stack([
        cos_lat * np.sin(lon),
        -np.sin(lat),
        cos_lat * np.cos(lon),
    ])


def lon_lat_to_bearing_vector(lon: float, lat: float) -> np.ndarray:
    """Unit vector pointing at ``(lon, lat)`` degrees."""
    return lon_lats_to_bearing_vectors([[lon, lat]])[0]


# ---------------------------------------------------------------------------
# Normalized points <-> lon/lat
# ---------------------------------------------------------------------------

def normalized_points_to_lon_lats(points: object) -> np.ndarray:
    """Convert ``(N, 2)`` normalized points to ``[lon, lat]`` degrees."""
    return bearing_vectors_to_lon_lats(
        normalized_points_to_bearing_vectors(points),
    )


def normalized_point_to_lon_lat(point: object) -> np.ndarray:
    """Convert one normalized point to ``[lon, lat]`` in degrees.

    The principal point ``(0, 0)`` maps to ``(0, 0)``; ``(1, 0)`` maps
    to ``(45, 0)``; ``(0, -1)`` maps to ``(0, 45)``.
    """
    return normalized_points_to_lon_lats(
        _as_single(point, 2, "normalized point"),
    )[0]


def lon_lats_to_normalized_points(lon_lats: object) -> np.ndarray:
    """Convert ``(N, 2)`` ``[lon, lat]`` degrees to normalized points.

    Raises:
        ConversionError: If a direction lies on or behind the camera
            plane (``|lon| >= 90`` at the equator).
    """
    return bearing_vectors_to_normalized_points(
        lon_lats_to_bearing_vectors(lon_lats),
    )


def lon_lat_to_normalized_point(lon: float, lat: float) -> np.ndarray:
    """Inverse of :func:`normalized_point_to_lon_lat`."""
    return lon_lats_to_normalized_points([[lon, lat]])[0]
