"""3x3 rotation utilities for orienting pinhole patches on the sphere.

A rotation ``R`` maps a bearing vector from the pinhole frame into the
sphere frame (``v_sphere = R @ v_pinhole``). Tangent-plane rotations are
composed as ``R = R_y(lon) @ R_x(lat) @ R_z(rot)``: roll about the
pinhole optical axis first, then pitch, then yaw, so that
``R @ (0, 0, 1)`` points at ``(lon, lat)``.

The cube-face layout follows Torii, Havlena and Pajdla, "From Google
Street View to 3D city models", ICCV Workshops 2009.
"""

from __future__ import annotations

import math
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

import numpy as np

from sphere_reprojection.errors import InvalidRotationMatrix

ROTATION_TOLERANCE = 1e-6

# Face id -> (axis label, lon, lat) of the face centre.
_CUBE_FACES: tuple[tuple[str, float, float], ...] = (
    ("+X", 90.0, 0.0),
    ("-X", -90.0, 0.0),
    ("+Y", 0.0, -90.0),
    ("-Y", 0.0, 90.0),
    ("+Z", 0.0, 0.0),
    ("-Z", 180.0, 0.0),
)

CUBE_FACE_NAMES: Mapping[int, str] = MappingProxyType(
    {face_id: face[0] for face_id, face in enumerate(_CUBE_FACES)},
)


def rotate_x(angle_rad: float) -> np.ndarray:
    """Build a 3x3 rotation matrix about the X axis.

    Positive angles tilt the optical axis (+Z) towards -Y (up).
    """
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([
        [1.0, 0.0, 0.0],
        [0.0, c, -s],
        [0.0, s, c],
    ])


def rotate_y(angle_rad: float) -> np.ndarray:
    """Build a 3x3 rotation matrix about the Y axis.

    Positive angles turn the optical axis (+Z) towards +X (right).
    """
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([
        [c, 0.0, s],
        [0.0, 1.0, 0.0],
        [-s, 0.0, c],
    ])


def rotate_z(angle_rad: float) -> np.ndarray:
    """Build a 3x3 rotation matrix about the Z (optical) axis."""
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ])


def get_tangent_plane_rotation(
    lon: float,
    lat: float,
    rot: float = 0.0,
) -> np.ndarray:
    """Rotation from a pinhole patch to the sphere frame.

    Args:
        lon: Longitude of the patch centre in degrees.
        lat: Latitude of the patch centre in degrees.
        rot: In-plane roll about the patch normal in degrees.

    Returns:
        A 3x3 float64 rotation matrix ``R_y(lon) @ R_x(lat) @ R_z(rot)``.
    """
    return (
        rotate_y(math.radians(lon))
        @ rotate_x(math.radians(lat))
        @ rotate_z(math.radians(rot))
    )


def rotation_to_tangent_angles(
    rotation: np.ndarray,
) -> tuple[float, float, float]:
    """Decompose a rotation into ``(lon, lat, rot)`` in degrees.

    Inverse of :func:`get_tangent_plane_rotation`. At the poles the
    longitude is arbitrary and the roll absorbs the difference, so the
    recomposed matrix is still equal to *rotation*.

    Raises:
        InvalidRotationMatrix: If *rotation* is not a proper rotation.
    """
    R = validate_rotation(rotation)
    forward = R[:, 2]
    lat = math.atan2(-forward[1], math.hypot(forward[0], forward[2]))
    lon = math.atan2(forward[0], forward[2])
    roll_m = (rotate_y(lon) @ rotate_x(lat)).T @ R
    rot = math.atan2(roll_m[1, 0], roll_m[0, 0])
    return math.degrees(lon), math.degrees(lat), math.degrees(rot)


@lru_cache(maxsize=None)
def _cubic_rotation_table() -> Mapping[int, np.ndarray]:
    table = {}
    for face_id, (_, lon, lat) in enumerate(_CUBE_FACES):
        R = get_tangent_plane_rotation(lon, lat)
        # Exact zeros/ones so the table is bit-for-bit orthonormal.
        R = np.round(R, 15) + 0.0
        R.setflags(write=False)
        table[face_id] = R
    return MappingProxyType(table)


def get_cubic_rotations() -> Mapping[int, np.ndarray]:
    """Return the six cube-face rotations keyed by face id.

    Face ids 0..5 point the patch at +X, -X, +Y, -Y, +Z and -Z (see
    :data:`CUBE_FACE_NAMES`). The table is built once and shared; both
    the mapping and its arrays are read-only.
    """
    return _cubic_rotation_table()


def validate_rotation(
    rotation: object,
    tolerance: float = ROTATION_TOLERANCE,
) -> np.ndarray:
    """Check that *rotation* is a proper 3x3 rotation.

    Args:
        rotation: Candidate matrix (array-like).
        tolerance: Absolute tolerance on ``R @ R.T - I`` and ``det - 1``.

    Returns:
        The matrix as a float64 array.

    Raises:
        InvalidRotationMatrix: On wrong shape, non-finite entries,
            non-orthonormal columns or a reflection.
    """
    try:
        R = np.asarray(rotation, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidRotationMatrix(
            f"Rotation is not a numeric matrix: {exc}",
        ) from exc
    if R.shape != (3, 3):
        raise InvalidRotationMatrix(
            f"Rotation must be 3x3, got shape {R.shape}",
        )
    if not np.all(np.isfinite(R)):
        raise InvalidRotationMatrix("Rotation contains non-finite values")
    if not np.allclose(R @ R.T, np.eye(3), rtol=0.0, atol=tolerance):
        raise InvalidRotationMatrix("Rotation is not orthonormal")
    det = float(np.linalg.det(R))
    if abs(det - 1.0) > tolerance:
        raise InvalidRotationMatrix(
            f"Rotation determinant is {det:.6f}, expected +1",
        )
    return R
