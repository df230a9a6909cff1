"""Tests for sphere_reprojection.math_utils.rotations."""

from __future__ import annotations

import math

import numpy as np
import pytest

from sphere_reprojection.errors import InvalidRotationMatrix
from sphere_reprojection.math_utils.coordinates import (
    lon_lat_to_bearing_vector,
)
from sphere_reprojection.math_utils.rotations import (
    CUBE_FACE_NAMES,
    get_cubic_rotations,
    get_tangent_plane_rotation,
    rotate_x,
    rotate_y,
    rotate_z,
    rotation_to_tangent_angles,
    validate_rotation,
)


class TestAxisRotations:
    """Tests for rotate_x, rotate_y and rotate_z."""

    def test_zero_is_identity(self) -> None:
        for fn in (rotate_x, rotate_y, rotate_z):
            np.testing.assert_array_almost_equal(fn(0.0), np.eye(3))

    def test_rotate_y_turns_forward_right(self) -> None:
        result = rotate_y(math.pi / 2) @ np.array([0.0, 0.0, 1.0])
        np.testing.assert_array_almost_equal(result, [1.0, 0.0, 0.0])

    def test_rotate_x_tilts_forward_up(self) -> None:
        result = rotate_x(math.pi / 2) @ np.array([0.0, 0.0, 1.0])
        np.testing.assert_array_almost_equal(result, [0.0, -1.0, 0.0])

    def test_rotate_z_keeps_optical_axis(self) -> None:
        result = rotate_z(1.234) @ np.array([0.0, 0.0, 1.0])
        np.testing.assert_array_almost_equal(result, [0.0, 0.0, 1.0])


class TestGetCubicRotations:
    """Tests for get_cubic_rotations."""

    def test_six_faces(self) -> None:
        rotations = get_cubic_rotations()
        assert len(rotations) == 6
        assert sorted(rotations) == [0, 1, 2, 3, 4, 5]

    def test_orthonormal_proper(self) -> None:
        for R in get_cubic_rotations().values():
            np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-9)
            assert np.linalg.det(R) == pytest.approx(1.0, abs=1e-9)

    def test_faces_point_along_axes(self) -> None:
        axes = {
            "+X": [1, 0, 0], "-X": [-1, 0, 0],
            "+Y": [0, 1, 0], "-Y": [0, -1, 0],
            "+Z": [0, 0, 1], "-Z": [0, 0, -1],
        }
        for face_id, R in get_cubic_rotations().items():
            forward = R @ np.array([0.0, 0.0, 1.0])
            np.testing.assert_allclose(
                forward, axes[CUBE_FACE_NAMES[face_id]], atol=1e-12,
            )

    def test_faces_cover_distinct_directions(self) -> None:
        forwards = {
            tuple(np.round(R[:, 2]).astype(int))
            for R in get_cubic_rotations().values()
        }
        assert len(forwards) == 6

    def test_shared_and_read_only(self) -> None:
        first = get_cubic_rotations()
        assert get_cubic_rotations() is first
        with pytest.raises(ValueError):
            first[0][0, 0] = 2.0
        with pytest.raises(TypeError):
            first[6] = np.eye(3)  # type: ignore[index]


class TestGetTangentPlaneRotation:
    """Tests for get_tangent_plane_rotation."""

    def test_zero_is_identity(self) -> None:
        np.testing.assert_allclose(
            get_tangent_plane_rotation(0.0, 0.0, 0.0), np.eye(3), atol=1e-15,
        )

    @pytest.mark.parametrize(
        "lon, lat", [(30.0, 10.0), (-120.0, -45.0), (179.0, 80.0), (0.0, 90.0)],
    )
    def test_forward_points_at_lon_lat(self, lon: float, lat: float) -> None:
        R = get_tangent_plane_rotation(lon, lat, 17.0)
        np.testing.assert_allclose(
            R @ np.array([0.0, 0.0, 1.0]),
            lon_lat_to_bearing_vector(lon, lat),
            atol=1e-12,
        )

    def test_is_rotation(self) -> None:
        R = get_tangent_plane_rotation(33.0, -12.0, 71.0)
        validate_rotation(R, tolerance=1e-12)

    def test_roll_turns_about_normal(self) -> None:
        R0 = get_tangent_plane_rotation(40.0, 20.0, 0.0)
        R90 = get_tangent_plane_rotation(40.0, 20.0, 90.0)
        np.testing.assert_allclose(R0[:, 2], R90[:, 2], atol=1e-12)
        # A 90 degree roll sends the patch's +x axis to its +y axis.
        np.testing.assert_allclose(R90[:, 0], R0[:, 1], atol=1e-12)

    def test_composition_order_matters(self) -> None:
        lon, lat = math.radians(60.0), math.radians(30.0)
        yaw_then_pitch = rotate_y(lon) @ rotate_x(lat)
        pitch_then_yaw = rotate_x(lat) @ rotate_y(lon)
        R = get_tangent_plane_rotation(60.0, 30.0)
        np.testing.assert_allclose(R, yaw_then_pitch, atol=1e-12)
        assert not np.allclose(R, pitch_then_yaw)


class TestRotationToTangentAngles:
    """Tests for rotation_to_tangent_angles."""

    @pytest.mark.parametrize(
        "lon, lat, rot",
        [(0.0, 0.0, 0.0), (45.0, 30.0, 10.0), (-150.0, -60.0, -80.0),
         (170.0, 5.0, 179.0)],
    )
    def test_round_trip(self, lon: float, lat: float, rot: float) -> None:
        angles = rotation_to_tangent_angles(
            get_tangent_plane_rotation(lon, lat, rot),
        )
        np.testing.assert_allclose(angles, [lon, lat, rot], atol=1e-9)

    @pytest.mark.parametrize("lat", [89.99999, -89.99999, 89.9999999])
    def test_near_pole_round_trip(self, lat: float) -> None:
        angles = rotation_to_tangent_angles(
            get_tangent_plane_rotation(30.0, lat, 10.0),
        )
        np.testing.assert_allclose(angles, [30.0, lat, 10.0], atol=1e-9)

    def test_pole_recomposes(self) -> None:
        R = get_tangent_plane_rotation(25.0, 90.0, 40.0)
        angles = rotation_to_tangent_angles(R)
        assert angles[1] == pytest.approx(90.0, abs=1e-6)
        np.testing.assert_allclose(
            get_tangent_plane_rotation(*angles), R, atol=1e-6,
        )

    def test_cube_faces_recompose(self) -> None:
        for R in get_cubic_rotations().values():
            np.testing.assert_allclose(
                get_tangent_plane_rotation(*rotation_to_tangent_angles(R)),
                R, atol=1e-9,
            )


class TestValidateRotation:
    """Tests for validate_rotation."""

    def test_accepts_identity(self) -> None:
        R = validate_rotation(np.eye(3).tolist())
        assert R.dtype == np.float64

    def test_rejects_reflection(self) -> None:
        with pytest.raises(InvalidRotationMatrix, match="determinant"):
            validate_rotation(np.diag([1.0, 1.0, -1.0]))

    def test_rejects_scaled(self) -> None:
        with pytest.raises(InvalidRotationMatrix, match="orthonormal"):
            validate_rotation(2.0 * np.eye(3))

    def test_rejects_shape(self) -> None:
        with pytest.raises(InvalidRotationMatrix, match="3x3"):
            validate_rotation(np.eye(4))

    def test_rejects_nan(self) -> None:
        R = np.eye(3)
        R[0, 0] = np.nan
        with pytest.raises(InvalidRotationMatrix):
            validate_rotation(R)

    def test_tolerates_small_noise(self) -> None:
        R = get_tangent_plane_rotation(10.0, 20.0, 30.0) + 1e-9
        validate_rotation(R)

    def test_rejects_ragged_rows(self) -> None:
        with pytest.raises(InvalidRotationMatrix, match="numeric"):
            validate_rotation([[1.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])

    def test_rejects_non_numeric(self) -> None:
        with pytest.raises(InvalidRotationMatrix, match="numeric"):
            validate_rotation([["a", "b", "c"]] * 3)
