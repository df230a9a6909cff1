"""Tests for sphere_reprojection.cameras.base."""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from sphere_reprojection.cameras.base import Camera, lon_lat_to_pixel
from sphere_reprojection.errors import ConversionError, InvalidCameraDimensions


class TestCameraConstruction:
    """Tests for the Camera dataclass."""

    def test_unknown_model_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown camera model"):
            Camera(model="fisheye", width=10, height=10)

    @pytest.mark.parametrize("width, height", [(0, 10), (10, 0), (-5, 5)])
    def test_invalid_dimensions(self, width: int, height: int) -> None:
        with pytest.raises(InvalidCameraDimensions):
            Camera(model="sphere", width=width, height=height)

    def test_pinhole_needs_focal_length(self) -> None:
        with pytest.raises(ValueError, match="focal length"):
            Camera(model="pinhole", width=10, height=10)

    def test_frozen(self, sphere_cam: Camera) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            sphere_cam.width = 10  # type: ignore[misc]


class TestPinholeProjection:
    """Tests for the pinhole image_to_world / world_to_image pair."""

    def test_principal_point(self, pinhole_cam: Camera) -> None:
        normalized = pinhole_cam.image_to_world([[16.0, 12.0]])
        np.testing.assert_array_almost_equal(normalized, [[0.0, 0.0]])

    def test_round_trip(self, pinhole_cam: Camera) -> None:
        pixels = np.array([[0.5, 0.5], [31.5, 23.5], [10.0, 20.0]])
        normalized = pinhole_cam.image_to_world(pixels)
        rays = np.column_stack([normalized, np.ones(len(normalized))])
        np.testing.assert_allclose(
            pinhole_cam.world_to_image(rays), pixels, atol=1e-9,
        )

    def test_behind_raises(self, pinhole_cam: Camera) -> None:
        with pytest.raises(ConversionError):
            pinhole_cam.world_to_image([[0.0, 0.0, -1.0]])


class TestSphereProjection:
    """Tests for the equirectangular image_to_world / world_to_image."""

    def test_centre_is_forward(self, sphere_cam: Camera) -> None:
        v = sphere_cam.image_to_world([[180.0, 90.0]])
        np.testing.assert_allclose(v, [[0.0, 0.0, 1.0]], atol=1e-12)

    def test_corners(self, sphere_cam: Camera) -> None:
        v = sphere_cam.image_to_world([[0.0, 90.0], [270.0, 90.0]])
        np.testing.assert_allclose(v[0], [0.0, 0.0, -1.0], atol=1e-12)
        np.testing.assert_allclose(v[1], [1.0, 0.0, 0.0], atol=1e-12)

    def test_top_row_is_up(self, sphere_cam: Camera) -> None:
        v = sphere_cam.image_to_world([[123.0, 0.0]])
        np.testing.assert_allclose(v, [[0.0, -1.0, 0.0]], atol=1e-12)

    def test_round_trip(self, sphere_cam: Camera) -> None:
        pixels = np.array([[10.5, 20.5], [359.5, 179.5], [200.0, 45.0]])
        np.testing.assert_allclose(
            sphere_cam.world_to_image(sphere_cam.image_to_world(pixels)),
            pixels, atol=1e-9,
        )


class TestLonLatToPixel:
    """Tests for lon_lat_to_pixel."""

    def test_linear_mapping(self, sphere_cam: Camera) -> None:
        px = lon_lat_to_pixel(sphere_cam, [[-180.0, 90.0], [180.0, -90.0]])
        np.testing.assert_allclose(px, [[0.0, 0.0], [360.0, 180.0]])

    def test_no_wrap(self, sphere_cam: Camera) -> None:
        px = lon_lat_to_pixel(sphere_cam, [[359.9, 0.0], [-0.1, 0.0]])
        assert px[0, 0] - px[1, 0] == pytest.approx(360.0)

    def test_requires_sphere(self, pinhole_cam: Camera) -> None:
        with pytest.raises(ConversionError):
            lon_lat_to_pixel(pinhole_cam, [[0.0, 0.0]])
