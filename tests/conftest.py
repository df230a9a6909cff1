"""Shared test fixtures for the sphere_reprojection test suite."""

from __future__ import annotations

import numpy as np
import pytest

from sphere_reprojection.cameras.base import Camera
from sphere_reprojection.cameras.factory import pinhole_camera, sphere_camera
from sphere_reprojection.config.schema import SphereReprojectionConfig
from sphere_reprojection.imaging.bitmap import Bitmap
from sphere_reprojection.mapping.resample import pixel_centres


@pytest.fixture
def default_config() -> SphereReprojectionConfig:
    """Return a SphereReprojectionConfig with default values."""
    return SphereReprojectionConfig()


@pytest.fixture
def sphere_cam() -> Camera:
    """A 1 degree per pixel equirectangular camera."""
    return sphere_camera(360, 180)


@pytest.fixture
def pinhole_cam() -> Camera:
    """A small 45 degree pinhole camera."""
    return pinhole_camera(32, 24, 45.0)


@pytest.fixture
def bearing_panorama(sphere_cam: Camera) -> Bitmap:
    """Float32 panorama whose pixels hold their own bearing vector.

    Sampling it at any direction returns (approximately) that
    direction, which makes resampling geometry directly checkable.
    """
    bearings = sphere_cam.image_to_world(pixel_centres(sphere_cam))
    return Bitmap(
        bearings.reshape(sphere_cam.height, sphere_cam.width, 3)
        .astype(np.float32),
    )


@pytest.fixture
def random_panorama() -> Bitmap:
    """Small random uint8 BGR panorama (64 x 32)."""
    rng = np.random.default_rng(0)
    return Bitmap(rng.integers(0, 256, size=(32, 64, 3), dtype=np.uint8))
