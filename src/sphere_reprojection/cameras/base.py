"""Camera descriptor shared by the pinhole and spherical models.

A single immutable :class:`Camera` dataclass covers both models; the
``model`` tag selects the projection. Use the builders in
:mod:`sphere_reprojection.cameras.factory` to create instances.

Pixel coordinates are continuous with pixel centres at ``i + 0.5``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sphere_reprojection.errors import ConversionError
from sphere_reprojection.math_utils.coordinates import (
    bearing_vectors_to_lon_lats,
    bearing_vectors_to_normalized_points,
    check_dimensions,
    lon_lats_to_bearing_vectors,
)

PINHOLE = "pinhole"
SPHERE = "sphere"

CAMERA_MODELS: tuple[str, ...] = (PINHOLE, SPHERE)


@dataclass(frozen=True)
class Camera:
    """Immutable camera descriptor.

    Attributes:
        model: ``"pinhole"`` or ``"sphere"``.
        width: Image width in pixels.
        height: Image height in pixels.
        focal_length: Focal length in pixels (pinhole only).
        cx: Principal point X in pixels (pinhole only).
        cy: Principal point Y in pixels (pinhole only).
    """

    model: str
    width: int
    height: int
    focal_length: float = 0.0
    cx: float = 0.0
    cy: float = 0.0

    def __post_init__(self) -> None:
        if self.model not in CAMERA_MODELS:
            raise ValueError(
                f"Unknown camera model {self.model!r}; "
                f"choose from {list(CAMERA_MODELS)}",
            )
        check_dimensions(self.width, self.height)
        if self.model == PINHOLE and not self.focal_length > 0.0:
            raise ValueError(
                f"Pinhole focal length must be positive, "
                f"got {self.focal_length}",
            )

    @property
    def is_pinhole(self) -> bool:
        """Whether this is a pinhole camera."""
        return self.model == PINHOLE

    @property
    def is_sphere(self) -> bool:
        """Whether this is an equirectangular sphere camera."""
        return self.model == SPHERE

    def image_to_world(self, points: np.ndarray) -> np.ndarray:
        """Back-project ``(N, 2)`` pixel coordinates.

        Returns:
            ``(N, 2)`` normalized points for a pinhole camera, or
            ``(N, 3)`` unit bearing vectors for a sphere camera.
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        if self.is_pinhole:
            return np.column_stack([
                (pts[:, 0] - self.cx) / self.focal_length,
                (pts[:, 1] - self.cy) / self.focal_length,
            ])
        lon = pts[:, 0] / self.width * 360.0 - 180.0
        lat = 90.0 - pts[:, 1] / self.height * 180.0
        return lon_lats_to_bearing_vectors(
            np.column_stack([lon, np.clip(lat, -90.0, 90.0)]),
        )

    def world_to_image(self, vectors: np.ndarray) -> np.ndarray:
        """Project ``(N, 3)`` bearing vectors to ``(N, 2)`` pixels.

        Sphere longitudes land in ``[0, width]``; the caller wraps.

        Raises:
            ConversionError: For a pinhole camera, if a vector points
                on or behind the image plane.
        """
        vecs = np.asarray(vectors, dtype=np.float64).reshape(-1, 3)
        if self.is_pinhole:
            normalized = bearing_vectors_to_normalized_points(vecs)
            return normalized * self.focal_length + [self.cx, self.cy]
        lon_lat = bearing_vectors_to_lon_lats(vecs)
        return lon_lat_to_pixel(self, lon_lat)


def lon_lat_to_pixel(camera: Camera, lon_lats: np.ndarray) -> np.ndarray:
    """Map ``(N, 2)`` ``[lon, lat]`` degrees to sphere pixel coordinates.

    No wrapping is applied: longitude 359.9 lands one full image width
    to the right of longitude -0.1.
    """
    if not camera.is_sphere:
        raise ConversionError(
            f"lon/lat pixels need a sphere camera, got {camera.model!r}",
        )
    ll = np.asarray(lon_lats, dtype=np.float64).reshape(-1, 2)
    return np.column_stack([
        (ll[:, 0] + 180.0) / 360.0 * camera.width,
        (90.0 - ll[:, 1]) / 180.0 * camera.height,
    ])
