"""Bitmap container, OpenCV-backed image I/O and bilinear sampling.

Sampling uses the same continuous pixel convention as the cameras
(pixel centres at ``i + 0.5``). The x axis wraps around the image
width, which is what an equirectangular longitude needs; the y axis
clamps at the first and last rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from sphere_reprojection.cameras.base import Camera, lon_lat_to_pixel
from sphere_reprojection.errors import (
    InvalidCameraDimensions,
    OutputWriteFailure,
    SourceLoadFailure,
)

logger = logging.getLogger(__name__)

# cv2.remap rejects source and map sides at or above SHRT_MAX.
MAX_REMAP_SIDE = 32766


@dataclass
class Bitmap:
    """An image buffer.

    Attributes:
        data: Array of shape ``(H, W)`` or ``(H, W, C)``.
    """

    data: np.ndarray

    def __post_init__(self) -> None:
        self.data = np.asarray(self.data)
        if self.data.ndim not in (2, 3):
            raise ValueError(
                f"Bitmap data must be 2D or 3D, got shape {self.data.shape}",
            )
        if self.data.shape[0] <= 0 or self.data.shape[1] <= 0:
            raise InvalidCameraDimensions(
                f"Bitmap must be non-empty, got shape {self.data.shape}",
            )

    @classmethod
    def zeros(
        cls,
        width: int,
        height: int,
        channels: int = 3,
        dtype: np.dtype | type = np.uint8,
    ) -> Bitmap:
        """Allocate a black bitmap."""
        if width <= 0 or height <= 0:
            raise InvalidCameraDimensions(
                f"Bitmap must be non-empty, got {width} x {height}",
            )
        shape = (height, width) if channels == 1 else (height, width, channels)
        return cls(np.zeros(shape, dtype=dtype))

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def channels(self) -> int:
        return 1 if self.data.ndim == 2 else int(self.data.shape[2])

    def sample(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Bilinearly interpolate the bitmap at pixel coordinates.

        Args:
            x: Continuous x coordinates; wrapped modulo the width.
            y: Continuous y coordinates; clamped to the first/last row.
                Must broadcast against *x*.

        Returns:
            Sampled values with the broadcast shape of *x* and *y*, plus
            a trailing channel axis for multi-channel bitmaps. The dtype
            matches the bitmap.
        """
        xs, ys = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
        )
        map_x = np.mod(xs.ravel() - 0.5, self.width)
        map_y = np.clip(ys.ravel() - 0.5, 0.0, self.height - 1)

        if max(self.width, self.height) > MAX_REMAP_SIDE:
            values = self._gather(map_x, map_y)
        else:
            values = self._remap(map_x, map_y)
        return values.reshape(xs.shape + self.data.shape[2:])

    def _remap(self, map_x: np.ndarray, map_y: np.ndarray) -> np.ndarray:
        """Sample flat coordinates with ``cv2.remap``.

        Queries are folded into grids of at most ``MAX_REMAP_SIDE``
        columns and rows. BORDER_WRAP supplies the x = 0 neighbour for
        x in ``[w - 1, w)``; y is already clamped so the wrapped row
        carries zero weight.
        """
        n = map_x.size
        cols = max(1, min(n, MAX_REMAP_SIDE))
        block = cols * MAX_REMAP_SIDE
        out = np.empty((n,) + self.data.shape[2:], dtype=self.data.dtype)
        for start in range(0, n, block):
            stop = min(start + block, n)
            count = stop - start
            rows = -(-count // cols)
            pad = rows * cols - count
            mx = np.pad(map_x[start:stop], (0, pad)).astype(np.float32)
            my = np.pad(map_y[start:stop], (0, pad)).astype(np.float32)
            chunk = cv2.remap(
                self.data, mx.reshape(rows, cols), my.reshape(rows, cols),
                interpolation=cv2.INTER_LINEAR,
                borderMode=cv2.BORDER_WRAP,
            )
            out[start:stop] = chunk.reshape(
                (rows * cols,) + self.data.shape[2:],
            )[:count]
        return out

    def _gather(self, map_x: np.ndarray, map_y: np.ndarray) -> np.ndarray:
        """Sample flat coordinates with a numpy bilinear gather.

        Used for sources with a side beyond what ``cv2.remap`` accepts.
        """
        x0 = np.floor(map_x).astype(np.intp)
        y0 = np.floor(map_y).astype(np.intp)
        fx = map_x - x0
        fy = map_y - y0
        x0 %= self.width
        x1 = (x0 + 1) % self.width
        y1 = np.minimum(y0 + 1, self.height - 1)
        if self.data.ndim == 3:
            fx = fx[:, np.newaxis]
            fy = fy[:, np.newaxis]

        data = self.data
        top = data[y0, x0] * (1.0 - fx) + data[y0, x1] * fx
        bottom = data[y1, x0] * (1.0 - fx) + data[y1, x1] * fx
        values = top * (1.0 - fy) + bottom * fy

        if np.issubdtype(data.dtype, np.integer):
            info = np.iinfo(data.dtype)
            values = np.clip(np.rint(values), info.min, info.max)
        return values.astype(data.dtype)

    def sample_lon_lat(
        self,
        camera: Camera,
        lon: np.ndarray,
        lat: np.ndarray,
    ) -> np.ndarray:
        """Sample a sphere bitmap at ``(lon, lat)`` degrees.

        Longitude is periodic, so ``359.9`` and ``-0.1`` read the same
        value. The result has the broadcast shape of *lon* and *lat*.
        """
        lon_b, lat_b = np.broadcast_arrays(
            np.asarray(lon, dtype=np.float64),
            np.asarray(lat, dtype=np.float64),
        )
        pixels = lon_lat_to_pixel(
            camera, np.column_stack([lon_b.ravel(), lat_b.ravel()]),
        )
        return self.sample(
            pixels[:, 0].reshape(lon_b.shape),
            pixels[:, 1].reshape(lon_b.shape),
        )


def load_bitmap(path: str | Path, grayscale: bool = False) -> Bitmap:
    """Load an image from disk.

    Args:
        path: Image file path.
        grayscale: Load as a single-channel image.

    Returns:
        A :class:`Bitmap` in OpenCV channel order (BGR).

    Raises:
        SourceLoadFailure: If the file is missing or cannot be decoded.
    """
    flags = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    image = cv2.imread(str(path), flags)
    if image is None:
        raise SourceLoadFailure(f"Could not read image: {path}")
    logger.info(
        "Loaded %s (%d x %d)", path, image.shape[1], image.shape[0],
    )
    return Bitmap(image)


def save_bitmap(bitmap: Bitmap, path: str | Path) -> Path:
    """Write a bitmap to disk, creating parent directories.

    Returns:
        The written path.

    Raises:
        OutputWriteFailure: If the encoder or the filesystem rejects
            the write.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        ok = cv2.imwrite(str(path), bitmap.data)
    except (OSError, cv2.error) as exc:
        raise OutputWriteFailure(f"Could not write {path}: {exc}") from exc
    if not ok:
        raise OutputWriteFailure(f"Could not write {path}")
    logger.debug("Saved %s", path)
    return path
