"""Batch projection of one panorama into many pinhole patches.

For every requested image id, looks up its rotation, resamples a patch
from the shared source panorama and writes it to the output directory.
Ids are independent: a failure is recorded in that id's outcome and the
remaining ids are still processed.

The public entry point is :func:`spherical_to_pinhole`.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Hashable, Mapping, Sequence

import numpy as np

from sphere_reprojection.cameras.base import Camera
from sphere_reprojection.cameras.factory import pinhole_camera, sphere_camera
from sphere_reprojection.config.loader import load_config, load_rotations
from sphere_reprojection.config.schema import SphereReprojectionConfig
from sphere_reprojection.errors import (
    BatchCancelled,
    MissingRotation,
    OutputWriteFailure,
    SphereReprojectionError,
)
from sphere_reprojection.imaging.bitmap import Bitmap, load_bitmap, save_bitmap
from sphere_reprojection.mapping.resample import (
    check_cameras,
    spherical_to_patch,
    spherical_to_tangent,
)

logger = logging.getLogger(__name__)

DEFAULT_FILENAME_PATTERN = "{image_id}.png"


@dataclass
class PatchOutcome:
    """Result of projecting one image id.

    Attributes:
        image_id: The requested id.
        path: Written file, or ``None`` on failure.
        error: The error that stopped this id, or ``None`` on success.
    """

    image_id: Hashable
    path: Path | None = None
    error: SphereReprojectionError | None = None

    @property
    def ok(self) -> bool:
        """Whether the patch was written."""
        return self.error is None

    @property
    def error_kind(self) -> str | None:
        """Class name of the error, e.g. ``"MissingRotation"``."""
        return None if self.error is None else type(self.error).__name__


@dataclass
class BatchResult:
    """Per-id outcomes of :func:`spherical_to_pinhole`, in input order."""

    outcomes: list[PatchOutcome] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        """Output paths of the successful ids, in input order."""
        return [str(o.path) for o in self.outcomes if o.ok]

    @property
    def succeeded(self) -> dict[Hashable, Path]:
        """Map of successful image ids to their output path."""
        return {o.image_id: o.path for o in self.outcomes if o.ok}

    @property
    def failed(self) -> dict[Hashable, SphereReprojectionError]:
        """Map of failed image ids to their error."""
        return {o.image_id: o.error for o in self.outcomes if not o.ok}

    @property
    def all_ok(self) -> bool:
        return all(o.ok for o in self.outcomes)


def patch_path(
    output_dir: str | Path,
    image_id: Hashable,
    filename_pattern: str = DEFAULT_FILENAME_PATTERN,
) -> Path:
    """Output path for *image_id*, e.g. ``output_dir/12.png``.

    Raises:
        OutputWriteFailure: If *filename_pattern* cannot be formatted
            with *image_id*.
    """
    try:
        name = filename_pattern.format(image_id=image_id)
    except (KeyError, IndexError, ValueError, TypeError) as exc:
        raise OutputWriteFailure(
            f"Cannot name output for {image_id!r} with "
            f"{filename_pattern!r}: {exc}",
        ) from exc
    return Path(output_dir) / name


def _plan_paths(
    output_dir: Path,
    image_ids: Sequence[Hashable],
    filename_pattern: str,
) -> list[tuple[Path | None, SphereReprojectionError | None]]:
    # An id whose name is already taken by an earlier id is not written.
    plan = []
    claimed: dict[Path, Hashable] = {}
    for image_id in image_ids:
        try:
            path = patch_path(output_dir, image_id, filename_pattern)
        except OutputWriteFailure as exc:
            plan.append((None, exc))
            continue
        if path in claimed:
            plan.append((None, OutputWriteFailure(
                f"Duplicate output path {path} for {image_id!r}, "
                f"already used by {claimed[path]!r}",
            )))
            continue
        claimed[path] = image_id
        plan.append((path, None))
    return plan


def spherical_to_pinhole(
    sphere_camera: Camera,
    sphere_bitmap: Bitmap | None,
    sphere_path: str | Path | None,
    pinhole_camera: Camera,
    output_dir: str | Path,
    image_ids: Sequence[Hashable],
    rotations: Mapping[Hashable, np.ndarray],
    tangent_proj: bool = True,
    filename_pattern: str = DEFAULT_FILENAME_PATTERN,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
) -> BatchResult:
    """Generate one pinhole image per image id from a spherical image.

    Args:
        sphere_camera: Equirectangular source camera.
        sphere_bitmap: Source image. If ``None`` it is loaded from
            *sphere_path*.
        sphere_path: Source image path, used when *sphere_bitmap* is
            ``None`` and for log messages.
        pinhole_camera: Camera of every output patch.
        output_dir: Directory the patches are written to.
        image_ids: Ids to produce, in output order.
        rotations: Rotation (pinhole to sphere) per image id. Must not
            be mutated while the batch runs.
        tangent_proj: Use the tangent-plane projection instead of the
            full spherical projection.
        filename_pattern: ``str.format`` pattern with an ``image_id``
            field. An id whose name cannot be formatted, or repeats
            the name of an earlier id, reports :class:`OutputWriteFailure`
            and is not written.
        max_workers: Number of worker threads; ``1`` runs inline.
        cancel_event: When set, ids that have not started are reported
            as :class:`BatchCancelled`; written files are kept.

    Returns:
        A :class:`BatchResult` with one outcome per id, in input order.

    Raises:
        SourceLoadFailure: If the source image cannot be read.
        ValueError: If no source is given or the cameras have the
            wrong models.
    """
    check_cameras(sphere_camera, pinhole_camera)
    if sphere_bitmap is None:
        if sphere_path is None:
            raise ValueError("Either sphere_bitmap or sphere_path is required")
        sphere_bitmap = load_bitmap(sphere_path)

    resample = spherical_to_tangent if tangent_proj else spherical_to_patch
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(
        "Projecting %d patches (%s) from %s into %s",
        len(image_ids), "tangent" if tangent_proj else "sphere",
        sphere_path if sphere_path is not None else "<bitmap>", output_dir,
    )

    def project_one(
        item: tuple[Hashable, Path | None, SphereReprojectionError | None],
    ) -> PatchOutcome:
        image_id, path, naming_error = item
        try:
            if cancel_event is not None and cancel_event.is_set():
                raise BatchCancelled(f"Batch cancelled before {image_id!r}")
            if naming_error is not None:
                raise naming_error
            if image_id not in rotations:
                raise MissingRotation(image_id)
            patch = resample(
                sphere_camera, sphere_bitmap,
                rotations[image_id], pinhole_camera,
            )
            path = save_bitmap(patch, path)
        except BatchCancelled as exc:
            return PatchOutcome(image_id=image_id, error=exc)
        except SphereReprojectionError as exc:
            logger.warning("Image %r failed: %s", image_id, exc)
            return PatchOutcome(image_id=image_id, error=exc)
        return PatchOutcome(image_id=image_id, path=path)

    plan = [
        (image_id, path, error)
        for image_id, (path, error) in zip(
            image_ids, _plan_paths(output_dir, image_ids, filename_pattern),
        )
    ]
    if max_workers <= 1:
        outcomes = [project_one(item) for item in plan]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(pool.map(project_one, plan))

    result = BatchResult(outcomes=outcomes)
    logger.info(
        "Wrote %d / %d patches", len(result.paths), len(outcomes),
    )
    return result


def run_from_config(
    config: SphereReprojectionConfig | str | Path | None = None,
    cancel_event: threading.Event | None = None,
) -> BatchResult:
    """Run a batch described by a :class:`SphereReprojectionConfig`.

    *config* may also be a YAML path, which is loaded with
    :func:`load_config`. The source image is loaded from
    ``config.sphere.image_path``; a sphere size of ``0`` takes the
    loaded image's size. Image ids are the keys of the rotation table,
    in file order.

    Raises:
        FileNotFoundError: If a config path does not exist.
        SourceLoadFailure: If the source image cannot be read.
    """
    if not isinstance(config, SphereReprojectionConfig):
        config = load_config(config)
    sphere_bitmap = load_bitmap(config.sphere.image_path)
    sphere_cam = sphere_camera(
        config.sphere.width or sphere_bitmap.width,
        config.sphere.height or sphere_bitmap.height,
    )
    pinhole_cam = pinhole_camera(
        config.pinhole.width,
        config.pinhole.height,
        config.pinhole.field_of_view,
    )
    rotations = load_rotations(config.batch.rotations_path or None)
    return spherical_to_pinhole(
        sphere_cam,
        sphere_bitmap,
        config.sphere.image_path,
        pinhole_cam,
        config.batch.output_dir,
        list(rotations),
        rotations,
        tangent_proj=config.batch.tangent_projection,
        filename_pattern=config.batch.filename_pattern,
        max_workers=config.batch.max_workers,
        cancel_event=cancel_event,
    )
