"""Dataclass configuration schemas for sphere reprojection.

Each concern has its own configuration dataclass. The top-level
``SphereReprojectionConfig`` composes them into a single tree that
is loaded from YAML by :func:`~sphere_reprojection.config.loader.load_config`.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PinholeConfig:
    """Output pinhole patch geometry.

    Attributes:
        width: Patch width in pixels.
        height: Patch height in pixels.
        field_of_view: Vertical field of view in degrees.
    """

    width: int = 640
    height: int = 480
    field_of_view: float = 45.0


@dataclass
class SphereConfig:
    """Source equirectangular camera.

    Attributes:
        width: Sphere camera width in pixels. ``0`` takes the width of
            the loaded image.
        height: Sphere camera height in pixels. ``0`` takes the height
            of the loaded image.
        image_path: Path to the source panorama.
    """

    width: int = 0
    height: int = 0
    image_path: str = ""


@dataclass
class BatchConfig:
    """Batch projection settings.

    Attributes:
        output_dir: Directory the patches are written to.
        tangent_projection: Use the tangent-plane projection instead of
            the full spherical projection.
        max_workers: Worker threads; ``1`` runs inline.
        filename_pattern: ``str.format`` pattern with an ``image_id``
            field.
        rotations_path: YAML file with per-id rotations, or ``""`` for
            the six cube faces.
    """

    output_dir: str = "patches"
    tangent_projection: bool = True
    max_workers: int = 1
    filename_pattern: str = "{image_id}.png"
    rotations_path: str = ""


@dataclass
class SphereReprojectionConfig:
    """Top-level configuration composing all sub-configs.

    Attributes:
        pinhole: Output pinhole patch geometry.
        sphere: Source equirectangular camera.
        batch: Batch projection settings.
    """

    pinhole: PinholeConfig = field(default_factory=PinholeConfig)
    sphere: SphereConfig = field(default_factory=SphereConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
