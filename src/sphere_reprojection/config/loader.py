"""YAML-based configuration and rotation-table loading.

:func:`load_config` reads a ``SphereReprojectionConfig`` from YAML on
top of the defaults; :func:`load_rotations` reads per-image-id rotation
tables.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Hashable

import numpy as np
import yaml

from sphere_reprojection.config.schema import SphereReprojectionConfig
from sphere_reprojection.math_utils.rotations import (
    get_cubic_rotations,
    get_tangent_plane_rotation,
    validate_rotation,
)

logger = logging.getLogger(__name__)

CUBE = "cube"


def _merge_section(section: Any, data: dict[str, Any], prefix: str) -> None:
    """Merge *data* onto a config dataclass in place.

    Nested sections are merged key by key. Unknown keys are logged and
    skipped.

    Raises:
        ValueError: If a nested section is given a non-mapping value.
    """
    names = {f.name for f in dataclasses.fields(section)}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if key not in names:
            logger.warning("Ignoring unknown config key %r", name)
            continue
        current = getattr(section, key)
        if dataclasses.is_dataclass(current):
            if not isinstance(value, dict):
                raise ValueError(
                    f"Config section {name!r} must be a mapping, "
                    f"got {type(value).__name__}",
                )
            _merge_section(current, value, f"{name}.")
        else:
            setattr(section, key, value)


def load_config(
    path: str | Path | None = None,
) -> SphereReprojectionConfig:
    """Load a configuration from a YAML file.

    If *path* is ``None``, returns the default configuration. If a path
    is given, it is loaded and merged on top of the defaults.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file or one of its sections is not a mapping.
    """
    config = SphereReprojectionConfig()
    if path is None:
        return config

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return config
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in config file {path}")
    _merge_section(config, data, "")
    logger.debug("Loaded config from %s", path)
    return config


def _parse_rotation(image_id: Hashable, value: Any) -> np.ndarray:
    if isinstance(value, dict):
        unknown = set(value) - {"lon", "lat", "rot"}
        if unknown:
            raise ValueError(
                f"Rotation for {image_id!r} has unknown keys {sorted(unknown)}",
            )
        return get_tangent_plane_rotation(
            float(value.get("lon", 0.0)),
            float(value.get("lat", 0.0)),
            float(value.get("rot", 0.0)),
        )
    return validate_rotation(value)


def load_rotations(
    path: str | Path | None = None,
) -> dict[Hashable, np.ndarray]:
    """Load a per-image-id rotation table.

    The YAML file holds a ``rotations`` mapping (or is the mapping
    itself). Each value is either a 3x3 matrix (list of rows) or a
    ``{lon, lat, rot}`` mapping in degrees. The literal ``cube``
    instead of a mapping, or ``path=None``, yields the six cube faces.
    Insertion order of the file is preserved.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file is not a mapping of rotations.
        InvalidRotationMatrix: If a matrix entry is not a rotation.
    """
    if path is None:
        return dict(get_cubic_rotations())

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rotations file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict) and "rotations" in data:
        data = data["rotations"]
    if data == CUBE:
        return dict(get_cubic_rotations())
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping of rotations in {path}")

    return {
        image_id: _parse_rotation(image_id, value)
        for image_id, value in data.items()
    }
