###############################################################################
# Orientation
#
# Resolves the rotation (degrees) that must be applied to sensor frames so
# they appear upright for the current display rotation. Front facing sensors
# deliver mirrored frames, which inverts the direction of the correction.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Optional

logger = logging.getLogger(__name__)

DEGREES_FULL_CIRCLE = 360


class Rotation(IntEnum):
    """Display rotation relative to the natural device orientation (degrees)."""

    ROTATION_0 = 0
    ROTATION_90 = 90
    ROTATION_180 = 180
    ROTATION_270 = 270

    @property
    def quadrant(self) -> int:
        """0..3, number of quarter turns."""
        return self.value // 90

    @property
    def is_sideways(self) -> bool:
        return self in (Rotation.ROTATION_90, Rotation.ROTATION_270)


class Facing(Enum):
    BACK = "back"
    FRONT = "front"
    EXTERNAL = "external"


def parse_rotation(display_rotation) -> Optional[Rotation]:
    """Rotation for a raw reading of exactly 0, 90, 180 or 270 degrees, else None."""
    try:
        degrees = float(display_rotation)
    except (TypeError, ValueError):
        return None
    # 90.5 is not a quadrant, NaN and inf are not integers either
    if not degrees.is_integer():
        return None
    try:
        return Rotation(int(degrees))
    except ValueError:
        return None


def to_rotation(display_rotation) -> Rotation:
    """Map a raw display rotation reading onto a Rotation.

    Unknown readings are logged and treated as ROTATION_0.
    """
    rotation = parse_rotation(display_rotation)
    if rotation is None:
        logger.warning("Unknown display rotation [displayRotation -> %r]", display_rotation)
        return Rotation.ROTATION_0
    return rotation


def resolve_rotation_degrees(display_rotation, sensor_mount_angle: int, facing_is_front: bool) -> int:
    """Capture rotation in [0, 360) for the given display and sensor.

    display_rotation:   0, 90, 180 or 270 (anything else -> 0 with a warning)
    sensor_mount_angle: fixed sensor rotation relative to the natural
                        device orientation, degrees
    facing_is_front:    True for front facing (mirrored) sensors
    """
    degrees = int(to_rotation(display_rotation))
    mount = int(sensor_mount_angle)

    if facing_is_front:
        result = (mount + degrees) % DEGREES_FULL_CIRCLE
        result = (DEGREES_FULL_CIRCLE - result) % DEGREES_FULL_CIRCLE  # compensate the mirror
    else:
        result = (mount - degrees + DEGREES_FULL_CIRCLE) % DEGREES_FULL_CIRCLE
    return result


__all__ = ["DEGREES_FULL_CIRCLE", "Rotation", "Facing", "parse_rotation", "to_rotation", "resolve_rotation_degrees"]
