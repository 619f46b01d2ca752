###############################################################################
# Preview transform
#
# Computes the affine transform that maps the camera buffer onto the display
# surface. Matrices are 3x3 float64 numpy arrays in pixel coordinates with y
# pointing down, so a positive angle turns clockwise on screen.
#
# Composition follows "post" semantics: each step is applied after the
# transform built so far, M = step @ M.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

import math

import cv2
import numpy as np

from .orientation import Rotation, to_rotation
from .resolution import Resolution


# Matrix helpers
# --------------

def identity() -> np.ndarray:
    return np.eye(3, dtype=np.float64)


def scaling(sx: float, sy: float, px: float = 0.0, py: float = 0.0) -> np.ndarray:
    """Scale about pivot (px, py)."""
    m = identity()
    m[0, 0] = sx
    m[1, 1] = sy
    m[0, 2] = px - sx * px
    m[1, 2] = py - sy * py
    return m


def rotation(degrees: float, px: float = 0.0, py: float = 0.0) -> np.ndarray:
    """Rotate about pivot (px, py), clockwise on screen for positive degrees."""
    # exact values for quarter turns keep the matrices free of 1e-17 noise
    quarter = degrees / 90.0
    if quarter == int(quarter):
        c, s = [(1.0, 0.0), (0.0, 1.0), (-1.0, 0.0), (0.0, -1.0)][int(quarter) % 4]
    else:
        rad = math.radians(degrees)
        c, s = math.cos(rad), math.sin(rad)
    m = identity()
    m[0, 0] = c
    m[0, 1] = -s
    m[1, 0] = s
    m[1, 1] = c
    m[0, 2] = px - c * px + s * py
    m[1, 2] = py - s * px - c * py
    return m


def rect_to_rect(src: tuple, dst: tuple) -> np.ndarray:
    """Map rectangle src onto dst, stretching to fill (left, top, right, bottom)."""
    sl, st, sr, sb = src
    dl, dt, dr, db = dst
    sx = (dr - dl) / (sr - sl)
    sy = (db - dt) / (sb - st)
    m = identity()
    m[0, 0] = sx
    m[1, 1] = sy
    m[0, 2] = dl - sl * sx
    m[1, 2] = dt - st * sy
    return m


# Transform
# ---------

def compute_transform(
    preview_size: Resolution,
    view_width: int,
    view_height: int,
    display_rotation=Rotation.ROTATION_0,
) -> np.ndarray:
    """
    Transform fitting the preview buffer onto a view of view_width x view_height.

    The camera buffer is landscape native, so the buffer rectangle is the
    preview size with width and height swapped.

    ROTATION_90 / ROTATION_270:
        center the buffer on the view, fit view onto buffer, scale uniformly
        by max(view_h / preview_h, view_w / preview_w) about the center (fill
        and crop), then rotate by 90 * (quadrant - 2) degrees about the center.
    ROTATION_180:
        rotate 180 degrees about the center.
    ROTATION_0:
        identity.
    """
    if view_width <= 0 or view_height <= 0:
        raise ValueError(f"View size must be > 0, got {view_width}x{view_height}")

    display_rotation = to_rotation(display_rotation)
    center_x = view_width / 2.0
    center_y = view_height / 2.0

    matrix = identity()
    if display_rotation.is_sideways:
        buffer_w = float(preview_size.height)
        buffer_h = float(preview_size.width)
        left = center_x - buffer_w / 2.0
        top = center_y - buffer_h / 2.0
        matrix = rect_to_rect(
            (0.0, 0.0, float(view_width), float(view_height)),
            (left, top, left + buffer_w, top + buffer_h),
        )
        scale = max(view_height / preview_size.height, view_width / preview_size.width)
        matrix = scaling(scale, scale, center_x, center_y) @ matrix
        matrix = rotation(90 * (display_rotation.quadrant - 2), center_x, center_y) @ matrix
    elif display_rotation is Rotation.ROTATION_180:
        matrix = rotation(180, center_x, center_y) @ matrix
    return matrix


def map_point(matrix: np.ndarray, x: float, y: float) -> tuple[float, float]:
    """Apply matrix to a single point."""
    px, py, pw = matrix @ np.array([x, y, 1.0])
    return (px / pw, py / pw)


def apply_transform(frame: np.ndarray, matrix: np.ndarray, view_size: tuple[int, int]) -> np.ndarray:
    """Render frame through matrix into an image of view_size (width, height)."""
    w, h = int(view_size[0]), int(view_size[1])
    return cv2.warpAffine(frame, np.ascontiguousarray(matrix[:2, :]), (w, h), flags=cv2.INTER_LINEAR)


__all__ = [
    "identity",
    "scaling",
    "rotation",
    "rect_to_rect",
    "compute_transform",
    "map_point",
    "apply_transform",
]
