"""
campipe - camera capture pipeline configuration.

Resolves sensor rotation, selects preview and still capture sizes, computes
the preview display transform and runs the take picture cycle on a
background camera worker.
"""

__version__ = "1.0.0"

from .geometry import (
    Resolution,
    AspectResult,
    AspectRatioPolicy,
    Rotation,
    Facing,
    resolve_rotation_degrees,
    choose_optimal_size,
    choose_largest_size,
    compute_transform,
)
from .capture import (
    CaptureConfig,
    CaptureSession,
    CaptureCallbacks,
    CameraControl,
    CameraDescriptor,
    CameraError,
    CameraErrorKind,
    DisplayInfo,
    FileImageSaver,
)
