###############################################################################
# Camera errors
#
# Fatal kinds are reported once through on_camera_error. Non fatal kinds are
# only logged and the pipeline continues with defaults.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CameraErrorKind(Enum):
    MISSING_HARDWARE_FEATURE = "missing_hardware_feature"
    NO_CAMERAS_AVAILABLE = "no_cameras_available"
    CAMERA_CONFIGURATION = "camera_configuration"
    RESOURCE_LOCK_TIMEOUT = "resource_lock_timeout"
    NO_SUITABLE_SIZE = "no_suitable_size"
    UNKNOWN_DISPLAY_ROTATION = "unknown_display_rotation"

    @property
    def fatal(self) -> bool:
        return self not in (CameraErrorKind.NO_SUITABLE_SIZE, CameraErrorKind.UNKNOWN_DISPLAY_ROTATION)

    @property
    def reported_as(self) -> "CameraErrorKind":
        """Kind delivered to on_camera_error."""
        if self is CameraErrorKind.RESOURCE_LOCK_TIMEOUT:
            return CameraErrorKind.CAMERA_CONFIGURATION
        return self


@dataclass(frozen=True)
class CameraError:
    """Value handed to on_camera_error."""

    kind: CameraErrorKind
    message: str = ""

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind.value}: {self.message}"
        return self.kind.value


class CameraConfigurationError(RuntimeError):
    """Raised when the camera cannot be opened or configured."""

    def __init__(self, kind: CameraErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind

    def to_error(self) -> CameraError:
        return CameraError(self.kind.reported_as, str(self))


__all__ = ["CameraErrorKind", "CameraError", "CameraConfigurationError"]
