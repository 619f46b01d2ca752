"""
Collaborator contracts used by the capture session.

Hardware access, display information, image persistence and the host
callbacks are provided from outside; the session only talks to them
through these interfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import numpy as np

from ..geometry.orientation import Facing, Rotation
from ..geometry.resolution import Resolution
from .errors import CameraError


@dataclass(frozen=True)
class CameraDescriptor:
    """One camera as reported by enumeration."""
    id: Any
    facing: Facing = Facing.BACK
    mount_angle: int = 0  # sensor rotation relative to natural device orientation

    @property
    def is_front(self) -> bool:
        return self.facing is Facing.FRONT


@dataclass(frozen=True)
class CaptureParameters:
    """Parameters applied to an opened camera before preview starts."""
    picture_size: Resolution
    preview_size: Resolution
    rotation: int
    jpeg_quality: int = 100
    picture_format: str = "JPEG"


@dataclass(frozen=True)
class DisplayInfo:
    """Snapshot of the display the preview is shown on."""
    width: int
    height: int
    rotation: Any = Rotation.ROTATION_0  # raw reading, normalized by the session
    is_landscape: bool = False
    storage_dir: Optional[str] = None


class CameraControl(ABC):
    """Abstract hardware camera access.

    Asynchronous operations (auto_focus, capture) report through callbacks
    that may be invoked from any thread.
    """

    def has_camera_feature(self) -> bool:
        """
        Check if the system has camera capability at all.

        A capability query that touches no camera; the session calls it from
        the host thread in attach_display.

        Returns:
            bool: True if cameras can be used
        """
        return True

    @abstractmethod
    def enumerate_cameras(self) -> List[CameraDescriptor]:
        """List the available cameras."""
        pass

    @abstractmethod
    def open(self, camera_id: Any, desired_size: Resolution) -> Any:
        """
        Open a camera.

        Args:
            camera_id: id from a CameraDescriptor
            desired_size: requested preview viewport size

        Returns:
            handle: opaque camera handle, or None if the camera is unusable
        """
        pass

    @abstractmethod
    def get_supported_resolutions(self, handle: Any) -> List[Resolution]:
        """Picture sizes supported by the opened camera, in reporting order."""
        pass

    @abstractmethod
    def set_parameters(self, handle: Any, params: CaptureParameters) -> None:
        pass

    def set_display_orientation(self, handle: Any, degrees: int) -> None:
        """Rotate the preview output; default does nothing."""
        return None

    @abstractmethod
    def start_preview(self, handle: Any, surface: Any) -> None:
        pass

    def stop_preview(self, handle: Any) -> None:
        return None

    @abstractmethod
    def auto_focus(self, handle: Any, callback: Callable[[bool], None]) -> None:
        """Request autofocus; callback(success) when finished."""
        pass

    @abstractmethod
    def capture(self, handle: Any, callback: Callable[[bytes], None]) -> None:
        """Take a picture; callback(jpeg_bytes) when available."""
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Release the camera."""
        pass


class ImageSaver(ABC):
    """Persists captured image bytes."""

    @abstractmethod
    def save(self, data: bytes, path: str, on_done: Callable[[str, Optional[BaseException]], None]) -> None:
        """Store data at path; on_done(path, error) when finished, error is None on success."""
        pass


class CaptureCallbacks:
    """Host callbacks. Override the ones of interest.

    All of them are invoked in the host (primary) context, never on the
    camera worker.
    """

    def on_camera_error(self, error: CameraError) -> None:
        pass

    def on_image_taken(self, path: str) -> None:
        pass

    def on_resolved_preview_size(self, width: int, height: int) -> None:
        pass

    def on_transform_changed(self, matrix: np.ndarray) -> None:
        pass


__all__ = [
    "CameraDescriptor",
    "CaptureParameters",
    "DisplayInfo",
    "CameraControl",
    "ImageSaver",
    "CaptureCallbacks",
]
