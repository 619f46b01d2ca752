from .config import CaptureConfig
from .errors import CameraError, CameraErrorKind, CameraConfigurationError
from .interface import (
    CameraControl,
    CameraDescriptor,
    CaptureCallbacks,
    CaptureParameters,
    DisplayInfo,
    ImageSaver,
)
from .state import Phase, SessionState
from .imagesaver import FileImageSaver
from .session import CaptureSession
from .cv2control import cv2CameraControl

__all__ = [
    "CaptureConfig",
    "CameraError",
    "CameraErrorKind",
    "CameraConfigurationError",
    "CameraControl",
    "CameraDescriptor",
    "CaptureCallbacks",
    "CaptureParameters",
    "DisplayInfo",
    "ImageSaver",
    "Phase",
    "SessionState",
    "FileImageSaver",
    "CaptureSession",
    "cv2CameraControl",
]
