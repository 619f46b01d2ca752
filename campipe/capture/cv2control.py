###############################################################################
# OpenCV camera control
#
# CameraControl implementation on top of cv2.VideoCapture.
# Adapts to operating system for the capture backend.
#
# 2026 Initial release
###############################################################################

###############################################################################
# Public API
#
# Class: cv2CameraControl(configs=None, probe_sizes=None)
#
# - enumerate_cameras()            probes camera indices (see utils.probe_cameras)
# - open(index, desired_size)      VideoCapture with platform backend
# - get_supported_resolutions(h)   set/readback of common sizes, OpenCV has no list
# - set_parameters(h, params)      capture size, rotation, jpeg quality
# - start_preview(h, surface)      thread pushing (ts_ms, frame) into surface Queue
# - auto_focus(h, callback)        CAP_PROP_AUTOFOCUS, callback(success)
# - capture(h, callback)           read, rotate, encode (JPEG or PNG), callback(bytes)
# - close(h)
#
# Public attributes:
# - log: Queue[(level: int, message: str)]
###############################################################################

from __future__ import annotations

import logging
import math
import sys
import time
from queue import Queue
from threading import Event, Lock, Thread
from typing import Callable, List, Optional

import cv2

from ..geometry.orientation import Facing
from ..geometry.resolution import Resolution
from .interface import CameraControl, CameraDescriptor, CaptureParameters

# Sizes tried when probing a camera, largest first
COMMON_RESOLUTIONS = (
    (3840, 2160),
    (2592, 1944),
    (1920, 1080),
    (1600, 1200),
    (1280, 960),
    (1280, 720),
    (1024, 768),
    (960, 540),
    (848, 480),
    (800, 600),
    (640, 480),
    (640, 360),
    (424, 240),
    (320, 240),
    (320, 180),
    (160, 120),
)

_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

# picture_format -> cv2.imencode extension
_ENCODINGS = {
    "JPEG": ".jpg",
    "PNG": ".png",
}


def as_int(value, default=-1) -> int:
    """Safe int conversion used for OpenCV camera properties."""
    try:
        if value is None:
            return default
        if isinstance(value, float) and math.isnan(value):
            return default
        return int(value)
    except Exception:
        return default


def open_video_capture(index: int):
    """VideoCapture with the preferred backend for this platform."""
    if sys.platform.startswith("win"):
        return cv2.VideoCapture(index, apiPreference=cv2.CAP_DSHOW)
    elif sys.platform.startswith("darwin"):
        return cv2.VideoCapture(index, apiPreference=cv2.CAP_AVFOUNDATION)
    elif sys.platform.startswith("linux"):
        return cv2.VideoCapture(index, apiPreference=cv2.CAP_V4L2)
    return cv2.VideoCapture(index, apiPreference=cv2.CAP_ANY)


class Cv2Handle:
    """State of one opened VideoCapture."""

    def __init__(self, index: int, cam) -> None:
        self.index = index
        self.cam = cam
        self.cam_lock = Lock()
        self.rotation = 0
        self.jpeg_quality = 100
        self.picture_format = "JPEG"
        self.picture_size: Resolution | None = None
        self.preview_size: Resolution | None = None
        self.preview_thread: Thread | None = None
        self.preview_stop = Event()
        self.frame_time = 0.0
        self.measured_fps = 0.0


class cv2CameraControl(CameraControl):
    """
    OpenCV camera control.

    configs keys used:
    - num_cameras: int      number of indices to probe (default 4)
    - front_cameras: list   indices to report as front facing (default [])
    - mount_angle: int      sensor mount angle reported for all cameras (default 0)
    """

    def __init__(self, configs: dict | None = None, probe_sizes=None) -> None:
        self._configs = configs or {}
        self._num_cameras = int(self._configs.get("num_cameras", 4))
        self._front = set(self._configs.get("front_cameras", []))
        self._mount_angle = int(self._configs.get("mount_angle", 0))
        self._probe_sizes = tuple(probe_sizes) if probe_sizes is not None else COMMON_RESOLUTIONS
        self.log = Queue(maxsize=32)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def enumerate_cameras(self) -> List[CameraDescriptor]:
        from ..utils import probe_cameras

        found = probe_cameras(self._num_cameras)
        cameras = []
        for props in found:
            index = props["index"]
            facing = Facing.FRONT if index in self._front else Facing.BACK
            cameras.append(CameraDescriptor(id=index, facing=facing, mount_angle=self._mount_angle))
        self._log(logging.INFO, f"CV2Ctl:Found {len(cameras)} camera(s)")
        return cameras

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self, camera_id, desired_size: Resolution) -> Optional[Cv2Handle]:
        index = int(camera_id)
        cam = open_video_capture(index)
        if cam is None or not cam.isOpened():
            self._log(logging.CRITICAL, f"CV2Ctl:Failed to open camera {index}!")
            if cam is not None:
                cam.release()
            return None
        handle = Cv2Handle(index, cam)
        self._log(logging.INFO, f"CV2Ctl:Opened camera {index}, requested viewport {desired_size}")
        return handle

    def close(self, handle: Cv2Handle) -> None:
        """Stop preview and release the VideoCapture (idempotent)."""
        self.stop_preview(handle)
        with handle.cam_lock:
            if handle.cam is not None:
                handle.cam.release()
            handle.cam = None
        self._log(logging.INFO, f"CV2Ctl:Closed camera {handle.index}")

    # ------------------------------------------------------------------
    # Sizes and parameters
    # ------------------------------------------------------------------

    def get_supported_resolutions(self, handle: Cv2Handle) -> List[Resolution]:
        sizes: list[Resolution] = []
        seen = set()
        with handle.cam_lock:
            cam = handle.cam
            for w, h in self._probe_sizes:
                cam.set(cv2.CAP_PROP_FRAME_WIDTH, w)
                cam.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
                rw = as_int(cam.get(cv2.CAP_PROP_FRAME_WIDTH))
                rh = as_int(cam.get(cv2.CAP_PROP_FRAME_HEIGHT))
                if rw <= 0 or rh <= 0 or (rw, rh) in seen:
                    continue
                seen.add((rw, rh))
                sizes.append(Resolution(rw, rh))
        self._log(logging.INFO, f"CV2Ctl:Supported sizes {', '.join(str(s) for s in sizes)}")
        return sizes

    def set_parameters(self, handle: Cv2Handle, params: CaptureParameters) -> None:
        handle.rotation = int(params.rotation) % 360
        handle.jpeg_quality = int(params.jpeg_quality)
        handle.picture_format = str(params.picture_format).upper()
        if handle.picture_format not in _ENCODINGS:
            raise ValueError(f"Unsupported picture format {params.picture_format!r}")
        handle.picture_size = params.picture_size
        handle.preview_size = params.preview_size
        with handle.cam_lock:
            ok_w = handle.cam.set(cv2.CAP_PROP_FRAME_WIDTH, params.picture_size.width)
            ok_h = handle.cam.set(cv2.CAP_PROP_FRAME_HEIGHT, params.picture_size.height)
        if not (ok_w and ok_h):
            self._log(logging.WARNING, f"CV2Ctl:Failed to set capture size {params.picture_size}")
        else:
            self._log(logging.INFO, f"CV2Ctl:Capture size {params.picture_size}, rotation {handle.rotation}")

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def start_preview(self, handle: Cv2Handle, surface) -> None:
        """Push (ts_ms, frame) tuples into surface, a Queue."""
        if surface is None:
            self._log(logging.WARNING, "CV2Ctl:No preview surface; preview not started")
            return
        if handle.preview_thread is not None and handle.preview_thread.is_alive():
            return
        handle.preview_stop.clear()
        handle.preview_thread = Thread(target=self._preview_loop, args=(handle, surface), daemon=True)
        handle.preview_thread.start()

    def stop_preview(self, handle: Cv2Handle) -> None:
        handle.preview_stop.set()
        t = handle.preview_thread
        if t is not None and t.is_alive():
            t.join(timeout=2.0)
        handle.preview_thread = None

    def _preview_loop(self, handle: Cv2Handle, surface: Queue) -> None:
        last_time = time.time()
        num_frames = 0
        while not handle.preview_stop.is_set():
            current_time = time.time()
            with handle.cam_lock:
                if handle.cam is None:
                    break
                ret, img = handle.cam.read()
            if (not ret) or (img is None):
                time.sleep(0.005)
                continue

            num_frames += 1
            handle.frame_time = current_time * 1000.0

            if not surface.full():
                size = handle.preview_size
                if size is not None and (img.shape[1], img.shape[0]) != size.as_tuple():
                    img = cv2.resize(img, size.as_tuple())
                surface.put_nowait((handle.frame_time, img))

            # Measure preview fps every 5 seconds
            if (current_time - last_time) >= 5.0:
                handle.measured_fps = num_frames / (current_time - last_time)
                self._log(logging.INFO, f"CV2Ctl:Preview FPS:{handle.measured_fps:.1f}")
                last_time = current_time
                num_frames = 0

    # ------------------------------------------------------------------
    # Focus and capture
    # ------------------------------------------------------------------

    def auto_focus(self, handle: Cv2Handle, callback: Callable[[bool], None]) -> None:
        with handle.cam_lock:
            ok = bool(handle.cam.set(cv2.CAP_PROP_AUTOFOCUS, 1))
        if not ok:
            self._log(logging.WARNING, "CV2Ctl:CAP_PROP_AUTOFOCUS not supported by this backend/camera")
        callback(ok)

    def capture(self, handle: Cv2Handle, callback: Callable[[bytes], None]) -> None:
        with handle.cam_lock:
            ret, img = handle.cam.read()
        if (not ret) or (img is None):
            raise RuntimeError(f"Camera {handle.index} returned no frame")

        code = _ROTATE_CODES.get(handle.rotation)
        if code is not None:
            img = cv2.rotate(img, code)

        if handle.picture_format == "JPEG":
            ok, buf = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), int(handle.jpeg_quality)])
        else:
            ok, buf = cv2.imencode(_ENCODINGS[handle.picture_format], img)
        if not ok:
            raise RuntimeError(f"{handle.picture_format} encoding failed")
        callback(buf.tobytes())

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _log(self, level: int, message: str) -> None:
        if self.log is None:
            return
        try:
            if not self.log.full():
                self.log.put_nowait((level, message))
        except Exception:
            pass


__all__ = ["cv2CameraControl", "Cv2Handle", "COMMON_RESOLUTIONS", "open_video_capture", "as_int"]
