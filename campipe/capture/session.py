###############################################################################
# Capture session
#
# Configures a camera for preview and still capture and runs the take picture
# cycle. Hardware calls are serialized on one background worker; callbacks
# are marshaled back to the host context.
#
# 2026 Initial release
###############################################################################

###############################################################################
# Public API & Supported Config
#
# Class: CaptureSession(configs, control, callbacks=None, saver=None, post_to_main=None)
#
# Public attributes:
# - log: Queue[(level: int, message: str)]
#     Bounded queue of log/events using Python logging levels.
# - events: Queue[(callable, args)]
#     Pending host callbacks when no post_to_main is given.
#
# Public methods:
# - attach_display(display: DisplayInfo) -> CaptureSession
# - open_camera(width, height, surface=None) -> Future[Resolution]
# - close_camera()
# - take_picture() -> Future[bool]     False when the camera is busy
# - update_preview_dimensions(width, height) -> Future
# - update_display_rotation(rotation) -> Future
# - dispatch_events(timeout=0.0) -> int
# - wait_idle(timeout=2.0)
#
# Properties:
# - is_camera_active, state, preview_size, picture_size, rotation_degrees, transform,
#   config, control
#
# Picture cycle:
#   PREVIEW --take_picture--> FOCUSING --focus done--> CAPTURING --saved--> PREVIEW
#   A failed focus still captures. Requests while not in PREVIEW are ignored.
#
# Supported config parameters (configs dict):
# -------------------------------------------
# See campipe/configs/default_configs.py
###############################################################################

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import Future, wait
from functools import partial
from queue import Empty, Queue
from typing import Any, Callable, Optional

import numpy as np

from ..geometry.aspect import filter_aspect
from ..geometry.orientation import Rotation, parse_rotation, resolve_rotation_degrees
from ..geometry.resolution import Resolution
from ..geometry.selector import choose_largest_size, choose_optimal_size
from ..geometry.transform import compute_transform
from .config import CaptureConfig
from .errors import CameraConfigurationError, CameraErrorKind
from .imagesaver import FileImageSaver
from .interface import (
    CameraControl,
    CameraDescriptor,
    CaptureCallbacks,
    CaptureParameters,
    DisplayInfo,
    ImageSaver,
)
from .state import PREVIEW, Phase, SessionState, capturing, focusing
from .worker import CameraWorker


def _completed(value=None) -> Future:
    fut: Future = Future()
    fut.set_result(value)
    return fut


def _failed(exc: BaseException) -> Future:
    fut: Future = Future()
    fut.set_exception(exc)
    return fut


class CaptureSession:
    """
    Camera configuration and picture taking for one camera binding.

    Worker owned (mutated on the worker thread only):
      camera handle, state, preview size, picture size, rotation, transform
    """

    def __init__(
        self,
        configs: dict | None,
        control: CameraControl,
        callbacks: CaptureCallbacks | None = None,
        saver: ImageSaver | None = None,
        post_to_main: Callable[[Callable[[], None]], Any] | None = None,
    ) -> None:

        self._config = CaptureConfig.from_configs(configs)
        self._policy = self._config.aspect_policy()
        self._control = control
        self._callbacks = callbacks or CaptureCallbacks()
        self._saver = saver or FileImageSaver()
        self._post_to_main = post_to_main

        self.log = Queue(maxsize=self._config.log_queue_size)
        self.events: Queue = Queue()

        # Exclusive access to the camera while opening or closing
        self._open_close_lock = threading.Semaphore(1)
        self._worker = CameraWorker("campipe-camera", log_queue=self.log)

        # Display
        self._display_rotation = Rotation.ROTATION_0
        self._is_landscape = False
        self._display_size: Resolution | None = None
        self._storage_dir = self._config.storage_dir
        self._has_camera_feature = True

        # Worker owned
        self._handle = None
        self._descriptor: CameraDescriptor | None = None
        self._surface = None
        self._state: SessionState = PREVIEW
        self._preview_size: Resolution | None = None
        self._picture_size: Resolution | None = None
        self._rotation_degrees = 0
        self._view_size: tuple[int, int] | None = None
        self._transform: np.ndarray | None = None
        self._last_request_id = 0

        self._active = False
        self._open_future: Future | None = None

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def attach_display(self, display: DisplayInfo) -> "CaptureSession":
        """Record display properties; reports a missing camera feature once."""
        # capability query only, runs on the host thread
        if not self._control.has_camera_feature():
            if self._has_camera_feature:
                self._report(CameraConfigurationError(
                    CameraErrorKind.MISSING_HARDWARE_FEATURE, "System has no camera feature"))
            self._has_camera_feature = False
            return self

        self._has_camera_feature = True
        self._is_landscape = bool(display.is_landscape)
        self._display_size = Resolution(display.width, display.height)
        if display.storage_dir:
            self._storage_dir = str(display.storage_dir)
        rotation = self._display_rotation_of(display.rotation)
        if self._active:
            self.update_display_rotation(rotation)
        else:
            self._display_rotation = rotation
        return self

    # ------------------------------------------------------------------
    # Open / Close
    # ------------------------------------------------------------------

    @property
    def is_camera_active(self) -> bool:
        return self._active

    def open_camera(self, width: int, height: int, surface: Any = None) -> Future:
        """Open and configure the camera for a viewport of width x height.

        Returns a Future resolving to the preview Resolution. Fatal errors are
        reported once through on_camera_error and raise
        CameraConfigurationError from the Future.
        """
        if self._active:
            self._log(logging.WARNING, "Session:Camera is already opened. Did you really mean to open the camera again?")
            return self._open_future if self._open_future is not None else _completed(self._preview_size)

        if not self._has_camera_feature:
            # already reported by attach_display
            return _failed(CameraConfigurationError(
                CameraErrorKind.MISSING_HARDWARE_FEATURE, "System has no camera feature"))

        desired = Resolution(width, height)
        if surface is not None:
            self._surface = surface

        self._active = True
        self._worker.start()

        if not self._open_close_lock.acquire(timeout=self._config.lock_timeout):
            exc = CameraConfigurationError(
                CameraErrorKind.RESOURCE_LOCK_TIMEOUT, "Time out waiting to lock camera opening.")
            self._report(exc)
            self._teardown_after_failure()
            self._open_future = _failed(exc)
            return self._open_future

        fut = self._worker.post(self._open_and_configure, desired)
        if fut.cancelled():
            self._open_close_lock.release()
        self._open_future = fut
        return fut

    def close_camera(self, timeout: float | None = None) -> None:
        """Release the camera and stop the worker. Waits for the lock without timeout."""
        if not self._active:
            self._log(logging.WARNING, "Session:Camera already closed. Did you really mean to close the camera again?")
            return

        self._open_close_lock.acquire()
        try:
            if self._worker.in_worker():
                self._release_camera()
            else:
                job = self._worker.post(self._release_camera)
                wait([job], timeout=timeout)
                if job.done() and not job.cancelled() and job.exception() is not None:
                    self._log(logging.ERROR, f"Session:Error while closing camera: {job.exception()}")
        finally:
            self._open_close_lock.release()
            self._worker.stop(timeout=timeout)
            self._active = False
            self._log(logging.INFO, "Session:Camera closed")

    # ------------------------------------------------------------------
    # Picture
    # ------------------------------------------------------------------

    def take_picture(self) -> Future:
        """Start the focus -> capture -> save cycle.

        The Future resolves to True when the request was accepted and to
        False when the camera is closed or busy.
        """
        if not self._active:
            self._log(logging.WARNING, "Session:Camera not open; cannot take picture")
            return _completed(False)
        fut = self._worker.post(self._start_picture)
        if fut.cancelled():
            return _completed(False)
        return fut

    # ------------------------------------------------------------------
    # Preview geometry updates
    # ------------------------------------------------------------------

    def update_preview_dimensions(self, width: int, height: int) -> Future:
        """Viewport changed; recompute and emit the transform."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport must be > 0, got {width}x{height}")
        if not self._active:
            self._view_size = (int(width), int(height))
            return _completed(None)
        return self._worker.post(self._apply_view_size, (int(width), int(height)))

    def update_display_rotation(self, rotation) -> Future:
        """Display rotated; recompute camera rotation and transform."""
        rotation = self._display_rotation_of(rotation)
        if not self._active:
            self._display_rotation = rotation
            return _completed(None)
        return self._worker.post(self._apply_display_rotation, rotation)

    # ------------------------------------------------------------------
    # Host context
    # ------------------------------------------------------------------

    def dispatch_events(self, timeout: float | None = 0.0) -> int:
        """Invoke pending callbacks on the calling (host) thread.

        timeout: seconds to wait for the first event, None waits forever,
                 0 does not wait.
        Returns the number of callbacks invoked.
        """
        n = 0
        try:
            if timeout == 0:
                fn, args = self.events.get_nowait()
            else:
                fn, args = self.events.get(timeout=timeout)
        except Empty:
            return 0
        while True:
            fn(*args)
            n += 1
            try:
                fn, args = self.events.get_nowait()
            except Empty:
                return n

    def wait_idle(self, timeout: float | None = 2.0) -> bool:
        """Block until all jobs posted so far have run on the worker."""
        if not self._worker.is_alive:
            return True
        fut = self._worker.post(lambda: None)
        done, _ = wait([fut], timeout=timeout)
        return bool(done)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def preview_size(self) -> Resolution | None:
        return self._preview_size

    @property
    def picture_size(self) -> Resolution | None:
        return self._picture_size

    @property
    def rotation_degrees(self) -> int:
        return self._rotation_degrees

    @property
    def transform(self) -> np.ndarray | None:
        return self._transform

    @property
    def config(self) -> CaptureConfig:
        return self._config

    @property
    def control(self) -> CameraControl:
        return self._control

    # ------------------------------------------------------------------
    # Worker jobs: open / configure / close
    # ------------------------------------------------------------------

    def _open_and_configure(self, desired: Resolution) -> Resolution:
        handle = None
        try:
            try:
                descriptor = self._select_camera()
                handle = self._control.open(descriptor.id, desired)
            finally:
                self._open_close_lock.release()

            if handle is None:
                raise CameraConfigurationError(
                    CameraErrorKind.MISSING_HARDWARE_FEATURE, f"Camera {descriptor.id!r} could not be opened")

            self._handle = handle
            self._descriptor = descriptor
            self._state = PREVIEW
            return self._configure(desired)

        except CameraConfigurationError as exc:
            self._abort_open(handle, exc)
            raise
        except Exception as exc:
            err = CameraConfigurationError(CameraErrorKind.CAMERA_CONFIGURATION, f"Camera setup failed: {exc}")
            self._abort_open(handle, err)
            raise err from exc

    def _select_camera(self) -> CameraDescriptor:
        cameras = list(self._control.enumerate_cameras())
        if not cameras:
            raise CameraConfigurationError(CameraErrorKind.NO_CAMERAS_AVAILABLE, "No camera hardware available.")
        index = self._config.camera_index
        if index >= len(cameras):
            raise CameraConfigurationError(
                CameraErrorKind.CAMERA_CONFIGURATION,
                f"Camera index {index} not available, found {len(cameras)} camera(s)")
        return cameras[index]

    def _configure(self, desired: Resolution) -> Resolution:
        handle = self._handle
        descriptor = self._descriptor

        self._rotation_degrees = resolve_rotation_degrees(
            self._display_rotation, descriptor.mount_angle, descriptor.is_front)
        self._control.set_display_orientation(handle, self._rotation_degrees)

        # Desired and maximum sizes relative to the sensor orientation
        rotated_w, rotated_h = desired.width, desired.height
        display = self._display_size or self._config.max_preview_res
        max_w, max_h = display.width, display.height
        if self._is_landscape:
            rotated_w, rotated_h = rotated_h, rotated_w
            max_w, max_h = max_h, max_w
        max_w = min(max_w, self._config.max_preview_res.width)
        max_h = min(max_h, self._config.max_preview_res.height)

        supported = list(self._control.get_supported_resolutions(handle))
        if not supported:
            raise CameraConfigurationError(CameraErrorKind.CAMERA_CONFIGURATION, "Camera reports no supported sizes")
        sizes = filter_aspect(supported, self._policy)

        largest = choose_largest_size(sizes)
        # Too large a preview can exceed the camera bus bandwidth
        preview = choose_optimal_size(sizes, rotated_w, rotated_h, max_w, max_h, largest, self._policy)
        if not (preview.fits_within(max_w, max_h) and self._policy.accepts(preview, largest)):
            self._report(CameraConfigurationError(
                CameraErrorKind.NO_SUITABLE_SIZE, f"No preview size within {max_w}x{max_h}, using {preview}"))

        self._control.set_parameters(handle, CaptureParameters(
            picture_size=largest,
            preview_size=preview,
            rotation=self._rotation_degrees,
            jpeg_quality=self._config.jpeg_quality,
        ))
        self._picture_size = largest
        self._preview_size = preview
        self._log(logging.INFO, f"Session:Preview {preview}, picture {largest}, rotation {self._rotation_degrees}")

        if self._is_landscape:
            self._emit(self._callbacks.on_resolved_preview_size, preview.width, preview.height)
        else:
            self._emit(self._callbacks.on_resolved_preview_size, preview.height, preview.width)

        # transform is queued for the host before the first frame can show
        self._view_size = (desired.width, desired.height)
        self._update_transform()

        self._control.start_preview(handle, self._surface)
        return preview

    def _abort_open(self, handle, exc: CameraConfigurationError) -> None:
        if handle is not None:
            try:
                self._control.close(handle)
            except Exception as close_exc:
                self._log(logging.ERROR, f"Session:Failed to release camera after error: {close_exc}")
        self._handle = None
        self._descriptor = None
        self._state = PREVIEW
        self._report(exc)
        self._teardown_after_failure()

    def _teardown_after_failure(self) -> None:
        self._active = False
        self._worker.stop()

    def _release_camera(self) -> None:
        handle = self._handle
        self._handle = None
        self._descriptor = None
        if not self._state.is_idle:
            self._log(logging.INFO, f"Session:Closing during {self._state}; pending picture discarded")
        self._state = PREVIEW
        self._preview_size = None
        self._transform = None
        if handle is None:
            return
        try:
            self._control.stop_preview(handle)
        except Exception as exc:
            self._log(logging.WARNING, f"Session:Failed to stop preview: {exc}")
        self._control.close(handle)

    # ------------------------------------------------------------------
    # Worker jobs: geometry updates
    # ------------------------------------------------------------------

    def _apply_view_size(self, view_size: tuple[int, int]) -> None:
        self._view_size = view_size
        self._update_transform()

    def _apply_display_rotation(self, rotation: Rotation) -> None:
        self._display_rotation = rotation
        handle = self._handle
        if handle is not None and self._descriptor is not None:
            degrees = resolve_rotation_degrees(rotation, self._descriptor.mount_angle, self._descriptor.is_front)
            if degrees != self._rotation_degrees:
                self._rotation_degrees = degrees
                try:
                    self._control.set_display_orientation(handle, degrees)
                    self._control.set_parameters(handle, CaptureParameters(
                        picture_size=self._picture_size,
                        preview_size=self._preview_size,
                        rotation=degrees,
                        jpeg_quality=self._config.jpeg_quality,
                    ))
                except Exception as exc:
                    self._log(logging.ERROR, f"Session:Failed to apply rotation {degrees}: {exc}")
        self._update_transform()

    def _update_transform(self) -> None:
        if self._preview_size is None or self._view_size is None:
            return
        matrix = compute_transform(self._preview_size, self._view_size[0], self._view_size[1], self._display_rotation)
        matrix.flags.writeable = False
        self._transform = matrix
        self._emit(self._callbacks.on_transform_changed, matrix)

    # ------------------------------------------------------------------
    # Worker jobs: picture cycle
    # ------------------------------------------------------------------

    def _start_picture(self) -> bool:
        if self._handle is None:
            self._log(logging.WARNING, "Session:Camera not open; cannot take picture")
            return False
        if not self._state.is_idle:
            self._log(logging.WARNING, f"Session:Camera busy ({self._state}); take picture request ignored")
            return False

        self._last_request_id += 1
        request_id = self._last_request_id
        self._state = focusing(request_id)
        try:
            self._control.auto_focus(self._handle, partial(self._from_hardware, self._on_focus_complete, request_id))
        except Exception as exc:
            self._log(logging.ERROR, f"Session:Autofocus request failed: {exc}")
            self._state = PREVIEW
            return False
        return True

    def _from_hardware(self, fn: Callable, request_id: int, *args) -> None:
        """Hardware callback entry point, any thread: hand over to the worker."""
        self._worker.post(fn, request_id, *args)

    def _is_current(self, phase: Phase, request_id: int, what: str) -> bool:
        if not self._active or self._handle is None:
            self._log(logging.INFO, f"Session:{what} after close discarded")
            return False
        if not self._state.expects(phase, request_id):
            self._log(logging.DEBUG, f"Session:Stale {what} for request {request_id} in {self._state}")
            return False
        return True

    def _on_focus_complete(self, request_id: int, success: bool) -> None:
        if not self._is_current(Phase.FOCUSING, request_id, "focus result"):
            return
        if not success:
            self._log(logging.INFO, "Session:Autofocus did not succeed; capturing anyway")
        self._state = capturing(request_id)
        try:
            self._control.capture(self._handle, partial(self._from_hardware, self._on_picture_taken, request_id))
        except Exception as exc:
            self._log(logging.ERROR, f"Session:Capture request failed: {exc}")
            self._state = PREVIEW

    def _on_picture_taken(self, request_id: int, data: bytes) -> None:
        if not self._is_current(Phase.CAPTURING, request_id, "picture"):
            return
        path = self._image_file()
        try:
            self._saver.save(data, path, partial(self._from_hardware, self._on_image_saved, request_id))
        except Exception as exc:
            self._log(logging.ERROR, f"Session:Could not hand picture to saver: {exc}")
            self._state = PREVIEW

    def _on_image_saved(self, request_id: int, path: str, error: Optional[BaseException]) -> None:
        if not self._is_current(Phase.CAPTURING, request_id, "save result"):
            return
        self._state = PREVIEW
        if error is not None:
            self._log(logging.ERROR, f"Session:Failed to save picture to {path}: {error}")
            return
        self._log(logging.INFO, f"Session:Picture saved to {path}")
        self._emit(self._callbacks.on_image_taken, path)

    def _image_file(self) -> str:
        if self._config.image_path:
            return self._config.image_path
        return os.path.join(self._storage_dir, "%d.jpg" % int(time.time() * 1000))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit(self, fn: Callable, *args) -> None:
        if self._post_to_main is not None:
            self._post_to_main(partial(fn, *args))
        else:
            self.events.put((fn, args))

    def _display_rotation_of(self, raw) -> Rotation:
        rotation = parse_rotation(raw)
        if rotation is None:
            self._report(CameraConfigurationError(
                CameraErrorKind.UNKNOWN_DISPLAY_ROTATION, f"Unknown display rotation [displayRotation -> {raw!r}], using 0"))
            return Rotation.ROTATION_0
        return rotation

    def _report(self, exc: CameraConfigurationError) -> None:
        """Fatal kinds go to on_camera_error, the others are only logged."""
        if not exc.kind.fatal:
            self._log(logging.WARNING, f"Session:{exc.kind.name}: {exc}")
            return
        self._log(logging.CRITICAL, f"Session:{exc.kind.name}: {exc}")
        self._emit(self._callbacks.on_camera_error, exc.to_error())

    def _log(self, level: int, msg: str) -> None:
        q = self.log
        if q is None:
            return
        try:
            if not q.full():
                q.put_nowait((int(level), str(msg)))
        except Exception:
            pass


__all__ = ["CaptureSession"]
