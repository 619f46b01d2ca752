"""Shared pytest configuration and fixtures for the campipe test suite."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, List, Optional

import pytest

from campipe.capture.interface import (
    CameraControl,
    CameraDescriptor,
    CaptureCallbacks,
    CaptureParameters,
    ImageSaver,
)
from campipe.geometry.orientation import Facing
from campipe.geometry.resolution import Resolution


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring a physical camera"
    )


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that require a physical camera",
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests unless --run-hardware is specified."""
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Fakes
# =============================================================================

SIZES_16_9_AND_4_3 = [
    Resolution(1920, 1080),
    Resolution(1280, 720),
    Resolution(640, 480),
]


class FakeCameraControl(CameraControl):
    """Records every call; focus and capture answer immediately unless deferred."""

    def __init__(
        self,
        cameras: Optional[List[CameraDescriptor]] = None,
        sizes: Optional[List[Resolution]] = None,
        feature: bool = True,
        open_returns_none: bool = False,
        fail_on: Optional[str] = None,
        calls: Optional[list] = None,
    ) -> None:
        self.cameras = cameras if cameras is not None else [CameraDescriptor(0, Facing.BACK, 90)]
        self.sizes = list(sizes) if sizes is not None else list(SIZES_16_9_AND_4_3)
        self.feature = feature
        self.open_returns_none = open_returns_none
        self.fail_on = fail_on
        self.calls = calls if calls is not None else []
        self.params: List[CaptureParameters] = []
        self.handle = object()

        self.defer_focus = False
        self.focus_success = True
        self.focus_callbacks: List[Callable] = []

        self.defer_capture = False
        self.picture = b"\xff\xd8jpeg\xff\xd9"
        self.capture_callbacks: List[Callable] = []

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls if not c[0].startswith("emit:")]

    def has_camera_feature(self) -> bool:
        return self.feature

    def enumerate_cameras(self):
        self._record("enumerate_cameras")
        return list(self.cameras)

    def open(self, camera_id, desired_size):
        self._record("open", camera_id, desired_size)
        return None if self.open_returns_none else self.handle

    def get_supported_resolutions(self, handle):
        self._record("get_supported_resolutions", handle)
        return list(self.sizes)

    def set_parameters(self, handle, params):
        self._record("set_parameters", handle, params)
        self.params.append(params)

    def set_display_orientation(self, handle, degrees):
        self._record("set_display_orientation", handle, degrees)

    def start_preview(self, handle, surface):
        self._record("start_preview", handle, surface)

    def stop_preview(self, handle):
        self._record("stop_preview", handle)

    def auto_focus(self, handle, callback):
        self._record("auto_focus", handle)
        if self.defer_focus:
            self.focus_callbacks.append(callback)
        else:
            callback(self.focus_success)

    def capture(self, handle, callback):
        self._record("capture", handle)
        if self.defer_capture:
            self.capture_callbacks.append(callback)
        else:
            callback(self.picture)

    def close(self, handle):
        self._record("close", handle)


class MemorySaver(ImageSaver):
    """Keeps saved images in memory; completes immediately unless deferred."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.defer = False
        self.saved: dict = {}
        self.pending: list = []

    def save(self, data, path, on_done):
        if self.defer:
            self.pending.append((data, path, on_done))
            return
        self._finish(data, path, on_done)

    def complete_pending(self) -> None:
        pending, self.pending = self.pending, []
        for data, path, on_done in pending:
            self._finish(data, path, on_done)

    def _finish(self, data, path, on_done):
        if self.fail:
            on_done(path, OSError("disk full"))
        else:
            self.saved[path] = bytes(data)
            on_done(path, None)


class RecordingCallbacks(CaptureCallbacks):
    def __init__(self) -> None:
        self.errors: list = []
        self.images: list = []
        self.sizes: list = []
        self.transforms: list = []
        self.threads: set = set()

    def on_camera_error(self, error):
        self.threads.add(threading.current_thread().name)
        self.errors.append(error)

    def on_image_taken(self, path):
        self.threads.add(threading.current_thread().name)
        self.images.append(path)

    def on_resolved_preview_size(self, width, height):
        self.threads.add(threading.current_thread().name)
        self.sizes.append((width, height))

    def on_transform_changed(self, matrix):
        self.threads.add(threading.current_thread().name)
        self.transforms.append(matrix)


def settle(session, rounds: int = 8) -> None:
    """Let chained worker jobs (hardware callbacks posting further jobs) finish."""
    for _ in range(rounds):
        session.wait_idle(timeout=2.0)


def drain_messages(log_queue) -> List[tuple]:
    out = []
    while not log_queue.empty():
        out.append(log_queue.get_nowait())
    return out


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def control() -> FakeCameraControl:
    return FakeCameraControl()


@pytest.fixture
def saver() -> MemorySaver:
    return MemorySaver()


@pytest.fixture
def callbacks() -> RecordingCallbacks:
    return RecordingCallbacks()


@pytest.fixture
def make_session(control, callbacks, saver, tmp_path):
    """Factory for sessions; closes every created session after the test."""
    from campipe.capture.session import CaptureSession

    created = []

    def _make(configs: Optional[dict] = None, **kwargs: Any) -> CaptureSession:
        cfg = {"storage_dir": str(tmp_path)}
        cfg.update(configs or {})
        session = CaptureSession(
            cfg,
            kwargs.pop("control", control),
            callbacks=kwargs.pop("callbacks", callbacks),
            saver=kwargs.pop("saver", saver),
            **kwargs,
        )
        created.append(session)
        return session

    yield _make

    for session in created:
        if session.is_camera_active:
            session.close_camera(timeout=2.0)
