"""Tests for CaptureSession using a fake camera control."""

import os
import threading

import numpy as np
import pytest

from campipe.capture.errors import CameraConfigurationError, CameraErrorKind
from campipe.capture.interface import CameraDescriptor, DisplayInfo
from campipe.capture.state import Phase
from campipe.geometry.orientation import Facing, Rotation
from campipe.geometry.resolution import Resolution
from campipe.geometry.transform import identity

from conftest import MemorySaver, drain_messages, settle


def messages(session):
    return [msg for _, msg in drain_messages(session.log)]


def open_ok(session, width=1280, height=720, surface=None):
    preview = session.open_camera(width, height, surface).result(timeout=2.0)
    session.dispatch_events()
    return preview


# =============================================================================
# Opening and configuration
# =============================================================================

class TestOpenCamera:

    def test_open_selects_sizes_and_emits_geometry(self, make_session, control, callbacks):
        session = make_session()
        preview = open_ok(session)

        assert preview == Resolution(1280, 720)
        assert session.is_camera_active
        assert session.preview_size == Resolution(1280, 720)
        assert session.picture_size == Resolution(1920, 1080)
        # rear camera mounted at 90 degrees, display at 0
        assert session.rotation_degrees == 90
        assert control.params[-1].rotation == 90
        assert control.params[-1].picture_size == Resolution(1920, 1080)
        assert control.params[-1].jpeg_quality == 100
        # portrait host: height first
        assert callbacks.sizes == [(720, 1280)]
        assert len(callbacks.transforms) == 1
        np.testing.assert_array_equal(callbacks.transforms[0], identity())
        assert callbacks.errors == []

    def test_configuration_order(self, make_session, control, callbacks):
        def post(fn):
            control.calls.append(("emit:" + fn.func.__name__, fn.args))
            fn()

        session = make_session(post_to_main=post)
        session.open_camera(1280, 720).result(timeout=2.0)

        names = [name for name, _ in control.calls]
        assert names == [
            "enumerate_cameras",
            "open",
            "set_display_orientation",
            "get_supported_resolutions",
            "set_parameters",
            "emit:on_resolved_preview_size",
            "emit:on_transform_changed",
            "start_preview",
        ]
        # post_to_main ran the callbacks on the worker thread in this test
        assert callbacks.threads == {"campipe-camera"}

    def test_callbacks_run_on_dispatching_thread(self, make_session, callbacks):
        session = make_session()
        session.open_camera(1280, 720).result(timeout=2.0)
        assert callbacks.sizes == []
        assert session.dispatch_events() == 2
        assert callbacks.threads == {threading.current_thread().name}
        assert session.dispatch_events() == 0

    def test_landscape_swaps_desired_and_reported_size(self, make_session, control, callbacks):
        control.sizes = [Resolution(1920, 1080), Resolution(1280, 720), Resolution(960, 540), Resolution(640, 480)]
        session = make_session()
        session.attach_display(DisplayInfo(1920, 1080, Rotation.ROTATION_0, is_landscape=True))
        preview = open_ok(session, 1920, 1080)

        # desired 1080x1920 bounded by 1080x1080
        assert preview == Resolution(960, 540)
        assert callbacks.sizes == [(960, 540)]

    def test_aspect_ratio_config_filters_sizes(self, make_session, control):
        control.sizes = [Resolution(1920, 1080), Resolution(1280, 960), Resolution(640, 480)]
        session = make_session({"aspect_ratio": 4 / 3, "aspect_ratio_offset": 0.01})
        preview = open_ok(session, 640, 480)
        assert session.picture_size == Resolution(1280, 960)
        assert preview == Resolution(640, 480)

    def test_front_camera_rotation(self, make_session, control):
        control.cameras = [CameraDescriptor("front", Facing.FRONT, 90)]
        session = make_session()
        open_ok(session)
        assert session.rotation_degrees == 270
        assert ("set_display_orientation", (control.handle, 270)) in control.calls

    def test_camera_index_selects_camera(self, make_session, control):
        control.cameras = [CameraDescriptor(0), CameraDescriptor(7, Facing.FRONT, 270)]
        session = make_session({"camera_index": 1})
        open_ok(session)
        assert ("open", (7, Resolution(1280, 720))) in control.calls

    def test_fallback_preview_size_is_logged_not_reported(self, make_session, control, callbacks):
        session = make_session({"max_preview_res": (320, 240)})
        preview = open_ok(session)

        # nothing fits 320x240, the first reported size is used
        assert preview == Resolution(1920, 1080)
        assert callbacks.errors == []
        assert session.is_camera_active
        assert any("NO_SUITABLE_SIZE" in m for m in messages(session))

    def test_surface_is_handed_to_preview(self, make_session, control):
        surface = object()
        session = make_session()
        open_ok(session, surface=surface)
        assert ("start_preview", (control.handle, surface)) in control.calls

    def test_transform_snapshot_is_read_only(self, make_session):
        session = make_session()
        open_ok(session)
        with pytest.raises(ValueError):
            session.transform[0, 0] = 2.0

    def test_open_twice_warns_and_keeps_camera(self, make_session, control):
        session = make_session()
        first = session.open_camera(1280, 720)
        first.result(timeout=2.0)
        second = session.open_camera(640, 480)

        assert second is first
        assert control.call_names().count("open") == 1
        assert any("already opened" in m for m in messages(session))


# =============================================================================
# Open failures
# =============================================================================

class TestOpenFailures:

    def _fail(self, session, width=1280, height=720):
        fut = session.open_camera(width, height)
        with pytest.raises(CameraConfigurationError) as info:
            fut.result(timeout=2.0)
        session.dispatch_events()
        return info.value

    def test_no_cameras(self, make_session, control, callbacks):
        control.cameras = []
        session = make_session()
        exc = self._fail(session)

        assert exc.kind is CameraErrorKind.NO_CAMERAS_AVAILABLE
        assert [e.kind for e in callbacks.errors] == [CameraErrorKind.NO_CAMERAS_AVAILABLE]
        assert not session.is_camera_active
        assert "open" not in control.call_names()

    def test_open_returning_none_is_missing_hardware(self, make_session, control, callbacks):
        control.open_returns_none = True
        session = make_session()
        exc = self._fail(session)

        assert exc.kind is CameraErrorKind.MISSING_HARDWARE_FEATURE
        assert [e.kind for e in callbacks.errors] == [CameraErrorKind.MISSING_HARDWARE_FEATURE]
        assert "close" not in control.call_names()

    def test_configuration_failure_releases_camera(self, make_session, control, callbacks):
        control.fail_on = "set_parameters"
        session = make_session()
        exc = self._fail(session)

        assert exc.kind is CameraErrorKind.CAMERA_CONFIGURATION
        assert len(callbacks.errors) == 1
        assert callbacks.errors[0].kind is CameraErrorKind.CAMERA_CONFIGURATION
        assert ("close", (control.handle,)) in control.calls
        assert "start_preview" not in control.call_names()

    def test_missing_camera_index(self, make_session, callbacks):
        session = make_session({"camera_index": 3})
        exc = self._fail(session)
        assert exc.kind is CameraErrorKind.CAMERA_CONFIGURATION
        assert len(callbacks.errors) == 1

    def test_lock_timeout_is_reported_as_configuration_error(self, make_session, control, callbacks):
        session = make_session({"lock_timeout": 0.05})
        session._open_close_lock.acquire()
        try:
            exc = self._fail(session)
        finally:
            session._open_close_lock.release()

        assert exc.kind is CameraErrorKind.RESOURCE_LOCK_TIMEOUT
        assert [e.kind for e in callbacks.errors] == [CameraErrorKind.CAMERA_CONFIGURATION]
        assert control.calls == []
        assert not session.is_camera_active

    def test_missing_camera_feature_reported_once(self, make_session, control, callbacks):
        control.feature = False
        session = make_session()
        session.attach_display(DisplayInfo(720, 1280))
        session.attach_display(DisplayInfo(1280, 720, is_landscape=True))
        exc = self._fail(session)
        exc = self._fail(session)

        assert exc.kind is CameraErrorKind.MISSING_HARDWARE_FEATURE
        assert [e.kind for e in callbacks.errors] == [CameraErrorKind.MISSING_HARDWARE_FEATURE]
        assert control.calls == []

    def test_reopen_after_failure(self, make_session, control, callbacks):
        control.cameras = []
        session = make_session()
        self._fail(session)

        control.cameras = [CameraDescriptor(0, Facing.BACK, 90)]
        assert open_ok(session) == Resolution(1280, 720)
        assert session.is_camera_active
        assert len(callbacks.errors) == 1


# =============================================================================
# Closing
# =============================================================================

class TestCloseCamera:

    def test_close_releases_camera(self, make_session, control):
        session = make_session()
        open_ok(session)
        session.close_camera(timeout=2.0)

        assert not session.is_camera_active
        assert session.preview_size is None
        assert session.transform is None
        names = control.call_names()
        assert names[-2:] == ["stop_preview", "close"]

    def test_close_twice_warns(self, make_session, control):
        session = make_session()
        open_ok(session)
        session.close_camera(timeout=2.0)
        drain_messages(session.log)
        session.close_camera(timeout=2.0)

        assert control.call_names().count("close") == 1
        assert any("already closed" in m for m in messages(session))

    def test_close_without_open_warns(self, make_session, control):
        session = make_session()
        session.close_camera()
        assert control.calls == []
        assert any("already closed" in m for m in messages(session))

    def test_open_close_open(self, make_session, control):
        session = make_session()
        open_ok(session)
        session.close_camera(timeout=2.0)
        open_ok(session, 640, 480)
        assert session.is_camera_active
        assert control.call_names().count("open") == 2


# =============================================================================
# Picture cycle
# =============================================================================

class TestTakePicture:

    def test_full_cycle(self, make_session, control, saver, callbacks, tmp_path):
        session = make_session()
        open_ok(session)

        assert session.take_picture().result(timeout=2.0) is True
        settle(session)
        session.dispatch_events()

        assert session.state.is_idle
        assert len(callbacks.images) == 1
        path = callbacks.images[0]
        assert os.path.dirname(path) == str(tmp_path)
        assert path.endswith(".jpg")
        assert saver.saved[path] == control.picture
        assert control.call_names().count("auto_focus") == 1
        assert control.call_names().count("capture") == 1

    def test_fixed_image_path(self, make_session, saver, callbacks, tmp_path):
        target = str(tmp_path / "shot.jpg")
        session = make_session({"image_path": target})
        open_ok(session)
        session.take_picture().result(timeout=2.0)
        settle(session)
        session.dispatch_events()
        assert callbacks.images == [target]
        assert target in saver.saved

    def test_storage_dir_from_display(self, make_session, callbacks, tmp_path):
        session = make_session()
        session.attach_display(DisplayInfo(720, 1280, storage_dir=str(tmp_path / "pics")))
        open_ok(session)
        session.take_picture().result(timeout=2.0)
        settle(session)
        session.dispatch_events()
        assert os.path.dirname(callbacks.images[0]) == str(tmp_path / "pics")

    def test_busy_while_focusing(self, make_session, control, callbacks):
        control.defer_focus = True
        session = make_session()
        open_ok(session)

        assert session.take_picture().result(timeout=2.0) is True
        assert session.state.phase is Phase.FOCUSING
        drain_messages(session.log)

        assert session.take_picture().result(timeout=2.0) is False
        assert session.state.phase is Phase.FOCUSING
        assert any("busy" in m for m in messages(session))

        # a failed focus still captures
        control.focus_callbacks[0](False)
        settle(session)
        session.dispatch_events()
        assert session.state.is_idle
        assert len(callbacks.images) == 1
        assert any("Autofocus did not succeed" in m for m in messages(session))

    def test_busy_while_capturing(self, make_session, control):
        control.defer_capture = True
        session = make_session()
        open_ok(session)

        session.take_picture().result(timeout=2.0)
        settle(session)
        assert session.state.phase is Phase.CAPTURING
        assert session.take_picture().result(timeout=2.0) is False

    def test_busy_while_saving(self, make_session, saver, callbacks):
        saver.defer = True
        session = make_session()
        open_ok(session)

        session.take_picture().result(timeout=2.0)
        settle(session)
        assert session.state.phase is Phase.CAPTURING
        assert session.take_picture().result(timeout=2.0) is False

        saver.complete_pending()
        settle(session)
        session.dispatch_events()
        assert session.state.is_idle
        assert len(callbacks.images) == 1

    def test_duplicate_focus_result_is_ignored(self, make_session, control):
        control.defer_focus = True
        control.defer_capture = True
        session = make_session()
        open_ok(session)

        session.take_picture().result(timeout=2.0)
        control.focus_callbacks[0](True)
        control.focus_callbacks[0](True)
        settle(session)
        assert control.call_names().count("capture") == 1
        assert session.state.phase is Phase.CAPTURING

    def test_second_picture_after_first(self, make_session, callbacks):
        session = make_session({"image_path": None})
        open_ok(session)
        for _ in range(2):
            assert session.take_picture().result(timeout=2.0)
            settle(session)
        session.dispatch_events()
        assert len(callbacks.images) == 2

    def test_save_failure_returns_to_preview(self, make_session, callbacks):
        session = make_session(saver=MemorySaver(fail=True))
        open_ok(session)
        session.take_picture().result(timeout=2.0)
        settle(session)
        session.dispatch_events()

        assert session.state.is_idle
        assert callbacks.images == []
        assert callbacks.errors == []
        assert any("Failed to save picture" in m for m in messages(session))

    def test_capture_request_failure_returns_to_preview(self, make_session, control, callbacks):
        control.fail_on = "capture"
        session = make_session()
        open_ok(session)
        session.take_picture().result(timeout=2.0)
        settle(session)
        assert session.state.is_idle
        assert any("Capture request failed" in m for m in messages(session))

    def test_take_picture_when_closed(self, make_session, control):
        session = make_session()
        assert session.take_picture().result(timeout=2.0) is False
        assert "auto_focus" not in control.call_names()

    def test_focus_result_after_close_is_discarded(self, make_session, control, callbacks):
        control.defer_focus = True
        session = make_session()
        open_ok(session)
        session.take_picture().result(timeout=2.0)
        session.close_camera(timeout=2.0)

        control.focus_callbacks[0](True)
        session.dispatch_events()
        assert "capture" not in control.call_names()
        assert callbacks.images == []
        assert session.state.is_idle

    def test_picture_after_close_is_discarded(self, make_session, control, saver, callbacks):
        control.defer_capture = True
        session = make_session()
        open_ok(session)
        session.take_picture().result(timeout=2.0)
        settle(session)
        session.close_camera(timeout=2.0)
        assert any("pending picture discarded" in m for m in messages(session))

        control.capture_callbacks[0](b"late")
        session.dispatch_events()
        assert saver.saved == {}
        assert callbacks.images == []


# =============================================================================
# Preview geometry updates
# =============================================================================

class TestGeometryUpdates:

    def test_update_preview_dimensions_emits_transform(self, make_session, callbacks):
        session = make_session()
        session.attach_display(DisplayInfo(720, 1280, Rotation.ROTATION_90))
        open_ok(session, 720, 1280)
        before = len(callbacks.transforms)

        session.update_preview_dimensions(1080, 1920).result(timeout=2.0)
        session.dispatch_events()
        assert len(callbacks.transforms) == before + 1
        assert session.transform is callbacks.transforms[-1]

    def test_update_preview_dimensions_rejects_empty(self, make_session):
        session = make_session()
        with pytest.raises(ValueError):
            session.update_preview_dimensions(0, 100)

    def test_update_display_rotation_reconfigures(self, make_session, control, callbacks):
        session = make_session()
        session.attach_display(DisplayInfo(720, 1280, Rotation.ROTATION_90))
        open_ok(session)
        # rear mount 90, display 90
        assert session.rotation_degrees == 0

        session.update_display_rotation(Rotation.ROTATION_0).result(timeout=2.0)
        session.dispatch_events()
        assert session.rotation_degrees == 90
        assert control.params[-1].rotation == 90
        assert control.params[-1].preview_size == session.preview_size
        np.testing.assert_array_equal(callbacks.transforms[-1], identity())

    def test_rotation_before_open_is_used_on_open(self, make_session):
        session = make_session()
        session.update_display_rotation(180).result(timeout=2.0)
        open_ok(session)
        # rear mount 90, display 180
        assert session.rotation_degrees == 270

    def test_unknown_display_rotation_defaults_to_zero(self, make_session, callbacks):
        session = make_session()
        session.attach_display(DisplayInfo(720, 1280, rotation=45))
        open_ok(session)
        assert session.rotation_degrees == 90
        assert callbacks.errors == []
        assert any("UNKNOWN_DISPLAY_ROTATION" in m for m in messages(session))

    def test_fractional_display_rotation_is_unknown(self, make_session, callbacks):
        session = make_session()
        session.attach_display(DisplayInfo(720, 1280, rotation=Rotation.ROTATION_180))
        open_ok(session)
        drain_messages(session.log)

        session.update_display_rotation(90.5).result(timeout=2.0)
        session.dispatch_events()
        # rear mount 90, display treated as 0
        assert session.rotation_degrees == 90
        assert callbacks.errors == []
        assert any("UNKNOWN_DISPLAY_ROTATION" in m for m in messages(session))


class TestWaitIdle:

    def test_without_worker(self, make_session):
        assert make_session().wait_idle(timeout=0.1) is True
