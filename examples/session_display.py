##########################################################################
# Capture session display + picture example
#
# Opens the first OpenCV camera through a CaptureSession, shows the
# preview through the computed display transform and takes a picture
# when 'p' is pressed. 'q' quits, 'r' simulates a display rotation.
#
# Pictures are stored in the current folder unless image_path is set
# in the configs.
##########################################################################

import logging
import time
from queue import Empty, Queue

import cv2

from campipe import CaptureCallbacks, DisplayInfo, Rotation
from campipe.configs.default_configs import configs, control_configs
from campipe.geometry.transform import apply_transform
from campipe.utils import drain_log, gen_session

view_width, view_height = 1280, 720
window_name = 'Camera'
font = cv2.FONT_HERSHEY_SIMPLEX
textLocation0 = (10, 20)
textLocation1 = (10, 60)
fontScale = 1
fontColor = (255, 255, 255)
lineType = 2

# Setting up logging
logging.basicConfig(level=logging.DEBUG)  # options are: DEBUG, INFO, ERROR, WARNING
logger = logging.getLogger("session_display")


class DisplayCallbacks(CaptureCallbacks):
    """Keeps the latest transform; runs on this (main) thread via dispatch_events."""

    def __init__(self):
        self.matrix = None
        self.last_picture = ""
        self.failed = False

    def on_camera_error(self, error):
        logger.log(logging.CRITICAL, "MAIN:Camera error {}".format(error))
        self.failed = True

    def on_image_taken(self, path):
        logger.log(logging.INFO, "MAIN:Picture saved to {}".format(path))
        self.last_picture = path

    def on_resolved_preview_size(self, width, height):
        logger.log(logging.INFO, "MAIN:Preview size {}x{}".format(width, height))

    def on_transform_changed(self, matrix):
        self.matrix = matrix


callbacks = DisplayCallbacks()
session = gen_session(configs, callbacks, control_configs=control_configs)
session.attach_display(DisplayInfo(view_width, view_height, rotation=Rotation.ROTATION_0, is_landscape=True))

preview = Queue(maxsize=4)
session.open_camera(view_width, view_height, surface=preview)

cv2.namedWindow(window_name, cv2.WINDOW_AUTOSIZE)
rotations = [Rotation.ROTATION_0, Rotation.ROTATION_90, Rotation.ROTATION_180, Rotation.ROTATION_270]
rotation_index = 0
last_fps_time = time.perf_counter()
num_frames = 0
measured_dps = 0.0

while not callbacks.failed:
    current_time = time.perf_counter()

    session.dispatch_events()
    drain_log(session.log, logger)
    drain_log(session.control.log, logger)

    try:
        (frame_time, frame) = preview.get(timeout=0.1)
    except Empty:
        continue
    num_frames += 1

    if (current_time - last_fps_time) >= 5.0:
        measured_dps = num_frames / (current_time - last_fps_time)
        num_frames = 0
        last_fps_time = current_time

    # The view shows the buffer stretched to its size, then transformed
    frame_display = cv2.resize(frame, (view_width, view_height))
    if callbacks.matrix is not None:
        frame_display = apply_transform(frame_display, callbacks.matrix, (view_width, view_height))
    cv2.putText(frame_display, "Display FPS:{:.1f} [Hz]".format(measured_dps), textLocation0, font, fontScale, fontColor, lineType)
    cv2.putText(frame_display, "State:{}".format(session.state), textLocation1, font, fontScale, fontColor, lineType)
    cv2.imshow(window_name, frame_display)

    key = cv2.waitKey(1) & 0xFF
    if key == ord('q'):
        break
    elif key == ord('p'):
        session.take_picture()
    elif key == ord('r'):
        rotation_index = (rotation_index + 1) % len(rotations)
        session.update_display_rotation(rotations[rotation_index])

# Clean up
session.close_camera()
drain_log(session.log, logger)
cv2.destroyAllWindows()
