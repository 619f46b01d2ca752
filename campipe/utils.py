###############################################################################
# Camera utility functions
#
# Probe the cameras, drain log queues, build a session for this computer.
#
# 2026 Initial release
###############################################################################
import logging
from queue import Empty, Queue

import cv2


def probe_cameras(numcams: int = 10):
    '''
    Scans camera indices and returns default fourcc, width and height
    of the ones delivering frames
    '''
    arr = []
    for index in range(int(numcams)):
        cap = cv2.VideoCapture(index)
        try:
            if cap.read()[0]:
                tmp = cap.get(cv2.CAP_PROP_FOURCC)
                fourcc = "".join([chr((int(tmp) >> 8 * i) & 0xFF) for i in range(4)])
                width = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
                height = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
                arr.append({"index": index, "fourcc": fourcc, "width": width, "height": height})
        finally:
            cap.release()
    return arr


def drain_log(log_queue: Queue, logger: logging.Logger, max_items: int = 64) -> int:
    '''
    Move (level, message) tuples from a component log queue into logger
    '''
    n = 0
    while n < max_items:
        try:
            (level, msg) = log_queue.get_nowait()
        except Empty:
            break
        logger.log(level, "{}".format(msg))
        n += 1
    return n


def gen_session(configs, callbacks=None, saver=None, post_to_main=None, control_configs=None):
    '''
    Create a capture session using the OpenCV camera control
    '''
    from campipe.capture.cv2control import cv2CameraControl
    from campipe.capture.session import CaptureSession

    control = cv2CameraControl(control_configs)
    return CaptureSession(configs, control, callbacks=callbacks, saver=saver, post_to_main=post_to_main)
