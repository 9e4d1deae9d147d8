"""
Camera access for the try-on loop.

VideoCaptureAdapter opens the webcam, waits for it to produce a first frame, and
publishes its state through a StatusSignal so the UI can show progress or the
reason it failed.
"""

from __future__ import annotations

import logging
import os
import platform
import time
from typing import Callable, Optional, Tuple

import cv2

from .errors import (
    CameraBusy,
    CameraError,
    CameraNotFound,
    CameraPermissionDenied,
    CameraTimeout,
    UnsupportedEnvironment,
)
from .types import CameraStatus, StatusSignal

logger = logging.getLogger(__name__)

CaptureFactory = Callable[[int], "cv2.VideoCapture"]


def default_capture_factory(index: int) -> "cv2.VideoCapture":
    if platform.system() == "Darwin":
        return cv2.VideoCapture(index, cv2.CAP_AVFOUNDATION)
    return cv2.VideoCapture(index)


def classify_open_failure(index: int, system: Optional[str] = None) -> CameraError:
    """Best guess at why `VideoCapture(index)` did not open."""

    system = system or platform.system()
    if system == "Darwin":
        # macOS reports a denied privacy prompt as a plain open failure.
        return CameraPermissionDenied(f"Could not open camera {index} (check System Settings -> Privacy -> Camera)")
    if system == "Linux":
        node = f"/dev/video{index}"
        if not os.path.exists(node):
            return CameraNotFound(f"{node} does not exist")
        if not os.access(node, os.R_OK | os.W_OK):
            return CameraPermissionDenied(f"No read/write access to {node} (is the user in the 'video' group?)")
        return CameraBusy(f"{node} exists but could not be opened")
    return CameraNotFound(f"Could not open camera {index}")


class VideoCaptureAdapter:
    """
    Owns one camera stream.

    `start()` and `stop()` are idempotent. Frames are BGR arrays, mirrored by default
    (selfie view).
    """

    def __init__(
        self,
        camera_index: int = 0,
        resolution: Tuple[int, int] = (1280, 720),
        *,
        mirror: bool = True,
        ready_timeout_s: float = 10.0,
        capture_factory: CaptureFactory = default_capture_factory,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.camera_index = camera_index
        self.resolution = resolution
        self.mirror = mirror
        self.ready_timeout_s = ready_timeout_s
        self.status = StatusSignal(CameraStatus.IDLE)

        self._capture_factory = capture_factory
        self._clock = clock
        self._cap = None
        self._first_frame = None

    @property
    def running(self) -> bool:
        return self._cap is not None

    def start(self) -> None:
        if self._cap is not None:
            return

        self.status.set(CameraStatus.INITIALIZING)
        try:
            self._cap = self._open()
            self._first_frame = self._wait_for_first_frame()
        except CameraError as e:
            self._release()
            logger.error("Camera %d failed to start: %s", self.camera_index, e.detail or e)
            self.status.set(CameraStatus.ERROR, e.user_message)
            raise

        h, w = self._first_frame.shape[:2]
        logger.info("Camera %d ready at %dx%d", self.camera_index, w, h)
        self.status.set(CameraStatus.READY)

    def _open(self):
        try:
            cap = self._capture_factory(self.camera_index)
        except cv2.error as e:
            raise UnsupportedEnvironment(f"OpenCV could not create a capture: {e}") from e

        if cap is None or not cap.isOpened():
            if cap is not None:
                cap.release()
            raise classify_open_failure(self.camera_index)

        width, height = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        return cap

    def _wait_for_first_frame(self):
        deadline = self._clock() + self.ready_timeout_s
        while self._clock() < deadline:
            ok, frame = self._cap.read()
            if ok and frame is not None and frame.size > 0:
                return frame
            time.sleep(0.01)
        raise CameraTimeout(f"No frame from camera {self.camera_index} within {self.ready_timeout_s:.0f}s")

    def read(self):
        """Next frame, or None when the camera is stopped or the read failed."""

        if self._cap is None:
            return None

        if self._first_frame is not None:
            frame, self._first_frame = self._first_frame, None
        else:
            ok, frame = self._cap.read()
            if not ok or frame is None:
                return None

        if self.mirror:
            frame = cv2.flip(frame, 1)
        return frame

    def _release(self) -> None:
        cap, self._cap = self._cap, None
        self._first_frame = None
        if cap is not None:
            cap.release()

    def stop(self) -> None:
        if self._cap is None:
            return
        self._release()
        self.status.set(CameraStatus.IDLE)
        logger.info("Camera %d released", self.camera_index)

    def __enter__(self) -> "VideoCaptureAdapter":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
