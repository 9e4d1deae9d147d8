from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import numpy as np

from .camera import VideoCaptureAdapter
from .designs import DesignSelection
from .detector import LandmarkProvider
from .errors import CameraError, ModelLoadError
from .renderer import NailOverlayRenderer
from .types import ModelStatus, StatusSignal

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], LandmarkProvider]
FrameCallback = Callable[[Optional[np.ndarray]], Optional[bool]]


class FrameClock:
    """Milliseconds since session start, strictly increasing across calls."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._origin = clock()
        self._last: Optional[int] = None

    def reset(self) -> None:
        self._origin = self._clock()
        self._last = None

    def next_ms(self) -> int:
        ts = int((self._clock() - self._origin) * 1000)
        if self._last is not None and ts <= self._last:
            ts = self._last + 1
        self._last = ts
        return ts


class TryOnSession:
    """
    One live try-on session: camera -> hand landmarks -> nail overlays.

    The session exclusively owns the camera and the landmark provider from `start()`
    until `stop()`. Both calls are idempotent; after `stop()` returns, no more frames
    are read and the provider is never called again.
    """

    def __init__(
        self,
        camera: VideoCaptureAdapter,
        provider_factory: ProviderFactory,
        selection: DesignSelection,
        renderer: Optional[NailOverlayRenderer] = None,
        *,
        clock: Optional[FrameClock] = None,
    ) -> None:
        self.camera = camera
        self.selection = selection
        self.renderer = renderer if renderer is not None else NailOverlayRenderer()
        self.model_status = StatusSignal(ModelStatus.IDLE)

        self._provider_factory = provider_factory
        self._provider: Optional[LandmarkProvider] = None
        self._clock = clock if clock is not None else FrameClock()
        self._running = False

    @property
    def camera_status(self) -> StatusSignal:
        return self.camera.status

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return

        try:
            self.camera.start()
            self._start_provider()
        except (CameraError, ModelLoadError):
            self._release()
            raise

        self._clock.reset()
        self._running = True
        logger.info("Try-on session started")

    def _start_provider(self) -> None:
        self.model_status.set(ModelStatus.LOADING)
        try:
            self._provider = self._provider_factory()
        except ModelLoadError as e:
            logger.error("Hand landmark model failed to load: %s", e)
            self.model_status.set(ModelStatus.ERROR, e.user_message)
            raise
        self.renderer.provider = self._provider
        self.model_status.set(ModelStatus.READY)

    def retry(self) -> None:
        """Explicit re-grant: tear down whatever is left and start again."""

        self.stop()
        self.start()

    def tick(self) -> Optional[np.ndarray]:
        """Run one loop iteration. Returns the composed frame, or None if nothing was drawn."""

        if not self._running:
            return None

        self.selection.poll()
        frame = self.camera.read()
        if frame is None:
            return None

        image = self.selection.image if self.selection.ready else None
        self.renderer.render(frame, image, self._clock.next_ms())
        return self.renderer.surface.buffer

    def run(self, on_frame: Optional[FrameCallback] = None) -> None:
        """
        Loop until `stop()` is called or `on_frame` returns False.

        `on_frame` is where the host displays the frame and waits for the display
        (e.g. `cv2.imshow` + `cv2.waitKey(1)`), which paces the loop.
        """

        try:
            while self._running:
                composed = self.tick()
                if on_frame is not None and on_frame(composed) is False:
                    break
        finally:
            self.stop()

    def _release(self) -> None:
        provider, self._provider = self._provider, None
        self.renderer.provider = None
        try:
            self.camera.stop()
        finally:
            if provider is not None:
                provider.close()
            # A load error stays visible until the next start().
            if self.model_status.value is not ModelStatus.ERROR:
                self.model_status.set(ModelStatus.IDLE)

    def stop(self) -> None:
        was_running = self._running
        self._running = False
        self._release()
        if was_running:
            logger.info("Try-on session stopped")

    def __enter__(self) -> "TryOnSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
