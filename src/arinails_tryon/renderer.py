from __future__ import annotations

import enum
import logging
from typing import List, Optional

import numpy as np

from .detector import LandmarkProvider, draw_landmarks
from .geometry import NAIL_HEIGHT_RATIO, NAIL_WIDTH_RATIO, hand_placements
from .overlay import Surface
from .types import Hand

logger = logging.getLogger(__name__)


class RenderState(str, enum.Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    DRAWING = "drawing"


def frame_is_readable(frame) -> bool:
    return frame is not None and getattr(frame, "ndim", 0) >= 2 and frame.shape[0] > 0 and frame.shape[1] > 0


class NailOverlayRenderer:
    """
    Draws the selected design onto every detected fingertip, one frame at a time.

    The raw frame is always drawn first; overlays go on top only when a design image
    is loaded and the provider finds hands. A failing frame keeps the raw image and
    the next call starts fresh.
    """

    def __init__(
        self,
        provider: Optional[LandmarkProvider] = None,
        surface: Optional[Surface] = None,
        *,
        width_ratio: float = NAIL_WIDTH_RATIO,
        height_ratio: float = NAIL_HEIGHT_RATIO,
        failure_warn_threshold: int = 30,
        show_landmarks: bool = False,
    ) -> None:
        self.provider = provider
        self.surface = surface if surface is not None else Surface()
        self.width_ratio = width_ratio
        self.height_ratio = height_ratio
        self.failure_warn_threshold = failure_warn_threshold
        self.show_landmarks = show_landmarks

        self.state = RenderState.IDLE
        self.consecutive_failures = 0
        self.last_hands: List[Hand] = []

    def render(self, frame_bgr, design_image: Optional[np.ndarray], timestamp_ms: int) -> int:
        """Render one frame. Returns the number of overlays drawn."""

        self.state = RenderState.IDLE
        self.last_hands = []
        if not frame_is_readable(frame_bgr):
            return 0

        h, w = frame_bgr.shape[:2]
        if self.surface.ensure_size(w, h):
            logger.debug("Surface resized to %dx%d", w, h)
        self.surface.draw_frame(frame_bgr)

        if design_image is None or self.provider is None:
            return 0

        self.state = RenderState.DETECTING
        try:
            hands = self.provider.detect(frame_bgr, timestamp_ms)
        except Exception as e:
            self._record_failure(e)
            self.state = RenderState.IDLE
            return 0
        self.consecutive_failures = 0
        self.last_hands = hands

        if not hands:
            self.state = RenderState.IDLE
            return 0

        self.state = RenderState.DRAWING
        drawn = 0
        try:
            for hand in hands:
                placements = hand_placements(
                    hand,
                    self.surface.width,
                    self.surface.height,
                    width_ratio=self.width_ratio,
                    height_ratio=self.height_ratio,
                )
                for placement in placements:
                    if self.surface.draw_image(design_image, placement):
                        drawn += 1
            if self.show_landmarks:
                draw_landmarks(self.surface.buffer, hands)
        except Exception:
            logger.warning("Overlay drawing failed; showing the raw frame", exc_info=True)
            self.surface.draw_frame(frame_bgr)
            drawn = 0
        finally:
            self.state = RenderState.IDLE

        return drawn

    def _record_failure(self, error: Exception) -> None:
        self.consecutive_failures += 1
        logger.debug("Hand detection failed: %s", error, exc_info=True)
        if self.consecutive_failures == 1:
            logger.warning("Hand detection failed: %s", error)
        if self.consecutive_failures == self.failure_warn_threshold:
            logger.warning(
                "Hand detection has failed for %d consecutive frames; overlays are paused until it recovers",
                self.consecutive_failures,
            )
