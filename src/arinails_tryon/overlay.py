from __future__ import annotations

import math

import cv2
import numpy as np

from .geometry import bbox_from_points, clamp_int, placement_corners
from .types import OverlayPlacement


def as_bgra(image: np.ndarray) -> np.ndarray:
    """Normalize a decoded design image (gray, BGR or BGRA) to BGRA uint8."""

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


def paste_rotated(target_bgr: np.ndarray, image_bgra: np.ndarray, placement: OverlayPlacement) -> bool:
    """
    Alpha-composite `image_bgra` onto `target_bgr`, centered at `placement.center`,
    scaled to `placement.width` x `placement.height` and rotated by `placement.angle`.

    Each call builds its own affine transform, so nothing carries over to the next
    draw. Returns False when the overlay falls outside the target or is too small.
    """

    if placement.width <= 0 or placement.height <= 0:
        return False

    th, tw = target_bgr.shape[:2]
    ih, iw = image_bgra.shape[:2]
    if ih == 0 or iw == 0:
        return False
    image_bgra = as_bgra(image_bgra)

    x0, y0, x1, y1 = bbox_from_points(placement_corners(placement))
    x0 = clamp_int(x0, 0, tw)
    y0 = clamp_int(y0, 0, th)
    x1 = clamp_int(x1 + 1, 0, tw)
    y1 = clamp_int(y1 + 1, 0, th)
    if x1 <= x0 or y1 <= y0:
        return False

    sx = placement.width / iw
    sy = placement.height / ih
    c = math.cos(placement.angle)
    s = math.sin(placement.angle)
    a00, a01 = c * sx, s * sy
    a10, a11 = -s * sx, c * sy
    cx, cy = placement.center
    # Image center -> overlay center, expressed in the ROI's coordinates.
    tx = (cx - x0) - (a00 * iw / 2.0 + a01 * ih / 2.0)
    ty = (cy - y0) - (a10 * iw / 2.0 + a11 * ih / 2.0)
    m = np.array([[a00, a01, tx], [a10, a11, ty]], dtype=np.float64)

    warped = cv2.warpAffine(
        image_bgra,
        m,
        (x1 - x0, y1 - y0),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )

    alpha = warped[:, :, 3:4].astype(np.float32) / 255.0
    roi = target_bgr[y0:y1, x0:x1]
    blended = roi.astype(np.float32) * (1.0 - alpha) + warped[:, :, :3].astype(np.float32) * alpha
    roi[:] = np.clip(blended, 0, 255).astype(np.uint8)
    return True


class Surface:
    """
    Drawing surface the renderer composes each frame into (BGR, OpenCV layout).

    It plays the role of the on-screen canvas: sized to the video, the raw frame
    goes in first, then one overlay per fingertip.
    """

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.buffer: np.ndarray = np.zeros((height, width, 3), dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self.buffer.shape[1])

    @property
    def height(self) -> int:
        return int(self.buffer.shape[0])

    def ensure_size(self, width: int, height: int) -> bool:
        """Resize to `width` x `height` if needed. Returns True if the size changed."""

        if self.width == width and self.height == height:
            return False
        self.buffer = np.zeros((height, width, 3), dtype=np.uint8)
        return True

    def draw_frame(self, frame_bgr: np.ndarray) -> None:
        if frame_bgr.ndim == 2:
            frame_bgr = cv2.cvtColor(frame_bgr, cv2.COLOR_GRAY2BGR)
        elif frame_bgr.shape[2] == 4:
            frame_bgr = cv2.cvtColor(frame_bgr, cv2.COLOR_BGRA2BGR)
        np.copyto(self.buffer, frame_bgr)

    def draw_image(self, image_bgra: np.ndarray, placement: OverlayPlacement) -> bool:
        return paste_rotated(self.buffer, image_bgra, placement)
