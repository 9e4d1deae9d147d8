from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np


BRAND_GREEN = (116, 150, 125)  # BGR of the salon's #7d9674
ERROR_RED = (60, 60, 220)


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.6, thickness=2):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def draw_banner(frame, lines: List[str], color=BRAND_GREEN, alpha: float = 0.85):
    """Translucent box in the top-left corner with one text line per entry."""

    if not lines:
        return frame
    line_h = 24
    width = max(cv2.getTextSize(t, cv2.FONT_HERSHEY_SIMPLEX, 0.6, 2)[0][0] for t in lines) + 24
    height = line_h * len(lines) + 16
    h, w = frame.shape[:2]
    x1 = min(w, 16 + width)
    y1 = min(h, 16 + height)

    overlay = frame.copy()
    cv2.rectangle(overlay, (16, 16), (x1, y1), color, -1)
    cv2.addWeighted(overlay, alpha, frame, 1 - alpha, 0, frame)
    for i, text in enumerate(lines):
        draw_text(frame, text, (28, 16 + (i + 1) * line_h))
    return frame


def status_screen(message: str, hint: Optional[str] = None, size: Tuple[int, int] = (960, 540), error: bool = False):
    """Blank frame with a centered status message, for when there is no video to show."""

    w, h = size
    canvas = np.full((h, w, 3), 245, dtype=np.uint8)
    color = ERROR_RED if error else BRAND_GREEN
    for i, text in enumerate([message] + ([hint] if hint else [])):
        scale = 0.8 if i == 0 else 0.6
        (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, 2)
        org = (max(8, (w - tw) // 2), h // 2 + i * (th + 18))
        cv2.putText(canvas, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color if i == 0 else (90, 90, 90), 2, cv2.LINE_AA)
    return canvas
