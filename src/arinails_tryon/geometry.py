from __future__ import annotations

import math
from typing import Iterable, List, Optional, Tuple

from .types import Hand, OverlayPlacement, PointF


# (fingertip, first joint) landmark indices for thumb, index, middle, ring, pinky.
# The base joint of each finger sits one index below its first joint.
FINGER_JOINTS: List[Tuple[int, int]] = [
    (4, 2),
    (8, 6),
    (12, 10),
    (16, 14),
    (20, 18),
]

NAIL_WIDTH_RATIO = 0.6
NAIL_HEIGHT_RATIO = 0.7


def distance(p1: PointF, p2: PointF) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def finger_angle(direction: PointF) -> float:
    """
    Rotation (radians, counter-clockwise on screen) that turns an overlay's "up"
    axis onto `direction`, given in pixel space (y grows downward).

    A finger pointing straight up, direction (0, -1), gives 0. The result is kept
    within [-pi, pi].
    """

    dx, dy = direction
    # Flip y so atan2 works in the usual y-up frame, then offset by -90 degrees.
    return math.remainder(math.atan2(-dy, dx) - math.pi / 2, math.tau)


def overlay_placement(
    tip: PointF,
    first_joint: PointF,
    base_joint: PointF,
    *,
    width_ratio: float = NAIL_WIDTH_RATIO,
    height_ratio: float = NAIL_HEIGHT_RATIO,
) -> Optional[OverlayPlacement]:
    """
    Placement for one nail overlay from three pixel-space landmarks.

    Returns None when the tip and first joint coincide (no usable direction).
    """

    direction = (tip[0] - first_joint[0], tip[1] - first_joint[1])
    if math.hypot(direction[0], direction[1]) == 0:
        return None

    return OverlayPlacement(
        center=(float(tip[0]), float(tip[1])),
        angle=finger_angle(direction),
        width=distance(first_joint, base_joint) * width_ratio,
        height=distance(tip, first_joint) * height_ratio,
    )


def hand_placements(
    hand: Hand,
    width: int,
    height: int,
    *,
    fingers: Iterable[Tuple[int, int]] = FINGER_JOINTS,
    width_ratio: float = NAIL_WIDTH_RATIO,
    height_ratio: float = NAIL_HEIGHT_RATIO,
) -> List[OverlayPlacement]:
    """Placements for every usable finger of `hand` on a `width` x `height` surface."""

    placements: List[OverlayPlacement] = []
    for tip_idx, first_idx in fingers:
        tip = hand[tip_idx].to_px(width, height)
        first = hand[first_idx].to_px(width, height)
        base = hand[first_idx - 1].to_px(width, height)
        placement = overlay_placement(tip, first, base, width_ratio=width_ratio, height_ratio=height_ratio)
        if placement is not None:
            placements.append(placement)
    return placements


def placement_corners(placement: OverlayPlacement) -> List[PointF]:
    """The four corners of the rotated overlay rectangle, in pixel space."""

    cx, cy = placement.center
    hw = placement.width / 2.0
    hh = placement.height / 2.0
    c = math.cos(placement.angle)
    s = math.sin(placement.angle)
    corners: List[PointF] = []
    for u, v in ((-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)):
        # Counter-clockwise on screen with y pointing down.
        corners.append((cx + c * u + s * v, cy - s * u + c * v))
    return corners


def bbox_from_points(points: Iterable[PointF]) -> Tuple[int, int, int, int]:
    xs = []
    ys = []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return (0, 0, 0, 0)
    return (int(math.floor(min(xs))), int(math.floor(min(ys))), int(math.ceil(max(xs))), int(math.ceil(max(ys))))


def clamp_int(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))
