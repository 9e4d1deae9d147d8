import math

import pytest

from arinails_tryon.geometry import (
    FINGER_JOINTS,
    NAIL_HEIGHT_RATIO,
    NAIL_WIDTH_RATIO,
    distance,
    finger_angle,
    hand_placements,
    overlay_placement,
    placement_corners,
)

from fakes import make_hand, upright_index_hand


def test_finger_joint_topology():
    assert [tip for tip, _ in FINGER_JOINTS] == [4, 8, 12, 16, 20]
    assert [first for _, first in FINGER_JOINTS] == [2, 6, 10, 14, 18]


def test_upright_finger_has_no_rotation():
    assert finger_angle((0.0, -1.0)) == pytest.approx(0.0)
    assert finger_angle((0.0, -37.5)) == pytest.approx(0.0)


def test_finger_pointing_right_rotates_clockwise():
    assert finger_angle((1.0, 0.0)) == pytest.approx(-math.pi / 2)


def test_finger_pointing_left_rotates_counter_clockwise():
    assert finger_angle((-1.0, 0.0)) == pytest.approx(math.pi / 2)


@pytest.mark.parametrize("direction", [(-1.0, 0.0), (-1.0, 1.0), (0.0, 1.0), (1.0, 1.0), (-0.2, -1.0)])
def test_angle_stays_within_half_turn(direction):
    assert -math.pi <= finger_angle(direction) <= math.pi


def test_coincident_tip_and_joint_is_skipped():
    assert overlay_placement((10.0, 10.0), (10.0, 10.0), (10.0, 30.0)) is None


@pytest.mark.parametrize(
    "tip,first,base",
    [
        ((100.0, 50.0), (100.0, 90.0), (100.0, 130.0)),
        ((12.0, 7.0), (3.0, 4.0), (-5.0, 1.0)),
        ((300.5, 200.25), (310.0, 240.0), (305.0, 260.0)),
    ],
)
def test_size_follows_joint_distances(tip, first, base):
    placement = overlay_placement(tip, first, base)

    assert placement is not None
    assert placement.width > 0
    assert placement.height > 0
    assert placement.width == pytest.approx(distance(first, base) * NAIL_WIDTH_RATIO)
    assert placement.height == pytest.approx(distance(tip, first) * NAIL_HEIGHT_RATIO)
    assert placement.center == pytest.approx(tip)


def test_scenario_on_640x480_surface():
    placements = hand_placements(upright_index_hand(), 640, 480)

    assert len(placements) == 1
    p = placements[0]
    assert p.center == pytest.approx((320.0, 96.0))
    assert p.angle == pytest.approx(0.0)
    assert p.height == pytest.approx(33.6)
    assert p.width == pytest.approx(28.8)


def test_degenerate_hand_yields_no_placements():
    assert hand_placements(make_hand(), 640, 480) == []


def test_custom_ratios():
    placements = hand_placements(upright_index_hand(), 640, 480, width_ratio=1.0, height_ratio=1.0)

    assert placements[0].width == pytest.approx(48.0)
    assert placements[0].height == pytest.approx(48.0)


def test_unrotated_corners_form_axis_aligned_box():
    p = overlay_placement((50.0, 50.0), (50.0, 70.0), (50.0, 90.0))
    xs = sorted(x for x, _ in placement_corners(p))
    ys = sorted(y for _, y in placement_corners(p))

    assert xs[0] == pytest.approx(50.0 - p.width / 2)
    assert xs[-1] == pytest.approx(50.0 + p.width / 2)
    assert ys[0] == pytest.approx(50.0 - p.height / 2)
    assert ys[-1] == pytest.approx(50.0 + p.height / 2)
