from __future__ import annotations

import math

import pytest

from domain.geometry import Heading
from domain.models import FIXED_BINDING_DISTANCE, PRECISION, Element, Point
from domain.services.anchor import (
    avoid_rectangular_corner,
    fixed_point_to_global,
    get_arrow_local_fixed_points,
    get_heading_for_elbow_arrow_snap,
    global_to_fixed_point,
    max_binding_distance,
    normalize_fixed_point,
    snap_to_mid,
    snap_to_outline,
    update_bound_point,
)
from tests.helpers.scene_fixtures import close, make_arrow, make_shape


@pytest.mark.parametrize("angle", [0.0, 0.7, 1.9, math.pi, 3.5, 5.8])
@pytest.mark.parametrize("ratios", [(0.2, 0.8), (1.05, -0.05), (0.5001, 0.3), (0.0, 1.0)])
def test_fixed_point_round_trips_through_global_coordinates(
    angle: float, ratios: tuple[float, float]
) -> None:
    shape = make_shape("box", x=10, y=20, width=120, height=80, angle=angle)

    back = global_to_fixed_point(fixed_point_to_global(ratios, shape), shape)

    assert back == pytest.approx(ratios, abs=1e-9)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ((0.5, 0.49995), (0.5001, 0.5001)),
        ((0.4998, 0.5), (0.4998, 0.5001)),
        ((0.25, 0.75), (0.25, 0.75)),
    ],
)
def test_normalize_fixed_point_never_returns_a_centered_ratio(
    raw: tuple[float, float], expected: tuple[float, float]
) -> None:
    normalized = normalize_fixed_point(raw)

    assert normalized == pytest.approx(expected)
    assert all(abs(component - 0.5) > PRECISION / 2 for component in normalized)


def test_normalize_fixed_point_passes_none_through() -> None:
    assert normalize_fixed_point(None) is None


def test_global_to_fixed_point_nudges_the_exact_center() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=40)

    assert global_to_fixed_point(Point(50, 20), shape) == (0.5001, 0.5001)


def test_global_to_fixed_point_uses_zero_ratio_for_collapsed_axis() -> None:
    shape = make_shape("box", x=0, y=0, width=0, height=40)

    ratio_x, ratio_y = global_to_fixed_point(Point(30, 10), shape)

    assert ratio_x == 0.0
    assert ratio_y == pytest.approx(0.25)


@pytest.mark.parametrize(
    ("width", "height", "type_", "zoom", "expected"),
    [
        (100, 100, "rectangle", 1.0, 25.0),
        (400, 400, "rectangle", 1.0, 32.0),
        (20, 20, "rectangle", 1.0, 16.0),
        (20, 20, "rectangle", 0.25, 45.0),
        (100, 100, "diamond", 1.0, 0.25 * 100 / math.sqrt(2)),
        (100, 100, "rectangle", 3.0, 25.0),
    ],
)
def test_max_binding_distance_depends_on_size_kind_and_zoom(
    width: float, height: float, type_: str, zoom: float, expected: float
) -> None:
    shape = make_shape("s", width=width, height=height, type_=type_)

    assert max_binding_distance(shape, zoom) == pytest.approx(expected)


def test_corner_avoidance_offsets_along_a_single_axis() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=100)

    near_top_edge = avoid_rectangular_corner(shape, Point(-20, -2))
    near_left_edge = avoid_rectangular_corner(shape, Point(-2, -20))
    bottom_right = avoid_rectangular_corner(shape, Point(103, 130))

    assert close(near_top_edge, Point(-FIXED_BINDING_DISTANCE, 0))
    assert close(near_left_edge, Point(0, -FIXED_BINDING_DISTANCE))
    assert close(bottom_right, Point(100, 100 + FIXED_BINDING_DISTANCE))


def test_corner_avoidance_ignores_points_outside_corner_quadrants() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=100)

    assert avoid_rectangular_corner(shape, Point(120, 50)) == Point(120, 50)


def test_corner_avoidance_skips_non_rectangular_shapes() -> None:
    shape = make_shape("e", x=0, y=0, width=100, height=100, type_="ellipse")

    assert avoid_rectangular_corner(shape, Point(-20, -2)) == Point(-20, -2)


def test_snap_to_mid_pulls_points_to_side_midpoints() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=100)

    assert close(snap_to_mid(shape, Point(-3, 52)), Point(-FIXED_BINDING_DISTANCE, 50))
    assert close(snap_to_mid(shape, Point(52, 104)), Point(50, 100 + FIXED_BINDING_DISTANCE))
    assert snap_to_mid(shape, Point(20, 110)) == Point(20, 110)


def test_snap_to_outline_intersects_the_grown_outline_along_the_arrow() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=100)
    arrow = make_arrow("a", [(300, 50), (120, 50)])

    snapped = snap_to_outline(arrow, shape, "end")

    assert close(snapped, Point(100 + FIXED_BINDING_DISTANCE, 50))


def test_snap_to_outline_moves_elbow_endpoints_to_the_side_midpoint() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=100)
    arrow = make_arrow("a", [(300, 48), (120, 48)], elbowed=True)

    snapped = snap_to_outline(arrow, shape, "end")

    assert close(snapped, Point(100 + FIXED_BINDING_DISTANCE, 50))


def test_snap_to_outline_keeps_single_point_arrows() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=100)
    arrow = make_arrow("a", [(120, 48)])

    assert snap_to_outline(arrow, shape, "start") == Point(120, 48)


def test_update_bound_point_keeps_inside_bindings_on_the_fixed_point() -> None:
    shape = make_shape("box", x=0, y=0, width=100, height=100)
    arrow = make_arrow("a", [(150, 50), (60, 50)], end="box", end_fixed_point=(0.6, 0.3), mode="inside")

    local = update_bound_point(arrow, "endBinding", arrow["endBinding"], shape)

    assert local is not None
    assert close(local, Point(60 - 150, 30 - 50))


def test_update_bound_point_follows_a_moved_shape_in_orbit_mode() -> None:
    shape = make_shape("box", x=200, y=0, width=100, height=100)
    arrow = make_arrow("a", [(0, 50), (95, 50)], end="box", end_fixed_point=(-0.05, 0.5001))

    local = update_bound_point(arrow, "endBinding", arrow["endBinding"], shape)

    assert local is not None
    assert close(local, Point(195, 0.01), tolerance=1e-3)


def test_update_bound_point_without_fixed_point_leaves_the_endpoint() -> None:
    shape = make_shape("box")
    arrow = make_arrow("a", [(150, 50), (60, 50)])

    assert update_bound_point(arrow, "endBinding", None, shape) is None
    assert update_bound_point(arrow, "endBinding", {"elementId": "box", "focus": 0.1, "gap": 4}, shape) is None


def test_arrow_local_fixed_points_resolve_against_both_targets(two_boxes: list[Element]) -> None:
    arrow = two_boxes[2]
    elements_map = {element["id"]: element for element in two_boxes}

    start, end = get_arrow_local_fixed_points(arrow, elements_map)

    assert close(start, Point(0, 0.01))
    assert close(end, Point(190, 0.01))


def test_arrow_local_fixed_points_fall_back_to_unbound_endpoints() -> None:
    arrow = make_arrow("a", [(10, 10), (60, 40)])

    start, end = get_arrow_local_fixed_points(arrow, {})

    assert (start, end) == (Point(0, 0), Point(50, 30))


def test_elbow_snap_heading_without_a_target_follows_the_segment() -> None:
    heading = get_heading_for_elbow_arrow_snap(Point(100, 0), Point(0, 0), None, Point(100, 0))

    assert heading is Heading.RIGHT


def test_elbow_snap_heading_uses_the_side_of_a_nearby_shape() -> None:
    box = make_shape("box", x=0, y=0, width=100, height=100)

    heading = get_heading_for_elbow_arrow_snap(Point(103, 50), Point(103, 200), box, Point(103, 50))

    assert heading is Heading.RIGHT


def test_elbow_snap_heading_points_away_from_a_distant_shape() -> None:
    box = make_shape("box", x=0, y=0, width=100, height=100)

    heading = get_heading_for_elbow_arrow_snap(Point(50, 300), Point(0, 300), box, Point(50, 300))

    assert heading is Heading.DOWN
