from __future__ import annotations

import pytest

from domain.models import Point
from domain.services.candidates import (
    binding_border_test,
    find_bindable_at,
    get_distance_for_binding,
    get_hovered_element_for_binding,
)
from tests.helpers.scene_fixtures import make_label, make_shape


def test_smaller_nested_shape_wins_over_the_shape_drawn_above_it() -> None:
    small = make_shape("small", x=40, y=40, width=20, height=20)
    big = make_shape("big", x=0, y=0, width=100, height=100)

    hovered = get_hovered_element_for_binding(Point(48, 52), [small, big])

    assert hovered is small


def test_point_far_from_every_shape_hovers_nothing() -> None:
    box = make_shape("box", x=0, y=0, width=100, height=100)

    assert get_hovered_element_for_binding(Point(400, 400), [box]) is None


def test_point_just_outside_the_outline_is_within_binding_reach() -> None:
    box = make_shape("box", x=0, y=0, width=100, height=100)

    assert get_hovered_element_for_binding(Point(115, 50), [box]) is box
    assert get_hovered_element_for_binding(Point(130, 50), [box]) is None


def test_frames_bind_only_near_their_border_from_outside() -> None:
    frame = make_shape("frame", x=0, y=0, width=200, height=200, type_="frame")

    assert get_hovered_element_for_binding(Point(90, 110), [frame]) is None
    assert get_hovered_element_for_binding(Point(205, 100), [frame]) is frame


def test_locked_shapes_and_container_labels_are_skipped() -> None:
    locked = make_shape("locked", x=0, y=0, width=100, height=100, locked=True)
    label = make_label("label", "locked", x=30, y=40)

    assert get_hovered_element_for_binding(Point(45, 48), [locked, label]) is None


def test_deleted_elements_violate_the_candidate_contract() -> None:
    deleted = make_shape("gone", isDeleted=True)

    with pytest.raises(ValueError, match="Deleted element"):
        get_hovered_element_for_binding(Point(10, 10), [deleted])


def test_binding_border_test_uses_the_zoom_adjusted_threshold() -> None:
    box = make_shape("box", x=0, y=0, width=100, height=100)

    assert not binding_border_test(box, Point(135, 50), zoom=1.0)
    assert binding_border_test(box, Point(135, 50), zoom=0.25)


def test_distance_for_binding_is_none_out_of_reach() -> None:
    box = make_shape("box", x=0, y=0, width=100, height=100)

    assert get_distance_for_binding(Point(110, 50), box) == pytest.approx(10.0)
    assert get_distance_for_binding(Point(200, 50), box) is None


def test_find_bindable_at_hits_the_topmost_of_equal_shapes() -> None:
    below = make_shape("below", x=0, y=0)
    above = make_shape("above", x=0, y=0)

    assert find_bindable_at(Point(50, 50), [below, above]) is above
