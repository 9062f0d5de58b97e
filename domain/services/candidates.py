from __future__ import annotations

from collections.abc import Sequence

from domain.element_types import is_bindable_element, is_frame_like_element
from domain.geometry import Segment, do_bounds_intersect
from domain.models import Bounds, Element, Point
from domain.services.anchor import max_binding_distance
from domain.services.shape_outline import (
    distance_to_element,
    element_center,
    get_element_bounds,
    intersect_element_with_line_segment,
)


def binding_border_test(element: Element, point: Point, zoom: float | None = None) -> bool:
    threshold = max_binding_distance(element, zoom)
    # cheap rejection before touching the outline
    probe = Bounds(point.x, point.y, point.x, point.y).expanded(threshold)
    if not do_bounds_intersect(probe, get_element_bounds(element)):
        return False

    intersections = intersect_element_with_line_segment(
        element, Segment(element_center(element), point)
    )
    gap = distance_to_element(element, point)
    if is_frame_like_element(element):
        # frames never take full-body hits so their children stay reachable
        return bool(intersections) and gap <= threshold
    return not intersections or gap <= threshold


def get_hovered_element_for_binding(
    point: Point,
    elements: Sequence[Element],
    zoom: float | None = None,
) -> Element | None:
    """Bindable element under `point`, preferring the smallest of overlapping candidates.

    `elements` must be in draw order and contain no deleted elements.
    """
    candidates: list[Element] = []
    for element in reversed(elements):
        if element.get("isDeleted"):
            msg = f"Deleted element passed to binding candidate selection: {element.get('id')}"
            raise ValueError(msg)
        if is_bindable_element(element, include_locked=False) and binding_border_test(
            element, point, zoom
        ):
            candidates.append(element)

    if not candidates:
        return None
    return min(
        candidates,
        key=lambda item: float(item.get("width", 0.0)) ** 2 + float(item.get("height", 0.0)) ** 2,
    )


find_bindable_at = get_hovered_element_for_binding


def get_distance_for_binding(
    point: Point, element: Element, zoom: float | None = None
) -> float | None:
    gap = distance_to_element(element, point)
    return None if gap > max_binding_distance(element, zoom) else gap
