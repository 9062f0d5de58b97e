from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from domain.element_types import (
    ShapeKind,
    binding_of,
    binding_target_id,
    is_elbow_arrow,
    is_rectanguloid_element,
    shape_kind,
)
from domain.geometry import (
    Heading,
    Segment,
    clamp,
    distance,
    distance_sq,
    heading_is_horizontal,
    point_along,
    rotate_point,
    vector_between,
    vector_to_heading,
)
from domain.models import (
    BINDING_HIGHLIGHT_THICKNESS,
    FIXED_BINDING_DISTANCE,
    PRECISION,
    Element,
    FixedPointBinding,
    Point,
    StartOrEnd,
)
from domain.services.heading import heading_for_point_from_element
from domain.services.linear_element import (
    get_point_at_index_global,
    point_from_absolute_coords,
)
from domain.services.shape_outline import (
    distance_to_element,
    element_angle,
    element_center,
    intersect_element_with_line_segment,
    local_points,
    outline_for,
)

FixedPoint = tuple[float, float]


def normalize_fixed_point(fixed_point: Sequence[float] | None) -> FixedPoint | None:
    """Never hand out an exact 0.5 ratio.

    A perfectly centered anchor makes the arrow heading flip on floating point
    noise, so such components are nudged to 0.5001.
    """
    if fixed_point is None:
        return None
    return tuple(  # type: ignore[return-value]
        0.5001 if abs(float(ratio) - 0.5) < PRECISION else float(ratio)
        for ratio in fixed_point[:2]
    )


def stored_fixed_point(binding: Mapping[str, Any] | None) -> FixedPoint | None:
    """Normalized `fixedPoint` of a stored binding, or None when absent or malformed."""
    if not binding or binding.get("fixedPoint") is None:
        return None
    try:
        record = FixedPointBinding.model_validate(binding)
    except ValidationError:
        return None
    return normalize_fixed_point(record.fixed_point)


def fixed_point_to_global(fixed_point: Sequence[float], element: Element) -> Point:
    fixed_x, fixed_y = normalize_fixed_point(fixed_point) or (0.0, 0.0)
    return rotate_point(
        Point(
            float(element.get("x", 0.0)) + float(element.get("width", 0.0)) * fixed_x,
            float(element.get("y", 0.0)) + float(element.get("height", 0.0)) * fixed_y,
        ),
        element_center(element),
        element_angle(element),
    )


def global_to_fixed_point(point: Point, element: Element) -> FixedPoint:
    unrotated = rotate_point(point, element_center(element), -element_angle(element))
    width = float(element.get("width", 0.0))
    height = float(element.get("height", 0.0))
    ratio_x = (unrotated.x - float(element.get("x", 0.0))) / width if width else 0.0
    ratio_y = (unrotated.y - float(element.get("y", 0.0))) / height if height else 0.0
    return normalize_fixed_point((ratio_x, ratio_y))  # type: ignore[return-value]


def max_binding_distance(element: Element, zoom: float | None = None) -> float:
    zoom_value = zoom if zoom and zoom < 1 else 1.0
    # aligns diamonds with rectangles of the same bounding box
    shape_ratio = 1 / math.sqrt(2) if shape_kind(element) is ShapeKind.DIAMOND else 1.0
    smaller_dimension = shape_ratio * min(
        float(element.get("width", 0.0)), float(element.get("height", 0.0))
    )
    return max(
        16.0,
        min(0.25 * smaller_dimension, 32.0),
        BINDING_HIGHLIGHT_THICKNESS / zoom_value + FIXED_BINDING_DISTANCE,
    )


def avoid_rectangular_corner(element: Element, point: Point) -> Point:
    if not is_rectanguloid_element(element):
        return point
    return outline_for(element).avoid_corner(element, point)


def snap_to_mid(element: Element, point: Point, tolerance: float = 0.05) -> Point:
    x = float(element.get("x", 0.0))
    y = float(element.get("y", 0.0))
    width = float(element.get("width", 0.0))
    height = float(element.get("height", 0.0))
    angle = element_angle(element)
    center = element_center(element)
    p = rotate_point(point, center, -angle)
    gap = FIXED_BINDING_DISTANCE

    # adaptive to the element size, within sane pixel limits
    vertical_threshold = clamp(tolerance * height, 5, 80)
    horizontal_threshold = clamp(tolerance * width, 5, 80)
    in_vertical_band = center.y - vertical_threshold < p.y < center.y + vertical_threshold
    in_horizontal_band = center.x - horizontal_threshold < p.x < center.x + horizontal_threshold

    if p.x <= x + width / 2 and in_vertical_band:
        return rotate_point(Point(x - gap, center.y), center, angle)
    if p.y <= y + height / 2 and in_horizontal_band:
        return rotate_point(Point(center.x, y - gap), center, angle)
    if p.x >= x + width / 2 and in_vertical_band:
        return rotate_point(Point(x + width + gap, center.y), center, angle)
    if p.y >= y + height / 2 and in_horizontal_band:
        return rotate_point(Point(center.x, y + height + gap), center, angle)

    if shape_kind(element) is ShapeKind.DIAMOND:
        radius = max(horizontal_threshold, vertical_threshold)
        edge_midpoints = (
            Point(x + width / 4 - gap, y + height / 4 - gap),
            Point(x + 3 * width / 4 + gap, y + height / 4 - gap),
            Point(x + width / 4 - gap, y + 3 * height / 4 + gap),
            Point(x + 3 * width / 4 + gap, y + 3 * height / 4 + gap),
        )
        for midpoint in edge_midpoints:
            if distance(midpoint, p) < radius:
                return rotate_point(midpoint, center, angle)

    return point


def _endpoint_index(linear_element: Element, start_or_end: StartOrEnd) -> int:
    return 0 if start_or_end == "start" else len(linear_element.get("points") or []) - 1


def snap_to_outline(
    linear_element: Element,
    bindable_element: Element,
    start_or_end: StartOrEnd,
    tolerance: float = 0.05,
) -> Point:
    points = local_points(linear_element)
    origin_x = float(linear_element.get("x", 0.0))
    origin_y = float(linear_element.get("y", 0.0))
    local = points[_endpoint_index(linear_element, start_or_end)]
    global_point = Point(origin_x + local.x, origin_y + local.y)

    if len(points) < 2:
        # new arrow creation, nothing to snap against
        return global_point

    edge_point = avoid_rectangular_corner(bindable_element, global_point)
    center = element_center(bindable_element)
    reach = max(float(bindable_element.get("width", 0.0)), float(bindable_element.get("height", 0.0))) * 2

    if is_elbow_arrow(linear_element):
        horizontal = heading_is_horizontal(
            heading_for_point_from_element(bindable_element, global_point)
        )
        snapped = snap_to_mid(bindable_element, edge_point, tolerance)
        other = Point(
            center.x if horizontal else snapped.x,
            center.y if not horizontal else snapped.y,
        )
        ray = Segment(other, point_along(other, vector_between(other, snapped), reach))
        hits = intersect_element_with_line_segment(
            bindable_element, ray, FIXED_BINDING_DISTANCE
        )
        intersection = min(hits, key=lambda hit: distance_sq(hit, other), default=None)
    else:
        adjacent_local = points[1 if start_or_end == "start" else len(points) - 2]
        adjacent = rotate_point(
            Point(origin_x + adjacent_local.x, origin_y + adjacent_local.y),
            element_center(linear_element),
            element_angle(linear_element),
        )
        ray = Segment(
            adjacent,
            point_along(
                adjacent,
                vector_between(adjacent, edge_point),
                distance(edge_point, adjacent) + reach,
            ),
        )
        hits = intersect_element_with_line_segment(
            bindable_element, ray, FIXED_BINDING_DISTANCE
        )
        intersection = min(hits, key=lambda hit: distance_sq(hit, adjacent), default=None)

    # too close to tell the direction from the intersection to the edge point
    if intersection is None or distance_sq(edge_point, intersection) < PRECISION:
        return edge_point
    return intersection


def get_outline_avoiding_point(
    linear_element: Element,
    bindable_element: Element | None,
    coords: Point,
    point_index: int,
) -> Point:
    if bindable_element is None:
        return coords
    points = [list(point) for point in linear_element.get("points") or []]
    points[point_index] = [
        coords.x - float(linear_element.get("x", 0.0)),
        coords.y - float(linear_element.get("y", 0.0)),
    ]
    return snap_to_outline(
        {**linear_element, "points": points},
        bindable_element,
        "start" if point_index == 0 else "end",
    )


def update_bound_point(
    linear_element: Element,
    start_or_end: str,
    binding: Mapping[str, Any] | None,
    bindable_element: Element,
) -> Point | None:
    """Local position of a bound endpoint after its host moved, or None to leave it."""
    if binding is None:
        return None
    points = linear_element.get("points") or []
    # only the other end of a two point line needs to follow
    if binding.get("elementId") != bindable_element.get("id") and len(points) > 2:
        return None
    fixed_point = stored_fixed_point(binding)
    if fixed_point is None:
        return None
    global_point = fixed_point_to_global(fixed_point, bindable_element)
    if binding.get("mode") == "orbit":
        global_point = get_outline_avoiding_point(
            linear_element,
            bindable_element,
            global_point,
            0 if start_or_end == "startBinding" else len(points) - 1,
        )
    return point_from_absolute_coords(linear_element, global_point)


def calculate_fixed_point_for_elbow_arrow_binding(
    linear_element: Element,
    hovered_element: Element,
    start_or_end: StartOrEnd,
) -> FixedPoint:
    snapped = snap_to_outline(linear_element, hovered_element, start_or_end)
    return global_to_fixed_point(snapped, hovered_element)


def calculate_fixed_point_for_non_elbow_arrow_binding(
    linear_element: Element,
    hovered_element: Element,
    start_or_end: StartOrEnd,
    focus_point: Point | None = None,
) -> FixedPoint:
    edge_point = focus_point or get_point_at_index_global(
        linear_element, 0 if start_or_end == "start" else -1
    )
    return global_to_fixed_point(edge_point, hovered_element)


def get_global_fixed_points(
    arrow: Element, elements_map: Mapping[str, Element]
) -> tuple[Point, Point]:
    result: list[Point] = []
    for prop, index in (("startBinding", 0), ("endBinding", -1)):
        binding = binding_of(arrow, prop)
        target_id = binding_target_id(arrow, prop)
        target = elements_map.get(target_id) if target_id else None
        fixed_point = stored_fixed_point(binding)
        if target is not None and fixed_point is not None:
            result.append(fixed_point_to_global(fixed_point, target))
        else:
            local = local_points(arrow)[index]
            result.append(
                Point(float(arrow.get("x", 0.0)) + local.x, float(arrow.get("y", 0.0)) + local.y)
            )
    return result[0], result[1]


def get_arrow_local_fixed_points(
    arrow: Element, elements_map: Mapping[str, Element]
) -> tuple[Point, Point]:
    start, end = get_global_fixed_points(arrow, elements_map)
    return point_from_absolute_coords(arrow, start), point_from_absolute_coords(arrow, end)


def get_heading_for_elbow_arrow_snap(
    point: Point,
    other_point: Point,
    bindable_element: Element | None,
    original_point: Point,
    zoom: float | None = None,
) -> Heading:
    other_heading = vector_to_heading(vector_between(other_point, point))
    if bindable_element is None:
        return other_heading
    gap = distance_to_element(bindable_element, original_point)
    if gap > max_binding_distance(bindable_element, zoom):
        return vector_to_heading(vector_between(element_center(bindable_element), point))
    return heading_for_point_from_element(bindable_element, point)
