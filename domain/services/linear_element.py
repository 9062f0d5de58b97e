from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from domain.element_types import binding_target_id, is_deleted, is_elbow_arrow
from domain.geometry import (
    Heading,
    bounds_for_points,
    rotate_point,
    vector_between,
    vector_to_heading,
)
from domain.models import Element, Point
from domain.ports.routing import ElbowRouter
from domain.ports.scene import SceneStore
from domain.services.heading import heading_for_point_from_element
from domain.services.shape_outline import element_angle, element_center, local_points

logger = logging.getLogger(__name__)


def _resolve_index(element: Element, index: int) -> int:
    count = len(element.get("points") or [])
    return index if index >= 0 else count + index


def get_point_at_index_global(element: Element, index: int) -> Point:
    points = local_points(element)
    local = points[_resolve_index(element, index)]
    absolute = Point(float(element.get("x", 0.0)) + local.x, float(element.get("y", 0.0)) + local.y)
    return rotate_point(absolute, element_center(element), element_angle(element))


def get_global_points(element: Element) -> list[Point]:
    center = element_center(element)
    angle = element_angle(element)
    origin_x = float(element.get("x", 0.0))
    origin_y = float(element.get("y", 0.0))
    return [
        rotate_point(Point(origin_x + p.x, origin_y + p.y), center, angle)
        for p in local_points(element)
    ]


def point_from_absolute_coords(element: Element, point: Point) -> Point:
    unrotated = rotate_point(point, element_center(element), -element_angle(element))
    return Point(
        unrotated.x - float(element.get("x", 0.0)),
        unrotated.y - float(element.get("y", 0.0)),
    )


def updates_from_global_points(element: Element, global_points: list[Point]) -> dict[str, Any]:
    """Rebuild x/y/points/width/height so the element renders at `global_points`.

    The first local point stays at the origin and the rotation center is the
    center of the new unrotated bounding box.
    """
    angle = element_angle(element)
    origin = Point(0.0, 0.0)
    unrotated_about_origin = [rotate_point(p, origin, -angle) for p in global_points]
    center = rotate_point(bounds_for_points(unrotated_about_origin).center, origin, angle)
    unrotated = [rotate_point(p, center, -angle) for p in global_points]
    first = unrotated[0]
    points = [[p.x - first.x, p.y - first.y] for p in unrotated]
    box = bounds_for_points(unrotated)
    return {
        "x": first.x,
        "y": first.y,
        "points": points,
        "width": box.width,
        "height": box.height,
    }


def move_points(
    element: Element,
    scene: SceneStore,
    updates: Mapping[int, Point],
    router: ElbowRouter | None = None,
    move_mid_points_with_element: bool = False,
) -> None:
    """Move points (given in the element's local space) and keep the origin normalised."""
    if not updates:
        return
    points = local_points(element)
    if not points:
        return
    current = get_global_points(element)
    center = element_center(element)
    angle = element_angle(element)
    origin_x = float(element.get("x", 0.0))
    origin_y = float(element.get("y", 0.0))
    target = list(current)
    for raw_index, local in updates.items():
        index = _resolve_index(element, raw_index)
        if 0 <= index < len(target):
            target[index] = rotate_point(
                Point(origin_x + local.x, origin_y + local.y), center, angle
            )

    if move_mid_points_with_element and 0 in updates and len(target) > 2:
        dx = target[0].x - current[0].x
        dy = target[0].y - current[0].y
        for index in range(1, len(target) - 1):
            target[index] = Point(current[index].x + dx, current[index].y + dy)

    if is_elbow_arrow(element) and router is not None:
        scene.mutate_element(
            element,
            route_elbow_arrow(element, target[0], target[-1], scene.get_elements_map(), router),
        )
        return
    if is_elbow_arrow(element):
        logger.debug("No router available, moving elbow arrow %s endpoints only", element.get("id"))
    scene.mutate_element(element, updates_from_global_points(element, target))


def _endpoint_heading(
    element: Element,
    prop: str,
    point: Point,
    other: Point,
    elements_map: Mapping[str, Element],
) -> Heading:
    target_id = binding_target_id(element, prop)
    target = elements_map.get(target_id) if target_id else None
    if target is not None and not is_deleted(target):
        return heading_for_point_from_element(target, point)
    return vector_to_heading(vector_between(other, point))


def route_elbow_arrow(
    element: Element,
    start: Point,
    end: Point,
    elements_map: Mapping[str, Element],
    router: ElbowRouter,
) -> dict[str, Any]:
    start_heading = _endpoint_heading(element, "startBinding", start, end, elements_map)
    end_heading = _endpoint_heading(element, "endBinding", end, start, elements_map)
    route = router.route(start, end, start_heading, end_heading)
    if len(route) < 2:
        route = [start, end]
    # elbow arrows are never rotated
    return updates_from_global_points({**element, "angle": 0}, route)


def polyline_midpoint(points: list[Point]) -> Point:
    if len(points) == 1:
        return points[0]
    lengths = [math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(points, points[1:])]
    half = sum(lengths) / 2
    for (a, b), length in zip(zip(points, points[1:]), lengths):
        if half <= length and length > 0:
            ratio = half / length
            return Point(a.x + (b.x - a.x) * ratio, a.y + (b.y - a.y) * ratio)
        half -= length
    return points[-1]
