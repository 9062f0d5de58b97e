from __future__ import annotations

from domain.geometry import Heading, rotate_point, vector_to_heading
from domain.models import Element, Point
from domain.services.shape_outline import element_angle, element_center


def heading_for_point_from_element(element: Element, point: Point) -> Heading:
    """Side of the element the point lies on, as the outward heading of that side.

    The element is split into four sectors by its bounding-box diagonals, so a
    wide shape hands out horizontal headings only near its short sides.
    """
    center = element_center(element)
    angle = element_angle(element)
    local = rotate_point(point, center, -angle)
    dx = local.x - center.x
    dy = local.y - center.y
    width = max(float(element.get("width", 0.0)), 1e-6)
    height = max(float(element.get("height", 0.0)), 1e-6)

    if abs(dx) * height >= abs(dy) * width:
        heading = Heading.RIGHT if dx >= 0 else Heading.LEFT
    else:
        heading = Heading.DOWN if dy >= 0 else Heading.UP
    if not angle:
        return heading
    origin = Point(0.0, 0.0)
    rotated = rotate_point(Point(*heading.vector), origin, angle)
    return vector_to_heading((rotated.x, rotated.y))
