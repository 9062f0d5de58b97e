from __future__ import annotations

import math

from domain.element_types import ShapeKind, shape_kind
from domain.geometry import (
    Segment,
    bounds_for_points,
    distance,
    distance_sq,
    distance_to_segment,
    point_in_polygon,
    polygon_segments,
    rotate_point,
    segments_intersection,
)
from domain.models import FIXED_BINDING_DISTANCE, Bounds, Element, Point

ELLIPSE_SAMPLES = 96
_DEDUPE_DISTANCE_SQ = 1e-6


def local_points(element: Element) -> list[Point]:
    return [Point.from_sequence(point) for point in element.get("points") or []]


def element_center(element: Element) -> Point:
    if "points" in element and element.get("type") != "frame":
        points = local_points(element)
        if points:
            box = bounds_for_points(points)
            return Point(
                float(element.get("x", 0.0)) + box.center.x,
                float(element.get("y", 0.0)) + box.center.y,
            )
    return Point(
        float(element.get("x", 0.0)) + float(element.get("width", 0.0)) / 2,
        float(element.get("y", 0.0)) + float(element.get("height", 0.0)) / 2,
    )


def element_angle(element: Element) -> float:
    return float(element.get("angle") or 0.0)


class ShapeOutline:
    """Polygonal silhouette of a bindable element, evaluated in its unrotated frame."""

    kind: ShapeKind = ShapeKind.RECTANGLE

    def vertices(self, element: Element, offset: float = 0.0) -> list[Point]:
        raise NotImplementedError

    def closed(self, element: Element) -> bool:
        return True

    def intersect_segment(
        self, element: Element, segment: Segment, offset: float = 0.0
    ) -> list[Point]:
        center = element_center(element)
        angle = element_angle(element)
        local = Segment(
            rotate_point(segment.start, center, -angle),
            rotate_point(segment.end, center, -angle),
        )
        hits: list[Point] = []
        for edge in polygon_segments(self.vertices(element, offset), self.closed(element)):
            hit = segments_intersection(local, edge)
            if hit is None:
                continue
            if any(distance_sq(hit, seen) < _DEDUPE_DISTANCE_SQ for seen in hits):
                continue
            hits.append(hit)
        return [rotate_point(hit, center, angle) for hit in hits]

    def distance(self, element: Element, point: Point) -> float:
        local = rotate_point(point, element_center(element), -element_angle(element))
        edges = polygon_segments(self.vertices(element), self.closed(element))
        if not edges:
            return distance(local, element_center(element))
        return min(distance_to_segment(local, edge) for edge in edges)

    def contains(self, element: Element, point: Point) -> bool:
        if not self.closed(element):
            return False
        local = rotate_point(point, element_center(element), -element_angle(element))
        return point_in_polygon(local, self.vertices(element))

    def bounds(self, element: Element) -> Bounds:
        center = element_center(element)
        angle = element_angle(element)
        return bounds_for_points(
            rotate_point(vertex, center, angle) for vertex in self.vertices(element)
        )

    def avoid_corner(self, element: Element, point: Point) -> Point:
        return point


class RectangleOutline(ShapeOutline):
    kind = ShapeKind.RECTANGLE

    def vertices(self, element: Element, offset: float = 0.0) -> list[Point]:
        x = float(element.get("x", 0.0))
        y = float(element.get("y", 0.0))
        width = float(element.get("width", 0.0))
        height = float(element.get("height", 0.0))
        return [
            Point(x - offset, y - offset),
            Point(x + width + offset, y - offset),
            Point(x + width + offset, y + height + offset),
            Point(x - offset, y + height + offset),
        ]

    def avoid_corner(self, element: Element, point: Point) -> Point:
        gap = FIXED_BINDING_DISTANCE
        center = element_center(element)
        angle = element_angle(element)
        x = float(element.get("x", 0.0))
        y = float(element.get("y", 0.0))
        right = x + float(element.get("width", 0.0))
        bottom = y + float(element.get("height", 0.0))
        p = rotate_point(point, center, -angle)

        if p.x < x and p.y < y:
            # top left
            if p.y - y > -gap:
                snapped = Point(x - gap, y)
            else:
                snapped = Point(x, y - gap)
        elif p.x < x and p.y > bottom:
            # bottom left
            if p.x - x > -gap:
                snapped = Point(x, bottom + gap)
            else:
                snapped = Point(x - gap, bottom)
        elif p.x > right and p.y > bottom:
            # bottom right
            if p.x - right < gap:
                snapped = Point(right, bottom + gap)
            else:
                snapped = Point(right + gap, bottom)
        elif p.x > right and p.y < y:
            # top right
            if p.x - right < gap:
                snapped = Point(right, y - gap)
            else:
                snapped = Point(right + gap, y)
        else:
            return point
        return rotate_point(snapped, center, angle)


class FrameOutline(RectangleOutline):
    kind = ShapeKind.FRAME


class DiamondOutline(ShapeOutline):
    kind = ShapeKind.DIAMOND

    def vertices(self, element: Element, offset: float = 0.0) -> list[Point]:
        center = element_center(element)
        half_w = float(element.get("width", 0.0)) / 2
        half_h = float(element.get("height", 0.0)) / 2
        if offset and half_w > 0 and half_h > 0:
            edge = math.hypot(half_w, half_h)
            half_w, half_h = half_w + offset * edge / half_h, half_h + offset * edge / half_w
        elif offset:
            half_w, half_h = half_w + offset, half_h + offset
        return [
            Point(center.x, center.y - half_h),
            Point(center.x + half_w, center.y),
            Point(center.x, center.y + half_h),
            Point(center.x - half_w, center.y),
        ]


class EllipseOutline(ShapeOutline):
    kind = ShapeKind.ELLIPSE

    def vertices(self, element: Element, offset: float = 0.0) -> list[Point]:
        center = element_center(element)
        radius_x = float(element.get("width", 0.0)) / 2 + offset
        radius_y = float(element.get("height", 0.0)) / 2 + offset
        step = 2 * math.pi / ELLIPSE_SAMPLES
        return [
            Point(
                center.x + radius_x * math.cos(idx * step),
                center.y + radius_y * math.sin(idx * step),
            )
            for idx in range(ELLIPSE_SAMPLES)
        ]

    def intersect_segment(
        self, element: Element, segment: Segment, offset: float = 0.0
    ) -> list[Point]:
        center = element_center(element)
        angle = element_angle(element)
        radius_x = float(element.get("width", 0.0)) / 2 + offset
        radius_y = float(element.get("height", 0.0)) / 2 + offset
        if radius_x <= 0 or radius_y <= 0:
            return []
        start = rotate_point(segment.start, center, -angle)
        end = rotate_point(segment.end, center, -angle)
        sx = (start.x - center.x) / radius_x
        sy = (start.y - center.y) / radius_y
        dx = (end.x - start.x) / radius_x
        dy = (end.y - start.y) / radius_y
        a = dx * dx + dy * dy
        if a == 0:
            return []
        b = 2 * (sx * dx + sy * dy)
        c = sx * sx + sy * sy - 1
        discriminant = b * b - 4 * a * c
        if discriminant < 0:
            return []
        root = math.sqrt(discriminant)
        params = sorted({(-b - root) / (2 * a), (-b + root) / (2 * a)})
        hits = [
            Point(start.x + t * (end.x - start.x), start.y + t * (end.y - start.y))
            for t in params
            if 0.0 <= t <= 1.0
        ]
        return [rotate_point(hit, center, angle) for hit in hits]

    def contains(self, element: Element, point: Point) -> bool:
        center = element_center(element)
        radius_x = float(element.get("width", 0.0)) / 2
        radius_y = float(element.get("height", 0.0)) / 2
        if radius_x <= 0 or radius_y <= 0:
            return False
        local = rotate_point(point, center, -element_angle(element))
        return ((local.x - center.x) / radius_x) ** 2 + ((local.y - center.y) / radius_y) ** 2 <= 1

    def bounds(self, element: Element) -> Bounds:
        center = element_center(element)
        angle = element_angle(element)
        radius_x = float(element.get("width", 0.0)) / 2
        radius_y = float(element.get("height", 0.0)) / 2
        extent_x = math.hypot(radius_x * math.cos(angle), radius_y * math.sin(angle))
        extent_y = math.hypot(radius_x * math.sin(angle), radius_y * math.cos(angle))
        return Bounds(
            center.x - extent_x,
            center.y - extent_y,
            center.x + extent_x,
            center.y + extent_y,
        )


class FreeformOutline(ShapeOutline):
    kind = ShapeKind.FREEFORM

    def vertices(self, element: Element, offset: float = 0.0) -> list[Point]:
        origin_x = float(element.get("x", 0.0))
        origin_y = float(element.get("y", 0.0))
        return [Point(origin_x + p.x, origin_y + p.y) for p in local_points(element)]

    def closed(self, element: Element) -> bool:
        return len(element.get("points") or []) > 2


_OUTLINES: dict[ShapeKind, ShapeOutline] = {
    ShapeKind.RECTANGLE: RectangleOutline(),
    ShapeKind.FRAME: FrameOutline(),
    ShapeKind.DIAMOND: DiamondOutline(),
    ShapeKind.ELLIPSE: EllipseOutline(),
    ShapeKind.FREEFORM: FreeformOutline(),
}


def outline_for(element: Element) -> ShapeOutline:
    return _OUTLINES[shape_kind(element) or ShapeKind.RECTANGLE]


def intersect_element_with_line_segment(
    element: Element, segment: Segment, offset: float = 0.0
) -> list[Point]:
    return outline_for(element).intersect_segment(element, segment, offset)


def distance_to_element(element: Element, point: Point) -> float:
    return outline_for(element).distance(element, point)


def hit_element_itself(element: Element, point: Point, threshold: float = 0.0) -> bool:
    outline = outline_for(element)
    if outline.contains(element, point):
        return True
    return outline.distance(element, point) <= threshold


def get_element_bounds(element: Element) -> Bounds:
    if "points" in element and shape_kind(element) is None:
        center = element_center(element)
        angle = element_angle(element)
        origin_x = float(element.get("x", 0.0))
        origin_y = float(element.get("y", 0.0))
        return bounds_for_points(
            rotate_point(Point(origin_x + p.x, origin_y + p.y), center, angle)
            for p in local_points(element)
        )
    return outline_for(element).bounds(element)

