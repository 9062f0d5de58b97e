from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from domain.models import Bounds, Point

EPSILON = 1e-9


@dataclass(frozen=True)
class Segment:
    start: Point
    end: Point


def rotate_point(point: Point, center: Point, angle: float) -> Point:
    if not angle:
        return point
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    dx = point.x - center.x
    dy = point.y - center.y
    return Point(
        center.x + dx * cos_a - dy * sin_a,
        center.y + dx * sin_a + dy * cos_a,
    )


def vector_between(start: Point, end: Point) -> tuple[float, float]:
    return end.x - start.x, end.y - start.y


def normalize_vector(vector: tuple[float, float]) -> tuple[float, float]:
    length = math.hypot(vector[0], vector[1])
    if length == 0:
        return 0.0, 0.0
    return vector[0] / length, vector[1] / length


def point_along(origin: Point, direction: tuple[float, float], distance: float) -> Point:
    unit = normalize_vector(direction)
    return Point(origin.x + unit[0] * distance, origin.y + unit[1] * distance)


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def distance_sq(a: Point, b: Point) -> float:
    return (b.x - a.x) ** 2 + (b.y - a.y) ** 2


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def segments_intersection(first: Segment, second: Segment) -> Point | None:
    """Return the intersection of two closed segments, or None when they miss."""
    x1, y1 = first.start.x, first.start.y
    x2, y2 = first.end.x, first.end.y
    x3, y3 = second.start.x, second.start.y
    x4, y4 = second.end.x, second.end.y
    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < EPSILON:
        return None
    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom
    if -EPSILON <= t <= 1 + EPSILON and -EPSILON <= u <= 1 + EPSILON:
        return Point(x1 + t * (x2 - x1), y1 + t * (y2 - y1))
    return None


def distance_to_segment(point: Point, segment: Segment) -> float:
    sx, sy = segment.start.x, segment.start.y
    dx = segment.end.x - sx
    dy = segment.end.y - sy
    length_sq = dx * dx + dy * dy
    if length_sq < EPSILON:
        return distance(point, segment.start)
    t = clamp(((point.x - sx) * dx + (point.y - sy) * dy) / length_sq, 0.0, 1.0)
    return distance(point, Point(sx + t * dx, sy + t * dy))


def polygon_segments(vertices: Sequence[Point], closed: bool = True) -> list[Segment]:
    segments = [Segment(a, b) for a, b in zip(vertices, vertices[1:])]
    if closed and len(vertices) > 2:
        segments.append(Segment(vertices[-1], vertices[0]))
    return segments


def point_in_polygon(point: Point, vertices: Sequence[Point]) -> bool:
    inside = False
    count = len(vertices)
    if count < 3:
        return False
    j = count - 1
    for i in range(count):
        xi, yi = vertices[i].x, vertices[i].y
        xj, yj = vertices[j].x, vertices[j].y
        if (yi > point.y) != (yj > point.y):
            cross_x = (xj - xi) * (point.y - yi) / (yj - yi) + xi
            if point.x < cross_x:
                inside = not inside
        j = i
    return inside


def bounds_for_points(points: Iterable[Point]) -> Bounds:
    xs: list[float] = []
    ys: list[float] = []
    for point in points:
        xs.append(point.x)
        ys.append(point.y)
    if not xs:
        return Bounds(0.0, 0.0, 0.0, 0.0)
    return Bounds(min(xs), min(ys), max(xs), max(ys))


def do_bounds_intersect(first: Bounds | None, second: Bounds | None) -> bool:
    if first is None or second is None:
        return False
    return (
        first.min_x <= second.max_x
        and first.max_x >= second.min_x
        and first.min_y <= second.max_y
        and first.max_y >= second.min_y
    )


class Heading(Enum):
    RIGHT = (1, 0)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    UP = (0, -1)

    @property
    def vector(self) -> tuple[float, float]:
        return float(self.value[0]), float(self.value[1])


def vector_to_heading(vector: tuple[float, float]) -> Heading:
    x, y = vector
    abs_x = abs(x)
    abs_y = abs(y)
    if x > abs_y:
        return Heading.RIGHT
    if x <= -abs_y:
        return Heading.LEFT
    if y > abs_x:
        return Heading.DOWN
    return Heading.UP


def heading_is_horizontal(heading: Heading) -> bool:
    return heading in {Heading.LEFT, Heading.RIGHT}
