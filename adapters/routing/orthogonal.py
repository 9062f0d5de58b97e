from __future__ import annotations

from dataclasses import dataclass

from domain.geometry import Heading, heading_is_horizontal, point_along
from domain.models import Point
from domain.ports.routing import ElbowRouter


@dataclass(frozen=True)
class RouterConfig:
    padding: float = 40.0


class OrthogonalRouter(ElbowRouter):
    """Three-segment elbow routes; no obstacle avoidance."""

    def __init__(self, config: RouterConfig | None = None) -> None:
        self.config = config or RouterConfig()

    def route(
        self,
        start: Point,
        end: Point,
        start_heading: Heading,
        end_heading: Heading,
    ) -> list[Point]:
        padding = self.config.padding
        exit_point = point_along(start, start_heading.vector, padding)
        entry_point = point_along(end, end_heading.vector, padding)

        if heading_is_horizontal(start_heading):
            mid_x = (exit_point.x + entry_point.x) / 2
            middle = [Point(mid_x, exit_point.y), Point(mid_x, entry_point.y)]
            if not heading_is_horizontal(end_heading):
                middle = [Point(entry_point.x, exit_point.y)]
        else:
            mid_y = (exit_point.y + entry_point.y) / 2
            middle = [Point(exit_point.x, mid_y), Point(entry_point.x, mid_y)]
            if heading_is_horizontal(end_heading):
                middle = [Point(exit_point.x, entry_point.y)]

        return _simplify([start, exit_point, *middle, entry_point, end])


def _simplify(points: list[Point]) -> list[Point]:
    deduped: list[Point] = []
    for point in points:
        if deduped and _same(deduped[-1], point):
            continue
        deduped.append(point)

    result: list[Point] = []
    for point in deduped:
        if len(result) >= 2 and _collinear(result[-2], result[-1], point):
            result[-1] = point
        else:
            result.append(point)
    return result


def _same(a: Point, b: Point) -> bool:
    return abs(a.x - b.x) < 1e-6 and abs(a.y - b.y) < 1e-6


def _collinear(a: Point, b: Point, c: Point) -> bool:
    cross = (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)
    return abs(cross) < 1e-6
