from __future__ import annotations

from typing import Protocol

from domain.geometry import Heading
from domain.models import Point


class ElbowRouter(Protocol):
    def route(
        self,
        start: Point,
        end: Point,
        start_heading: Heading,
        end_heading: Heading,
    ) -> list[Point]:
        ...
