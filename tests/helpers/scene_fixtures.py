from __future__ import annotations

import math
from typing import Any

from domain.models import Element, Point


def make_shape(
    element_id: str,
    x: float = 0.0,
    y: float = 0.0,
    width: float = 100.0,
    height: float = 100.0,
    type_: str = "rectangle",
    **extra: Any,
) -> Element:
    element: Element = {
        "id": element_id,
        "type": type_,
        "x": x,
        "y": y,
        "width": width,
        "height": height,
        "angle": 0.0,
        "isDeleted": False,
        "boundElements": [],
        "version": 1,
        "versionNonce": 1,
    }
    element.update(extra)
    return element


def make_arrow(
    element_id: str,
    points: list[tuple[float, float]],
    start: str | None = None,
    end: str | None = None,
    start_fixed_point: tuple[float, float] = (1.0, 0.5001),
    end_fixed_point: tuple[float, float] = (0.0, 0.5001),
    mode: str = "orbit",
    **extra: Any,
) -> Element:
    """Arrow whose `points` are given in scene coordinates."""
    origin = points[0]
    local = [[px - origin[0], py - origin[1]] for px, py in points]
    xs = [point[0] for point in local]
    ys = [point[1] for point in local]
    element: Element = {
        "id": element_id,
        "type": "arrow",
        "x": origin[0],
        "y": origin[1],
        "width": max(xs) - min(xs),
        "height": max(ys) - min(ys),
        "angle": 0.0,
        "isDeleted": False,
        "points": local,
        "boundElements": None,
        "startBinding": None,
        "endBinding": None,
        "version": 1,
        "versionNonce": 1,
    }
    if start:
        element["startBinding"] = {
            "elementId": start,
            "mode": mode,
            "fixedPoint": list(start_fixed_point),
        }
    if end:
        element["endBinding"] = {
            "elementId": end,
            "mode": mode,
            "fixedPoint": list(end_fixed_point),
        }
    element.update(extra)
    return element


def make_label(element_id: str, container_id: str | None, **extra: Any) -> Element:
    return make_shape(
        element_id,
        width=40.0,
        height=20.0,
        type_="text",
        containerId=container_id,
        text=element_id,
        **extra,
    )


def link(shape: Element, *bound: Element) -> Element:
    """Add back-references from `shape` to each bound element."""
    refs = shape.get("boundElements") or []
    for item in bound:
        refs.append({"id": item["id"], "type": "text" if item["type"] == "text" else "arrow"})
    shape["boundElements"] = refs
    return shape


def endpoint(arrow: Element, index: int) -> Point:
    local = arrow["points"][index]
    return Point(arrow["x"] + local[0], arrow["y"] + local[1])


def close(a: Point, b: Point, tolerance: float = 1e-6) -> bool:
    return math.isclose(a.x, b.x, abs_tol=tolerance) and math.isclose(a.y, b.y, abs_tol=tolerance)


def bound_ids(element: Element) -> list[str]:
    return [ref["id"] for ref in element.get("boundElements") or []]
