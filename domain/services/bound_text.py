from __future__ import annotations

from collections.abc import Mapping

from domain.element_types import is_deleted, is_linear_element, is_text_element
from domain.models import Element
from domain.ports.scene import SceneStore
from domain.services.linear_element import get_global_points, polyline_midpoint


def get_bound_text_element(
    element: Element | None, elements_map: Mapping[str, Element]
) -> Element | None:
    if not element:
        return None
    for ref in reversed(element.get("boundElements") or []):
        if ref.get("type") != "text":
            continue
        text = elements_map.get(ref.get("id"))
        if is_text_element(text) and not is_deleted(text) and text.get("containerId") == element.get("id"):
            return text
    return None


def handle_bind_text_resize(container: Element, scene: SceneStore) -> None:
    """Keep a connector label centered on the connector's midpoint."""
    if not is_linear_element(container):
        return
    text = get_bound_text_element(container, scene.get_non_deleted_elements_map())
    if text is None:
        return
    points = get_global_points(container)
    if not points:
        return
    center = polyline_midpoint(points)
    x = center.x - float(text.get("width", 0.0)) / 2
    y = center.y - float(text.get("height", 0.0)) / 2
    if text.get("x") == x and text.get("y") == y:
        return
    scene.mutate_element(text, {"x": x, "y": y})
