from __future__ import annotations

from enum import Enum
from typing import Any

from domain.models import Element


class ShapeKind(str, Enum):
    RECTANGLE = "rectangle"
    DIAMOND = "diamond"
    ELLIPSE = "ellipse"
    FREEFORM = "freeform"
    FRAME = "frame"


_SHAPE_KINDS: dict[str, ShapeKind] = {
    "rectangle": ShapeKind.RECTANGLE,
    "text": ShapeKind.RECTANGLE,
    "image": ShapeKind.RECTANGLE,
    "iframe": ShapeKind.RECTANGLE,
    "embeddable": ShapeKind.RECTANGLE,
    "diamond": ShapeKind.DIAMOND,
    "ellipse": ShapeKind.ELLIPSE,
    "freedraw": ShapeKind.FREEFORM,
    "frame": ShapeKind.FRAME,
    "magicframe": ShapeKind.FRAME,
}

LINEAR_TYPES = frozenset({"arrow", "line"})
RECTANGULOID_KINDS = frozenset({ShapeKind.RECTANGLE, ShapeKind.FRAME})


def shape_kind(element: Element | None) -> ShapeKind | None:
    if not element:
        return None
    return _SHAPE_KINDS.get(str(element.get("type") or ""))


def is_linear_element(element: Element | None) -> bool:
    return bool(element) and element.get("type") in LINEAR_TYPES


def is_arrow_element(element: Element | None) -> bool:
    return bool(element) and element.get("type") == "arrow"


def is_elbow_arrow(element: Element | None) -> bool:
    return is_arrow_element(element) and bool(element.get("elbowed"))


def is_text_element(element: Element | None) -> bool:
    return bool(element) and element.get("type") == "text"


def is_bound_to_container(element: Element | None) -> bool:
    return is_text_element(element) and bool(element.get("containerId"))


def is_frame_like_element(element: Element | None) -> bool:
    return shape_kind(element) is ShapeKind.FRAME


def is_rectanguloid_element(element: Element | None) -> bool:
    return shape_kind(element) in RECTANGULOID_KINDS


def is_bindable_element(element: Element | None, include_locked: bool = True) -> bool:
    if not element or shape_kind(element) is None:
        return False
    if not include_locked and element.get("locked"):
        return False
    return not is_bound_to_container(element)


def is_deleted(element: Element | None) -> bool:
    return not element or bool(element.get("isDeleted"))


def binding_of(element: Element, prop: str) -> dict[str, Any] | None:
    binding = element.get(prop)
    return binding if isinstance(binding, dict) else None


def binding_target_id(element: Element, prop: str) -> str | None:
    """Target id held in a binding field, whatever its shape on disk."""
    if prop in {"startBinding", "endBinding"}:
        binding = binding_of(element, prop)
        target = binding.get("elementId") if binding else None
    else:
        target = element.get(prop)
    return target if isinstance(target, str) and target else None


def can_host_bound_elements(element: Element | None) -> bool:
    """Shapes host connectors and labels; connectors host their own label."""
    return is_bindable_element(element) or is_linear_element(element)
