from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from domain.element_types import (
    binding_of,
    binding_target_id,
    is_arrow_element,
    is_bindable_element,
    is_elbow_arrow,
    is_linear_element,
)
from domain.models import (
    SUGGESTED_BINDINGS_LIMIT,
    BindMode,
    BoundElementRef,
    Element,
    FixedPointBinding,
    Point,
    StartOrEnd,
)
from domain.ports.routing import ElbowRouter
from domain.ports.scene import SceneStore
from domain.services.anchor import (
    calculate_fixed_point_for_elbow_arrow_binding,
    calculate_fixed_point_for_non_elbow_arrow_binding,
)
from domain.services.bound_elements import update_bound_elements
from domain.services.candidates import binding_border_test, get_hovered_element_for_binding
from domain.services.linear_element import get_point_at_index_global
from domain.services.shape_outline import hit_element_itself

logger = logging.getLogger(__name__)

StrategyMode = BindMode | Literal["keep"] | None


class _Unchanged:
    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED = _Unchanged()


@dataclass(frozen=True)
class BindingStrategy:
    """What to do with one connector end.

    `element` is `UNCHANGED` to leave the end alone, `None` to unbind it, or the
    shape to bind to; `mode` is the bind mode, `"keep"`, or `None` to unbind.
    """

    element: Element | None | _Unchanged = UNCHANGED
    mode: StrategyMode = "keep"


def _binding_prop(start_or_end: StartOrEnd) -> str:
    return "startBinding" if start_or_end == "start" else "endBinding"


def bind_or_unbind_linear_element(
    linear_element: Element,
    start_element: Element | None | _Unchanged,
    start_mode: StrategyMode,
    end_element: Element | None | _Unchanged,
    end_mode: StrategyMode,
    scene: SceneStore,
) -> None:
    for start_or_end, element, mode in (
        ("start", start_element, start_mode),
        ("end", end_element, end_mode),
    ):
        if mode == "keep" or element is UNCHANGED:
            continue
        if element is None or mode is None:
            unbind_linear_element(linear_element, start_or_end, scene)
        else:
            bind_linear_element(linear_element, element, mode, start_or_end, scene)


def _hovered_element_and_if_its_precise(
    linear_element: Element,
    elements: Sequence[Element],
    zoom: float | None,
    point_index: int,
    precise_hit_threshold: float,
) -> tuple[Element | None, bool]:
    point = get_point_at_index_global(linear_element, point_index)
    hovered = get_hovered_element_for_binding(point, elements, zoom)
    hit = hovered is not None and hit_element_itself(hovered, point, precise_hit_threshold)
    return hovered, hit


def get_binding_strategy_for_dragging_arrow_endpoints(
    linear_element: Element,
    is_binding_enabled: bool,
    dragging_points: Sequence[int],
    elements: Sequence[Element],
    zoom: float | None = None,
    global_bind_mode: BindMode | None = None,
    precise_hit_threshold: float = 0.0,
) -> tuple[BindingStrategy, BindingStrategy]:
    end_index = len(linear_element.get("points") or []) - 1
    start_dragged = 0 in dragging_points
    end_dragged = end_index in dragging_points

    # reattaching both ends at once is ambiguous
    if start_dragged and end_dragged:
        return BindingStrategy(None, None), BindingStrategy(None, None)

    strategies: list[BindingStrategy] = []
    for dragged, index in ((start_dragged, 0), (end_dragged, end_index)):
        if not (dragged and is_binding_enabled):
            strategies.append(BindingStrategy())
            continue
        hovered, hit = _hovered_element_and_if_its_precise(
            linear_element, elements, zoom, index, precise_hit_threshold
        )
        mode: BindMode = "inside" if global_bind_mode or hit else "orbit"
        strategies.append(BindingStrategy(hovered, mode))
    return strategies[0], strategies[1]


def bind_or_unbind_linear_elements(
    selected_elements: Iterable[Element],
    is_binding_enabled: bool,
    dragging_points: Sequence[int],
    scene: SceneStore,
    zoom: float | None = None,
    global_bind_mode: BindMode | None = None,
    precise_hit_threshold: float = 0.0,
) -> None:
    for selected in selected_elements:
        if not dragging_points:
            bind_or_unbind_linear_element(selected, None, "orbit", None, "orbit", scene)
            continue
        start, end = get_binding_strategy_for_dragging_arrow_endpoints(
            selected,
            is_binding_enabled,
            dragging_points,
            scene.get_non_deleted_elements(),
            zoom,
            global_bind_mode,
            precise_hit_threshold,
        )
        bind_or_unbind_linear_element(
            selected, start.element, start.mode, end.element, end.mode, scene
        )


def _original_bindings_if_still_close_to_arrow_ends(
    linear_element: Element,
    scene: SceneStore,
    zoom: float | None,
) -> list[Element | None]:
    elements_map = scene.get_non_deleted_elements_map()
    result: list[Element | None] = []
    for prop, index in (("startBinding", 0), ("endBinding", -1)):
        target_id = binding_target_id(linear_element, prop)
        target = elements_map.get(target_id) if target_id else None
        if (
            target is not None
            and is_bindable_element(target)
            and binding_border_test(target, get_point_at_index_global(linear_element, index), zoom)
        ):
            result.append(target)
        else:
            result.append(None)
    return result


def get_suggested_bindings_for_arrows(
    selected_elements: Sequence[Element],
    scene: SceneStore,
    zoom: float | None = None,
    limit: int = SUGGESTED_BINDINGS_LIMIT,
) -> list[Element]:
    if len(selected_elements) > limit:
        logger.debug("Skipping binding suggestions for %d selected elements", len(selected_elements))
        return []
    selected_ids = {element.get("id") for element in selected_elements}
    suggestions: list[Element] = []
    seen: set[str] = set()
    for element in selected_elements:
        if not is_linear_element(element):
            continue
        for candidate in _original_bindings_if_still_close_to_arrow_ends(element, scene, zoom):
            # a shape dragged along with its arrow is not a suggestion
            if candidate is None or candidate["id"] in selected_ids or candidate["id"] in seen:
                continue
            seen.add(candidate["id"])
            suggestions.append(candidate)
    return suggestions


def maybe_suggest_bindings_for_linear_element_at_coords(
    linear_element: Element,
    start_or_end_or_both: Literal["start", "end", "both"],
    scene: SceneStore,
    zoom: float | None = None,
) -> list[Element]:
    elements = scene.get_non_deleted_elements()
    start_coords = get_point_at_index_global(linear_element, 0)
    end_coords = get_point_at_index_global(linear_element, -1)
    start_hovered = get_hovered_element_for_binding(start_coords, elements, zoom)
    end_hovered = get_hovered_element_for_binding(end_coords, elements, zoom)

    if start_hovered is not None and end_hovered is not None and start_hovered["id"] == end_hovered["id"]:
        if hit_element_itself(start_hovered, start_coords) and hit_element_itself(
            end_hovered, end_coords
        ):
            return [start_hovered]
        return []
    if start_or_end_or_both == "start" and start_hovered is not None:
        return [start_hovered]
    if start_or_end_or_both == "end" and end_hovered is not None:
        return [end_hovered]
    return []


def bind_linear_element(
    linear_element: Element,
    hovered_element: Element,
    mode: BindMode,
    start_or_end: StartOrEnd,
    scene: SceneStore,
    focus_point: Point | None = None,
) -> None:
    if not is_arrow_element(linear_element):
        return

    previous_id = binding_target_id(linear_element, _binding_prop(start_or_end))
    if previous_id is not None and previous_id != hovered_element["id"]:
        unbind_linear_element(linear_element, start_or_end, scene)

    if is_elbow_arrow(linear_element):
        binding = FixedPointBinding(
            element_id=hovered_element["id"],
            mode="orbit",
            fixed_point=calculate_fixed_point_for_elbow_arrow_binding(
                linear_element, hovered_element, start_or_end
            ),
        )
    else:
        binding = FixedPointBinding(
            element_id=hovered_element["id"],
            mode=mode,
            fixed_point=calculate_fixed_point_for_non_elbow_arrow_binding(
                linear_element, hovered_element, start_or_end, focus_point
            ),
        )
    scene.mutate_element(linear_element, {_binding_prop(start_or_end): binding.to_dict()})

    refs = hovered_element.get("boundElements") or []
    if not any(ref.get("id") == linear_element["id"] for ref in refs):
        new_ref = BoundElementRef(id=linear_element["id"], type="arrow")
        scene.mutate_element(hovered_element, {"boundElements": [*refs, new_ref.to_dict()]})


def is_linear_element_simple(linear_element: Element) -> bool:
    return len(linear_element.get("points") or []) < 3 and not is_elbow_arrow(linear_element)


def is_linear_element_simple_and_already_bound(
    linear_element: Element,
    already_bound_to_id: str | None,
    bindable_element: Element,
) -> bool:
    return already_bound_to_id == bindable_element.get("id") and is_linear_element_simple(
        linear_element
    )


def unbind_linear_element(
    linear_element: Element,
    start_or_end: StartOrEnd,
    scene: SceneStore,
) -> str | None:
    prop = _binding_prop(start_or_end)
    binding = binding_of(linear_element, prop)
    if binding is None:
        return None
    target_id = binding.get("elementId")
    opposite = binding_target_id(
        linear_element, "endBinding" if prop == "startBinding" else "startBinding"
    )
    # the other end still needs the back-reference when it shares the shape
    if opposite != target_id:
        bound = scene.get_non_deleted_elements_map().get(target_id)
        if bound is not None and bound.get("boundElements") is not None:
            scene.mutate_element(
                bound,
                {
                    "boundElements": [
                        ref for ref in bound["boundElements"] if ref.get("id") != linear_element["id"]
                    ]
                },
            )
    scene.mutate_element(linear_element, {prop: None})
    return target_id


def update_bindings(
    latest_element: Element,
    scene: SceneStore,
    zoom: float | None = None,
    simultaneously_updated: Iterable[Element] | None = None,
    router: ElbowRouter | None = None,
) -> None:
    if is_linear_element(latest_element):
        bind_or_unbind_linear_elements([latest_element], True, [], scene, zoom)
    else:
        update_bound_elements(
            latest_element,
            scene,
            simultaneously_updated=simultaneously_updated,
            changed_elements=[latest_element],
            router=router,
        )
