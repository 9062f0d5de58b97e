from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import ValidationError

from domain.element_types import (
    binding_of,
    binding_target_id,
    can_host_bound_elements,
    is_arrow_element,
    is_bindable_element,
    is_bound_to_container,
    is_deleted,
    is_elbow_arrow,
    is_linear_element,
    is_text_element,
)
from domain.geometry import do_bounds_intersect
from domain.models import Element, FixedPointBinding, Point
from domain.ports.routing import ElbowRouter
from domain.ports.scene import ElementUpdater, SceneStore
from domain.services.anchor import (
    calculate_fixed_point_for_non_elbow_arrow_binding,
    get_global_fixed_points,
    stored_fixed_point,
    update_bound_point,
)
from domain.services.bound_text import get_bound_text_element, handle_bind_text_resize
from domain.services.linear_element import (
    get_global_points,
    move_points,
    route_elbow_arrow,
    updates_from_global_points,
)
from domain.services.shape_outline import get_element_bounds

logger = logging.getLogger(__name__)

T = TypeVar("T")
BoundElementsVisit = Callable[[Element | None, str, str], None]
BindableElementsVisit = Callable[[Element | None, str, str], T]


def mutate_in_place(element: Element, updates: Mapping[str, Any]) -> None:
    element.update(updates)
    element["version"] = int(element.get("version") or 0) + 1
    element["versionNonce"] = random.randint(1, 2**31 - 1)


class StagedUpdates(Mapping[str, Element]):
    """Element map that records updates instead of applying them.

    Reads return the element merged with everything staged for it so far, so a
    pass sees its own earlier decisions while the real elements stay untouched
    until `commit`.
    """

    def __init__(self, elements: Mapping[str, Element]) -> None:
        self._elements = elements
        self._pending: dict[str, dict[str, Any]] = {}

    def __getitem__(self, key: str) -> Element:
        base = self._elements[key]
        pending = self._pending.get(key)
        return {**base, **pending} if pending else base

    def __iter__(self) -> Iterator[str]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    @property
    def pending(self) -> dict[str, dict[str, Any]]:
        return self._pending

    def stage(self, element: Element, updates: Mapping[str, Any]) -> None:
        element_id = element.get("id")
        if not isinstance(element_id, str):
            return
        self._pending.setdefault(element_id, {}).update(updates)

    def commit(self, update_element_with: ElementUpdater) -> int:
        applied = 0
        for element_id, updates in self._pending.items():
            element = self._elements.get(element_id)
            if element is None:
                continue
            update_element_with(element, updates)
            applied += 1
        self._pending = {}
        return applied


def new_bound_elements(
    bound_elements: Sequence[Mapping[str, Any]] | None,
    ids_to_remove: set[str],
    elements_to_add: Iterable[Element] = (),
) -> list[dict[str, Any]] | None:
    if bound_elements is None:
        return None
    next_bound = [dict(ref) for ref in bound_elements if ref.get("id") not in ids_to_remove]
    next_bound.extend({"id": item["id"], "type": item["type"]} for item in elements_to_add)
    return next_bound


def bound_elements_visitor(
    elements: Mapping[str, Element],
    element: Element,
    visit: BoundElementsVisit,
) -> None:
    """Visit every id in `boundElements`, found or not."""
    if not can_host_bound_elements(element):
        return
    # copy, so mutations made while visiting don't change the order
    for ref in list(element.get("boundElements") or []):
        ref_id = ref.get("id")
        if isinstance(ref_id, str):
            visit(elements.get(ref_id), "boundElements", ref_id)


def bindable_elements_visitor(
    elements: Mapping[str, Element],
    element: Element,
    visit: BindableElementsVisit[T],
) -> list[T]:
    """Visit every element referenced by `frameId`, `containerId` and the arrow bindings."""
    result: list[T] = []
    props: list[str] = ["frameId"]
    if is_bound_to_container(element):
        props.append("containerId")
    if is_arrow_element(element):
        props.extend(["startBinding", "endBinding"])
    for prop in props:
        target_id = binding_target_id(element, prop)
        if target_id:
            result.append(visit(elements.get(target_id), prop, target_id))
    return result


class BoundElement:
    """The side holding `frameId`, `containerId`, `startBinding` or `endBinding`."""

    @staticmethod
    def unbind_affected(
        elements: Mapping[str, Element],
        bound_element: Element | None,
        update_element_with: ElementUpdater,
    ) -> None:
        """Remove `bound_element` from the `boundElements` of every live element it points at."""
        if not bound_element:
            return
        bound_id = bound_element.get("id")

        def visit_bindable(bindable: Element | None, _prop: str, _target_id: str) -> None:
            if bindable is None or is_deleted(bindable):
                return

            def visit_bound(_item: Element | None, _bound_prop: str, item_id: str) -> None:
                if item_id == bound_id:
                    current = elements.get(bindable["id"], bindable)
                    update_element_with(
                        bindable,
                        {
                            "boundElements": new_bound_elements(
                                current.get("boundElements"), {item_id}
                            )
                        },
                    )

            bound_elements_visitor(elements, bindable, visit_bound)

        bindable_elements_visitor(elements, bound_element, visit_bindable)

    @staticmethod
    def rebind_affected(
        elements: Mapping[str, Element],
        bound_element: Element | None,
        update_element_with: ElementUpdater,
    ) -> None:
        """Restore back-references for a live element; drop bindings into deleted elements.

        Expects the affected elements to have been unbound with `unbind_affected` before.
        """
        if not bound_element or is_deleted(bound_element):
            return

        def visit_bindable(bindable: Element | None, prop: str, _target_id: str) -> None:
            if bindable is None or is_deleted(bindable):
                update_element_with(bound_element, {prop: None})
                return
            # frame membership is one-way
            if prop == "frameId":
                return
            current = elements.get(bindable["id"], bindable)
            refs = current.get("boundElements") or []
            if any(ref.get("id") == bound_element["id"] for ref in refs):
                return
            if is_arrow_element(bound_element):
                update_element_with(
                    bindable,
                    {"boundElements": new_bound_elements(refs, set(), [bound_element])},
                )
            elif is_text_element(bound_element):
                if not any(ref.get("type") == "text" for ref in refs):
                    update_element_with(
                        bindable,
                        {"boundElements": new_bound_elements(refs, set(), [bound_element])},
                    )
                else:
                    update_element_with(bound_element, {prop: None})

        bindable_elements_visitor(elements, bound_element, visit_bindable)


class BindableElement:
    """The side holding `boundElements`."""

    @staticmethod
    def unbind_affected(
        elements: Mapping[str, Element],
        bindable_element: Element | None,
        update_element_with: ElementUpdater,
    ) -> None:
        """Reset the field of every live bound element that points at `bindable_element`."""
        if not bindable_element:
            return
        bindable_id = bindable_element.get("id")

        def visit_bound(bound: Element | None, _prop: str, _bound_id: str) -> None:
            if bound is None or is_deleted(bound):
                return

            def visit_bindable(_target: Element | None, prop: str, target_id: str) -> None:
                if target_id == bindable_id:
                    update_element_with(bound, {prop: None})

            bindable_elements_visitor(elements, bound, visit_bindable)

        bound_elements_visitor(elements, bindable_element, visit_bound)

    @staticmethod
    def rebind_affected(
        elements: Mapping[str, Element],
        bindable_element: Element | None,
        update_element_with: ElementUpdater,
    ) -> None:
        """Prune references to deleted elements and settle which label is current.

        The last text reference wins; earlier labels get detached.
        """
        if not bindable_element or is_deleted(bindable_element):
            return
        bindable_id = bindable_element["id"]

        def current_refs() -> list[dict[str, Any]]:
            return list(elements.get(bindable_id, bindable_element).get("boundElements") or [])

        def visit_bound(bound: Element | None, _prop: str, bound_id: str) -> None:
            if bound is None or is_deleted(bound):
                update_element_with(
                    bindable_element,
                    {"boundElements": new_bound_elements(current_refs(), {bound_id})},
                )
                return
            if not is_text_element(bound):
                return
            last_text = next(
                (ref for ref in reversed(current_refs()) if ref.get("type") == "text"),
                None,
            )
            if last_text is not None and last_text.get("id") == bound["id"]:
                if bound.get("containerId") != bindable_id:
                    update_element_with(bound, {"containerId": bindable_id})
                return
            if bound.get("containerId") is not None:
                update_element_with(bound, {"containerId": None})
            update_element_with(
                bindable_element,
                {"boundElements": new_bound_elements(current_refs(), {bound["id"]})},
            )

        bound_elements_visitor(elements, bindable_element, visit_bound)


def _does_need_update(bound_element: Element, changed_element: Element) -> bool:
    changed_id = changed_element.get("id")
    return changed_id in {
        binding_target_id(bound_element, "startBinding"),
        binding_target_id(bound_element, "endBinding"),
    }


def update_bound_elements(
    changed_element: Element,
    scene: SceneStore,
    simultaneously_updated: Iterable[Element] | None = None,
    changed_elements: Iterable[Element] | None = None,
    router: ElbowRouter | None = None,
) -> None:
    """Follow a moved, resized or rotated shape with every connector bound to it."""
    if not is_bindable_element(changed_element):
        return
    skip_ids = {element.get("id") for element in simultaneously_updated or ()}
    elements_map: dict[str, Element] = scene.get_non_deleted_elements_map()
    if changed_elements:
        elements_map = {**elements_map, **{item["id"]: item for item in changed_elements}}
    changed_id = changed_element.get("id")

    def visit(element: Element | None, _prop: str, _element_id: str) -> None:
        if not is_linear_element(element) or is_deleted(element):
            return
        # boundElements may be stale
        if not _does_need_update(element, changed_element):
            return

        start_id = binding_target_id(element, "startBinding")
        end_id = binding_target_id(element, "endBinding")
        start_target = elements_map.get(start_id) if start_id else None
        if end_id and end_id == start_id:
            end_target = start_target
        else:
            end_target = elements_map.get(end_id) if end_id else None
        start_bounds = end_bounds = None
        if start_target is not None and end_target is not None:
            start_bounds = get_element_bounds(start_target)
            end_bounds = get_element_bounds(end_target)

        # already being moved together with the shape
        if element.get("id") in skip_ids:
            return

        last_index = len(element.get("points") or []) - 1
        updates: dict[int, Point] = {}
        for prop, target in (("startBinding", start_target), ("endBinding", end_target)):
            if target is None or not is_bindable_element(target):
                continue
            other_prop = "endBinding" if prop == "startBinding" else "startBinding"
            follows_change = changed_id == binding_target_id(element, prop) or (
                changed_id == binding_target_id(element, other_prop)
                and not do_bounds_intersect(start_bounds, end_bounds)
            )
            if not follows_change:
                continue
            point = update_bound_point(element, prop, binding_of(element, prop), target)
            if point is not None:
                updates[0 if prop == "startBinding" else last_index] = point

        move_points(
            element,
            scene,
            updates,
            router=router,
            move_mid_points_with_element=(
                start_target is not None
                and end_target is not None
                and start_target.get("id") == end_target.get("id")
            ),
        )
        if get_bound_text_element(element, elements_map) is not None:
            handle_bind_text_resize(element, scene)

    bound_elements_visitor(elements_map, changed_element, visit)


def fix_bindings_after_duplication(
    duplicated_elements: Sequence[Element],
    orig_id_to_duplicate_id: Mapping[str, str],
    duplicate_elements_map: Mapping[str, Element] | None = None,
    router: ElbowRouter | None = None,
) -> None:
    """Point every reference on the duplicates at the matching duplicate, or drop it."""
    elements_map = duplicate_elements_map or {item["id"]: item for item in duplicated_elements}
    for duplicate in duplicated_elements:
        if duplicate.get("boundElements"):
            duplicate["boundElements"] = [
                {**ref, "id": orig_id_to_duplicate_id[ref.get("id")]}
                for ref in duplicate["boundElements"]
                if ref.get("id") in orig_id_to_duplicate_id
            ]
        if duplicate.get("containerId"):
            duplicate["containerId"] = orig_id_to_duplicate_id.get(duplicate["containerId"])
        for prop in ("startBinding", "endBinding"):
            binding = binding_of(duplicate, prop)
            if not binding:
                continue
            new_target = orig_id_to_duplicate_id.get(binding.get("elementId"))
            duplicate[prop] = {**binding, "elementId": new_target} if new_target else None

        if is_elbow_arrow(duplicate) and duplicate.get("points"):
            start, end = get_global_fixed_points(duplicate, elements_map)
            if router is not None:
                duplicate.update(route_elbow_arrow(duplicate, start, end, elements_map, router))
            else:
                route = get_global_points(duplicate)
                route[0], route[-1] = start, end
                duplicate.update(updates_from_global_points(duplicate, route))


def fix_bindings_after_deletion(
    scene_elements: Iterable[Element],
    deleted_elements: Iterable[Element],
    update_element_with: ElementUpdater = mutate_in_place,
) -> int:
    """Unbind both directions for every deleted element; returns how many elements changed."""
    staged = StagedUpdates({element["id"]: element for element in scene_elements})
    for element in deleted_elements:
        BoundElement.unbind_affected(staged, element, staged.stage)
        BindableElement.unbind_affected(staged, element, staged.stage)
    return staged.commit(update_element_with)


def fix_bindings_after_restore(
    scene_elements: Iterable[Element],
    restored_elements: Iterable[Element],
    update_element_with: ElementUpdater = mutate_in_place,
) -> int:
    staged = StagedUpdates({element["id"]: element for element in scene_elements})
    for element in restored_elements:
        current = staged.get(element.get("id"), element)
        BoundElement.rebind_affected(staged, current, staged.stage)
        BindableElement.rebind_affected(staged, staged.get(element.get("id"), element), staged.stage)
    return staged.commit(update_element_with)


@dataclass(frozen=True)
class BindingIssue:
    kind: str
    element_id: str
    target_id: str | None = None
    detail: str = ""


def _points_back(item: Element, bindable_id: str) -> bool:
    if is_arrow_element(item):
        return bindable_id in {
            binding_target_id(item, "startBinding"),
            binding_target_id(item, "endBinding"),
        }
    if is_text_element(item):
        return item.get("containerId") == bindable_id
    return False


def find_binding_issues(elements: Iterable[Element]) -> list[BindingIssue]:
    elements_map = {element["id"]: element for element in elements if isinstance(element.get("id"), str)}
    issues: list[BindingIssue] = []
    for element_id, element in elements_map.items():
        if is_deleted(element):
            continue

        if is_arrow_element(element):
            for prop in ("startBinding", "endBinding"):
                binding = element.get(prop)
                if binding is None:
                    continue
                if not isinstance(binding, dict) or not binding.get("elementId"):
                    issues.append(BindingIssue("malformed_binding", element_id, detail=prop))
                    continue
                target_id = binding["elementId"]
                if binding.get("fixedPoint") is None:
                    issues.append(BindingIssue("legacy_binding", element_id, target_id, prop))
                else:
                    try:
                        FixedPointBinding.model_validate(binding)
                    except ValidationError as exc:
                        issues.append(
                            BindingIssue("malformed_binding", element_id, target_id, str(exc))
                        )
                _check_back_reference(elements_map, element, prop, target_id, issues)

        if is_bound_to_container(element):
            _check_back_reference(elements_map, element, "containerId", element["containerId"], issues)

        if can_host_bound_elements(element):
            seen: set[str] = set()
            labels = 0
            for ref in element.get("boundElements") or []:
                ref_id = ref.get("id")
                if ref_id in seen:
                    issues.append(BindingIssue("duplicate_reference", element_id, ref_id))
                    continue
                seen.add(ref_id)
                target = elements_map.get(ref_id)
                if target is None or is_deleted(target) or not _points_back(target, element_id):
                    issues.append(BindingIssue("stale_back_reference", element_id, ref_id))
                elif is_text_element(target):
                    labels += 1
            if labels > 1:
                issues.append(BindingIssue("multiple_labels", element_id, detail=str(labels)))
    return issues


def _check_back_reference(
    elements_map: Mapping[str, Element],
    element: Element,
    prop: str,
    target_id: str,
    issues: list[BindingIssue],
) -> None:
    target = elements_map.get(target_id)
    if target is None or is_deleted(target):
        issues.append(BindingIssue("dangling_binding", element["id"], target_id, prop))
        return
    refs = target.get("boundElements") or []
    if not any(ref.get("id") == element["id"] for ref in refs):
        issues.append(BindingIssue("missing_back_reference", element["id"], target_id, prop))


def repair_bindings(scene: SceneStore) -> list[BindingIssue]:
    """Converge the whole scene to symmetric bindings; returns the issues that were found."""
    issues = find_binding_issues(scene.get_elements())
    if not issues:
        return issues
    staged = StagedUpdates(scene.get_elements_map())

    for element in scene.get_non_deleted_elements():
        if not is_arrow_element(element):
            continue
        for prop in ("startBinding", "endBinding"):
            binding = element.get(prop)
            if binding is not None and (not isinstance(binding, dict) or not binding.get("elementId")):
                staged.stage(element, {prop: None})
                continue
            if not binding or stored_fixed_point(binding) is not None:
                continue
            target = staged.get(binding["elementId"])
            if target is None or is_deleted(target) or not element.get("points"):
                continue
            fixed_point = calculate_fixed_point_for_non_elbow_arrow_binding(
                element, target, "start" if prop == "startBinding" else "end"
            )
            upgraded = FixedPointBinding(
                element_id=target["id"], mode="orbit", fixed_point=fixed_point
            )
            staged.stage(element, {prop: upgraded.to_dict()})

    for element in scene.get_non_deleted_elements():
        BoundElement.rebind_affected(staged, staged[element["id"]], staged.stage)

    for element in scene.get_non_deleted_elements():
        if not can_host_bound_elements(element):
            continue
        current = staged[element["id"]]
        kept: dict[str, dict[str, Any]] = {}
        for ref in current.get("boundElements") or []:
            target = staged.get(ref.get("id"))
            if target is None or is_deleted(target) or not _points_back(target, element["id"]):
                continue
            kept.pop(ref["id"], None)
            kept[ref["id"]] = dict(ref)
        pruned = list(kept.values())
        if pruned != list(current.get("boundElements") or []):
            staged.stage(element, {"boundElements": pruned})
        BindableElement.rebind_affected(staged, staged[element["id"]], staged.stage)

    applied = staged.commit(scene.mutate_element)
    logger.debug("Repaired %d binding issues across %d elements", len(issues), applied)
    return issues
