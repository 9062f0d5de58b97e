from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Sequence
from uuid import uuid4

from domain.element_types import can_host_bound_elements, is_deleted, is_text_element
from domain.models import Element, Point
from domain.ports.routing import ElbowRouter
from domain.services.bound_elements import fix_bindings_after_duplication


def _default_id_factory() -> str:
    return uuid4().hex


def _with_bound_labels(
    elements_map: dict[str, Element], selected_ids: Iterable[str]
) -> list[str]:
    ids = list(dict.fromkeys(selected_ids))
    chosen = set(ids)
    for element_id in list(ids):
        element = elements_map.get(element_id)
        if not can_host_bound_elements(element):
            continue
        for ref in element.get("boundElements") or []:
            label = elements_map.get(ref.get("id"))
            if (
                is_text_element(label)
                and not is_deleted(label)
                and label.get("containerId") == element_id
                and label["id"] not in chosen
            ):
                chosen.add(label["id"])
                ids.append(label["id"])
    return ids


def duplicate_elements(
    elements: Sequence[Element],
    selected_ids: Iterable[str],
    offset: Point = Point(10.0, 10.0),
    id_factory: Callable[[], str] = _default_id_factory,
    router: ElbowRouter | None = None,
) -> tuple[list[Element], dict[str, str]]:
    """Copy the selected elements, and the labels they carry, with remapped references.

    References into elements outside the selection are dropped from the copies;
    the originals are not touched.
    """
    elements_map = {element["id"]: element for element in elements}
    ids = [
        element_id
        for element_id in _with_bound_labels(elements_map, selected_ids)
        if element_id in elements_map and not is_deleted(elements_map[element_id])
    ]

    orig_to_dup: dict[str, str] = {element_id: id_factory() for element_id in ids}
    duplicates: list[Element] = []
    for element_id in ids:
        duplicate = copy.deepcopy(elements_map[element_id])
        duplicate["id"] = orig_to_dup[element_id]
        duplicate["x"] = float(duplicate.get("x", 0.0)) + offset.x
        duplicate["y"] = float(duplicate.get("y", 0.0)) + offset.y
        duplicate["version"] = 1
        if duplicate.get("frameId") and duplicate["frameId"] in orig_to_dup:
            duplicate["frameId"] = orig_to_dup[duplicate["frameId"]]
        duplicates.append(duplicate)

    fix_bindings_after_duplication(
        duplicates,
        orig_to_dup,
        {**elements_map, **{item["id"]: item for item in duplicates}},
        router=router,
    )
    return duplicates, orig_to_dup
