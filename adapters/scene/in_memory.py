from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from typing import Any

from domain.models import Element
from domain.ports.scene import SceneStore


class InMemoryScene(SceneStore):
    """Scene held as an ordered list of element dicts, edited in place."""

    def __init__(self, elements: Iterable[Element] = (), seed: int | None = None) -> None:
        self._elements: list[Element] = []
        self._by_id: dict[str, Element] = {}
        self._random = random.Random(seed)
        self.insert_elements(elements)

    def get_element(self, element_id: str) -> Element | None:
        return self._by_id.get(element_id)

    def get_elements(self) -> list[Element]:
        return list(self._elements)

    def get_elements_map(self) -> dict[str, Element]:
        return dict(self._by_id)

    def get_non_deleted_elements(self) -> list[Element]:
        return [element for element in self._elements if not element.get("isDeleted")]

    def get_non_deleted_elements_map(self) -> dict[str, Element]:
        return {
            element["id"]: element for element in self._elements if not element.get("isDeleted")
        }

    def mutate_element(self, element: Element, updates: Mapping[str, Any]) -> Element:
        changed = False
        for key, value in updates.items():
            if key not in element or element[key] != value:
                element[key] = value
                changed = True
        if changed:
            element["version"] = int(element.get("version") or 0) + 1
            element["versionNonce"] = self._random.randint(1, 2**31 - 1)
        return element

    def apply_update(self, element_id: str, updates: Mapping[str, Any]) -> Element | None:
        element = self._by_id.get(element_id)
        if element is None:
            return None
        return self.mutate_element(element, updates)

    def insert_elements(self, elements: Iterable[Element]) -> None:
        for element in elements:
            element_id = element.get("id")
            if not isinstance(element_id, str) or not element_id:
                msg = f"Element without id: {element!r}"
                raise ValueError(msg)
            if element_id in self._by_id:
                msg = f"Duplicate element id: {element_id}"
                raise ValueError(msg)
            self._elements.append(element)
            self._by_id[element_id] = element
