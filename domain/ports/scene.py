from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from domain.models import Element

ElementUpdater = Callable[[Element, Mapping[str, Any]], None]


class SceneStore(Protocol):
    def get_element(self, element_id: str) -> Element | None: ...

    def get_elements(self) -> list[Element]: ...

    def get_elements_map(self) -> dict[str, Element]: ...

    def get_non_deleted_elements(self) -> list[Element]: ...

    def get_non_deleted_elements_map(self) -> dict[str, Element]: ...

    def mutate_element(self, element: Element, updates: Mapping[str, Any]) -> Element: ...

    def apply_update(self, element_id: str, updates: Mapping[str, Any]) -> Element | None: ...

    def insert_elements(self, elements: Iterable[Element]) -> None: ...
