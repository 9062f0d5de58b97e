from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from domain.element_types import is_deleted, is_text_element
from domain.models import BindingConfig, BindMode, Element, Point, StartOrEnd
from domain.ports.routing import ElbowRouter
from domain.ports.scene import SceneStore
from domain.services import binding_resolver, bound_elements, duplication
from domain.services.bound_elements import BindingIssue
from domain.services.candidates import get_hovered_element_for_binding

logger = logging.getLogger(__name__)


class BindingEngine:
    """Entry points for the interaction layer, bound to one scene."""

    def __init__(
        self,
        scene: SceneStore,
        router: ElbowRouter | None = None,
        config: BindingConfig = BindingConfig(),
    ) -> None:
        self._scene = scene
        self._router = router
        self._config = config

    @property
    def scene(self) -> SceneStore:
        return self._scene

    @property
    def config(self) -> BindingConfig:
        return self._config

    def _zoom(self, zoom: float | None) -> float:
        return self._config.default_zoom if zoom is None else zoom

    def hovered_element(self, point: Point, zoom: float | None = None) -> Element | None:
        return get_hovered_element_for_binding(
            point, self._scene.get_non_deleted_elements(), self._zoom(zoom)
        )

    def binding_strategy(
        self,
        arrow: Element,
        dragging_points: Sequence[int],
        zoom: float | None = None,
        global_bind_mode: BindMode | None = None,
    ) -> tuple[binding_resolver.BindingStrategy, binding_resolver.BindingStrategy]:
        return binding_resolver.get_binding_strategy_for_dragging_arrow_endpoints(
            arrow,
            self._config.enabled,
            dragging_points,
            self._scene.get_non_deleted_elements(),
            self._zoom(zoom),
            global_bind_mode,
            self._config.precise_hit_threshold,
        )

    def bind_or_unbind(
        self,
        arrows: Iterable[Element],
        dragging_points: Sequence[int],
        zoom: float | None = None,
        global_bind_mode: BindMode | None = None,
    ) -> None:
        binding_resolver.bind_or_unbind_linear_elements(
            arrows,
            self._config.enabled,
            dragging_points,
            self._scene,
            self._zoom(zoom),
            global_bind_mode,
            self._config.precise_hit_threshold,
        )

    def bind(
        self,
        arrow: Element,
        shape: Element,
        start_or_end: StartOrEnd,
        mode: BindMode = "orbit",
        focus_point: Point | None = None,
    ) -> None:
        binding_resolver.bind_linear_element(
            arrow, shape, mode, start_or_end, self._scene, focus_point
        )

    def unbind(self, arrow: Element, start_or_end: StartOrEnd) -> str | None:
        return binding_resolver.unbind_linear_element(arrow, start_or_end, self._scene)

    def suggested_bindings(
        self, selected: Sequence[Element], zoom: float | None = None
    ) -> list[Element]:
        return binding_resolver.get_suggested_bindings_for_arrows(
            selected, self._scene, self._zoom(zoom), self._config.suggestion_limit
        )

    def update_bound_elements(
        self,
        changed: Element,
        simultaneously_updated: Iterable[Element] | None = None,
    ) -> None:
        bound_elements.update_bound_elements(
            changed,
            self._scene,
            simultaneously_updated=simultaneously_updated,
            router=self._router,
        )

    def move_element(self, element_id: str, dx: float, dy: float) -> Element | None:
        """Translate an element and its label, then let bound connectors follow."""
        element = self._scene.get_element(element_id)
        if element is None or is_deleted(element):
            logger.debug("Skipping move of missing element %s", element_id)
            return None
        moved = [element, *self._labels_of(element)]
        for item in moved:
            self._scene.mutate_element(
                item,
                {
                    "x": float(item.get("x", 0.0)) + dx,
                    "y": float(item.get("y", 0.0)) + dy,
                },
            )
        self.update_bound_elements(element, simultaneously_updated=moved)
        return element

    def delete_elements(self, element_ids: Iterable[str]) -> list[Element]:
        deleted: list[Element] = []
        for element_id in dict.fromkeys(element_ids):
            element = self._scene.get_element(element_id)
            if element is None or is_deleted(element):
                continue
            for item in (element, *self._labels_of(element)):
                if not is_deleted(item):
                    self._scene.mutate_element(item, {"isDeleted": True})
                    deleted.append(item)
        if deleted:
            bound_elements.fix_bindings_after_deletion(
                self._scene.get_elements(), deleted, self._scene.mutate_element
            )
        return deleted

    def duplicate_elements(
        self,
        element_ids: Iterable[str],
        offset: Point = Point(10.0, 10.0),
    ) -> tuple[list[Element], dict[str, str]]:
        duplicates, orig_to_dup = duplication.duplicate_elements(
            self._scene.get_non_deleted_elements(),
            element_ids,
            offset,
            router=self._router,
        )
        self._scene.insert_elements(duplicates)
        return duplicates, orig_to_dup

    def repair(self) -> list[BindingIssue]:
        return bound_elements.repair_bindings(self._scene)

    def _labels_of(self, element: Element) -> list[Element]:
        elements_map = self._scene.get_non_deleted_elements_map()
        labels: list[Element] = []
        for ref in element.get("boundElements") or []:
            label = elements_map.get(ref.get("id"))
            if is_text_element(label) and label.get("containerId") == element.get("id"):
                labels.append(label)
        return labels
