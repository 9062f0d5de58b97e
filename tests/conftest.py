from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from adapters.routing.orthogonal import OrthogonalRouter
from adapters.scene.in_memory import InMemoryScene
from app.config import AppSettings, BindingSettings, RouterSettings
from domain.models import Element
from domain.services.binding_engine import BindingEngine
from tests.helpers.scene_fixtures import link, make_arrow, make_shape


def _clear_dbe_env() -> None:
    for key in list(os.environ):
        if key.startswith("DBE_"):
            os.environ.pop(key, None)


_clear_dbe_env()


@pytest.fixture(autouse=True)
def clear_dbe_env() -> Generator[None, None, None]:
    _clear_dbe_env()
    yield
    _clear_dbe_env()


@pytest.fixture
def scene_factory() -> Callable[..., InMemoryScene]:
    def _factory(*elements: Element) -> InMemoryScene:
        return InMemoryScene(elements, seed=7)

    return _factory


@pytest.fixture
def two_boxes() -> list[Element]:
    """Two 100x100 rectangles joined by a bound arrow along y=50."""
    left = make_shape("left", x=0, y=0)
    right = make_shape("right", x=300, y=0)
    arrow = make_arrow(
        "arrow",
        [(105, 50), (295, 50)],
        start="left",
        end="right",
        start_fixed_point=(1.05, 0.5001),
        end_fixed_point=(-0.05, 0.5001),
    )
    link(left, arrow)
    link(right, arrow)
    return [left, right, arrow]


@pytest.fixture
def engine_factory(
    scene_factory: Callable[..., InMemoryScene],
) -> Callable[..., BindingEngine]:
    def _factory(*elements: Element, **settings: object) -> BindingEngine:
        app_settings = AppSettings(
            binding=BindingSettings(**settings),  # type: ignore[arg-type]
            router=RouterSettings(),
        )
        return BindingEngine(
            scene_factory(*elements),
            router=OrthogonalRouter(app_settings.router.to_router_config()),
            config=app_settings.binding.to_binding_config(),
        )

    return _factory
