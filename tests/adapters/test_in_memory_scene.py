from __future__ import annotations

import pytest

from adapters.scene.in_memory import InMemoryScene
from tests.helpers.scene_fixtures import make_shape


def test_queries_respect_draw_order_and_deletion() -> None:
    first = make_shape("first")
    gone = make_shape("gone", isDeleted=True)
    last = make_shape("last")
    scene = InMemoryScene([first, gone, last])

    assert scene.get_elements() == [first, gone, last]
    assert scene.get_non_deleted_elements() == [first, last]
    assert set(scene.get_non_deleted_elements_map()) == {"first", "last"}
    assert scene.get_element("gone") is gone


def test_mutation_bumps_version_only_on_change() -> None:
    box = make_shape("box")
    scene = InMemoryScene([box], seed=1)

    scene.mutate_element(box, {"x": 0.0})
    assert box["version"] == 1

    scene.mutate_element(box, {"x": 25.0})
    assert box["version"] == 2
    assert box["versionNonce"] != 1


def test_apply_update_by_id() -> None:
    box = make_shape("box")
    scene = InMemoryScene([box])

    assert scene.apply_update("box", {"y": 5.0}) is box
    assert box["y"] == 5.0
    assert scene.apply_update("missing", {"y": 5.0}) is None


def test_insert_rejects_duplicate_ids() -> None:
    scene = InMemoryScene([make_shape("box")])

    with pytest.raises(ValueError, match="Duplicate element id"):
        scene.insert_elements([make_shape("box")])
