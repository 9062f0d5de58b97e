from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from typer.testing import CliRunner

from app.cli import app
from domain.models import Element
from tests.helpers.scene_fixtures import bound_ids

runner = CliRunner()


def _write_scene(path: Path, elements: list[Element]) -> Path:
    path.write_bytes(orjson.dumps({"type": "excalidraw", "elements": elements}))
    return path


def _elements(path: Path) -> dict[str, Element]:
    payload = orjson.loads(path.read_bytes())
    return {element["id"]: element for element in payload["elements"]}


def test_check_passes_for_consistent_scene(tmp_path: Path, two_boxes: list[Element]) -> None:
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(app, ["check", str(scene_path)])

    assert result.exit_code == 0
    assert "consistent" in result.stdout


def test_check_fails_on_missing_back_reference(
    tmp_path: Path, two_boxes: list[Element]
) -> None:
    two_boxes[1]["boundElements"] = []
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(app, ["check", str(scene_path)])

    assert result.exit_code == 1
    assert "missing_back_reference" in result.stdout


def test_check_reports_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["check", str(tmp_path / "absent.excalidraw")])

    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_repair_writes_a_consistent_scene(tmp_path: Path, two_boxes: list[Element]) -> None:
    two_boxes[1]["boundElements"] = []
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)
    output = tmp_path / "fixed.excalidraw"

    result = runner.invoke(app, ["repair", str(scene_path), "--output", str(output)])

    assert result.exit_code == 0
    assert bound_ids(_elements(output)["right"]) == ["arrow"]
    assert runner.invoke(app, ["check", str(output)]).exit_code == 0


def test_move_updates_bound_arrows_in_place(tmp_path: Path, two_boxes: list[Element]) -> None:
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(app, ["move", str(scene_path), "--id", "right", "--dx", "100"])

    assert result.exit_code == 0
    elements = _elements(scene_path)
    assert elements["right"]["x"] == 400
    arrow = elements["arrow"]
    assert arrow["x"] + arrow["points"][-1][0] == pytest.approx(395, abs=1e-3)


def test_move_tolerates_a_malformed_anchor(tmp_path: Path, two_boxes: list[Element]) -> None:
    two_boxes[2]["startBinding"]["fixedPoint"] = [0.3]
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(app, ["move", str(scene_path), "--id", "right", "--dx", "100"])

    assert result.exit_code == 0
    arrow = _elements(scene_path)["arrow"]
    assert arrow["x"] == pytest.approx(105)
    assert arrow["x"] + arrow["points"][-1][0] == pytest.approx(395, abs=1e-3)

def test_move_unknown_element_fails(tmp_path: Path, two_boxes: list[Element]) -> None:
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(app, ["move", str(scene_path), "--id", "nope", "--dx", "1"])

    assert result.exit_code == 1


def test_delete_unbinds_arrows(tmp_path: Path, two_boxes: list[Element]) -> None:
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(app, ["delete", str(scene_path), "--id", "left"])

    assert result.exit_code == 0
    elements = _elements(scene_path)
    assert elements["left"]["isDeleted"] is True
    assert elements["arrow"]["startBinding"] is None


def test_duplicate_adds_remapped_copies(tmp_path: Path, two_boxes: list[Element]) -> None:
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(
        app,
        ["duplicate", str(scene_path), "--id", "left", "--id", "right", "--id", "arrow", "--dx", "0", "--dy", "200"],
    )

    assert result.exit_code == 0
    elements = _elements(scene_path)
    assert len(elements) == 6
    assert runner.invoke(app, ["check", str(scene_path)]).exit_code == 0


def test_invalid_config_exits_with_error(tmp_path: Path, two_boxes: list[Element]) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("binding:\n  suggestion_limit: 0\n", encoding="utf-8")
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(app, ["--config", str(config_path), "check", str(scene_path)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.stdout


def test_config_file_settings_reach_commands(tmp_path: Path, two_boxes: list[Element]) -> None:
    config_path = tmp_path / "binding.yaml"
    config_path.write_text("binding:\n  enabled: false\nrouter:\n  padding: 12\n", encoding="utf-8")
    scene_path = _write_scene(tmp_path / "scene.excalidraw", two_boxes)

    result = runner.invoke(
        app, ["--config", str(config_path), "move", str(scene_path), "--id", "left", "--dy", "10"]
    )

    assert result.exit_code == 0
    assert _elements(scene_path)["left"]["y"] == 10
