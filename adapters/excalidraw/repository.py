from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import orjson
from filelock import FileLock

from domain.models import SceneDocument
from domain.ports.repositories import SceneRepository


def load_json(path: Path) -> dict[str, Any]:
    data = orjson.loads(path.read_bytes())
    return data if isinstance(data, dict) else {}


def write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    tmp_path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    tmp_path.replace(path)


class FileSystemSceneRepository(SceneRepository):
    def load(self, path: Path) -> SceneDocument:
        return SceneDocument.from_dict(load_json(path))

    def load_all_with_paths(self, directory: Path) -> list[tuple[Path, SceneDocument]]:
        return [(path, self.load(path)) for path in sorted(self._iter_paths(directory))]

    def save(self, document: SceneDocument, path: Path) -> None:
        lock_path = path.with_suffix(f"{path.suffix}.lock")
        with FileLock(str(lock_path)):
            write_json_atomic(path, document.to_dict())

    def _iter_paths(self, directory: Path) -> Iterable[Path]:
        for pattern in ("*.excalidraw", "*.json"):
            yield from directory.glob(pattern)
