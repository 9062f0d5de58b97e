from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Element = dict[str, Any]
BindMode = Literal["inside", "orbit"]
StartOrEnd = Literal["start", "end"]

FIXED_BINDING_DISTANCE = 5.0
BINDING_HIGHLIGHT_THICKNESS = 10.0
SUGGESTED_BINDINGS_LIMIT = 50
PRECISION = 1e-4


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    @classmethod
    def from_sequence(cls, value: Any) -> Point:
        return cls(float(value[0]), float(value[1]))


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return Point((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def expanded(self, amount: float) -> Bounds:
        return Bounds(
            self.min_x - amount,
            self.min_y - amount,
            self.max_x + amount,
            self.max_y + amount,
        )


@dataclass(frozen=True)
class BindingConfig:
    enabled: bool = True
    precise_hit_threshold: float = 0.0
    suggestion_limit: int = SUGGESTED_BINDINGS_LIMIT
    default_zoom: float = 1.0


class FixedPointBinding(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    element_id: str = Field(..., min_length=1, alias="elementId")
    mode: BindMode = "orbit"
    fixed_point: tuple[float, float] = Field(..., alias="fixedPoint")

    @field_validator("fixed_point", mode="before")
    @classmethod
    def ensure_pair(cls, value: object) -> tuple[float, float]:
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return float(value[0]), float(value[1])
        msg = "fixedPoint must be a pair of ratios"
        raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "elementId": self.element_id,
            "mode": self.mode,
            "fixedPoint": [self.fixed_point[0], self.fixed_point[1]],
        }


class BoundElementRef(BaseModel):
    id: str = Field(..., min_length=1)
    type: Literal["arrow", "text"]

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "type": self.type}


@dataclass(frozen=True)
class SceneDocument:
    elements: list[Element]
    app_state: dict[str, Any] = field(default_factory=dict)
    files: dict[str, Any] = field(default_factory=dict)
    source: str = "diagram-binding-engine"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "excalidraw",
            "version": 2,
            "source": self.source,
            "elements": self.elements,
            "appState": self.app_state,
            "files": self.files,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> SceneDocument:
        elements = payload.get("elements") or []
        return cls(
            elements=[element for element in elements if isinstance(element, dict)],
            app_state=dict(payload.get("appState") or {}),
            files=dict(payload.get("files") or {}),
            source=str(payload.get("source") or "diagram-binding-engine"),
        )
