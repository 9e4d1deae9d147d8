from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple


PointF = Tuple[float, float]

NUM_HAND_LANDMARKS = 21


@dataclass(frozen=True)
class Landmark:
    """A single hand landmark in normalized image coordinates ([0, 1] on x and y)."""

    idx: int
    x: float
    y: float
    z: float = 0.0

    def to_px(self, width: int, height: int) -> PointF:
        return (self.x * width, self.y * height)


@dataclass(frozen=True)
class Hand:
    """One detected hand for one frame. No identity is kept across frames."""

    landmarks: List[Landmark]  # length 21
    handedness_label: Optional[str] = None  # "Left" / "Right" (may be None)
    handedness_score: Optional[float] = None

    def __getitem__(self, idx: int) -> Landmark:
        return self.landmarks[idx]

    def __len__(self) -> int:
        return len(self.landmarks)


@dataclass(frozen=True)
class OverlayPlacement:
    """Where a Design image goes on one fingertip for one frame."""

    center: PointF
    angle: float  # radians, counter-clockwise on screen
    width: float
    height: float


@dataclass(frozen=True)
class Design:
    """A selectable nail-art design as served by the Designs API."""

    id: int
    title: str
    image_url: str
    description: Optional[str] = None
    author_id: Optional[int] = None
    author_name: Optional[str] = None
    created_at: Optional[datetime] = None
    active: bool = True

    @classmethod
    def from_api(cls, payload: dict) -> "Design":
        created = payload.get("fechaCreacion")
        created_at: Optional[datetime] = None
        if isinstance(created, str) and created:
            try:
                created_at = datetime.fromisoformat(created.replace("Z", "+00:00"))
            except ValueError:
                created_at = None

        return cls(
            id=int(payload["id"]),
            title=str(payload.get("titulo") or ""),
            image_url=str(payload["imagenUrl"]),
            description=payload.get("descripcion") or None,
            author_id=payload.get("empleadoIdCreador"),
            author_name=payload.get("nombreEmpleado"),
            created_at=created_at,
            active=bool(payload.get("estaActivo", True)),
        )


class CameraStatus(str, enum.Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    ERROR = "error"


class ModelStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


Listener = Callable[["StatusSignal"], None]


@dataclass
class StatusSignal:
    """
    Observable status value shared between a component and the UI.

    `value` is one of the status enums above; `message` carries the user-facing
    text when `value` is an error.
    """

    value: enum.Enum
    message: str = ""
    _listeners: List[Listener] = field(default_factory=list, repr=False)

    def set(self, value: enum.Enum, message: str = "") -> None:
        changed = value != self.value or message != self.message
        self.value = value
        self.message = message
        if changed:
            for listener in list(self._listeners):
                listener(self)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
