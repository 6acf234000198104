"""Shared models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class Verdict(str, Enum):
    LEFT = "Left"
    RIGHT = "Right"
    TIE = "Tie"


@dataclass(frozen=True)
class FaceBox:
    """Face bounding box in source-image pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + (self.width / 2.0), self.y + (self.height / 2.0))


@dataclass(frozen=True)
class DetectionResult:
    faces: tuple[FaceBox, ...] = ()

    @property
    def empty(self) -> bool:
        return len(self.faces) == 0


@dataclass
class Tally:
    left: int = 0
    right: int = 0

    def copy(self) -> "Tally":
        return Tally(left=self.left, right=self.right)


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Running:
    seconds_remaining: int
    started_at: float  # epoch seconds
    name = "running"


@dataclass(frozen=True)
class Finished:
    verdict: Verdict
    tally: Tally = field(default_factory=Tally)
    name = "finished"


SessionState = Union[Idle, Running, Finished]


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view handed to the rendering layer."""

    state: SessionState
    sample_x: float
    tally: Tally
    screen_width: float
    samples_attempted: int = 0
    samples_failed: int = 0

    @property
    def running(self) -> bool:
        return isinstance(self.state, Running)

    @property
    def seconds_remaining(self) -> Optional[int]:
        if isinstance(self.state, Running):
            return self.state.seconds_remaining
        return None

    @property
    def verdict(self) -> Optional[Verdict]:
        if isinstance(self.state, Finished):
            return self.state.verdict
        return None

    def to_dict(self) -> dict[str, Any]:
        verdict = self.verdict
        return {
            "state": self.state.name,
            "seconds_remaining": self.seconds_remaining,
            "sample_x": round(float(self.sample_x), 2),
            "screen_width": self.screen_width,
            "left": self.tally.left,
            "right": self.tally.right,
            "verdict": verdict.value if verdict is not None else None,
            "samples_attempted": self.samples_attempted,
            "samples_failed": self.samples_failed,
        }
