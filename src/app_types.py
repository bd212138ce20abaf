"""app_types.py — shared types for the cube engine and solver
--------------------------------------------------------------

Small value types passed between the registry, the move engine, the color
oracle and the solver, plus the exception hierarchy.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Tuple

from config import FACE_LETTERS, FACE_NORMALS, FACE_ORDER

Vec3 = Tuple[int, int, int]
RGB = Tuple[float, float, float]


class CubeError(Exception):
    """Base class for cube engine errors."""


class CubeInvariantError(CubeError):
    """A structural invariant (bijection, conservation, index sync) was broken."""


class MoveRejectedError(CubeError):
    """A move could not be started (engine busy or invalid request)."""


class Face(IntEnum):
    FRONT = 0
    BACK = 1
    RIGHT = 2
    LEFT = 3
    UP = 4
    DOWN = 5

    @property
    def normal(self) -> Vec3:
        return FACE_NORMALS[self.name]

    @property
    def letter(self) -> str:
        return FACE_LETTERS[self.name]

    @classmethod
    def from_normal(cls, normal) -> "Face":
        n = tuple(int(v) for v in normal)
        for name in FACE_ORDER:
            if FACE_NORMALS[name] == n:
                return cls[name]
        raise CubeInvariantError(f"Not a face normal: {n}")

    @classmethod
    def from_letter(cls, letter: str) -> "Face":
        for name, ltr in FACE_LETTERS.items():
            if ltr == letter:
                return cls[name]
        raise ValueError(f"Unknown face letter: {letter!r}")


class Axis(IntEnum):
    X = 0
    Y = 1
    Z = 2


class SymbolicColor(str, Enum):
    WHITE = 'W'
    YELLOW = 'Y'
    BLUE = 'B'
    GREEN = 'G'
    RED = 'R'
    ORANGE = 'O'
    BLANK = '-'


class SolverState(str, Enum):
    IDLE = 'IDLE'
    SOLVING = 'SOLVING'
    WCCOMPLETE = 'WCCOMPLETE'
    FAILED = 'FAILED'


@dataclass
class Piece:
    # id is assigned once by the registry and never reused
    id: int
    position: Vec3
    stickers: List[RGB] = field(default_factory=list)

    def sticker(self, face: Face) -> RGB:
        return self.stickers[int(face)]


@dataclass(frozen=True)
class RotationRequest:
    axis: Axis
    layer: int
    angle: float


@dataclass
class RotationProgress:
    """Render-facing view of the move in flight."""
    request: RotationRequest
    piece_ids: Tuple[int, ...]
    angle: float = 0.0

    @property
    def target(self) -> float:
        return self.request.angle

    @property
    def done(self) -> bool:
        return abs(self.angle) >= abs(self.target)


@dataclass
class PhaseStep:
    """Result of one phase query: moves to run next and the phase's own progress."""
    moves: List[str]
    complete: bool
    state: object
    reason: str = ''
    target: Optional[Tuple] = None
