"""cube_status.py — the cube aggregate
--------------------------------------

CubeStatus owns the piece registry, the position index, the move engine and
the immutable solved reference, and exposes the two boundaries of the core:

 - solver boundary: positions, piece lookup by cell, sticker queries,
   solved check, move execution (animated or immediate), clone();
 - render boundary: per-piece 4x4 transforms and per-face RGB.

It also exports the state as a 54-sticker color string / kociemba facelet
string (URFDLB order) and validates it with kociemba when installed.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import copy
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple

import numpy as np

try:
    import kociemba
except ImportError:
    kociemba = None

from app_types import CubeInvariantError, Face, MoveRejectedError, Piece, RGB, SymbolicColor, Vec3
from color_oracle import classify
from config import ROTATION_SPEED
from move_engine import MoveEngine
from notation import parse_sequence, request_for
from pieces import PieceRegistry, PositionIndex, is_valid_cell

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# kociemba facelet order
FACE_ORDER: List[str] = ['U', 'R', 'F', 'D', 'L', 'B']

# face letter -> (sticker slot, fixed axis, row axis + values, col axis + values)
_FACELET_GRID: Dict[str, tuple] = {
    'U': (Face.UP, (1, 1), (2, (-1, 0, 1)), (0, (-1, 0, 1))),
    'R': (Face.RIGHT, (0, 1), (1, (1, 0, -1)), (2, (1, 0, -1))),
    'F': (Face.FRONT, (2, 1), (1, (1, 0, -1)), (0, (-1, 0, 1))),
    'D': (Face.DOWN, (1, -1), (2, (1, 0, -1)), (0, (-1, 0, 1))),
    'L': (Face.LEFT, (0, -1), (1, (1, 0, -1)), (2, (-1, 0, 1))),
    'B': (Face.BACK, (2, -1), (1, (1, 0, -1)), (0, (1, 0, -1))),
}


def facelet_cells(face_letter: str) -> List[Tuple[Vec3, Face]]:
    """The 9 (cell, sticker slot) pairs of a face in reading order."""
    face, (fixed_axis, fixed_val), (row_axis, rows), (col_axis, cols) = _FACELET_GRID[face_letter]
    cells: List[Tuple[Vec3, Face]] = []
    for r in rows:
        for c in cols:
            pos = [0, 0, 0]
            pos[fixed_axis] = fixed_val
            pos[row_axis] = r
            pos[col_axis] = c
            cells.append((tuple(pos), face))
    return cells


def build_color_net_text(color_str: str) -> str:
    out = []
    for fi, face in enumerate(FACE_ORDER):
        out.append(f"\n{face}:")
        block = color_str[fi * 9:(fi + 1) * 9]
        for r in range(3):
            out.append(' '.join(block[r * 3:(r + 1) * 3]))
    return '\n'.join(out)


class CubeStatus:
    def __init__(self, speed: float = ROTATION_SPEED) -> None:
        self.registry = PieceRegistry()
        self.index = PositionIndex()
        self.index.rebuild(self.registry)
        self.engine = MoveEngine(self.registry, self.index, speed=speed)
        # solved reference, never mutated
        self._solved_positions: Dict[int, Vec3] = dict(self.registry.positions())
        self._solved_stickers: Dict[int, Tuple[RGB, ...]] = dict(self.registry.stickers())

    # ---------------- solver boundary ----------------

    def current_positions(self) -> Dict[int, Vec3]:
        return self.registry.positions()

    def solved_positions(self) -> Dict[int, Vec3]:
        return dict(self._solved_positions)

    def solved_stickers(self, piece_id: int) -> Tuple[RGB, ...]:
        return self._solved_stickers[piece_id]

    def piece_at(self, position) -> Optional[Piece]:
        """
        Piece currently at `position`. None for a cell that does not exist
        (including the hidden center); a valid cell missing from the index is
        a broken invariant and raises CubeInvariantError.
        """
        if not is_valid_cell(position):
            return None
        pid = self.index.lookup(position)
        if pid is None:
            raise CubeInvariantError(f"Position index has no piece at {tuple(position)}")
        return self.registry.piece(pid)

    def sticker_rgb(self, position, face: Face) -> RGB:
        piece = self.piece_at(position)
        if piece is None:
            raise CubeInvariantError(f"No cell at {tuple(position)}")
        return piece.sticker(Face(face))

    def sticker_color(self, position, face: Face) -> SymbolicColor:
        return classify(self.sticker_rgb(position, face))

    def is_solved(self) -> bool:
        """Every piece at its reference cell with its reference sticker arrangement."""
        for p in self.registry:
            if p.position != self._solved_positions[p.id]:
                return False
            if tuple(p.stickers) != self._solved_stickers[p.id]:
                return False
        return True

    def is_move_active(self) -> bool:
        return self.engine.is_move_active()

    def execute_move(self, token: str) -> bool:
        """Start the move for `token`; False if the engine is busy. Unknown tokens raise ValueError."""
        return self.engine.begin_move(request_for(token))

    def advance(self, dt: float) -> bool:
        return self.engine.advance(dt)

    def apply_now(self) -> bool:
        return self.engine.finish()

    def apply_move(self, token: str) -> None:
        """Start and immediately commit one quarter-turn token."""
        if not self.execute_move(token):
            raise MoveRejectedError(f"Move {token!r} rejected: another move is active")
        self.engine.finish()

    def apply_sequence(self, seq, strict: bool = True) -> List[str]:
        """
        Apply a sequence immediately (headless). Returns the quarter-turn tokens applied.
        With strict=False a busy engine is first finished instead of raising.
        """
        tokens = parse_sequence(seq)
        if self.is_move_active():
            if strict:
                raise MoveRejectedError("Cannot apply a sequence while a move is active")
            self.engine.finish()
        for tok in tokens:
            self.apply_move(tok)
        return tokens

    def verify(self) -> None:
        self.registry.verify()
        if len(self.index) != len(self.registry):
            raise CubeInvariantError("Position index out of sync with the registry")
        for pos, pid in self.index.items():
            if self.registry.piece(pid).position != pos:
                raise CubeInvariantError(f"Index maps {pos} to piece {pid} which is elsewhere")

    def clone(self) -> "CubeStatus":
        """Independent copy with no move in flight, used for simulation."""
        other = copy.copy(self)
        other.registry = PieceRegistry.__new__(PieceRegistry)
        other.registry.restore(self.registry.snapshot())
        other.index = PositionIndex()
        other.index.rebuild(other.registry)
        other.engine = MoveEngine(other.registry, other.index, speed=self.engine.speed)
        return other

    # ---------------- render boundary ----------------

    def piece_transform(self, piece_id: int) -> np.ndarray:
        return self.engine.piece_transform(piece_id)

    def face_rgb(self, piece_id: int) -> List[RGB]:
        return list(self.registry.piece(piece_id).stickers)

    def render_snapshot(self) -> List[Tuple[int, np.ndarray, List[RGB]]]:
        return [(p.id, self.piece_transform(p.id), self.face_rgb(p.id)) for p in self.registry]

    # ---------------- facelet export ----------------

    def to_color_string(self) -> str:
        """54 color letters in URFDLB face order."""
        chars: List[str] = []
        for face_letter in FACE_ORDER:
            for pos, face in facelet_cells(face_letter):
                chars.append(self.sticker_color(pos, face).value)
        return ''.join(chars)

    def center_colors(self) -> Dict[str, str]:
        return {fl: self.sticker_color(facelet_cells(fl)[4][0], facelet_cells(fl)[4][1]).value
                for fl in FACE_ORDER}

    def to_facelet_string(self) -> str:
        """Kociemba facelet string: every color replaced by the letter of the face whose center has it."""
        color_to_face = {c: f for f, c in self.center_colors().items()}
        return ''.join(color_to_face[c] for c in self.to_color_string())

    def validate_facelet(self, facelets: Optional[str] = None) -> Tuple[bool, str]:
        """
        Check a facelet string: counts first, then kociemba.solve.
        Returns (ok, message). Raises RuntimeError when kociemba is not installed.
        """
        if kociemba is None:
            raise RuntimeError("kociemba not installed; install the 'verify' extra")
        facelets = facelets if facelets is not None else self.to_facelet_string()
        if len(facelets) != 54:
            return False, "facelet string must be 54 characters"
        cnt = Counter(facelets)
        if any(cnt.get(f, 0) != 9 for f in FACE_ORDER):
            return False, f"bad sticker counts: {dict(cnt)}"
        try:
            sol = kociemba.solve(facelets)
        except ValueError as e:
            logger.debug("kociemba rejected facelets: %s", e)
            return False, str(e)
        return True, sol
