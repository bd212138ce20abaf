"""pieces.py — piece registry and position index
------------------------------------------------

The registry owns the 26 movable pieces (every cell of {-1,0,1}^3 except the
hidden center). The position index is derived data (position -> piece id)
rebuilt after every committed move.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import copy
import logging
from collections import Counter
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from app_types import CubeInvariantError, Face, Piece, RGB, SymbolicColor, Vec3
from color_oracle import classify, to_rgb
from config import BLANK_RGB, FACE_COLORS, LAYERS

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

PIECE_COUNT = 26
STICKERS_PER_COLOR = 9


def valid_cells() -> List[Vec3]:
    return [(x, y, z) for x in LAYERS for y in LAYERS for z in LAYERS if (x, y, z) != (0, 0, 0)]


VALID_CELLS = frozenset(valid_cells())


def is_valid_cell(position) -> bool:
    try:
        return tuple(position) in VALID_CELLS
    except TypeError:
        return False


def initial_stickers(position: Vec3) -> List[RGB]:
    stickers: List[RGB] = []
    for face in Face:
        n = face.normal
        outward = sum(p * c for p, c in zip(position, n)) == 1
        stickers.append(to_rgb(SymbolicColor(FACE_COLORS[face.name])) if outward else BLANK_RGB)
    return stickers


class PositionIndex:
    """position -> piece id, rebuilt from scratch after every commit."""

    def __init__(self) -> None:
        self._by_pos: Dict[Vec3, int] = {}

    def rebuild(self, pieces: Iterable[Piece]) -> None:
        table: Dict[Vec3, int] = {}
        for p in pieces:
            if p.position in table:
                raise CubeInvariantError(
                    f"Pieces {table[p.position]} and {p.id} share position {p.position}")
            table[p.position] = p.id
        self._by_pos = table

    def lookup(self, position) -> Optional[int]:
        return self._by_pos.get(tuple(position))

    def __len__(self) -> int:
        return len(self._by_pos)

    def items(self):
        return self._by_pos.items()


class PieceRegistry:
    def __init__(self) -> None:
        self._pieces: List[Piece] = []
        self.create_all()

    def create_all(self) -> None:
        """Build the 26 pieces in solved arrangement, ids 0..25 in x->y->z order."""
        self._pieces = [Piece(id=i, position=pos, stickers=initial_stickers(pos))
                        for i, pos in enumerate(valid_cells())]
        logger.debug("created %d pieces", len(self._pieces))

    def __iter__(self) -> Iterator[Piece]:
        return iter(self._pieces)

    def __len__(self) -> int:
        return len(self._pieces)

    def piece(self, piece_id: int) -> Piece:
        if not 0 <= piece_id < len(self._pieces):
            raise CubeInvariantError(f"Unknown piece id {piece_id}")
        return self._pieces[piece_id]

    def positions(self) -> Dict[int, Vec3]:
        return {p.id: p.position for p in self._pieces}

    def stickers(self) -> Dict[int, Tuple[RGB, ...]]:
        return {p.id: tuple(p.stickers) for p in self._pieces}

    def sticker_counts(self) -> Counter:
        counts: Counter = Counter()
        for p in self._pieces:
            for rgb in p.stickers:
                counts[classify(rgb)] += 1
        return counts

    def verify(self) -> None:
        """Raise CubeInvariantError unless conservation and bijection hold."""
        if len(self._pieces) != PIECE_COUNT:
            raise CubeInvariantError(f"Expected {PIECE_COUNT} pieces, have {len(self._pieces)}")
        cells = [p.position for p in self._pieces]
        if set(cells) != VALID_CELLS or len(set(cells)) != PIECE_COUNT:
            raise CubeInvariantError("Piece positions are not a bijection onto the 26 cells")
        counts = self.sticker_counts()
        for name in FACE_COLORS.values():
            color = SymbolicColor(name)
            if counts[color] != STICKERS_PER_COLOR:
                raise CubeInvariantError(
                    f"Color {color.value} appears {counts[color]} times, expected {STICKERS_PER_COLOR}")

    def snapshot(self) -> List[Piece]:
        return copy.deepcopy(self._pieces)

    def restore(self, pieces: List[Piece]) -> None:
        self._pieces = copy.deepcopy(pieces)
