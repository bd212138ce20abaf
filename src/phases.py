"""phases.py — layer-by-layer phase solvers
------------------------------------------

Five ordered phases, each a pure function of the current cube state:

    cross -> f2l -> oll -> pll_edges -> pll_corners

Every phase exposes step(view, state) -> PhaseStep and a done(view)
predicate. A step classifies the situation into a small discriminant and
looks the reply up in an explicit case table; algorithms are written once
in a slot-relative frame and translated to absolute tokens by substituting
face letters around the vertical axis.

Conventions:
 - white is on DOWN (cross and first two layers), yellow on UP;
 - frame i looks at ring face RING[i] with RING[i + 1] on its right;
 - colors are always compared against the center stickers, never against
   hard-coded palette entries;
 - the first two layers use one insertion table keyed by (corner twist, edge
   spot) of the slot pair, composed once from the corner and edge inserts.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

from app_types import CubeInvariantError, Face, Piece, PhaseStep, SymbolicColor, Vec3
from color_oracle import classify
from move_engine import permutation_matrix, rotate_face, rotate_position
from notation import SLICE_TOKENS, invert_token, parse_sequence, request_for

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

RING: List[Face] = [Face.FRONT, Face.RIGHT, Face.BACK, Face.LEFT]

# ---------------- algorithms (slot-relative) ----------------

ALG_LIFT = "F F"
ALG_CROSS_MIDDLE = "R U R'"
ALG_CROSS_FLIP = "U' R' F R"
ALG_CORNER_OUT = "R U R'"
ALG_CORNER_RIGHT = "R U R'"
ALG_CORNER_FRONT = "F' U' F"
ALG_CORNER_UP = "R U U R' U'"
ALG_EDGE_RIGHT = "U R U' R' U' F' U F"
ALG_EDGE_LEFT = "U' F' U F U R U' R'"
ALG_EDGE_OUT = ALG_EDGE_RIGHT
ALG_OLL = "F R U R' U' F'"
ALG_PLL_EDGES = "R U R' U R U U R' U"
# front/back swap: adjacent swap, left/back swap, adjacent swap
ALG_PLL_EDGES_OPPOSITE = f"{ALG_PLL_EDGES} U' {ALG_PLL_EDGES} U {ALG_PLL_EDGES}"
ALG_PLL_CORNERS = "U R U' L' U R' U' L"
ALG_TWIST = "R' D' R D"


# ---------------- frames ----------------

@dataclass(frozen=True)
class Frame:
    index: int

    @property
    def front(self) -> Face:
        return RING[self.index % 4]

    @property
    def right(self) -> Face:
        return RING[(self.index + 1) % 4]

    @property
    def back(self) -> Face:
        return RING[(self.index + 2) % 4]

    @property
    def left(self) -> Face:
        return RING[(self.index + 3) % 4]

    def to_abs(self, rel: Vec3) -> Vec3:
        rx, y, rz = rel
        r, f = self.right.normal, self.front.normal
        return (rx * r[0] + rz * f[0], y, rx * r[2] + rz * f[2])

    def to_rel(self, pos: Vec3) -> Vec3:
        r, f = self.right.normal, self.front.normal
        return (pos[0] * r[0] + pos[2] * r[2], pos[1], pos[0] * f[0] + pos[2] * f[2])

    def rel_face(self, face: Face) -> Face:
        if face in RING:
            return RING[(RING.index(face) - self.index) % 4]
        return face

    def translate(self, alg: Union[str, Sequence[str]]) -> List[str]:
        letters = {'F': self.front.letter, 'R': self.right.letter, 'B': self.back.letter,
                   'L': self.left.letter, 'U': 'U', 'D': 'D'}
        return [letters[tok[0]] + tok[1:] for tok in parse_sequence(alg)]


FRAMES: List[Frame] = [Frame(i) for i in range(4)]


def frame_where(pos: Vec3, rel: Vec3) -> Frame:
    """The frame in which `pos` has relative coordinates `rel`."""
    for fr in FRAMES:
        if fr.to_rel(pos) == tuple(rel):
            return fr
    raise CubeInvariantError(f"No frame places {pos} at {rel}")


def u_turns(src: Vec3, dst: Vec3) -> List[str]:
    """Shortest U-layer turns carrying top cell `src` onto `dst`."""
    x, z = src[0], src[2]
    for k in range(4):
        if (x, z) == (dst[0], dst[2]):
            return {0: [], 1: ['U'], 2: ['U', 'U'], 3: ["U'"]}[k]
        x, z = -z, x
    raise CubeInvariantError(f"{src} cannot reach {dst} with U turns")


# ---------------- read-only view ----------------

class CubeView:
    """Color queries over a cube for the phase solvers."""

    def __init__(self, cube) -> None:
        self.cube = cube

    def color_at(self, pos: Vec3, face: Face) -> SymbolicColor:
        return self.cube.sticker_color(pos, face)

    def center_color(self, face: Face) -> SymbolicColor:
        return self.color_at(face.normal, face)

    @property
    def white(self) -> SymbolicColor:
        return self.center_color(Face.DOWN)

    @property
    def yellow(self) -> SymbolicColor:
        return self.center_color(Face.UP)

    def colors(self, piece: Piece) -> Dict[Face, SymbolicColor]:
        out: Dict[Face, SymbolicColor] = {}
        for face in Face:
            c = classify(piece.sticker(face))
            if c is not SymbolicColor.BLANK:
                out[face] = c
        return out

    def find(self, colors) -> Piece:
        wanted: FrozenSet[SymbolicColor] = frozenset(colors)
        for p in self.cube.registry:
            if frozenset(self.colors(p).values()) == wanted:
                return p
        raise CubeInvariantError(f"No piece carries colors {sorted(c.value for c in wanted)}")

    def face_of(self, piece: Piece, color: SymbolicColor) -> Face:
        for face, c in self.colors(piece).items():
            if c is color:
                return face
        raise CubeInvariantError(f"Piece {piece.id} has no {color.value} sticker")

    def cell_matches(self, pos: Vec3) -> bool:
        """Every outward sticker at `pos` equals the center of the face it looks at."""
        for face in Face:
            n = face.normal
            if sum(a * b for a, b in zip(pos, n)) == 1:
                if self.color_at(pos, face) is not self.center_color(face):
                    return False
        return True

    def color_solved(self) -> bool:
        return all(self.cell_matches(p.position) for p in self.cube.registry)


# ---------------- phase states ----------------

@dataclass(frozen=True)
class CrossPhase:
    edge: int = 0


@dataclass(frozen=True)
class F2LPhase:
    slot: int = 0


@dataclass(frozen=True)
class OLLPhase:
    pass


@dataclass(frozen=True)
class PLLEdgesPhase:
    pass


@dataclass(frozen=True)
class PLLCornersPhase:
    pass


Phase = Union[CrossPhase, F2LPhase, OLLPhase, PLLEdgesPhase, PLLCornersPhase]


def _advance(state, target=None) -> PhaseStep:
    return PhaseStep(moves=[], complete=False, state=state, target=target)


# ---------------- centers ----------------

CENTER_TURNS: List[str] = [t + m for t in SLICE_TOKENS for m in ('', "'")]


def center_pieces(view: CubeView) -> List[Piece]:
    return [p for p in view.cube.registry if len(view.colors(p)) == 1]


def center_turns(view: CubeView) -> List[str]:
    """Shortest slice sequence bringing every center piece back to its reference cell."""
    solved = view.cube.solved_positions()
    centers = center_pieces(view)
    start = tuple(p.position for p in centers)
    goal = tuple(solved[p.id] for p in centers)
    if start == goal:
        return []
    seen = {start}
    queue = deque([(start, [])])
    while queue:
        cells, path = queue.popleft()
        for tok in CENTER_TURNS:
            req = request_for(tok)
            m = permutation_matrix(req.axis, req.angle)
            nxt = tuple(rotate_position(c, m) if c[int(req.axis)] == req.layer else c for c in cells)
            if nxt == goal:
                return path + [tok]
            if nxt not in seen:
                seen.add(nxt)
                queue.append((nxt, path + [tok]))
    raise CubeInvariantError(f"Centers at {start} cannot be brought home with slice turns")


# ---------------- cross ----------------

class CrossCase(Enum):
    SOLVED = 'solved'
    BOTTOM_FLIPPED = 'bottom_flipped'
    BOTTOM_MISPLACED = 'bottom_misplaced'
    BOTTOM_FREE = 'bottom_free'
    MIDDLE = 'middle'
    TOP_UNALIGNED = 'top_unaligned'
    TOP_WHITE_UP = 'top_white_up'
    TOP_WHITE_SIDE = 'top_white_side'


CROSS_TABLE: Dict[CrossCase, str] = {
    CrossCase.SOLVED: "",
    CrossCase.BOTTOM_FLIPPED: ALG_LIFT,
    CrossCase.BOTTOM_MISPLACED: ALG_LIFT,
    CrossCase.BOTTOM_FREE: "D",
    CrossCase.MIDDLE: ALG_CROSS_MIDDLE,
    CrossCase.TOP_WHITE_UP: ALG_LIFT,
    CrossCase.TOP_WHITE_SIDE: ALG_CROSS_FLIP,
}

CROSS_TARGET = (0, -1, 1)


def cross_cells() -> List[Vec3]:
    return [fr.to_abs(CROSS_TARGET) for fr in FRAMES]


def cross_done(view: CubeView) -> bool:
    return all(view.cell_matches(pos) for pos in cross_cells())


def classify_cross(view: CubeView, edge: int) -> Tuple[CrossCase, Frame, List[str]]:
    """(case, frame the table entry runs in, alignment turns for TOP_UNALIGNED)."""
    fr = FRAMES[edge]
    piece = view.find({view.white, view.center_color(fr.front)})
    pos = piece.position
    white_face = view.face_of(piece, view.white)
    target = fr.to_abs(CROSS_TARGET)
    y = pos[1]
    if y == -1:
        if pos == target:
            if white_face is Face.DOWN:
                return CrossCase.SOLVED, fr, []
            return CrossCase.BOTTOM_FLIPPED, fr, []
        if not any(view.cell_matches(c) for c in cross_cells()):
            return CrossCase.BOTTOM_FREE, fr, []
        return CrossCase.BOTTOM_MISPLACED, frame_where(pos, CROSS_TARGET), []
    if y == 0:
        return CrossCase.MIDDLE, frame_where(pos, (1, 0, 1)), []
    above = fr.to_abs((0, 1, 1))
    if pos != above:
        return CrossCase.TOP_UNALIGNED, fr, u_turns(pos, above)
    if white_face is Face.UP:
        return CrossCase.TOP_WHITE_UP, fr, []
    return CrossCase.TOP_WHITE_SIDE, fr, []


def cross_step(view: CubeView, state: CrossPhase) -> PhaseStep:
    if state.edge >= 4:
        if cross_done(view):
            return PhaseStep(moves=[], complete=True, state=state, reason='cross verified')
        logger.info("cross disturbed, restarting from the first edge")
        return _advance(CrossPhase(0))
    case, fr, align = classify_cross(view, state.edge)
    piece = view.find({view.white, view.center_color(FRAMES[state.edge].front)})
    target = ('edge', state.edge, piece.position, view.face_of(piece, view.white).name)
    if case is CrossCase.SOLVED:
        return _advance(CrossPhase(state.edge + 1))
    moves = align if case is CrossCase.TOP_UNALIGNED else fr.translate(CROSS_TABLE[case])
    return PhaseStep(moves=moves, complete=False, state=state, reason=case.value, target=target)


# ---------------- first two layers ----------------

class F2LCase(Enum):
    CORNER_OUT = 'corner_out'
    EDGE_OUT = 'edge_out'
    ALIGN = 'align'
    INSERT = 'insert'


class CornerTwist(Enum):
    """Where the white sticker of the slot corner looks while it waits above the slot."""
    WHITE_UP = 'U'
    WHITE_FRONT = 'F'
    WHITE_RIGHT = 'R'


class EdgeSpot(Enum):
    """Slot edge placement; for top cells, which of the two target colours faces up."""
    UF_F = 'UF/F'
    UF_R = 'UF/R'
    UR_F = 'UR/F'
    UR_R = 'UR/R'
    UB_F = 'UB/F'
    UB_R = 'UB/R'
    UL_F = 'UL/F'
    UL_R = 'UL/R'
    SLOT_OK = 'FR/ok'
    SLOT_FLIPPED = 'FR/flipped'


SLOT_CORNER = (1, -1, 1)
SLOT_EDGE = (1, 0, 1)
ABOVE_SLOT = (1, 1, 1)

TOP_CELL_NAMES: Dict[Tuple[int, int], str] = {(0, 1): 'UF', (1, 0): 'UR', (0, -1): 'UB', (-1, 0): 'UL'}

# stickers are labelled W (anchor), F (front target colour), R (right target colour)
TWIST_STICKERS: Dict[CornerTwist, Dict[Face, str]] = {
    CornerTwist.WHITE_UP: {Face.UP: 'W', Face.FRONT: 'R', Face.RIGHT: 'F'},
    CornerTwist.WHITE_FRONT: {Face.UP: 'F', Face.FRONT: 'W', Face.RIGHT: 'R'},
    CornerTwist.WHITE_RIGHT: {Face.UP: 'R', Face.FRONT: 'F', Face.RIGHT: 'W'},
}
SOLVED_CORNER: Dict[Face, str] = {Face.DOWN: 'W', Face.FRONT: 'F', Face.RIGHT: 'R'}
SOLVED_EDGE: Dict[Face, str] = {Face.FRONT: 'F', Face.RIGHT: 'R'}

CORNER_INSERT: Dict[CornerTwist, str] = {
    CornerTwist.WHITE_UP: ALG_CORNER_UP,
    CornerTwist.WHITE_FRONT: ALG_CORNER_FRONT,
    CornerTwist.WHITE_RIGHT: ALG_CORNER_RIGHT,
}


@dataclass
class PairState:
    """Slot corner and slot edge in slot-relative coordinates."""
    corner_pos: Vec3
    corner: Dict[Face, str]
    edge_pos: Vec3
    edge: Dict[Face, str]

    def turn(self, token: str) -> "PairState":
        req = request_for(token)
        m = permutation_matrix(req.axis, req.angle)
        axis = int(req.axis)

        def move(pos, stickers):
            if pos[axis] != req.layer:
                return pos, stickers
            return rotate_position(pos, m), {rotate_face(f, m): c for f, c in stickers.items()}

        cp, cs = move(self.corner_pos, self.corner)
        ep, es = move(self.edge_pos, self.edge)
        return PairState(cp, cs, ep, es)

    @property
    def solved(self) -> bool:
        return (self.corner_pos == SLOT_CORNER and self.corner == SOLVED_CORNER
                and self.edge_pos == SLOT_EDGE and self.edge == SOLVED_EDGE)


def pair_key(st: PairState) -> Tuple[CornerTwist, EdgeSpot]:
    """Table key of a pair whose corner sits above the slot."""
    white = next(f for f, c in st.corner.items() if c == 'W')
    twist = CornerTwist(white.letter)
    if st.edge_pos == SLOT_EDGE:
        return twist, EdgeSpot.SLOT_OK if st.edge.get(Face.FRONT) == 'F' else EdgeSpot.SLOT_FLIPPED
    cell = TOP_CELL_NAMES[(st.edge_pos[0], st.edge_pos[2])]
    return twist, EdgeSpot(f"{cell}/{st.edge[Face.UP]}")


def pair_setup(twist: CornerTwist, spot: EdgeSpot) -> PairState:
    corner = dict(TWIST_STICKERS[twist])
    if spot is EdgeSpot.SLOT_OK:
        return PairState(ABOVE_SLOT, corner, SLOT_EDGE, dict(SOLVED_EDGE))
    if spot is EdgeSpot.SLOT_FLIPPED:
        return PairState(ABOVE_SLOT, corner, SLOT_EDGE, {Face.FRONT: 'R', Face.RIGHT: 'F'})
    cell, up = spot.value.split('/')
    x, z = next(k for k, v in TOP_CELL_NAMES.items() if v == cell)
    side = Face.from_normal((x, 0, z))
    return PairState(ABOVE_SLOT, corner, (x, 1, z), {Face.UP: up, side: 'R' if up == 'F' else 'F'})


def _cancel(tokens: List[str]) -> List[str]:
    out: List[str] = []
    for tok in tokens:
        if out and out[-1] == invert_token(tok):
            out.pop()
        else:
            out.append(tok)
    return out


def solve_pair(st: PairState, limit: int = 16) -> List[str]:
    """
    Moves (frame 0) taking a pair from `st` into the slot: the corner goes in
    first, then the edge, re-evaluated after every algorithm. Only the top
    layer and the slot itself are disturbed.
    """
    moves: List[str] = []
    for _ in range(limit):
        if st.solved:
            return _cancel(moves)
        if st.corner_pos != SLOT_CORNER or st.corner != SOLVED_CORNER:
            if st.corner_pos[1] == -1:
                seq = parse_sequence(ALG_CORNER_OUT)
            elif st.corner_pos != ABOVE_SLOT:
                seq = u_turns(st.corner_pos, ABOVE_SLOT)
            else:
                seq = parse_sequence(CORNER_INSERT[pair_key(st)[0]])
        elif st.edge_pos[1] == 0:
            seq = parse_sequence(ALG_EDGE_OUT)
        else:
            side = next(c for f, c in st.edge.items() if f is not Face.UP)
            goal, alg = ((0, 1, 1), ALG_EDGE_RIGHT) if side == 'F' else ((1, 1, 0), ALG_EDGE_LEFT)
            seq = u_turns(st.edge_pos, goal) or parse_sequence(alg)
        for tok in seq:
            st = st.turn(tok)
        moves.extend(seq)
    raise CubeInvariantError(f"Pair insertion did not converge from {st}")


# one insertion per (corner twist, edge spot), composed once from the corner and edge inserts
PAIR_TABLE: Dict[Tuple[CornerTwist, EdgeSpot], str] = {
    (t, s): ' '.join(solve_pair(pair_setup(t, s))) for t in CornerTwist for s in EdgeSpot
}


def slot_cells(slot: int) -> Tuple[Vec3, Vec3]:
    fr = FRAMES[slot]
    return fr.to_abs(SLOT_CORNER), fr.to_abs(SLOT_EDGE)


def slot_done(view: CubeView, slot: int) -> bool:
    return all(view.cell_matches(c) for c in slot_cells(slot))


def f2l_done(view: CubeView) -> bool:
    return cross_done(view) and all(slot_done(view, s) for s in range(4))


def slot_pieces(view: CubeView, slot: int) -> Tuple[Piece, Piece]:
    fr = FRAMES[slot]
    cf, cr = view.center_color(fr.front), view.center_color(fr.right)
    return view.find({view.white, cf, cr}), view.find({cf, cr})


def pair_state(view: CubeView, slot: int) -> PairState:
    fr = FRAMES[slot]
    corner, edge = slot_pieces(view, slot)
    labels = {view.white: 'W', view.center_color(fr.front): 'F', view.center_color(fr.right): 'R'}

    def rel(piece: Piece) -> Dict[Face, str]:
        return {fr.rel_face(f): labels[c] for f, c in view.colors(piece).items()}

    return PairState(fr.to_rel(corner.position), rel(corner), fr.to_rel(edge.position), rel(edge))


def classify_f2l(view: CubeView, slot: int) -> Tuple[F2LCase, Frame, Optional[Tuple[CornerTwist, EdgeSpot]]]:
    """(case, frame the reply runs in, pair table key for INSERT) of an unfinished slot."""
    fr = FRAMES[slot]
    corner, edge = slot_pieces(view, slot)
    if corner.position[1] == -1:
        return F2LCase.CORNER_OUT, frame_where(corner.position, SLOT_CORNER), None
    if edge.position[1] == 0 and edge.position != fr.to_abs(SLOT_EDGE):
        return F2LCase.EDGE_OUT, frame_where(edge.position, SLOT_EDGE), None
    if corner.position != fr.to_abs(ABOVE_SLOT):
        return F2LCase.ALIGN, fr, None
    return F2LCase.INSERT, fr, pair_key(pair_state(view, slot))


def f2l_step(view: CubeView, state: F2LPhase) -> PhaseStep:
    if state.slot >= 4:
        if f2l_done(view):
            return PhaseStep(moves=[], complete=True, state=state, reason='f2l verified')
        logger.info("first two layers disturbed, restarting from the first slot")
        return _advance(F2LPhase(0))
    if slot_done(view, state.slot):
        return _advance(F2LPhase(state.slot + 1))
    corner, edge = slot_pieces(view, state.slot)
    target = ('slot', state.slot, corner.position, view.face_of(corner, view.white).name,
              edge.position, tuple(sorted(f.name for f in view.colors(edge))))
    case, fr, key = classify_f2l(view, state.slot)
    if case is F2LCase.CORNER_OUT:
        moves, reason = fr.translate(ALG_CORNER_OUT), case.value
    elif case is F2LCase.EDGE_OUT:
        moves, reason = fr.translate(ALG_EDGE_OUT), case.value
    elif case is F2LCase.ALIGN:
        moves, reason = u_turns(corner.position, fr.to_abs(ABOVE_SLOT)), case.value
    else:
        moves, reason = fr.translate(PAIR_TABLE[key]), f"insert {key[0].value} x {key[1].value}"
    return PhaseStep(moves=moves, complete=False, state=state, reason=reason, target=target)


# ---------------- last layer orientation (yellow cross) ----------------

class OllShape(Enum):
    DOT = 'dot'
    L_SHAPE = 'l_shape'
    LINE = 'line'
    CROSS = 'cross'


# top edges in absolute frame order F, R, B, L
TOP_EDGES: List[Vec3] = [(0, 1, 1), (1, 1, 0), (0, 1, -1), (-1, 1, 0)]
UF, UR, UB, UL = range(4)

OLL_TABLE: Dict[OllShape, str] = {
    OllShape.DOT: ALG_OLL,
    OllShape.L_SHAPE: ALG_OLL,
    OllShape.LINE: ALG_OLL,
    OllShape.CROSS: "",
}

# sub-orientation the algorithm expects
OLL_READY: Dict[OllShape, FrozenSet[int]] = {
    OllShape.L_SHAPE: frozenset({UB, UL}),
    OllShape.LINE: frozenset({UL, UR}),
}


def top_edges_up(view: CubeView) -> List[bool]:
    return [view.color_at(pos, Face.UP) is view.yellow for pos in TOP_EDGES]


def classify_oll(view: CubeView) -> Tuple[OllShape, FrozenSet[int]]:
    up = top_edges_up(view)
    lit = frozenset(i for i, v in enumerate(up) if v)
    if len(lit) == 4:
        return OllShape.CROSS, lit
    if len(lit) == 2:
        a, b = sorted(lit)
        return (OllShape.LINE if b - a == 2 else OllShape.L_SHAPE), lit
    return OllShape.DOT, lit


def oll_done(view: CubeView) -> bool:
    return f2l_done(view) and all(top_edges_up(view))


def _top_signature(view: CubeView) -> Tuple:
    cells = TOP_EDGES + [(1, 1, 1), (-1, 1, 1), (1, 1, -1), (-1, 1, -1)]
    return tuple((view.cube.piece_at(c).id, view.color_at(c, Face.UP).value) for c in cells)


def oll_step(view: CubeView, state: OLLPhase) -> PhaseStep:
    shape, lit = classify_oll(view)
    if shape is OllShape.CROSS:
        return PhaseStep(moves=[], complete=True, state=state, reason='yellow cross')
    target = ('oll', shape.value, _top_signature(view))
    ready = OLL_READY.get(shape)
    if ready is not None and lit != ready:
        return PhaseStep(moves=['U'], complete=False, state=state, reason=shape.value + ' align', target=target)
    return PhaseStep(moves=FRAMES[0].translate(OLL_TABLE[shape]), complete=False, state=state,
                     reason=shape.value, target=target)


# ---------------- last layer edge permutation ----------------

class EdgePerm(Enum):
    SOLVED = 'solved'
    ROTATE = 'rotate'
    ADJACENT = 'adjacent'
    OPPOSITE = 'opposite'


PLL_EDGE_TABLE: Dict[EdgePerm, str] = {
    EdgePerm.SOLVED: "",
    EdgePerm.ADJACENT: ALG_PLL_EDGES,
    EdgePerm.OPPOSITE: ALG_PLL_EDGES_OPPOSITE,
}

# (quarter turns of U, tokens) in tie-break order
ROTATIONS: List[Tuple[int, List[str]]] = [(0, []), (1, ["U"]), (3, ["U'"]), (2, ["U", "U"])]


def top_edges_aligned(view: CubeView) -> List[bool]:
    """Per ring face: does the top edge's side sticker match that face's center."""
    out = []
    for face in RING:
        pos = (face.normal[0], 1, face.normal[2])
        out.append(view.color_at(pos, face) is view.center_color(face))
    return out


def pll_edges_done(view: CubeView) -> bool:
    return oll_done(view) and all(top_edges_aligned(view))


def rotation_scores(view: CubeView) -> Dict[int, int]:
    """Top edges matching their centers after k quarter turns of U."""
    sides = [view.color_at((f.normal[0], 1, f.normal[2]), f) for f in RING]
    centers = [view.center_color(f) for f in RING]
    # U carries ring slot i to slot i - 1
    return {k: sum(sides[i] is centers[(i - k) % 4] for i in range(4)) for k in range(4)}


def rotation_turns(view: CubeView) -> List[str]:
    scores = rotation_scores(view)
    _, turns = max(ROTATIONS, key=lambda r: scores[r[0]])
    return list(turns)


def classify_pll_edges(view: CubeView) -> Tuple[EdgePerm, Frame]:
    aligned = top_edges_aligned(view)
    good = {i for i, v in enumerate(aligned) if v}
    if len(good) == 4:
        return EdgePerm.SOLVED, FRAMES[0]
    if len(good) != 2:
        return EdgePerm.ROTATE, FRAMES[0]
    for fr in FRAMES:
        # aligned pair at relative back and right
        if good == {(fr.index + 1) % 4, (fr.index + 2) % 4}:
            return EdgePerm.ADJACENT, fr
    for fr in FRAMES:
        # aligned pair at relative left and right
        if good == {(fr.index + 1) % 4, (fr.index + 3) % 4}:
            return EdgePerm.OPPOSITE, fr
    raise CubeInvariantError(f"Unclassifiable edge alignment {aligned}")


def pll_edges_step(view: CubeView, state: PLLEdgesPhase) -> PhaseStep:
    case, fr = classify_pll_edges(view)
    if case is EdgePerm.SOLVED:
        return PhaseStep(moves=[], complete=True, state=state, reason='edges permuted')
    moves = rotation_turns(view) if case is EdgePerm.ROTATE else fr.translate(PLL_EDGE_TABLE[case])
    return PhaseStep(moves=moves, complete=False, state=state,
                     reason=case.value, target=('pll_edges', case.value, _top_signature(view)))


# ---------------- last layer corners (permute, then orient) ----------------

class CornerPerm(Enum):
    ALL = 'all'
    ONE = 'one'
    OTHER = 'other'


PLL_CORNER_TABLE: Dict[CornerPerm, str] = {
    CornerPerm.ONE: ALG_PLL_CORNERS,
    CornerPerm.OTHER: ALG_PLL_CORNERS,
}


def top_corners_placed(view: CubeView) -> List[bool]:
    """Per frame: is the corner at relative UFR the one that belongs there (any twist)."""
    out = []
    for fr in FRAMES:
        pos = fr.to_abs((1, 1, 1))
        want = {view.yellow, view.center_color(fr.front), view.center_color(fr.right)}
        out.append(set(view.colors(view.cube.piece_at(pos)).values()) == want)
    return out


def classify_pll_corners(view: CubeView) -> Tuple[CornerPerm, Frame]:
    placed = top_corners_placed(view)
    good = [i for i, v in enumerate(placed) if v]
    if len(good) == 4:
        return CornerPerm.ALL, FRAMES[0]
    if len(good) == 1:
        return CornerPerm.ONE, FRAMES[good[0]]
    return CornerPerm.OTHER, FRAMES[0]


def corner_twists(cube, limit: int = 6) -> List[str]:
    """
    Orient the top corners in place: for each corner brought to UFR, repeat
    R' D' R D until yellow faces up, then turn U. Simulated on a clone; the
    first two layers come back once all four corners are done.
    """
    sim = cube.clone()
    yellow = sim.sticker_color(Face.UP.normal, Face.UP)
    moves: List[str] = []
    for _ in range(4):
        n = 0
        while sim.sticker_color((1, 1, 1), Face.UP) is not yellow and n < limit:
            moves.extend(sim.apply_sequence(ALG_TWIST))
            n += 1
        sim.apply_move('U')
        moves.append('U')
    return moves


def pll_corners_step(view: CubeView, state: PLLCornersPhase) -> PhaseStep:
    if view.color_solved():
        return PhaseStep(moves=[], complete=True, state=state, reason='solved')
    case, fr = classify_pll_corners(view)
    target = ('pll_corners', case.value, _top_signature(view))
    if case is CornerPerm.ALL:
        corners = [fr_.to_abs((1, 1, 1)) for fr_ in FRAMES]
        if all(view.color_at(c, Face.UP) is view.yellow for c in corners):
            # oriented and placed: only the top layer can still be off
            return PhaseStep(moves=['U'], complete=False, state=state, reason='auf', target=target)
        return PhaseStep(moves=corner_twists(view.cube), complete=False, state=state,
                         reason='orient corners', target=target)
    return PhaseStep(moves=fr.translate(PLL_CORNER_TABLE[case]), complete=False, state=state,
                     reason='corners ' + case.value, target=target)


# ---------------- phase registry ----------------

@dataclass(frozen=True)
class PhaseSpec:
    name: str
    initial: Callable[[], Phase]
    step: Callable[[CubeView, Phase], PhaseStep]
    done: Callable[[CubeView], bool]


PHASES: List[PhaseSpec] = [
    PhaseSpec('cross', CrossPhase, cross_step, cross_done),
    PhaseSpec('f2l', F2LPhase, f2l_step, f2l_done),
    PhaseSpec('oll', OLLPhase, oll_step, oll_done),
    PhaseSpec('pll_edges', PLLEdgesPhase, pll_edges_step, pll_edges_done),
    PhaseSpec('pll_corners', PLLCornersPhase, pll_corners_step, lambda view: view.color_solved()),
]


def phase_index(state: Optional[Phase]) -> int:
    for i, spec in enumerate(PHASES):
        if isinstance(state, spec.initial):
            return i
    return -1
