"""move_engine.py — layer rotations with animation and atomic commit
--------------------------------------------------------------------

Features & behavior:
 - begin_move() accepts one RotationRequest at a time. It is rejected (False,
   no state change) while another move is active or when the axis/layer is
   invalid. The affected pieces are captured by id, never by reference.
 - advance(dt) accumulates the visual angle at ROTATION_SPEED deg/s and
   commits once the target is reached; finish() commits immediately.
 - The commit computes every new position and sticker list first and then
   writes them all, then rebuilds the position index.
 - rotation_matrix() is the single convention: the render transform uses it
   directly and the discrete permutation is its rounding at +/-90 degrees, so
   positions and stickers can never disagree.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from app_types import Axis, Face, RotationProgress, RotationRequest, RGB, Vec3
from config import LAYERS, PIECE_SCALE, QUARTER_TURN, ROTATION_SPEED
from pieces import PieceRegistry, PositionIndex

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def rotation_matrix(axis: Axis, angle: float) -> np.ndarray:
    """
    3x3 rotation for `angle` degrees about `axis`, positive = clockwise seen
    from the positive end of the axis (a right-handed rotation by -angle).
    """
    t = math.radians(-angle)
    c, s = math.cos(t), math.sin(t)
    axis = Axis(axis)
    if axis is Axis.X:
        return np.array([[1, 0, 0], [0, c, -s], [0, s, c]])
    if axis is Axis.Y:
        return np.array([[c, 0, s], [0, 1, 0], [-s, 0, c]])
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])


def permutation_matrix(axis: Axis, angle: float) -> np.ndarray:
    """Integer matrix of a quarter-turn multiple."""
    return np.rint(rotation_matrix(axis, angle)).astype(int)


def rotate_position(position: Vec3, matrix: np.ndarray) -> Vec3:
    return tuple(int(v) for v in matrix @ np.asarray(position))


def rotate_face(face: Face, matrix: np.ndarray) -> Face:
    return Face.from_normal(matrix @ np.asarray(face.normal))


def rotate_stickers(stickers: List[RGB], matrix: np.ndarray) -> List[RGB]:
    """The sticker facing normal n ends up facing matrix @ n."""
    out: List[RGB] = list(stickers)
    for face in Face:
        out[int(rotate_face(face, matrix))] = stickers[int(face)]
    return out


def homogeneous(matrix3: np.ndarray) -> np.ndarray:
    m = np.eye(4)
    m[:3, :3] = matrix3
    return m


class MoveEngine:
    def __init__(self, registry: PieceRegistry, index: PositionIndex,
                 speed: float = ROTATION_SPEED) -> None:
        self.registry = registry
        self.index = index
        self.speed = float(speed)
        self.progress: Optional[RotationProgress] = None
        self.commits = 0

    # ---------------- state ----------------

    def is_move_active(self) -> bool:
        return self.progress is not None

    @property
    def active_request(self) -> Optional[RotationRequest]:
        return self.progress.request if self.progress else None

    @property
    def current_angle(self) -> float:
        return self.progress.angle if self.progress else 0.0

    @property
    def rotating_ids(self) -> Tuple[int, ...]:
        return self.progress.piece_ids if self.progress else ()

    # ---------------- requests ----------------

    def begin_move(self, request: RotationRequest) -> bool:
        if self.progress is not None:
            logger.debug("rejected %s: move already active", request)
            return False
        try:
            axis = Axis(request.axis)
        except ValueError:
            logger.debug("rejected %s: unknown axis", request)
            return False
        if request.layer not in LAYERS:
            logger.debug("rejected %s: layer out of range", request)
            return False
        if request.angle == 0 or request.angle % QUARTER_TURN != 0:
            logger.debug("rejected %s: angle must be a non-zero quarter-turn multiple", request)
            return False
        ids = tuple(p.id for p in self.registry if p.position[axis] == request.layer)
        self.progress = RotationProgress(request=request, piece_ids=ids)
        return True

    def advance(self, dt: float) -> bool:
        """Advance the animation by dt seconds; True when the move was committed."""
        if self.progress is None:
            return False
        target = self.progress.target
        step = math.copysign(self.speed * max(0.0, dt), target)
        self.progress.angle += step
        if self.progress.done:
            self.progress.angle = target
            self._commit()
            return True
        return False

    def finish(self) -> bool:
        """Commit the active move now (headless apply)."""
        if self.progress is None:
            return False
        self.progress.angle = self.progress.target
        self._commit()
        return True

    def _commit(self) -> None:
        prog = self.progress
        req = prog.request
        matrix = permutation_matrix(req.axis, req.angle)
        updates: Dict[int, Tuple[Vec3, List[RGB]]] = {}
        for pid in prog.piece_ids:
            piece = self.registry.piece(pid)
            updates[pid] = (rotate_position(piece.position, matrix),
                            rotate_stickers(piece.stickers, matrix))
        for pid, (pos, stickers) in updates.items():
            piece = self.registry.piece(pid)
            piece.position = pos
            piece.stickers = stickers
        self.index.rebuild(self.registry)
        self.progress = None
        self.commits += 1
        logger.debug("committed %s axis=%s layer=%d angle=%+.0f (%d pieces)",
                     self.commits, Axis(req.axis).name, req.layer, req.angle, len(updates))

    # ---------------- render boundary ----------------

    def piece_transform(self, piece_id: int, scale: float = PIECE_SCALE) -> np.ndarray:
        """4x4 world matrix: in-flight rotation * translation * scale."""
        piece = self.registry.piece(piece_id)
        m = np.eye(4)
        m[:3, 3] = piece.position
        m = m @ np.diag([scale, scale, scale, 1.0])
        if self.progress is not None and piece_id in self.progress.piece_ids:
            m = homogeneous(rotation_matrix(self.progress.request.axis, self.progress.angle)) @ m
        return m
