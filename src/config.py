"""config.py — project configuration
------------------------------------

This file centralizes default runtime constants for the layer-by-layer cube
engine and solver. Keep in mind these are *defaults*; the engine, the solver
driver and the CLI accept overrides through constructor arguments and flags.

Notes / warnings
- Axis convention: x grows to the RIGHT face, y to UP, z to FRONT.
  Positive angles are clockwise when viewed from the positive end of the axis.
- White sits on DOWN and yellow on UP. The solver builds the cross and the
  first two layers on DOWN and finishes the last layer on UP.
- Solver limits are trade-offs between giving the heuristics room to recover
  and detecting a real failure quickly.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from typing import Dict, List, Tuple

# ---------------- Cube geometry ----------------

# Sticker slot order inside every piece.
FACE_ORDER: List[str] = ['FRONT', 'BACK', 'RIGHT', 'LEFT', 'UP', 'DOWN']

# Outward normal of each face, keyed by sticker slot name.
FACE_NORMALS: Dict[str, Tuple[int, int, int]] = {
    'FRONT': (0, 0, 1),
    'BACK': (0, 0, -1),
    'RIGHT': (1, 0, 0),
    'LEFT': (-1, 0, 0),
    'UP': (0, 1, 0),
    'DOWN': (0, -1, 0),
}

# Face letter used by the move notation and by the kociemba facelet string.
FACE_LETTERS: Dict[str, str] = {
    'FRONT': 'F', 'BACK': 'B', 'RIGHT': 'R', 'LEFT': 'L', 'UP': 'U', 'DOWN': 'D',
}

# Valid coordinate for a layer along any axis.
LAYERS: Tuple[int, int, int] = (-1, 0, 1)

# ---------------- Colors ----------------

# Canonical RGB for each symbolic color, components in [0, 1].
PALETTE: Dict[str, Tuple[float, float, float]] = {
    'W': (1.0, 1.0, 1.0),
    'Y': (1.0, 1.0, 0.0),
    'B': (0.0, 0.0, 1.0),
    'G': (0.0, 0.5, 0.0),
    'R': (1.0, 0.0, 0.0),
    'O': (1.0, 0.5, 0.0),
}

# Internal (hidden) faces carry this sentinel. Matched by exact equality only.
BLANK_RGB: Tuple[float, float, float] = (0.0, 0.0, 0.0)

# Color printed on each face of the solved cube.
FACE_COLORS: Dict[str, str] = {
    'UP': 'Y',
    'DOWN': 'W',
    'FRONT': 'B',
    'BACK': 'G',
    'RIGHT': 'R',
    'LEFT': 'O',
}

# Euclidean Lab shortlist size before the CIEDE2000 ranking.
COLOR_SHORTLIST: int = 2

# ---------------- Move engine ----------------

# Animation speed in degrees per second.
ROTATION_SPEED: float = 270.0

# A quarter turn, in degrees.
QUARTER_TURN: float = 90.0

# Uniform scale applied to every piece in the render transform (gaps between cubelets).
PIECE_SCALE: float = 0.95

# ---------------- Solver ----------------

# Hard ceiling on moves emitted for one solve.
MAX_SOLVER_MOVES: int = 1000

# A (phase, target, position, orientation) key seen more often than this is a stall.
STALL_THRESHOLD: int = 3

# Move issued to break a stall.
FALLBACK_MOVE: str = 'D'

# Default length of a random scramble.
SCRAMBLE_LENGTH: int = 20

# ---------------- Logging ----------------

LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
