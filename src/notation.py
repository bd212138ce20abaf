"""notation.py — move vocabulary and sequence helpers
-----------------------------------------------------

Maps move tokens to rotation requests and handles sequences:
 - quarter-turn tokens R R' L L' U U' D D' F F' B B' and the slices M E S;
 - parse_sequence() accepts a trailing "2" (two quarter turns);
 - invert_sequence() reverses a sequence and inverts every token;
 - random_scramble() draws a scramble that avoids repeating a face.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import random
from typing import Dict, Iterable, List, Optional, Sequence

from app_types import Axis, RotationRequest
from config import QUARTER_TURN, SCRAMBLE_LENGTH

# base token -> (axis, layer, sign of the clockwise angle)
_BASE: Dict[str, tuple] = {
    'R': (Axis.X, 1, 1),
    'L': (Axis.X, -1, -1),
    'M': (Axis.X, 0, -1),
    'U': (Axis.Y, 1, 1),
    'D': (Axis.Y, -1, -1),
    'E': (Axis.Y, 0, -1),
    'F': (Axis.Z, 1, 1),
    'B': (Axis.Z, -1, -1),
    'S': (Axis.Z, 0, 1),
}

FACE_TOKENS: List[str] = ['R', 'L', 'U', 'D', 'F', 'B']
SLICE_TOKENS: List[str] = ['M', 'E', 'S']

MOVES: Dict[str, RotationRequest] = {}
for _tok, (_axis, _layer, _sign) in _BASE.items():
    MOVES[_tok] = RotationRequest(_axis, _layer, _sign * QUARTER_TURN)
    MOVES[_tok + "'"] = RotationRequest(_axis, _layer, -_sign * QUARTER_TURN)

# allowed modifiers for scrambles: normal, inverse, double
MODS = ['', "'", '2']


def request_for(token: str) -> RotationRequest:
    """Rotation request of a single quarter-turn token."""
    try:
        return MOVES[token]
    except KeyError:
        raise ValueError(f"Unknown move token: {token!r}") from None


def expand_token(token: str) -> List[str]:
    """'R2' -> ['R', 'R']; quarter turns pass through; unknown tokens raise ValueError."""
    tok = token.strip()
    if tok.endswith('2'):
        base = tok[:-1].rstrip("'")
        request_for(base)
        return [base, base]
    request_for(tok)
    return [tok]


def parse_sequence(seq) -> List[str]:
    """
    Parse a whitespace separated sequence (or an iterable of tokens) into
    quarter-turn tokens. An empty sequence yields [].
    """
    if not seq:
        return []
    tokens = seq.split() if isinstance(seq, str) else list(seq)
    out: List[str] = []
    for tok in tokens:
        if tok:
            out.extend(expand_token(tok))
    return out


def invert_token(token: str) -> str:
    request_for(token)
    return token[:-1] if token.endswith("'") else token + "'"


def invert_sequence(seq) -> List[str]:
    return [invert_token(t) for t in reversed(parse_sequence(seq))]


def random_scramble(length: int = SCRAMBLE_LENGTH, seed: Optional[int] = None,
                    avoid_cancel: bool = True, faces: Sequence[str] = FACE_TOKENS) -> List[str]:
    """
    Generate a random scramble (list of move tokens, may contain "X2") of given length.
    avoid_cancel never repeats the same face on consecutive tokens.
    """
    rng = random.Random(seed)
    moves: List[str] = []
    prev_face = None
    for _ in range(max(0, int(length))):
        choices = [f for f in faces if not (avoid_cancel and f == prev_face)]
        face = rng.choice(choices)
        mod = rng.choices(MODS, weights=(70, 15, 15))[0]  # bias to single turns
        moves.append(face + mod)
        prev_face = face
    return moves


def format_sequence(tokens: Iterable[str]) -> str:
    """Join tokens, folding consecutive equal quarter turns into X2."""
    out: List[str] = []
    for tok in tokens:
        if out and out[-1] == tok and not tok.endswith('2'):
            out[-1] = tok.rstrip("'") + '2'
        else:
            out.append(tok)
    return ' '.join(out)
