"""color_oracle.py — raw RGB -> symbolic sticker color
------------------------------------------------------

Single shared classifier used by the cube (solved check, facelet export) and
by the solver (case discrimination).

Behavior:
 - The BLANK sentinel of hidden faces is recognized by exact equality only.
 - Every other input is clipped to [0, 1] (NaN -> 0), converted to CIE-L*a*b*
   with OpenCV and matched against the six canonical colors: a Euclidean
   shortlist in Lab, then a CIEDE2000 ranking. Palette order breaks ties.
 - Deterministic and total; results are memoized per RGB triple.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np

from app_types import RGB, SymbolicColor
from config import BLANK_RGB, COLOR_SHORTLIST, PALETTE

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

CANONICAL: Tuple[SymbolicColor, ...] = tuple(SymbolicColor(c) for c in PALETTE)


def rgb2lab(rgb_values: np.ndarray) -> np.ndarray:
    """
    Convert an (N, 3) array of RGB in [0, 1] to CIE-L*a*b* (L in 0..100).
    OpenCV handles float32 input in the unit range directly.
    """
    arr = np.nan_to_num(np.asarray(rgb_values, dtype=np.float32), nan=0.0)
    arr = np.clip(arr, 0.0, 1.0).reshape(-1, 1, 3)
    lab = cv2.cvtColor(arr, cv2.COLOR_RGB2LAB)
    return lab.reshape(-1, 3).astype(float)


def ciede2000(Lab_1: Sequence[float], Lab_2: Sequence[float]) -> float:
    """
    CIEDE2000 color difference.
    Expects Lab_1 and Lab_2 as CIE-L*a*b* (L ~ 0..100).
    """
    C_25_7 = 6103515625  # 25**7

    L1, a1, b1 = Lab_1[0], Lab_1[1], Lab_1[2]
    L2, a2, b2 = Lab_2[0], Lab_2[1], Lab_2[2]
    C1 = math.sqrt(a1 * a1 + b1 * b1)
    C2 = math.sqrt(a2 * a2 + b2 * b2)
    C_ave = (C1 + C2) / 2.0
    G = 0.5 * (1.0 - math.sqrt((C_ave ** 7) / (C_ave ** 7 + C_25_7)))

    a1_, a2_ = (1.0 + G) * a1, (1.0 + G) * a2
    C1_ = math.sqrt(a1_ * a1_ + b1 * b1)
    C2_ = math.sqrt(a2_ * a2_ + b2 * b2)

    def hue(b: float, a: float) -> float:
        if a == 0 and b == 0:
            return 0.0
        h = math.atan2(b, a)
        return h + 2.0 * math.pi if h < 0 else h

    h1_ = hue(b1, a1_)
    h2_ = hue(b2, a2_)

    dL_ = L2 - L1
    dC_ = C2_ - C1_
    dh_ = h2_ - h1_
    if C1_ * C2_ == 0:
        dh_ = 0.0
    elif dh_ > math.pi:
        dh_ -= 2.0 * math.pi
    elif dh_ < -math.pi:
        dh_ += 2.0 * math.pi

    dH_ = 2.0 * math.sqrt(max(0.0, C1_ * C2_)) * math.sin(dh_ / 2.0)

    L_ave = (L1 + L2) / 2.0
    C_ave = (C1_ + C2_) / 2.0

    _dh = abs(h1_ - h2_)
    _sh = h1_ + h2_
    C1C2 = C1_ * C2_

    if _dh <= math.pi and C1C2 != 0:
        h_ave = _sh / 2.0
    elif _dh > math.pi and _sh < 2.0 * math.pi and C1C2 != 0:
        h_ave = _sh / 2.0 + math.pi
    elif _dh > math.pi and C1C2 != 0:
        h_ave = _sh / 2.0 - math.pi
    else:
        h_ave = _sh

    T = 1.0 - 0.17 * math.cos(h_ave - math.pi / 6.0) + 0.24 * math.cos(2.0 * h_ave) + \
        0.32 * math.cos(3.0 * h_ave + math.pi / 30.0) - 0.20 * math.cos(4.0 * h_ave - 63.0 * math.pi / 180.0)

    h_ave_deg = math.degrees(h_ave) % 360.0
    dTheta = 30.0 * math.exp(-(((h_ave_deg - 275.0) / 25.0) ** 2.0))

    R_C = 2.0 * math.sqrt((C_ave ** 7.0) / (C_ave ** 7.0 + C_25_7))
    S_C = 1.0 + 0.045 * C_ave
    S_H = 1.0 + 0.015 * C_ave * T

    Lm50s = (L_ave - 50.0) ** 2.0
    S_L = 1.0 + 0.015 * Lm50s / math.sqrt(20.0 + Lm50s)
    R_T = -math.sin(dTheta * math.pi / 90.0) * R_C

    f_L = dL_ / S_L
    f_C = dC_ / S_C
    f_H = dH_ / S_H

    return float(math.sqrt(max(0.0, f_L * f_L + f_C * f_C + f_H * f_H + R_T * f_C * f_H)))


_PALETTE_LAB: np.ndarray = rgb2lab(np.array([PALETTE[c.value] for c in CANONICAL]))


@lru_cache(maxsize=4096)
def _classify_cached(rgb: RGB) -> SymbolicColor:
    lab = rgb2lab(np.array([rgb]))[0]
    dists = np.linalg.norm(_PALETTE_LAB - lab, axis=1)
    # stable sort keeps palette order on ties
    shortlist = np.argsort(dists, kind='stable')[:max(1, COLOR_SHORTLIST)]
    best = min(shortlist, key=lambda i: (ciede2000(lab, _PALETTE_LAB[i]), int(i)))
    return CANONICAL[int(best)]


def classify(rgb: Sequence[float]) -> SymbolicColor:
    """Nearest symbolic color for `rgb`; BLANK only for the exact sentinel."""
    key = tuple(float(v) for v in rgb)
    if len(key) != 3:
        raise ValueError(f"Expected an RGB triple, got {len(key)} components")
    if key == BLANK_RGB:
        return SymbolicColor.BLANK
    return _classify_cached(key)


def to_rgb(color: SymbolicColor) -> RGB:
    """Canonical RGB of a symbolic color (BLANK -> sentinel)."""
    color = SymbolicColor(color)
    if color is SymbolicColor.BLANK:
        return BLANK_RGB
    return PALETTE[color.value]


def palette_lab() -> Dict[SymbolicColor, List[float]]:
    """Lab coordinates of the canonical palette (diagnostics)."""
    return {c: _PALETTE_LAB[i].tolist() for i, c in enumerate(CANONICAL)}
