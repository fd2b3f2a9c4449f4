# photomosaic/color/distance.py
"""
Colour distances over RawColor values.

  euclidean : squared Euclidean over the working-space channels. In HSV the
              saturation and value differences are scaled by 360 so all three
              terms are in degree-like units. Hue does not wrap: 359 vs 1
              degrees counts as 358 apart.
  ciede2000 : CIE Delta E 2000 (kL = kC = kH = 1). Inputs are mapped into
              CIE L*a*b* first when the working space is not CIELAB.

All functions broadcast over leading axes: (3,) vs (N, 3) gives (N,).
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import NDArray

from .convert import ColorSpace, RawColor, to_lab

DistanceAlgorithm = Literal["euclidean", "ciede2000"]

DISTANCE_ALGORITHMS: tuple[DistanceAlgorithm, ...] = ("euclidean", "ciede2000")

_HSV_SCALE = np.array([1.0, 360.0, 360.0], dtype=np.float64)
_POW25_7 = 25.0**7


def squared_euclidean(a: RawColor, b: RawColor) -> NDArray[np.float64]:
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return np.sum(diff * diff, axis=-1)


def hsv_euclidean(a: RawColor, b: RawColor) -> NDArray[np.float64]:
    diff = (np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)) * _HSV_SCALE
    return np.sum(diff * diff, axis=-1)


def _hue_degrees(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    # atan2(0, 0) is 0 in numpy; zero chroma pins the hue at 0 explicitly
    h = np.degrees(np.arctan2(b, a))
    h = np.where(h < 0.0, h + 360.0, h)
    return np.where((a == 0.0) & (b == 0.0), 0.0, h)


def delta_e2000(lab1: NDArray[np.floating], lab2: NDArray[np.floating]) -> NDArray[np.float64]:
    """
    CIEDE2000 between CIE L*a*b* colours, broadcasting over leading axes.
    """
    lab1 = np.asarray(lab1, dtype=np.float64)
    lab2 = np.asarray(lab2, dtype=np.float64)
    L1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    L2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar7 = (0.5 * (C1 + C2)) ** 7
    G = 0.5 * (1.0 - np.sqrt(C_bar7 / (C_bar7 + _POW25_7)))

    a1p = (1.0 + G) * a1
    a2p = (1.0 + G) * a2
    C1p = np.hypot(a1p, b1)
    C2p = np.hypot(a2p, b2)
    h1p = _hue_degrees(a1p, b1)
    h2p = _hue_degrees(a2p, b2)

    chroma_zero = (C1p * C2p) == 0.0

    dLp = L2 - L1
    dCp = C2p - C1p

    dhp = h2p - h1p
    dhp = np.where(dhp > 180.0, dhp - 360.0, dhp)
    dhp = np.where(dhp < -180.0, dhp + 360.0, dhp)
    dhp = np.where(chroma_zero, 0.0, dhp)
    dHp = 2.0 * np.sqrt(C1p * C2p) * np.sin(np.radians(dhp / 2.0))

    L_bar = 0.5 * (L1 + L2)
    C_bar_p = 0.5 * (C1p + C2p)

    h_sum = h1p + h2p
    h_bar_p = np.where(
        np.abs(h1p - h2p) <= 180.0,
        0.5 * h_sum,
        np.where(h_sum < 360.0, 0.5 * (h_sum + 360.0), 0.5 * (h_sum - 360.0)),
    )
    h_bar_p = np.where(chroma_zero, h_sum, h_bar_p)

    T = (
        1.0
        - 0.17 * np.cos(np.radians(h_bar_p - 30.0))
        + 0.24 * np.cos(np.radians(2.0 * h_bar_p))
        + 0.32 * np.cos(np.radians(3.0 * h_bar_p + 6.0))
        - 0.20 * np.cos(np.radians(4.0 * h_bar_p - 63.0))
    )

    d_theta = 30.0 * np.exp(-(((h_bar_p - 275.0) / 25.0) ** 2))
    C_bar_p7 = C_bar_p**7
    R_c = 2.0 * np.sqrt(C_bar_p7 / (C_bar_p7 + _POW25_7))

    L_off2 = (L_bar - 50.0) ** 2
    S_l = 1.0 + (0.015 * L_off2) / np.sqrt(20.0 + L_off2)
    S_c = 1.0 + 0.045 * C_bar_p
    S_h = 1.0 + 0.015 * C_bar_p * T
    R_t = -np.sin(np.radians(2.0 * d_theta)) * R_c

    l_term = dLp / S_l
    c_term = dCp / S_c
    h_term = dHp / S_h
    dE2 = l_term**2 + c_term**2 + h_term**2 + R_t * c_term * h_term
    # rounding can leave a tiny negative for identical inputs
    return np.sqrt(np.maximum(dE2, 0.0))


def distance(
    a: RawColor,
    b: RawColor,
    color_space: ColorSpace,
    algorithm: DistanceAlgorithm,
) -> NDArray[np.float64]:
    """
    Distance between RawColor(s) `a` and `b` in `color_space` under `algorithm`.
    """
    if algorithm == "euclidean":
        if color_space == "hsv":
            return hsv_euclidean(a, b)
        if color_space in ("rgb", "cielab"):
            return squared_euclidean(a, b)
        raise ValueError(f"Unknown color space: {color_space}")
    if algorithm == "ciede2000":
        return delta_e2000(to_lab(a, color_space), to_lab(b, color_space))
    raise ValueError(f"Unknown distance algorithm: {algorithm}")


def is_metric(algorithm: DistanceAlgorithm) -> bool:
    """
    True when sqrt(distance) obeys the triangle inequality.
    Euclidean values are squared, so their root is a true metric; CIEDE2000 is not.
    """
    return algorithm == "euclidean"


__all__ = [
    "DistanceAlgorithm",
    "DISTANCE_ALGORITHMS",
    "squared_euclidean",
    "hsv_euclidean",
    "delta_e2000",
    "distance",
    "is_metric",
]
