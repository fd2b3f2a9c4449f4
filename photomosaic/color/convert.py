# photomosaic/color/convert.py
"""
Colour conversions from 8-bit RGB into the working colour space.

Working-space scales:
  rgb    : each channel in [0, 1]
  hsv    : hue in degrees [0, 360), saturation and value in [0, 1]
  cielab : L* in [0, 100], a*/b* unbounded (D65, 2 degree observer)

Both functions are vectorised over leading axes and preserve the input shape.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import NDArray
from skimage.color import hsv2rgb, rgb2hsv, rgb2lab

ColorSpace = Literal["rgb", "hsv", "cielab"]
RawColor = NDArray[np.float32]  # (..., 3) in the working space

COLOR_SPACES: tuple[ColorSpace, ...] = ("rgb", "hsv", "cielab")


def _as_rows(arr: np.ndarray) -> np.ndarray:
    # skimage.color wants a trailing channel axis; (N, 3) covers any input
    return np.asarray(arr).reshape(-1, 3)


def convert(rgb: np.ndarray, color_space: ColorSpace) -> RawColor:
    """
    8-bit RGB (..., 3) to RawColor (..., 3) in `color_space`.
    Pure: the same input always yields a bit-identical result.
    """
    rgb = np.asarray(rgb)
    shape = rgb.shape
    unit = _as_rows(rgb).astype(np.float64) / 255.0

    if color_space == "rgb":
        out = unit
    elif color_space == "hsv":
        out = rgb2hsv(unit, channel_axis=-1) if unit.size else unit.copy()
        out[:, 0] *= 360.0
    elif color_space == "cielab":
        out = rgb2lab(unit, channel_axis=-1) if unit.size else unit.copy()
    else:
        raise ValueError(f"Unknown color space: {color_space}")

    return out.astype(np.float32).reshape(shape)


def to_lab(raw: RawColor, color_space: ColorSpace) -> NDArray[np.float64]:
    """
    Map RawColor(s) from `color_space` into CIE L*a*b*. Returns float64.
    """
    raw = np.asarray(raw, dtype=np.float64)
    shape = raw.shape
    rows = _as_rows(raw)
    if rows.size == 0 or color_space == "cielab":
        return rows.copy().reshape(shape)

    if color_space == "rgb":
        unit = np.clip(rows, 0.0, 1.0)
    elif color_space == "hsv":
        hsv = rows.copy()
        hsv[:, 0] = np.mod(hsv[:, 0], 360.0) / 360.0
        unit = hsv2rgb(np.clip(hsv, 0.0, 1.0), channel_axis=-1)
    else:
        raise ValueError(f"Unknown color space: {color_space}")

    return rgb2lab(unit, channel_axis=-1).reshape(shape)


__all__ = ["ColorSpace", "RawColor", "COLOR_SPACES", "convert", "to_lab"]
