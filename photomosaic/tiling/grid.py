# photomosaic/tiling/grid.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, NamedTuple, Sequence
import numpy as np
import cv2


class Mask(NamedTuple):
    """Axis-aligned region of the target image, in target pixel coordinates."""
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class GridSpec:
    tile_size: int
    rows: int
    cols: int
    height: int
    width: int


def infer_grid(width: int, height: int, tile_size: int) -> GridSpec:
    """
    Grid covering a width x height image with tile_size cells.
    The last row/column is partial when the dims are not multiples of tile_size.
    """
    if tile_size <= 0:
        raise ValueError(f"tile_size must be positive, got {tile_size}")
    rows = -(-height // tile_size)
    cols = -(-width // tile_size)
    return GridSpec(tile_size=tile_size, rows=rows, cols=cols, height=height, width=width)


def compute_masks(tile_size: int, width: int, height: int) -> List[Mask]:
    """
    Row-major masks (left-to-right, top-to-bottom) that tile the image exactly.
    Edge masks are clipped to the remaining width/height.
    """
    gs = infer_grid(width, height, tile_size)
    masks: List[Mask] = []
    for r in range(gs.rows):
        y = r * tile_size
        h = min(tile_size, gs.height - y)
        for c in range(gs.cols):
            x = c * tile_size
            w = min(tile_size, gs.width - x)
            masks.append(Mask(x, y, w, h))
    return masks


def masks_for_image(img_rgb: np.ndarray, tile_size: int) -> List[Mask]:
    h, w = img_rgb.shape[:2]
    return compute_masks(tile_size, w, h)


def extract_region(img: np.ndarray, mask: Mask) -> np.ndarray:
    """View (no copy) of the pixels under `mask`, shape (height, width, C)."""
    return img[mask.y : mask.y + mask.height, mask.x : mask.x + mask.width]


def draw_grid_overlay(
    img_rgb: np.ndarray, masks: Sequence[Mask], color=(0, 255, 0), thickness: int = 1
) -> np.ndarray:
    """
    Draw thin mask outlines to visualize the tiling.
    """
    out_bgr = cv2.cvtColor(img_rgb, cv2.COLOR_RGB2BGR).copy()
    bgr = (int(color[2]), int(color[1]), int(color[0]))
    for m in masks:
        cv2.rectangle(out_bgr, (m.x, m.y), (m.x + m.width - 1, m.y + m.height - 1), bgr, thickness)
    return cv2.cvtColor(out_bgr, cv2.COLOR_BGR2RGB)
