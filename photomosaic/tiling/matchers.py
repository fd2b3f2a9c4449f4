from __future__ import annotations
from typing import Sequence, Tuple
import numpy as np
import cv2

from photomosaic.config import EngineConfig
from photomosaic.tiling.grid import Mask, extract_region
from photomosaic.tiling.tile_index import EmptyLibraryError, Signature, summarize


def _fit_block(arr: np.ndarray, height: int, width: int) -> np.ndarray:
    """Top-left (height, width) block of arr, nearest-resampled if arr is smaller."""
    if arr.shape[0] < height or arr.shape[1] < width:
        return cv2.resize(np.asarray(arr), (width, height), interpolation=cv2.INTER_NEAREST)
    return arr[:height, :width]


def score_by_mean(region_colors: np.ndarray, signatures: Sequence[Signature], cfg: EngineConfig) -> np.ndarray:
    """
    Distance from the region mean to every library mean. Vectorized.
    region_colors: (1,3), library means stacked to (N,3) -> (N,)
    """
    lib_means = np.stack([s.colors[0] for s in signatures], axis=0)
    return np.asarray(cfg.measure(region_colors[0], lib_means), dtype=np.float64)


def score_by_clusters(
    region_colors: np.ndarray,
    region_weights: np.ndarray,
    signatures: Sequence[Signature],
    cfg: EngineConfig,
) -> np.ndarray:
    """
    Weighted sum of rank-paired centroid distances, weighted by the region's
    cluster sizes. Both sides are ordered by descending weight.
    """
    scores = np.empty((len(signatures),), dtype=np.float64)
    for i, sig in enumerate(signatures):
        m = min(region_colors.shape[0], sig.colors.shape[0])
        d = cfg.measure(region_colors[:m], sig.colors[:m])
        scores[i] = float(np.sum(region_weights[:m] * d))
    return scores


def score_by_pixels(region_raw: np.ndarray, signatures: Sequence[Signature], cfg: EngineConfig) -> np.ndarray:
    """
    Mean per-pixel distance between the region and the block of each tile that
    would be composited over it.
    """
    h, w = region_raw.shape[:2]
    scores = np.empty((len(signatures),), dtype=np.float64)
    for i, sig in enumerate(signatures):
        lib = _fit_block(sig.colors, h, w)
        scores[i] = float(np.mean(cfg.measure(region_raw, lib)))
    return scores


def score_region(region_rgb: np.ndarray, signatures: Sequence[Signature], cfg: EngineConfig) -> np.ndarray:
    """Total distance from one RGB region to every library signature, (N,)."""
    colors, weights = summarize(region_rgb, cfg)
    if cfg.unit == "average":
        return score_by_mean(colors, signatures, cfg)
    if cfg.unit == "pixel":
        return score_by_pixels(colors, signatures, cfg)
    if cfg.unit == "kmeans":
        return score_by_clusters(colors, weights, signatures, cfg)
    raise ValueError(f"Unknown calculation unit: {cfg.unit}")


def best_match(
    region_rgb: np.ndarray, signatures: Sequence[Signature], cfg: EngineConfig
) -> Tuple[int, float]:
    """Index and score of the nearest signature; the first minimum wins."""
    if len(signatures) == 0:
        raise EmptyLibraryError("Cannot match against an empty library")
    scores = score_region(region_rgb, signatures, cfg)
    best = int(np.argmin(scores))
    return best, float(scores[best])


def fill_step(
    target_rgb: np.ndarray,
    mask: Mask,
    signatures: Sequence[Signature],
    cfg: EngineConfig,
) -> Tuple[Mask, np.ndarray]:
    """
    Replace one mask: returns (mask, tile pixels cropped to the mask's height x width).
    """
    region = extract_region(target_rgb, mask)
    best, _ = best_match(region, signatures, cfg)
    replacement = _fit_block(signatures[best].image, mask.height, mask.width)
    return mask, np.array(replacement, dtype=np.uint8)
