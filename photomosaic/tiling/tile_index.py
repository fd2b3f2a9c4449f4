from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union
import numpy as np
from PIL import Image, ImageFilter, ImageOps

from photomosaic.clustering.kmeans import kmeans
from photomosaic.color.distance import is_metric
from photomosaic.config import EngineConfig, Sampling
from photomosaic.io_utils import load_image

_PIL_FILTERS = {
    "nearest": Image.Resampling.NEAREST,
    "triangle": Image.Resampling.BILINEAR,
    "catmull_rom": Image.Resampling.BICUBIC,
    "gaussian": Image.Resampling.BILINEAR,
    "lanczos3": Image.Resampling.LANCZOS,
}


class EmptyLibraryError(RuntimeError):
    """No library image survived indexing, so nothing can be matched."""


@dataclass(frozen=True)
class Signature:
    """
    Comparable summary of one library image.
      colors : (1, 3) mean for "average", (H, W, 3) every pixel for "pixel",
               (K', 3) centroids by descending weight for "kmeans"
      weights: (K',) membership fractions for "kmeans", else None
      image  : the resized tile_size x tile_size uint8 RGB tile
    Arrays are read-only; signatures are shared across fill workers.
    """
    colors: np.ndarray
    image: np.ndarray
    weights: Optional[np.ndarray] = None
    source: Optional[str] = None


def _frozen(arr: Optional[np.ndarray]) -> Optional[np.ndarray]:
    if arr is None:
        return None
    arr = np.ascontiguousarray(arr)
    arr.setflags(write=False)
    return arr


def resize_to_fill(img_rgb: np.ndarray, size: int, sampling: Sampling = "nearest") -> np.ndarray:
    """
    Scale with aspect preserved so the image covers size x size, then center-crop.
    "gaussian" blurs in proportion to the shrink factor before a bilinear resize.
    """
    if img_rgb.shape[0] == size and img_rgb.shape[1] == size:
        return img_rgb
    if sampling not in _PIL_FILTERS:
        raise ValueError(f"Unknown sampling filter: {sampling}")
    pil = Image.fromarray(np.ascontiguousarray(img_rgb, dtype=np.uint8))
    if sampling == "gaussian":
        shrink = min(pil.width, pil.height) / size
        if shrink > 1.0:
            pil = pil.filter(ImageFilter.GaussianBlur(radius=0.5 * shrink))
    fitted = ImageOps.fit(pil, (size, size), method=_PIL_FILTERS[sampling])
    return np.asarray(fitted.convert("RGB"), dtype=np.uint8)


def summarize(img_rgb: np.ndarray, cfg: EngineConfig) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    (colors, weights) for an RGB image or region under the configured unit.
    Library tiles and target regions go through this same function.
    """
    raw = cfg.to_raw(img_rgb)
    if cfg.unit == "average":
        mean = raw.reshape(-1, 3).mean(axis=0, dtype=np.float64)
        return mean.astype(np.float32)[None, :], None
    if cfg.unit == "pixel":
        return raw, None
    if cfg.unit == "kmeans":
        result = kmeans(
            raw.reshape(-1, 3),
            cfg.k,
            cfg.measure,
            hamerly=cfg.hamerly,
            max_iter=cfg.max_iter,
            metric=is_metric(cfg.distance),
        )
        order = np.argsort(-result.counts, kind="stable")
        return result.centroids[order], result.weights[order]
    raise ValueError(f"Unknown calculation unit: {cfg.unit}")


def index_step(tile_rgb: np.ndarray, cfg: EngineConfig, source: Optional[str] = None) -> Signature:
    """Signature of a library tile already resized to tile_size x tile_size."""
    colors, weights = summarize(tile_rgb, cfg)
    return Signature(
        colors=_frozen(colors),
        image=_frozen(np.array(tile_rgb, dtype=np.uint8)),
        weights=_frozen(weights),
        source=source,
    )


def index_image(img_rgb: np.ndarray, cfg: EngineConfig, source: Optional[str] = None) -> Signature:
    tile = resize_to_fill(img_rgb, cfg.tile_size, cfg.sampling)
    return index_step(tile, cfg, source=source)


def index_path(path: Union[str, Path], cfg: EngineConfig) -> Signature:
    """Decode, resize and summarize one library file. DecodeError propagates."""
    return index_image(load_image(path), cfg, source=str(path))
