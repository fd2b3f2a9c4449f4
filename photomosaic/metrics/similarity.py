# photomosaic/metrics/similarity.py
from __future__ import annotations
from typing import Dict
import numpy as np
from skimage.metrics import structural_similarity as ssim

from photomosaic.color.convert import convert
from photomosaic.color.distance import delta_e2000


def mse(a: np.ndarray, b: np.ndarray) -> float:
    a32 = a.astype(np.float32)
    b32 = b.astype(np.float32)
    return float(np.mean((a32 - b32) ** 2))


def ssim_rgb(a: np.ndarray, b: np.ndarray) -> float:
    a_f = (a.astype(np.float32) / 255.0).clip(0, 1)
    b_f = (b.astype(np.float32) / 255.0).clip(0, 1)
    side = min(a.shape[:2])
    if side >= 11:
        val = ssim(a_f, b_f, channel_axis=2, data_range=1.0, gaussian_weights=True, use_sample_covariance=False)
        return float(val)
    # too small for the gaussian window; use the largest odd uniform window
    win = side if side % 2 == 1 else side - 1
    if win < 3:
        return float("nan")
    val = ssim(a_f, b_f, channel_axis=2, data_range=1.0, win_size=win, use_sample_covariance=False)
    return float(val)


def mean_delta_e(a: np.ndarray, b: np.ndarray) -> float:
    """Mean per-pixel CIEDE2000 between two RGB images."""
    return float(np.mean(delta_e2000(convert(a, "cielab"), convert(b, "cielab"))))


def quality_report(mosaic: np.ndarray, target: np.ndarray) -> Dict[str, float]:
    return {
        "mse": mse(mosaic, target),
        "ssim": ssim_rgb(mosaic, target),
        "delta_e2000": mean_delta_e(mosaic, target),
    }
