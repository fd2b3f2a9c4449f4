from pathlib import Path
from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

from photomosaic.color.convert import ColorSpace, convert
from photomosaic.color.distance import DistanceAlgorithm, distance as color_distance

CalculationUnit = Literal["average", "pixel", "kmeans"]
Sampling = Literal["nearest", "triangle", "catmull_rom", "gaussian", "lanczos3"]

CALC_UNITS = ("average", "pixel", "kmeans")
SAMPLINGS = ("nearest", "triangle", "catmull_rom", "gaussian", "lanczos3")

# Project roots
ROOT = Path(__file__).resolve().parents[1]
OUTPUTS_DIR = ROOT / "data" / "outputs"
TILES_DIR = ROOT / "tiles"

# Tile size in pixels (width == height). Used both to shrink library images
# and to size the mask grid over the target.
TILE_SIZE = 50

# Matching defaults
# Options: "average", "pixel", "kmeans"
CALC_UNIT = "average"
# Options: "rgb", "hsv", "cielab"
COLOR_SPACE = "rgb"
# Options: "euclidean", "ciede2000"
DISTANCE = "euclidean"

# K-means defaults
KMEANS_K = 3
KMEANS_K_RANGE = (1, 5)
KMEANS_MAX_ITER = 20
HAMERLY = False

# Library resampling filter
# Options: "nearest", "triangle", "catmull_rom", "gaussian", "lanczos3"
SAMPLING = "nearest"

# Worker pool size (None lets concurrent.futures pick)
WORKERS = None

IMAGE_EXTS = (".jpg", ".jpeg", ".png", ".bmp", ".webp")
VIDEO_EXTS = (".mp4", ".mov", ".avi", ".mkv", ".webm")

# JPEG/PNG default save params
DEFAULT_JPEG_QUALITY = 92


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable engine settings. Build a new one to change anything.
    k, hamerly and max_iter only matter for the "kmeans" unit.
    """
    tile_size: int = TILE_SIZE
    unit: CalculationUnit = CALC_UNIT
    color_space: ColorSpace = COLOR_SPACE
    distance: DistanceAlgorithm = DISTANCE
    k: int = KMEANS_K
    hamerly: bool = HAMERLY
    sampling: Sampling = SAMPLING
    max_iter: int = KMEANS_MAX_ITER
    workers: Optional[int] = WORKERS

    def __post_init__(self):
        if int(self.tile_size) <= 0:
            raise ValueError(f"tile_size must be positive, got {self.tile_size}")

    def to_raw(self, rgb: np.ndarray) -> np.ndarray:
        return convert(rgb, self.color_space)

    def measure(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return color_distance(a, b, self.color_space, self.distance)
