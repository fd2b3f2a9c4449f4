# photomosaic/mosaic/engine.py
"""
Mosaic engine: index a library into signatures, then fill target masks.

Typical run:
  with MosaicEngine(EngineConfig(tile_size=50)) as engine:
      masks = engine.masks(target)
      library = collect_signatures(engine.index(paths))
      tiles = gather(engine.fill(target, library, masks))
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from photomosaic.config import EngineConfig
from photomosaic.io_utils import DecodeError
from photomosaic.mosaic.scheduler import TaskScheduler
from photomosaic.tiling.grid import Mask, compute_masks, masks_for_image
from photomosaic.tiling.matchers import fill_step
from photomosaic.tiling.tile_index import EmptyLibraryError, Signature, index_image, index_path

logger = logging.getLogger(__name__)


def _index_or_none(path: Union[str, Path], cfg: EngineConfig) -> Optional[Signature]:
    try:
        return index_path(path, cfg)
    except DecodeError as exc:
        logger.warning("Skipping library item %s (%s)", exc.path, exc.reason)
        return None


class MosaicEngine:
    """
    Owns the configuration and the worker pool. The configuration is frozen;
    build a new engine to change it.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config if config is not None else EngineConfig()
        self._scheduler = TaskScheduler(workers=self.config.workers)

    @classmethod
    def from_options(
        cls,
        tile_size: int,
        unit: str,
        color_space: str,
        distance: str,
        k: int = EngineConfig.k,
        hamerly: bool = EngineConfig.hamerly,
        **kwargs,
    ) -> "MosaicEngine":
        cfg = EngineConfig(
            tile_size=tile_size,
            unit=unit,
            color_space=color_space,
            distance=distance,
            k=k,
            hamerly=hamerly,
            **kwargs,
        )
        return cls(cfg)

    @property
    def tile_size(self) -> int:
        return self.config.tile_size

    @staticmethod
    def compute_masks(tile_size: int, width: int, height: int) -> List[Mask]:
        return compute_masks(tile_size, width, height)

    def masks(self, img_rgb: np.ndarray) -> List[Mask]:
        return masks_for_image(img_rgb, self.config.tile_size)

    def index(self, paths: Sequence[Union[str, Path]]) -> List["Future[Optional[Signature]]"]:
        """
        One task per path. A task yields None when its file cannot be decoded.
        """
        cfg = self.config
        return self._scheduler.submit_all(lambda p: _index_or_none(p, cfg), paths)

    def index_images(self, images: Sequence[np.ndarray]) -> List["Future[Signature]"]:
        """One task per already-decoded RGB image."""
        cfg = self.config
        return self._scheduler.submit_all(lambda img: index_image(img, cfg), images)

    def fill(
        self,
        target_rgb: np.ndarray,
        signatures: Sequence[Signature],
        masks: Sequence[Mask],
    ) -> List["Future[Tuple[Mask, np.ndarray]]"]:
        """
        One task per mask, all reading the same target and signature tuple.
        Raises EmptyLibraryError up front when there is nothing to match against.
        """
        library = tuple(signatures)
        if not library:
            raise EmptyLibraryError("No library signatures to fill from")
        target = np.array(target_rgb, dtype=np.uint8)
        target.setflags(write=False)
        cfg = self.config
        return self._scheduler.submit_all(lambda m: fill_step(target, m, library, cfg), masks)

    def close(self) -> None:
        self._scheduler.shutdown(wait=True)

    def __enter__(self) -> "MosaicEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        c = self.config
        return (
            f"MosaicEngine(tile_size={c.tile_size}, unit={c.unit!r}, "
            f"color_space={c.color_space!r}, distance={c.distance!r})"
        )


__all__ = ["MosaicEngine", "EmptyLibraryError"]
