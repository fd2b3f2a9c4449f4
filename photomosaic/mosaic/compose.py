# photomosaic/mosaic/compose.py
from __future__ import annotations
import logging
from concurrent.futures import Future
from typing import Iterable, List, Optional, Sequence, Tuple
import numpy as np
import cv2

from .scheduler import gather
from ..tiling.grid import Mask
from ..tiling.tile_index import EmptyLibraryError, Signature

logger = logging.getLogger(__name__)


def collect_signatures(tasks: Sequence["Future[Optional[Signature]]"]) -> List[Signature]:
    """
    Wait for every index task (the barrier before filling) and keep the ones
    that decoded. Raises EmptyLibraryError when none did.
    """
    results = gather(tasks)
    library = [sig for sig in results if sig is not None]
    skipped = len(results) - len(library)
    if not library:
        raise EmptyLibraryError(f"None of the {len(results)} library item(s) could be indexed")
    logger.info("Indexed %d library item(s), skipped %d", len(library), skipped)
    return library


def composite(out: np.ndarray, mask: Mask, replacement: np.ndarray) -> None:
    """Paste replacement into out at the mask offset, clipped to the mask size."""
    h, w = mask.height, mask.width
    out[mask.y : mask.y + h, mask.x : mask.x + w] = replacement[:h, :w]


def assemble(
    fills: Iterable[Tuple[Mask, np.ndarray]],
    width: int,
    height: int,
) -> np.ndarray:
    """
    Composite (mask, replacement) pairs into a (height, width, 3) uint8 buffer.
    Accepts results directly or the futures returned by MosaicEngine.fill.
    """
    mosaic = np.zeros((height, width, 3), dtype=np.uint8)
    for item in fills:
        if isinstance(item, Future):
            item = item.result()
        mask, replacement = item
        composite(mosaic, mask, replacement)
    return mosaic


def blend_with_target(mosaic: np.ndarray, target_rgb: np.ndarray, blend: float) -> np.ndarray:
    """
    Mix a little of the target back in. blend is clamped to 0..1; blend=0
    returns the mosaic unchanged and blend=1 returns the target.
    """
    blend = min(max(float(blend), 0.0), 1.0)
    if blend == 0.0:
        return mosaic
    mixed = cv2.addWeighted(mosaic.astype(np.float32), 1.0 - blend,
                            target_rgb.astype(np.float32), blend, 0.0)
    return np.clip(np.rint(mixed), 0, 255).astype(np.uint8)
