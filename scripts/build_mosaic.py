import argparse
import logging
import sys
import time
from pathlib import Path

from photomosaic.config import (
    OUTPUTS_DIR, TILES_DIR, TILE_SIZE, CALC_UNIT, CALC_UNITS, COLOR_SPACE, DISTANCE,
    KMEANS_K, KMEANS_K_RANGE, KMEANS_MAX_ITER, HAMERLY, SAMPLING, SAMPLINGS, WORKERS,
    DEFAULT_JPEG_QUALITY, EngineConfig,
)
from photomosaic.color.convert import COLOR_SPACES
from photomosaic.color.distance import DISTANCE_ALGORITHMS
from photomosaic.io_utils import DecodeError, list_images, load_image, save_image_rgb
from photomosaic.metrics.similarity import quality_report
from photomosaic.mosaic.compose import assemble, blend_with_target, collect_signatures
from photomosaic.mosaic.engine import EmptyLibraryError, MosaicEngine
from photomosaic.tiling.grid import draw_grid_overlay

logger = logging.getLogger("photomosaic")


def _k_value(text: str) -> int:
    k = int(text)
    lo, hi = KMEANS_K_RANGE
    if not lo <= k <= hi:
        raise argparse.ArgumentTypeError(f"K must be in {lo}..{hi}")
    return k


def _blend_value(text: str) -> float:
    blend = float(text)
    if not 0.0 <= blend <= 1.0:
        raise argparse.ArgumentTypeError("blend must be in 0..1")
    return blend


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Build a photo-mosaic from a target and a tile library.")
    parser.add_argument("--target", type=str, required=True, help="Target image (or video: first frame)")
    parser.add_argument("--library", type=str, default=str(TILES_DIR), help="Folder with library images")
    parser.add_argument("--out", type=str, default=str(OUTPUTS_DIR / "mosaic.png"), help="Output image path")
    parser.add_argument("--tile-size", type=int, default=TILE_SIZE)
    parser.add_argument("--unit", type=str, default=CALC_UNIT, choices=list(CALC_UNITS))
    parser.add_argument("--color-space", type=str, default=COLOR_SPACE, choices=list(COLOR_SPACES))
    parser.add_argument("--distance", type=str, default=DISTANCE, choices=list(DISTANCE_ALGORITHMS))
    parser.add_argument("--k", type=_k_value, default=KMEANS_K, help="Clusters for --unit kmeans")
    parser.add_argument("--hamerly", action="store_true", default=HAMERLY,
                        help="Hamerly-accelerated k-means")
    parser.add_argument("--max-iter", type=int, default=KMEANS_MAX_ITER)
    parser.add_argument("--sampling", type=str, default=SAMPLING, choices=list(SAMPLINGS),
                        help="Filter used to shrink library images")
    parser.add_argument("--workers", type=int, default=WORKERS)
    parser.add_argument("--blend", type=_blend_value, default=0.0, help="Mix the target back in (0..1)")
    parser.add_argument("--grid-overlay", type=str, default=None,
                        help="If set, also save the target with mask outlines here")
    parser.add_argument("--include-video", action="store_true",
                        help="Also index video files in the library (first frame)")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(format="%(levelname)s: %(message)s",
                        level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        target = load_image(args.target)
    except DecodeError as exc:
        logger.error("Could not read target: %s", exc)
        return 1

    if not Path(args.library).is_dir():
        logger.error("Library folder not found: %s", args.library)
        return 1
    paths = list_images(args.library, include_video=args.include_video)
    cfg = EngineConfig(
        tile_size=args.tile_size,
        unit=args.unit,
        color_space=args.color_space,
        distance=args.distance,
        k=args.k,
        hamerly=args.hamerly,
        sampling=args.sampling,
        max_iter=args.max_iter,
        workers=args.workers,
    )

    t0 = time.time()
    with MosaicEngine(cfg) as engine:
        masks = engine.masks(target)
        logger.info("%s: %d mask(s), %d library file(s)", engine, len(masks), len(paths))
        if args.grid_overlay:
            save_image_rgb(args.grid_overlay, draw_grid_overlay(target, masks))

        try:
            library = collect_signatures(engine.index(paths))
        except EmptyLibraryError as exc:
            logger.error("%s", exc)
            return 1

        h, w = target.shape[:2]
        mosaic = assemble(engine.fill(target, library, masks), w, h)

    mosaic = blend_with_target(mosaic, target, args.blend)
    out = save_image_rgb(Path(args.out), mosaic, quality=DEFAULT_JPEG_QUALITY)
    report = quality_report(mosaic, target)
    logger.info("Saved %s in %.2fs", out, time.time() - t0)
    print(f"MSE={report['mse']:.2f}  SSIM={report['ssim']:.4f}  dE2000={report['delta_e2000']:.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
