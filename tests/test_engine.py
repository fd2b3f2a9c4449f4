import importlib

import numpy as np
import pytest

from photomosaic.config import EngineConfig
from photomosaic.io_utils import save_image_rgb
from photomosaic.mosaic.compose import assemble, collect_signatures
from photomosaic.mosaic.engine import EmptyLibraryError, MosaicEngine
from photomosaic.mosaic.scheduler import gather
from photomosaic.tiling.matchers import best_match
from photomosaic.tiling.tile_index import index_step

RED = (255, 0, 0)
BLUE = (0, 0, 255)


def _solid(color, h=60, w=60):
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[:] = color
    return img


def _quadrants():
    target = np.zeros((100, 100, 3), dtype=np.uint8)
    target[:50, :50] = RED
    target[:50, 50:] = BLUE
    target[50:, :50] = BLUE
    target[50:, 50:] = RED
    return target


def test_index_skips_unreadable_files(tmp_path):
    red = save_image_rgb(tmp_path / "red.png", _solid(RED))
    blue = save_image_rgb(tmp_path / "blue.png", _solid(BLUE, 30, 90))
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"definitely not a png")
    missing = tmp_path / "missing.jpg"

    with MosaicEngine(EngineConfig(tile_size=20)) as engine:
        tasks = engine.index([red, broken, blue, missing])
        results = gather(tasks)
        assert len(results) == 4
        assert results[1] is None and results[3] is None
        assert results[0].source == str(red)
        assert results[2].image.shape == (20, 20, 3)

        library = collect_signatures(engine.index([red, broken, blue, missing]))
    assert [s.source for s in library] == [str(red), str(blue)]


def test_collect_signatures_fails_on_empty_library(tmp_path):
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"\x00\x01")
    with MosaicEngine(EngineConfig(tile_size=8)) as engine:
        with pytest.raises(EmptyLibraryError):
            collect_signatures(engine.index([broken]))


def test_fill_fails_fast_without_signatures():
    target = _quadrants()
    with MosaicEngine(EngineConfig(tile_size=50)) as engine:
        with pytest.raises(EmptyLibraryError):
            engine.fill(target, [], engine.masks(target))


def test_red_mask_picks_red_tile():
    target = _quadrants()
    with MosaicEngine.from_options(50, "average", "rgb", "euclidean") as engine:
        masks = engine.masks(target)
        assert masks == [(0, 0, 50, 50), (50, 0, 50, 50), (0, 50, 50, 50), (50, 50, 50, 50)]
        library = gather(engine.index_images([_solid(RED), _solid(BLUE)]))
        fills = gather(engine.fill(target, library, masks))

    assert [m for m, _ in fills] == masks
    expected = [RED, BLUE, BLUE, RED]
    for (mask, tile), color in zip(fills, expected):
        assert tile.shape == (50, 50, 3)
        assert np.all(tile == color)


@pytest.mark.parametrize("unit", ["average", "pixel", "kmeans"])
@pytest.mark.parametrize("space", ["rgb", "hsv", "cielab"])
@pytest.mark.parametrize("algo", ["euclidean", "ciede2000"])
def test_every_configuration_rebuilds_quadrants(unit, space, algo):
    target = _quadrants()
    cfg = EngineConfig(tile_size=50, unit=unit, color_space=space, distance=algo, k=2, hamerly=True)
    with MosaicEngine(cfg) as engine:
        library = gather(engine.index_images([_solid(BLUE), _solid(RED)]))
        mosaic = assemble(engine.fill(target, library, engine.masks(target)), 100, 100)
    assert np.array_equal(mosaic, target)


def test_edge_masks_get_cropped_tiles():
    target = np.zeros((70, 120, 3), dtype=np.uint8)
    target[:, :] = (10, 200, 10)
    with MosaicEngine(EngineConfig(tile_size=50, unit="pixel")) as engine:
        masks = engine.masks(target)
        library = gather(engine.index_images([_solid((0, 0, 0)), _solid((10, 200, 10))]))
        fills = gather(engine.fill(target, library, masks))
    for mask, tile in fills:
        assert tile.shape == (mask.height, mask.width, 3)
    mosaic = assemble(fills, 120, 70)
    assert np.array_equal(mosaic, target)


def test_pixel_unit_exact_match_scores_zero():
    cfg = EngineConfig(tile_size=1, unit="pixel")
    pixel = np.array([[[12, 34, 56]]], dtype=np.uint8)
    sig = index_step(pixel, cfg)
    best, score = best_match(pixel, [sig], cfg)
    assert best == 0
    assert score == 0.0


def test_pixel_unit_prefers_identical_tile():
    rng = np.random.default_rng(1)
    tiles = [rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8) for _ in range(4)]
    cfg = EngineConfig(tile_size=8, unit="pixel", color_space="cielab", distance="ciede2000")
    library = [index_step(t, cfg) for t in tiles]
    best, score = best_match(tiles[2], library, cfg)
    assert best == 2
    assert score == 0.0


def test_ties_go_to_first_signature():
    cfg = EngineConfig(tile_size=4)
    library = [index_step(_solid(RED, 4, 4), cfg), index_step(_solid(RED, 4, 4), cfg)]
    best, _ = best_match(_solid(BLUE, 4, 4), library, cfg)
    assert best == 0


def test_kmeans_signature_weights():
    tile = np.zeros((10, 10, 3), dtype=np.uint8)
    tile[:7] = RED
    tile[7:] = BLUE
    cfg = EngineConfig(tile_size=10, unit="kmeans", k=2)
    sig = index_step(tile, cfg)
    np.testing.assert_allclose(sig.weights, [0.7, 0.3])
    np.testing.assert_allclose(sig.colors, [[1, 0, 0], [0, 0, 1]])
    assert not sig.colors.flags.writeable


def test_config_is_frozen_and_validated():
    with pytest.raises(ValueError):
        EngineConfig(tile_size=0)
    cfg = EngineConfig()
    with pytest.raises(Exception):
        cfg.tile_size = 10
    # k is ignored outside kmeans
    engine = MosaicEngine.from_options(16, "average", "hsv", "ciede2000", k=5)
    assert engine.config.k == 5
    engine.close()


def test_closed_engine_rejects_new_work():
    engine = MosaicEngine(EngineConfig(tile_size=10))
    with engine:
        sigs = gather(engine.index_images([_solid(RED)]))
    assert len(sigs) == 1
    with pytest.raises(RuntimeError):
        engine.index_images([_solid(BLUE)])


@pytest.mark.parametrize("module", [
    "photomosaic.color.convert",
    "photomosaic.color.distance",
    "photomosaic.clustering.kmeans",
    "photomosaic.mosaic.engine",
    "photomosaic.mosaic.scheduler",
])
def test_module_docstrings_are_set(module):
    assert importlib.import_module(module).__doc__
