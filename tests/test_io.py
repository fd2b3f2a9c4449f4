import numpy as np
import pytest

from photomosaic.io_utils import DecodeError, first_frame, list_images, load_image, save_image_rgb
from photomosaic.metrics.similarity import quality_report
from photomosaic.tiling.tile_index import resize_to_fill


def test_save_and_load_roundtrip(tmp_path):
    img = (np.random.rand(12, 9, 3) * 255).astype("uint8")
    path = save_image_rgb(tmp_path / "a.png", img)
    assert np.array_equal(load_image(path), img)


def test_load_errors_are_typed(tmp_path):
    with pytest.raises(DecodeError) as missing:
        load_image(tmp_path / "nope.png")
    assert missing.value.reason == "not_found"

    junk = tmp_path / "junk.png"
    junk.write_bytes(b"junk")
    with pytest.raises(DecodeError) as bad:
        load_image(junk)
    assert bad.value.reason == "invalid_data"


def test_first_frame_of_missing_video(tmp_path):
    with pytest.raises(DecodeError) as err:
        first_frame(tmp_path / "clip.mp4")
    assert err.value.reason == "not_found"


def test_list_images_filters_extensions(tmp_path):
    for name in ["b.png", "a.JPG", "notes.txt", "clip.mp4"]:
        (tmp_path / name).write_bytes(b"x")
    assert [p.name for p in list_images(tmp_path)] == ["a.JPG", "b.png"]
    assert len(list_images(tmp_path, include_video=True)) == 3


@pytest.mark.parametrize("sampling", ["nearest", "triangle", "catmull_rom", "gaussian", "lanczos3"])
def test_resize_to_fill_is_square(sampling):
    img = (np.random.rand(40, 80, 3) * 255).astype("uint8")
    out = resize_to_fill(img, 16, sampling)
    assert out.shape == (16, 16, 3)
    assert out.dtype == np.uint8


def test_resize_to_fill_center_crops():
    img = np.zeros((10, 30, 3), dtype=np.uint8)
    img[:, 10:20] = (255, 255, 255)
    out = resize_to_fill(img, 10, "nearest")
    assert np.all(out == 255)


def test_quality_report_identical():
    img = (np.random.rand(32, 32, 3) * 255).astype("uint8")
    report = quality_report(img, img)
    assert report["mse"] == 0.0
    assert report["ssim"] == pytest.approx(1.0)
    assert report["delta_e2000"] == 0.0
