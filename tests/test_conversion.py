from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from hue_sequencer.conversion import image_metrics, load_pixels, read_image_rgb


def _save_png(path: Path, pixels, w: int, h: int):
    im = Image.new("RGB", (w, h))
    im.putdata(pixels)
    im.save(path, "PNG")


def test_read_image_rgb_png_exact_pixels(tmp_path: Path):
    p = tmp_path / "tiny.png"
    pixels = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (128, 128, 128)]
    _save_png(p, pixels, 2, 2)

    w, h, data = read_image_rgb(p)
    assert (w, h) == (2, 2)
    assert data == pixels  # PNG is lossless → exact match


def test_read_image_rgb_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        read_image_rgb(tmp_path / "nope.png")


def test_read_image_rgb_bad_file(tmp_path: Path):
    p = tmp_path / "bad.jpg"
    p.write_bytes(b"not an image")
    with pytest.raises(ValueError):
        read_image_rgb(p)


def test_load_pixels_from_path_is_row_major(tmp_path: Path):
    p = tmp_path / "row.png"
    pixels = [(10, 20, 30), (40, 50, 60), (200, 210, 220)]
    _save_png(p, pixels, 3, 1)

    arr = load_pixels(p)
    assert arr.shape == (1, 3, 3)
    assert arr.dtype == np.uint8
    assert tuple(arr[0, 2]) == (200, 210, 220)


def test_load_pixels_drops_alpha_and_expands_gray():
    rgba = np.zeros((2, 3, 4), dtype=np.uint8)
    rgba[..., 3] = 255
    assert load_pixels(rgba).shape == (2, 3, 3)
    assert not load_pixels(rgba).any()

    gray = np.full((4, 5), 90, dtype=np.uint8)
    arr = load_pixels(gray)
    assert arr.shape == (4, 5, 3)
    assert (arr == 90).all()


def test_load_pixels_from_pil_image():
    im = Image.new("RGBA", (4, 2), (1, 2, 3, 0))
    arr = load_pixels(im)
    assert arr.shape == (2, 4, 3)
    assert tuple(arr[1, 3]) == (1, 2, 3)


def test_load_pixels_rejects_bad_shape():
    with pytest.raises(ValueError):
        load_pixels(np.zeros((2, 2, 2), dtype=np.uint8))


def test_image_metrics_skips_black_pixels():
    # red: v=1 s=1, white: v=1 s=0; the two black pixels must not count
    arr = np.array([[(0, 0, 0), (255, 0, 0)], [(0, 0, 0), (255, 255, 255)]], dtype=np.uint8)
    m = image_metrics(arr)
    assert m.brightness == pytest.approx(1.0)
    assert m.saturation == pytest.approx(0.5)


def test_image_metrics_mid_gray():
    arr = np.full((3, 3, 3), 51, dtype=np.uint8)
    m = image_metrics(arr)
    assert m.brightness == pytest.approx(0.2)
    assert m.saturation == pytest.approx(0.0)


def test_image_metrics_blank_canvas_is_zero(tmp_path: Path):
    p = tmp_path / "black.png"
    _save_png(p, [(0, 0, 0)] * 6, 3, 2)
    m = image_metrics(p)
    assert (m.saturation, m.brightness) == (0.0, 0.0)


def test_path_loading_decodes_without_per_pixel_lists(tmp_path: Path, monkeypatch):
    p = tmp_path / "wide.png"
    Image.new("RGB", (300, 200), (90, 180, 30)).save(p, "PNG")

    def no_getdata(self, band=None):
        raise AssertionError("getdata should not be used")

    monkeypatch.setattr(Image.Image, "getdata", no_getdata)
    arr = load_pixels(p)
    assert arr.shape == (200, 300, 3)
    assert (arr == (90, 180, 30)).all()
    assert image_metrics(p).brightness == pytest.approx(180 / 255)


def test_load_pixels_applies_exif_orientation(tmp_path: Path):
    p = tmp_path / "rotated.jpg"
    exif = Image.Exif()
    exif[0x0112] = 6        # rotate 90 degrees clockwise on display
    Image.new("RGB", (4, 2), (255, 255, 255)).save(p, "JPEG", exif=exif)
    assert load_pixels(p).shape == (4, 2, 3)
