# conversion.py
"""
Image loading and whole-image mood metrics.

Everything downstream works on an H x W x 3 uint8 array. load_pixels accepts
a file path, a Pillow image or an array (RGBA and grayscale are reduced or
expanded to RGB), so the extractor and the metrics never care where the
pixels came from.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np
from PIL import Image, ImageOps

from hue_sequencer.config import VisualMetrics

_LOGGER = logging.getLogger("hue_sequencer.conversion")

ImageSource = Union[str, Path, Image.Image, np.ndarray]


def _open_rgb(path: Union[str, Path]) -> np.ndarray:
    """Decode a file to an H x W x 3 uint8 array, EXIF orientation applied."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))
    try:
        with Image.open(p) as im:
            im = ImageOps.exif_transpose(im)
            return np.asarray(im.convert("RGB"), dtype=np.uint8)
    except OSError as e:
        raise ValueError(f"Failed to open/read image: {p.name}") from e


def read_image_rgb(path: Union[str, Path]) -> Tuple[int, int, List[Tuple[int, int, int]]]:
    """Return (width, height, pixels) with pixels as RGB tuples in row-major order."""
    arr = _open_rgb(path)
    h, w = arr.shape[:2]
    return w, h, [tuple(px) for px in arr.reshape(-1, 3).tolist()]


def load_pixels(image: ImageSource) -> np.ndarray:
    """Any supported image source -> H x W x 3 uint8 array."""
    if isinstance(image, (str, Path)):
        return _open_rgb(image)
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGB"), dtype=np.uint8)

    arr = np.asarray(image)
    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, None], 3, axis=2)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Expected an H x W x 3 or H x W x 4 array, got shape {arr.shape}")
    arr = arr[:, :, :3]
    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    return arr


def image_metrics(image: ImageSource) -> VisualMetrics:
    """
    Mean HSV brightness (value) and saturation over every pixel that is not
    pure black. A blank canvas yields (0, 0).
    """
    rgb = load_pixels(image).reshape(-1, 3).astype(np.float64) / 255.0
    hi = rgb.max(axis=1)
    lo = rgb.min(axis=1)
    lit = rgb.any(axis=1)
    count = int(lit.sum())
    if count == 0:
        _LOGGER.debug("No non-black pixels; metrics default to zero")
        return VisualMetrics(saturation=0.0, brightness=0.0)
    brightness = float(hi[lit].mean())
    saturation = float(((hi[lit] - lo[lit]) / hi[lit]).mean())
    _LOGGER.debug("Image metrics over %d pixels: saturation=%.3f brightness=%.3f", count, saturation, brightness)
    return VisualMetrics(saturation=saturation, brightness=brightness)
