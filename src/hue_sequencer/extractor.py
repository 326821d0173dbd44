# extractor.py
"""
Image -> three note sequences.

The image is cut into `steps` vertical bands. In every band each colour plane
is scanned for its brightest pixel above PEAK_THRESHOLD; the row of that pixel
becomes the pitch (top row = highest note of the channel's range) and its
intensity the velocity. A plane with nothing above the threshold rests.

Band layout:
- width w = max(1, image_width // steps)
- band i covers columns [i*w, i*w + w); the last band runs to the right edge
- bands that start past the right edge are empty, so narrow images end in rests
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from hue_sequencer.config import CHANNEL_RANGES, DEFAULT_STEPS, PEAK_THRESHOLD, Channel, ChannelRange
from hue_sequencer.conversion import ImageSource, load_pixels
from hue_sequencer.notes import REST, ChannelNotes, Note

_LOGGER = logging.getLogger("hue_sequencer.extractor")

# colour plane index per channel
_PLANES = {Channel.MELODY: 0, Channel.PLUCK: 1, Channel.PERCUSSION: 2}


def band_bounds(width: int, steps: int) -> List[Tuple[int, int]]:
    """Column range [start, stop) for each of `steps` bands."""
    w = max(1, width // steps)
    bounds = []
    for i in range(steps):
        start = min(i * w, width)
        stop = width if i == steps - 1 else min(start + w, width)
        bounds.append((start, max(start, stop)))
    return bounds


def find_peak(plane: np.ndarray, threshold: int = PEAK_THRESHOLD) -> Optional[Tuple[int, int]]:
    """(row, value) of the brightest pixel strictly above threshold; topmost row wins ties."""
    if plane.size == 0:
        return None
    row_max = plane.max(axis=1)
    value = int(row_max.max())
    if value <= threshold:
        return None
    row = int(np.argmax(row_max == value))
    return row, value


def peak_to_note(peak: Optional[Tuple[int, int]], height: int, channel_range: ChannelRange) -> Note:
    if peak is None:
        return REST
    row, value = peak
    position = 1.0 - row / height
    pitch = math.floor(channel_range.min_pitch + position * channel_range.span + 0.5)
    return Note(pitch, value / 255.0)


def extract(image: ImageSource, steps: int = DEFAULT_STEPS) -> ChannelNotes:
    """Extract melody (R), pluck (G) and percussion (B) sequences of length `steps`."""
    if steps < 1:
        raise ValueError("steps must be >= 1")
    pixels = load_pixels(image)
    height, width = pixels.shape[:2]

    sequences = {channel: [] for channel in Channel}
    for start, stop in band_bounds(width, steps):
        band = pixels[:, start:stop, :]
        for channel, plane in _PLANES.items():
            peak = find_peak(band[:, :, plane])
            sequences[channel].append(peak_to_note(peak, height, CHANNEL_RANGES[channel]))

    notes = ChannelNotes(
        melody=sequences[Channel.MELODY],
        pluck=sequences[Channel.PLUCK],
        percussion=sequences[Channel.PERCUSSION],
    )
    _LOGGER.debug(
        "Extracted %d steps from %dx%d image (%d melody notes)",
        steps, width, height, sum(not n.is_rest for n in notes.melody),
    )
    return notes
