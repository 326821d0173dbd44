# presets.py
"""Tempo and note density per mood style, as picked by whatever classifies the image."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union

from hue_sequencer.config import MusicStyle


@dataclass(frozen=True)
class StylePreset:
    bpm: float
    downsample_rate: int


# ===== STYLE PRESETS (EDIT HERE) =====
STYLE_PRESETS: Dict[MusicStyle, StylePreset] = {
    MusicStyle.CALM: StylePreset(bpm=60, downsample_rate=4),
    MusicStyle.MELANCHOLIC: StylePreset(bpm=75, downsample_rate=2),
    MusicStyle.LOFI: StylePreset(bpm=90, downsample_rate=2),
    MusicStyle.ENERGETIC: StylePreset(bpm=135, downsample_rate=1),
}


def preset_for(style: Union[MusicStyle, str]) -> StylePreset:
    return STYLE_PRESETS[MusicStyle(style)]
