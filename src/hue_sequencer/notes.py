# notes.py
"""Notes and the three per-channel sequences extracted from one image."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

from hue_sequencer.config import REST_VELOCITY, Channel


@dataclass(frozen=True)
class Note:
    pitch: int = 0             # MIDI note number, 0 = rest
    velocity: float = 0.0      # 0..1

    @property
    def is_rest(self) -> bool:
        return self.pitch == 0 or self.velocity < REST_VELOCITY


REST = Note(0, 0.0)


def midi_to_freq(pitch: float) -> float:
    """Equal temperament, A4 (69) = 440 Hz."""
    return 440.0 * 2.0 ** ((pitch - 69) / 12.0)


@dataclass(frozen=True)
class ChannelNotes:
    melody: List[Note] = field(default_factory=list)
    pluck: List[Note] = field(default_factory=list)
    percussion: List[Note] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.melody)

    def for_channel(self, channel: Channel) -> List[Note]:
        return getattr(self, channel.value)

    def channels(self) -> Iterator[Tuple[Channel, List[Note]]]:
        for channel in Channel:
            yield channel, self.for_channel(channel)

    @property
    def is_empty(self) -> bool:
        return all(len(notes) == 0 for _, notes in self.channels())

    @property
    def is_aligned(self) -> bool:
        return len({len(notes) for _, notes in self.channels()}) == 1

    def as_dict(self) -> Dict[str, List[Note]]:
        return {channel.value: notes for channel, notes in self.channels()}
