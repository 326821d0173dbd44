# nodes.py
"""
Graph plumbing shared by every node: connections and pull rendering.

A node renders at most once per quantum; every consumer pulling it in the
same quantum gets the cached buffer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Union

import numpy as np

from hue_sequencer.errors import NotConnectedError
from hue_sequencer.synth.envelopes import AudioParam

if TYPE_CHECKING:
    from hue_sequencer.synth.engine import AudioEngine, RenderQuantum


Destination = Union["AudioNode", AudioParam]


class AudioNode:
    def __init__(self, engine: "AudioEngine"):
        self.engine = engine
        self._inputs: List[AudioNode] = []
        self._outputs: List[Destination] = []
        self._rendered_quantum = -1
        self._buffer: Optional[np.ndarray] = None

    # ----- connections -----
    def connect(self, destination: Destination) -> Destination:
        with self.engine.lock:
            if not any(d is destination for d in self._outputs):
                self._outputs.append(destination)
                destination._inputs.append(self)
        return destination

    def disconnect(self, destination: Optional[Destination] = None) -> None:
        """Detach from one destination, or from all of them when none is given."""
        with self.engine.lock:
            if destination is None:
                for d in self._outputs:
                    d._inputs[:] = [n for n in d._inputs if n is not self]
                self._outputs.clear()
                return
            if not any(d is destination for d in self._outputs):
                raise NotConnectedError(f"{type(self).__name__} is not connected to {type(destination).__name__}")
            self._outputs[:] = [d for d in self._outputs if d is not destination]
            destination._inputs[:] = [n for n in destination._inputs if n is not self]

    @property
    def is_connected(self) -> bool:
        return bool(self._outputs)

    def is_connected_to(self, destination: Destination) -> bool:
        return any(d is destination for d in self._outputs)

    # ----- rendering -----
    def pull(self, quantum: "RenderQuantum") -> np.ndarray:
        if self._rendered_quantum != quantum.index:
            self._buffer = self.process(self._mix_inputs(quantum), quantum)
            self._rendered_quantum = quantum.index
        return self._buffer

    def _mix_inputs(self, quantum: "RenderQuantum") -> np.ndarray:
        out = np.zeros(quantum.frames, dtype=np.float64)
        for node in list(self._inputs):
            out += node.pull(quantum)
        return out

    def process(self, samples: np.ndarray, quantum: "RenderQuantum") -> np.ndarray:
        return samples


class DestinationNode(AudioNode):
    """Final sum of everything connected to the engine output; hard-clipped to [-1, 1]."""

    def process(self, samples, quantum):
        return np.clip(samples, -1.0, 1.0)
