from __future__ import annotations


class HueSequencerError(Exception):
    """Base error for the hue-sequencer package."""


class NotConnectedError(HueSequencerError):
    """Raised when disconnecting a node from a destination it is not connected to."""


class PlaybackError(HueSequencerError):
    """Raised when no real-time audio backend is available."""
