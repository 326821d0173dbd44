# main.py
"""
Entry point: play an image.

Flow:
  load_pixels -> extract + image_metrics -> Sequencer.play -> wait for the single pass to end

The style picks tempo and note density; effect flags override the defaults.
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from hue_sequencer.config import DEFAULT_STEPS, EffectSettings, MusicStyle
from hue_sequencer.conversion import image_metrics, load_pixels
from hue_sequencer.errors import PlaybackError
from hue_sequencer.extractor import extract
from hue_sequencer.presets import preset_for
from hue_sequencer.sequencer import Sequencer
from hue_sequencer.synth.engine import AudioEngine

# ===== EDIT HERE (defaults) =====
DEFAULT_STYLE = MusicStyle.CALM.value
DEFAULT_VOLUME = 0.7
TAIL_SECONDS = 0.5             # let the last release ring before closing the stream
POLL_SECONDS = 0.05


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hue-sequencer", description=__doc__)
    parser.add_argument("image", type=Path, help="Image to play")
    parser.add_argument(
        "--style",
        choices=[s.value for s in MusicStyle],
        default=DEFAULT_STYLE,
        help=f"Tempo and density preset (default: {DEFAULT_STYLE})",
    )
    parser.add_argument("--steps", type=_positive_int, default=DEFAULT_STEPS, help=f"Notes per channel (default: {DEFAULT_STEPS})")
    parser.add_argument("--volume", type=float, default=DEFAULT_VOLUME, help="Master volume 0..1")
    parser.add_argument("--distortion", type=float, default=0.0, help="Distortion amount 0..100")
    parser.add_argument("--wah", type=float, default=0.0, help="Wah depth 0..100")
    parser.add_argument("--tone", type=float, default=20000.0, help="Tone filter ceiling in Hz")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _init_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _init_logging(args.verbose)

    print(f"Composing from: {args.image}")
    try:
        pixels = load_pixels(args.image)
    except (FileNotFoundError, ValueError) as e:
        print(f"Cannot read image: {e}")
        return 1
    notes = extract(pixels, steps=args.steps)
    metrics = image_metrics(pixels)

    preset = preset_for(args.style)
    settings = EffectSettings(
        volume=args.volume,
        distortion_amount=args.distortion,
        wah_depth=args.wah,
        tone_frequency=args.tone,
        style=args.style,
    )

    engine = AudioEngine()
    sequencer = Sequencer(engine)
    sequencer.update_audio_settings(settings)
    sequencer.update_visual_metrics(metrics.saturation, metrics.brightness)
    try:
        engine.start()
    except PlaybackError as e:
        print(f"No audio output: {e}")
        return 1

    try:
        sequencer.play(notes, preset.bpm, preset.downsample_rate)
        while sequencer.is_playing:
            time.sleep(POLL_SECONDS)
        time.sleep(TAIL_SECONDS)
    except KeyboardInterrupt:
        print("Interrupted.")
        sequencer.stop()
    finally:
        sequencer.chain.close()
        engine.close()
    print("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
