#!/usr/bin/env python3
import argparse, json, sys
from pathlib import Path

import numpy as np
from mido import MidiFile

from config import CLARITY_FLOOR, DEFAULT_RESOLUTION, DEFAULT_STRATEGY, ScoringConfig, TimelineConfig
from chart import extract_notes, describe_tracks
from errors import InvalidConfig
from ks_types import DetectedPitch
from pitch_math import detected_pitch, midi_to_note_name
from scorer import FrameScorer
from timeline import build_expected_pitch_array


def load_pitch_log(path) -> list[DetectedPitch]:
    """
    Recorded detector output, one `timestamp,frequency,clarity` row per cycle.
    Lines starting with '#' are comments; frequency <= 0 means unvoiced.
    """
    rows = np.loadtxt(path, delimiter=",", comments="#", ndmin=2, dtype=float)
    if rows.size == 0:
        return []
    if rows.shape[1] != 3:
        raise ValueError(f"expected 3 columns (timestamp,frequency,clarity), got {rows.shape[1]}")
    return [detected_pitch(float(f), float(c), float(t)) for t, f, c in rows]


def replay(samples: list[DetectedPitch], expected, scorer: FrameScorer) -> int:
    """Feed samples in order; a backwards jump in time is a seek. Returns the number of seeks."""
    seeks = 0
    last_t = None
    for s in samples:
        if last_t is not None and s.timestamp < last_t:
            scorer.reset_from(s.timestamp)
            seeks += 1
        scorer.add_frame(s, expected, s.timestamp)
        last_t = s.timestamp
    return seeks


def main(argv=None):
    ap = argparse.ArgumentParser(description="Karaoke pitch scoring: replay a recorded pitch log against a MIDI melody.")
    ap.add_argument("midifile", help="Path to MIDI file with the reference melody")
    ap.add_argument("pitchlog", help="CSV of timestamp,frequency,clarity rows")
    ap.add_argument("--track", type=int, help="Use only this MIDI track index (default: all tracks)")
    ap.add_argument("--resolution", type=float, default=DEFAULT_RESOLUTION,
                    help=f"Timeline slot width in seconds (default {DEFAULT_RESOLUTION})")
    ap.add_argument("--strategy", default=DEFAULT_STRATEGY.value,
                    help="Polyphony resolution: FIRST, VELOCITY or FREQUENCY (default VELOCITY)")
    ap.add_argument("--clarity", type=float, default=CLARITY_FLOOR,
                    help=f"Minimum detection clarity to judge (default {CLARITY_FLOOR})")
    ap.add_argument("--export", help="Write frames, stats and config as JSON to this path")
    ap.add_argument("--verbose", action="store_true", help="Print every judged frame")
    args = ap.parse_args(argv)

    try:
        tl_cfg = TimelineConfig(resolution=args.resolution, strategy=args.strategy, track_index=args.track)
        sc_cfg = ScoringConfig(clarity_floor=args.clarity)
    except InvalidConfig as e:
        print(f"[ERROR] {e}")
        return 2

    try:
        mid = MidiFile(args.midifile)
    except (OSError, EOFError, ValueError) as e:
        print(f"[ERROR] Could not read MIDI file '{args.midifile}': {e}")
        return 1

    if tl_cfg.track_index is not None and not 0 <= tl_cfg.track_index < len(mid.tracks):
        print(f"[WARN] Track {tl_cfg.track_index} not found; using all tracks.")
        for t in describe_tracks(mid):
            print(f"  - {t['index']:2d}: {t['name'] or '(unnamed)'}  ({t['notes']} notes)")

    notes = extract_notes(mid, tl_cfg.track_index)
    if not notes:
        print("No notes found in this MIDI.")
        return 1
    expected = build_expected_pitch_array(notes, tl_cfg)
    lo = min(n.pitch for n in notes); hi = max(n.pitch for n in notes)
    print(f"Melody: {len(notes)} notes, {expected.start:.2f}s-{expected.end:.2f}s, "
          f"range {midi_to_note_name(lo)}-{midi_to_note_name(hi)}, {len(expected)} slots")

    try:
        samples = load_pitch_log(args.pitchlog)
    except (OSError, ValueError) as e:
        print(f"[ERROR] Could not read pitch log '{args.pitchlog}': {e}")
        return 1

    scorer = FrameScorer(sc_cfg, verbose=args.verbose)
    seeks = replay(samples, expected, scorer)
    stats = scorer.stats()

    print("\n----- Results -----")
    for k, v in stats.to_dict().items():
        if isinstance(v, float): print(f"{k:>18s}: {v:.2f}")
        else:                    print(f"{k:>18s}: {v}")
    print(f"{'seeks':>18s}: {seeks}")

    if args.export:
        Path(args.export).write_text(json.dumps(scorer.export(), indent=2), encoding="utf-8")
        print(f"Exported to {args.export}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
