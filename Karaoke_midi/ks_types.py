import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from errors import MalformedScoreData


def whole_number(x, what: str) -> int:
    """int(x) for integral numbers; anything else is malformed."""
    if isinstance(x, bool) or not isinstance(x, (int, float)) or not math.isfinite(x) or x != int(x):
        raise MalformedScoreData(f"{what} must be a whole number, got {x!r}")
    return int(x)


class PolyphonyStrategy(str, Enum):
    FIRST = "FIRST"          # earliest onset wins
    VELOCITY = "VELOCITY"    # loudest wins
    FREQUENCY = "FREQUENCY"  # velocity-weighted mean pitch


class Match(str, Enum):
    PERFECT = "PERFECT"
    ACCEPTABLE = "ACCEPTABLE"
    MISS = "MISS"
    NO_DATA = "NO_DATA"


@dataclass(frozen=True)
class NoteEvent:
    time: float      # seconds from song start
    duration: float  # seconds
    pitch: int       # MIDI note number
    velocity: float  # 0..1

    @property
    def end(self) -> float:
        return self.time + self.duration


@dataclass(frozen=True)
class ExpectedPitchArray:
    """
    Reference pitch per fixed-width slot. pitches[i] covers
    [start + i*step, start + (i+1)*step); None is silence.
    """
    start: float
    step: float
    pitches: tuple[Optional[int], ...] = ()

    def __len__(self) -> int:
        return len(self.pitches)

    @property
    def end(self) -> float:
        return self.start + len(self.pitches) * self.step


@dataclass(frozen=True)
class PitchRun:
    value: Optional[int]
    count: int


@dataclass(frozen=True)
class CompressedPitchArray:
    start: float
    step: float
    runs: tuple[PitchRun, ...] = ()

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "step": self.step,
            "compressed": [{"value": r.value, "count": r.count} for r in self.runs],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CompressedPitchArray":
        try:
            start = float(data["start"])
            step = float(data["step"])
            runs = [
                PitchRun(value=None if r["value"] is None else whole_number(r["value"], "pitch"),
                         count=whole_number(r["count"], "run length"))
                for r in data["compressed"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedScoreData(f"bad compressed timeline: {e!r}") from e
        if not math.isfinite(start):
            raise MalformedScoreData(f"timeline start must be finite, got {start!r}")
        if not math.isfinite(step) or step <= 0:
            raise MalformedScoreData(f"timeline step must be a positive number, got {step!r}")
        if any(r.count < 0 for r in runs):
            raise MalformedScoreData("negative run length in compressed timeline")
        return cls(start=start, step=step, runs=tuple(runs))


@dataclass(frozen=True)
class DetectedPitch:
    pitch: Optional[float]  # fractional MIDI note, None when unvoiced
    frequency: float        # Hz
    clarity: float          # 0..1
    timestamp: float        # seconds, same clock as playback


@dataclass(frozen=True)
class ScoreFrame:
    time: float
    expected_pitch: Optional[int]
    detected_pitch: Optional[float]
    absolute_difference: Optional[float]
    classification: Match

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "expected_pitch": self.expected_pitch,
            "detected_pitch": self.detected_pitch,
            "absolute_difference": self.absolute_difference,
            "classification": self.classification.value,
        }


@dataclass
class ScoreStats:
    total_frames: int = 0
    perfect_frames: int = 0
    acceptable_frames: int = 0
    miss_frames: int = 0
    no_data_frames: int = 0
    score: float = 0.0          # percentage 0..100
    matched_time: float = 0.0   # seconds
    total_time: float = 0.0     # seconds

    @property
    def scored_frames(self) -> int:
        return self.perfect_frames + self.acceptable_frames + self.miss_frames

    def to_dict(self) -> dict:
        return {
            "total_frames": self.total_frames,
            "perfect_frames": self.perfect_frames,
            "acceptable_frames": self.acceptable_frames,
            "miss_frames": self.miss_frames,
            "no_data_frames": self.no_data_frames,
            "score": self.score,
            "matched_time": self.matched_time,
            "total_time": self.total_time,
        }
