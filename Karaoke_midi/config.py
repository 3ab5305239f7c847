import math
from dataclasses import dataclass, asdict
from typing import Optional, Union

from errors import InvalidConfig, MalformedScoreData
from ks_types import PolyphonyStrategy

# Timeline quantization
DEFAULT_RESOLUTION = 0.02   # seconds per slot (20 ms)
DEFAULT_STRATEGY = PolyphonyStrategy.VELOCITY

# Match windows (semitones)
PERFECT_SEMITONES = 0.5
ACCEPTABLE_SEMITONES = 1.0
# Detections below this clarity are not judged
CLARITY_FLOOR = 0.85

# Nominal detection cadence (seconds), used for elapsed time until two frames exist
FRAME_STEP = 0.02

# Standard tuning
A4_HZ = 440.0
A4_MIDI = 69

# Default tempo if none in MIDI
DEFAULT_TEMPO_USPQN = 500_000  # 120 BPM


def parse_strategy(value: Union[str, PolyphonyStrategy]) -> PolyphonyStrategy:
    if isinstance(value, PolyphonyStrategy):
        return value
    try:
        return PolyphonyStrategy(str(value).upper())
    except ValueError:
        names = ", ".join(s.value for s in PolyphonyStrategy)
        raise InvalidConfig(f"unknown polyphony strategy {value!r} (expected one of {names})") from None


def _finite(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


@dataclass(frozen=True)
class TimelineConfig:
    resolution: float = DEFAULT_RESOLUTION
    strategy: PolyphonyStrategy = DEFAULT_STRATEGY
    track_index: Optional[int] = None  # None = merge all tracks

    def __post_init__(self):
        if not _finite(self.resolution) or self.resolution <= 0:
            raise InvalidConfig(f"resolution must be a positive number of seconds, got {self.resolution!r}")
        object.__setattr__(self, "strategy", parse_strategy(self.strategy))


@dataclass(frozen=True)
class ScoringConfig:
    perfect_threshold: float = PERFECT_SEMITONES
    acceptable_threshold: float = ACCEPTABLE_SEMITONES
    clarity_floor: float = CLARITY_FLOOR
    frame_step: float = FRAME_STEP

    def __post_init__(self):
        for name in ("perfect_threshold", "acceptable_threshold", "clarity_floor", "frame_step"):
            if not _finite(getattr(self, name)):
                raise InvalidConfig(f"{name} must be a finite number, got {getattr(self, name)!r}")
        if self.perfect_threshold < 0:
            raise InvalidConfig("perfect_threshold must be >= 0")
        if self.acceptable_threshold < self.perfect_threshold:
            raise InvalidConfig("acceptable_threshold must be >= perfect_threshold")
        if not 0.0 <= self.clarity_floor <= 1.0:
            raise InvalidConfig("clarity_floor must be within [0, 1]")
        if self.frame_step <= 0:
            raise InvalidConfig("frame_step must be > 0")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ScoringConfig":
        """Missing keys fall back to defaults; unknown keys or bad values are malformed."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise MalformedScoreData(f"config must be a mapping, got {type(data).__name__}")
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise MalformedScoreData(f"unknown config keys: {sorted(unknown)}")
        try:
            return cls(**data)
        except InvalidConfig as e:
            raise MalformedScoreData(f"bad scoring config: {e}") from e
