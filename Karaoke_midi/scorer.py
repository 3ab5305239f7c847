import math
from typing import Iterable, Optional

from config import ScoringConfig
from errors import MalformedScoreData
from ks_types import DetectedPitch, ExpectedPitchArray, Match, ScoreFrame, ScoreStats, whole_number
from timeline import pitch_at


def classify_diff(diff: float, config: ScoringConfig) -> Match:
    if diff <= config.perfect_threshold:    return Match.PERFECT
    if diff <= config.acceptable_threshold: return Match.ACCEPTABLE
    return Match.MISS


def evaluate_frame(detected: Optional[DetectedPitch], expected: Optional[int],
                   config: ScoringConfig, time: float) -> ScoreFrame:
    """Judge one detection against the reference pitch, without recording it."""
    heard = detected.pitch if detected is not None else None

    # nothing to sing here
    if expected is None:
        return ScoreFrame(time, None, heard, None, Match.NO_DATA)

    # unvoiced, unreliable or garbage detection
    if heard is None or not math.isfinite(heard) or detected.clarity < config.clarity_floor:
        return ScoreFrame(time, expected, heard, None, Match.NO_DATA)

    diff = abs(heard - expected)
    return ScoreFrame(time, expected, heard, diff, classify_diff(diff, config))


def _frame_from_dict(d: dict) -> ScoreFrame:
    try:
        classification = Match(d["classification"])
        time = float(d["time"])
        expected = d["expected_pitch"]
        detected = d["detected_pitch"]
        diff = d["absolute_difference"]
        return ScoreFrame(
            time=time,
            expected_pitch=None if expected is None else whole_number(expected, "expected_pitch"),
            detected_pitch=None if detected is None else float(detected),
            absolute_difference=None if diff is None else float(diff),
            classification=classification,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedScoreData(f"bad score frame {d!r}: {e!r}") from e


class FrameScorer:
    """
    Running pitch-accuracy judge for one playback session.

    Frames must be added in non-decreasing time order; on seek, call
    reset_from(seek_time) before feeding frames again.
    """

    def __init__(self, config: Optional[ScoringConfig] = None, verbose: bool = False):
        self.config = config or ScoringConfig()
        self.verbose = verbose
        self._frames: list[ScoreFrame] = []

    def add_frame(self, detected: Optional[DetectedPitch], expected: ExpectedPitchArray,
                  current_time: float) -> ScoreFrame:
        frame = evaluate_frame(detected, pitch_at(expected, current_time), self.config, current_time)
        self._frames.append(frame)
        if self.verbose:
            diff = f"{frame.absolute_difference:5.2f}" if frame.absolute_difference is not None else "  -  "
            print(f"[{frame.time:8.3f}s] {frame.classification.value:10s}  "
                  f"expected={frame.expected_pitch}  detected={_fmt_pitch(frame.detected_pitch)}  Δ={diff} st")
        return frame

    def stats(self) -> ScoreStats:
        return summarize(self._frames, self.config.frame_step)

    def frames(self) -> list[ScoreFrame]:
        return list(self._frames)

    def frames_in_range(self, t0: float, t1: float) -> list[ScoreFrame]:
        return [f for f in self._frames if t0 <= f.time <= t1]

    def recent_frames(self, count: int) -> list[ScoreFrame]:
        if count <= 0:
            return []
        return self._frames[-count:]

    def reset(self):
        self._frames = []

    def reset_from(self, time: float):
        """Forget every frame at or after `time` (seek back)."""
        self._frames = [f for f in self._frames if f.time < time]

    def export(self) -> dict:
        return {
            "frames": [f.to_dict() for f in self._frames],
            "stats": self.stats().to_dict(),
            "config": self.config.to_dict(),
        }

    def import_data(self, data: dict):
        """Replace history and config with a previous export. All or nothing."""
        if not isinstance(data, dict) or "frames" not in data:
            raise MalformedScoreData("score data needs a 'frames' list")
        raw = data["frames"]
        if not isinstance(raw, list):
            raise MalformedScoreData(f"'frames' must be a list, got {type(raw).__name__}")
        frames = [_frame_from_dict(d) for d in raw]
        config = ScoringConfig.from_dict(data.get("config"))
        self._frames = frames
        self.config = config

    def __len__(self) -> int:
        return len(self._frames)


def _fmt_pitch(p: Optional[float]) -> str:
    return "-" if p is None else f"{p:.2f}"


def summarize(frames: list[ScoreFrame], frame_step: float) -> ScoreStats:
    """Counts, percentage score and elapsed time for a time-ordered frame history."""
    st = ScoreStats(total_frames=len(frames))
    for f in frames:
        if f.classification is Match.PERFECT:      st.perfect_frames += 1
        elif f.classification is Match.ACCEPTABLE: st.acceptable_frames += 1
        elif f.classification is Match.MISS:       st.miss_frames += 1
        else:                                      st.no_data_frames += 1

    scored = st.scored_frames
    matched = st.perfect_frames + st.acceptable_frames
    st.score = round(100.0 * matched / scored, 2) if scored > 0 else 0.0

    # observed spacing between first and last frame, not the nominal cadence
    if len(frames) > 1:
        step = (frames[-1].time - frames[0].time) / (len(frames) - 1)
    else:
        step = frame_step
    st.matched_time = matched * step
    st.total_time = scored * step
    return st


def calculate_final_score(frames: Iterable[ScoreFrame], config: Optional[ScoringConfig] = None) -> ScoreStats:
    cfg = config or ScoringConfig()
    return summarize(list(frames), cfg.frame_step)
