import math
from typing import Callable, Iterable, Optional

from config import TimelineConfig
from ks_types import (
    NoteEvent, ExpectedPitchArray, PitchRun, CompressedPitchArray, PolyphonyStrategy,
)

# (pitch, velocity, onset time) of a note overlapping a slot
Candidate = tuple[int, float, float]


def _first(candidates: list[Candidate]) -> int:
    # min() keeps the first of equal keys, so ties go to input order
    return min(candidates, key=lambda c: c[2])[0]


def _velocity(candidates: list[Candidate]) -> int:
    return max(candidates, key=lambda c: c[1])[0]


def _frequency(candidates: list[Candidate]) -> int:
    total = sum(c[1] for c in candidates)
    if total > 0:
        mean = sum(c[0] * c[1] for c in candidates) / total
    else:
        mean = sum(c[0] for c in candidates) / len(candidates)
    # half-up, so 60.5 -> 61
    return int(math.floor(mean + 0.5))


RESOLVERS: dict[PolyphonyStrategy, Callable[[list[Candidate]], int]] = {
    PolyphonyStrategy.FIRST: _first,
    PolyphonyStrategy.VELOCITY: _velocity,
    PolyphonyStrategy.FREQUENCY: _frequency,
}


def _resolve(candidates: list[Candidate], resolver: Callable[[list[Candidate]], int]) -> Optional[int]:
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0][0]
    return resolver(candidates)


def resolve_pitch(candidates: list[Candidate], strategy: PolyphonyStrategy) -> Optional[int]:
    """Reduce the notes sounding in one slot to a single reference pitch (None for an empty slot)."""
    return _resolve(candidates, RESOLVERS[strategy])


def build_expected_pitch_array(notes: Iterable[NoteEvent], config: Optional[TimelineConfig] = None) -> ExpectedPitchArray:
    """
    Quantize note intervals onto a constant-step grid.

    Each note is registered in every slot its [time, time+duration) interval
    touches; slots with several notes are resolved with config.strategy,
    slots with none stay None.
    """
    cfg = config or TimelineConfig()
    res = cfg.resolution
    notes = list(notes)
    if not notes:
        return ExpectedPitchArray(start=0.0, step=res, pitches=())

    start = min(n.time for n in notes)
    end = max(n.time + n.duration for n in notes)
    length = math.ceil((end - start) / res)

    slots: list[list[Candidate]] = [[] for _ in range(length)]
    for n in notes:
        i0 = max(0, math.floor((n.time - start) / res))
        i1 = min(length, math.ceil((n.time + n.duration - start) / res))
        cand = (n.pitch, n.velocity, n.time)
        for i in range(i0, i1):
            slots[i].append(cand)

    resolver = RESOLVERS[cfg.strategy]
    pitches = tuple(_resolve(cands, resolver) for cands in slots)
    return ExpectedPitchArray(start=start, step=res, pitches=pitches)


def slot_index(expected: ExpectedPitchArray, time: float) -> Optional[int]:
    # also rejects NaN
    if not expected.start <= time < expected.end:
        return None
    idx = math.floor((time - expected.start) / expected.step)
    if idx < 0 or idx >= len(expected.pitches):
        return None
    return idx


def pitch_at(expected: ExpectedPitchArray, time: float) -> Optional[int]:
    """Reference pitch at `time`, or None before/after the timeline or in silence."""
    idx = slot_index(expected, time)
    return None if idx is None else expected.pitches[idx]


def pitch_range(expected: ExpectedPitchArray, t_from: float, t_to: float) -> list[Optional[int]]:
    """Slots overlapping [t_from, t_to), clamped to the timeline. Unbounded ends are fine; NaN gives []."""
    if math.isnan(t_from) or math.isnan(t_to):
        return []
    t_from = max(t_from, expected.start)
    t_to = min(t_to, expected.end)
    lo = max(0, math.floor((t_from - expected.start) / expected.step))
    hi = min(len(expected.pitches), math.ceil((t_to - expected.start) / expected.step))
    if hi <= lo:
        return []
    return list(expected.pitches[lo:hi])


def compress_pitch_array(expected: ExpectedPitchArray) -> CompressedPitchArray:
    runs: list[PitchRun] = []
    pitches = expected.pitches
    if pitches:
        current, count = pitches[0], 1
        for p in pitches[1:]:
            if p == current:
                count += 1
            else:
                runs.append(PitchRun(current, count))
                current, count = p, 1
        runs.append(PitchRun(current, count))
    return CompressedPitchArray(start=expected.start, step=expected.step, runs=tuple(runs))


def decompress_pitch_array(compressed: CompressedPitchArray) -> ExpectedPitchArray:
    pitches: list[Optional[int]] = []
    for run in compressed.runs:
        pitches.extend([run.value] * run.count)
    return ExpectedPitchArray(start=compressed.start, step=compressed.step, pitches=tuple(pitches))
