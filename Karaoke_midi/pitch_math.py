import math
from typing import Optional

from config import A4_HZ, A4_MIDI
from ks_types import DetectedPitch

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


def frequency_to_midi(freq: float, a4: float = A4_HZ) -> float:
    """Fractional MIDI note number for a frequency in Hz."""
    return A4_MIDI + 12 * math.log2(freq / a4)


def midi_to_frequency(midi: float, a4: float = A4_HZ) -> float:
    return a4 * 2 ** ((midi - A4_MIDI) / 12)


def midi_to_note_name(midi: int) -> str:
    m = int(round(midi))
    return NOTE_NAMES[m % 12] + str(m // 12 - 1)


def detected_pitch(frequency: float, clarity: float, timestamp: float) -> DetectedPitch:
    """Wrap a (frequency, clarity) measurement; non-positive frequency means unvoiced."""
    pitch: Optional[float] = None
    if frequency > 0 and math.isfinite(frequency):
        pitch = frequency_to_midi(frequency)
    return DetectedPitch(pitch=pitch, frequency=frequency, clarity=clarity, timestamp=timestamp)
