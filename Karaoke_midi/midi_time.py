import mido
from mido import MidiFile
from config import DEFAULT_TEMPO_USPQN

def build_tempo_map(mid: MidiFile) -> list[tuple[int, int]]:
    """(abs_tick, us_per_beat) pairs, gathered from every track (type 1 files keep them in track 0)."""
    tempos = {0: DEFAULT_TEMPO_USPQN}
    for track in mid.tracks:
        acc = 0
        for msg in track:
            acc += msg.time
            if msg.is_meta and msg.type == "set_tempo":
                tempos[acc] = msg.tempo
    return sorted(tempos.items())

def ticks_to_seconds(abs_ticks: int, tpq: int, tempo_map: list[tuple[int, int]]) -> float:
    secs = 0.0
    prev_tick, prev_tempo = tempo_map[0]
    for tick, tempo in tempo_map[1:]:
        if abs_ticks <= tick:
            break
        secs += mido.tick2second(tick - prev_tick, tpq, prev_tempo)
        prev_tick, prev_tempo = tick, tempo
    return secs + mido.tick2second(abs_ticks - prev_tick, tpq, prev_tempo)
