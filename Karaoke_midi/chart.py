from typing import Optional
from mido import MidiFile
from ks_types import NoteEvent
from midi_time import build_tempo_map, ticks_to_seconds

def _is_note_off(msg) -> bool:
    return msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0)

def _track_notes(track, tpq: int, tempo_map) -> list[NoteEvent]:
    notes: list[NoteEvent] = []
    # (channel, note) -> stack of (start_tick, velocity); overlapping same-pitch notes close FIFO
    open_notes: dict[tuple[int, int], list[tuple[int, int]]] = {}
    abs_ticks = 0
    for msg in track:
        abs_ticks += msg.time
        if msg.is_meta or msg.type not in ("note_on", "note_off"):
            continue
        key = (msg.channel, msg.note)
        if _is_note_off(msg):
            pending = open_notes.get(key)
            if not pending:
                continue  # stray note-off
            start_tick, vel = pending.pop(0)
            t0 = ticks_to_seconds(start_tick, tpq, tempo_map)
            t1 = ticks_to_seconds(abs_ticks, tpq, tempo_map)
            if t1 > t0:
                notes.append(NoteEvent(time=t0, duration=t1 - t0, pitch=msg.note, velocity=vel / 127.0))
        else:
            open_notes.setdefault(key, []).append((abs_ticks, msg.velocity))
    return notes

def extract_notes(mid: MidiFile, track_index: Optional[int] = None) -> list[NoteEvent]:
    """
    Melody notes from a decoded MIDI file, sorted by onset.
    A valid track_index restricts to that track; otherwise every track is merged.
    Notes never switched off are dropped.
    """
    tpq = mid.ticks_per_beat
    tempo_map = build_tempo_map(mid)
    if track_index is not None and 0 <= track_index < len(mid.tracks):
        tracks = [mid.tracks[track_index]]
    else:
        tracks = mid.tracks

    notes: list[NoteEvent] = []
    for track in tracks:
        notes.extend(_track_notes(track, tpq, tempo_map))
    notes.sort(key=lambda n: n.time)
    return notes

def describe_tracks(mid: MidiFile) -> list[dict]:
    out = []
    for i, track in enumerate(mid.tracks):
        n = sum(1 for msg in track if msg.type == "note_on" and msg.velocity > 0)
        out.append({"index": i, "name": track.name, "notes": n})
    return out
