import pytest
from mido import MidiFile
from chart import extract_notes, describe_tracks
from midi_time import build_tempo_map, ticks_to_seconds

def test_extract_single_track(melody_midi):
    notes = extract_notes(MidiFile(melody_midi), track_index=1)
    assert [n.pitch for n in notes] == [60, 64, 67]
    assert [n.time for n in notes] == pytest.approx([0.0, 0.5, 1.0])
    assert [n.duration for n in notes] == pytest.approx([0.5, 0.5, 1.0])
    assert all(n.velocity == pytest.approx(100 / 127) for n in notes)

def test_extract_merges_all_tracks_sorted(melody_midi):
    notes = extract_notes(MidiFile(melody_midi))
    assert sorted(n.pitch for n in notes) == [48, 60, 64, 67]
    times = [n.time for n in notes]
    assert times == sorted(times)
    bass = next(n for n in notes if n.pitch == 48)
    assert bass.duration == pytest.approx(2.0)

def test_out_of_range_track_falls_back_to_all(melody_midi):
    assert len(extract_notes(MidiFile(melody_midi), track_index=9)) == 4

def test_describe_tracks(melody_midi):
    info = describe_tracks(MidiFile(melody_midi))
    assert [t["name"] for t in info] == ["Conductor", "Melody", "Bass"]
    assert [t["notes"] for t in info] == [0, 3, 1]

def test_tempo_change_and_zero_velocity_note_off(tempo_change_midi):
    notes = extract_notes(MidiFile(tempo_change_midi))
    assert [n.pitch for n in notes] == [62, 65]
    # first beat at 120 BPM = 0.5s, second beat at 60 BPM = 1.0s
    assert notes[0].duration == pytest.approx(0.5)
    assert notes[1].time == pytest.approx(0.5)
    assert notes[1].duration == pytest.approx(1.0)

def test_ticks_to_seconds_across_tempo_segments():
    tempo_map = [(0, 500000), (480, 1000000)]
    assert ticks_to_seconds(0, 480, tempo_map) == 0.0
    assert ticks_to_seconds(480, 480, tempo_map) == pytest.approx(0.5)
    assert ticks_to_seconds(960, 480, tempo_map) == pytest.approx(1.5)

def test_tempo_map_defaults_to_120_bpm(tempo_change_midi):
    assert build_tempo_map(MidiFile(tempo_change_midi)) == [(0, 500000), (480, 1000000)]
