import pytest
from mido import MidiFile, MidiTrack, MetaMessage, Message


def _add_notes(track, notes, tpq, channel=0):
    """notes: (start_beats, length_beats, note, vel), non-overlapping within the track."""
    last_ticks = 0
    for start, length, note, vel in notes:
        on = int(start * tpq)
        off = int((start + length) * tpq)
        track.append(Message('note_on', channel=channel, note=note, velocity=vel, time=on - last_ticks))
        track.append(Message('note_off', channel=channel, note=note, velocity=0, time=off - on))
        last_ticks = off


@pytest.fixture
def melody_midi(tmp_path):
    """
    Type-1 MIDI at 120 BPM: conductor track, a melody (C4 E4 G4) and a quieter
    sustained bass C3 under it. Returns path to file.
    """
    path = tmp_path / "melody.mid"
    mid = MidiFile(type=1, ticks_per_beat=480)

    conductor = MidiTrack()
    conductor.append(MetaMessage('track_name', name='Conductor', time=0))
    conductor.append(MetaMessage('set_tempo', tempo=500000, time=0))
    mid.tracks.append(conductor)

    melody = MidiTrack()
    melody.append(MetaMessage('track_name', name='Melody', time=0))
    _add_notes(melody, [(0, 1, 60, 100), (1, 1, 64, 100), (2, 2, 67, 100)], mid.ticks_per_beat)
    mid.tracks.append(melody)

    bass = MidiTrack()
    bass.append(MetaMessage('track_name', name='Bass', time=0))
    _add_notes(bass, [(0, 4, 48, 64)], mid.ticks_per_beat, channel=1)
    mid.tracks.append(bass)

    mid.save(str(path))
    return str(path)


@pytest.fixture
def tempo_change_midi(tmp_path):
    """One beat at 120 BPM, then 60 BPM. Note on beat 0 and beat 1, one beat each."""
    path = tmp_path / "tempo.mid"
    mid = MidiFile(type=0, ticks_per_beat=480)
    track = MidiTrack()
    mid.tracks.append(track)
    track.append(MetaMessage('set_tempo', tempo=500000, time=0))
    track.append(Message('note_on', note=62, velocity=127, time=0))
    # note_on with velocity 0 is a note-off
    track.append(Message('note_on', note=62, velocity=0, time=480))
    track.append(MetaMessage('set_tempo', tempo=1000000, time=0))
    track.append(Message('note_on', note=65, velocity=127, time=0))
    track.append(Message('note_off', note=65, velocity=0, time=480))
    mid.save(str(path))
    return str(path)
