"""Tests for PersistenceSequencer — delete, pause, write, copy, pause."""

from __future__ import annotations

from pathlib import Path

import mido

from duet_relay.core.midi_writer import MidiWriter
from duet_relay.core.persistence import PersistenceSequencer
from duet_relay.core.track import NoteEvent, Track

TRACK = Track(events=(NoteEvent("C4", 0, 120), NoteEvent("E4", 125, 60)))


def _sequencer(tmp_path: Path, **kwargs) -> PersistenceSequencer:
    kwargs.setdefault("settle_delay", 0)
    return PersistenceSequencer(
        recording_path=tmp_path / "midi" / "my_recording.mid",
        backend_path=tmp_path / "backend" / "my_recording.mid",
        **kwargs,
    )


class TestPersist:
    def test_writes_and_copies(self, tmp_path):
        seq = _sequencer(tmp_path)
        path = seq.persist(TRACK)
        assert path == seq.recording_path
        assert path.read_bytes() == MidiWriter.to_bytes(TRACK)
        assert seq.backend_path.read_bytes() == path.read_bytes()

    def test_empty_track_is_valid_midi(self, tmp_path):
        seq = _sequencer(tmp_path)
        mid = mido.MidiFile(str(seq.persist(Track())))
        assert not [m for m in mid.tracks[0] if m.type == "note_on"]

    def test_idempotent_bytes(self, tmp_path):
        seq = _sequencer(tmp_path)
        first = seq.persist(TRACK).read_bytes()
        second = seq.persist(TRACK).read_bytes()
        assert first == second

    def test_replaces_previous_artifact(self, tmp_path):
        seq = _sequencer(tmp_path)
        seq.persist(TRACK)
        seq.persist(Track())
        assert seq.recording_path.read_bytes() == MidiWriter.to_bytes(Track())
        assert seq.backend_path.read_bytes() == MidiWriter.to_bytes(Track())

    def test_no_backend_path_skips_copy(self, tmp_path):
        seq = PersistenceSequencer(tmp_path / "rec.mid", backend_path=None, settle_delay=0)
        assert seq.persist(TRACK).exists()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["rec.mid"]


class TestSequencing:
    def test_pauses_around_write(self, tmp_path):
        seq = _sequencer(tmp_path, settle_delay=0.1)
        seq.recording_path.parent.mkdir(parents=True)
        seq.recording_path.write_bytes(b"old")
        observed = []

        def fake_sleep(seconds):
            observed.append((
                seconds,
                seq.recording_path.exists(),
                seq.backend_path.exists(),
            ))

        seq._sleep = fake_sleep
        seq.persist(TRACK)
        # First pause: old file gone, nothing written yet. Second: both written.
        assert observed == [(0.1, False, False), (0.1, True, True)]

    def test_zero_delay_never_sleeps(self, tmp_path):
        calls = []
        seq = _sequencer(tmp_path, sleep=calls.append)
        seq.persist(TRACK)
        assert calls == []

    def test_negative_delay_clamped(self, tmp_path):
        assert _sequencer(tmp_path, settle_delay=-1).settle_delay == 0.0


class TestFailures:
    def test_delete_error_is_logged_and_write_continues(self, tmp_path, monkeypatch, caplog):
        seq = _sequencer(tmp_path)

        def refuse(self, missing_ok=False):
            raise PermissionError("locked")

        monkeypatch.setattr(Path, "unlink", refuse)
        path = seq.persist(TRACK)
        assert path.read_bytes() == MidiWriter.to_bytes(TRACK)
        assert "Could not delete" in caplog.text

    def test_copy_failure_is_logged(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        seq = PersistenceSequencer(
            tmp_path / "rec.mid",
            backend_path=blocker / "my_recording.mid",
            settle_delay=0,
        )
        path = seq.persist(TRACK)
        assert path.exists()
        assert "Couldn't copy" in caplog.text
