"""Save a recorded Track as a Standard MIDI File.

Converts tick-domain NoteEvents to a format 0 file via mido. Output is
deterministic: the same Track always yields the same bytes.
"""

from __future__ import annotations

import io
import math
from pathlib import Path

import mido

from .constants import DEFAULT_VELOCITY, TICKS_PER_BEAT
from .timing import note_number
from .track import Track


class MidiWriter:
    """Write Track snapshots to .mid files."""

    @staticmethod
    def to_midi_file(track: Track) -> mido.MidiFile:
        """Build a format 0 MidiFile for *track*.

        Meta events come first (tempo, time signature, program, instrument
        name), followed by the notes. An empty track gives a file with
        only the meta events.
        """
        mid = mido.MidiFile(type=0, ticks_per_beat=TICKS_PER_BEAT)
        trk = mido.MidiTrack()
        mid.tracks.append(trk)

        beats, unit = track.time_signature
        trk.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(track.tempo_bpm), time=0))
        trk.append(mido.MetaMessage("time_signature", numerator=beats, denominator=unit, time=0))
        trk.append(mido.Message("program_change", program=track.instrument, time=0))
        if track.instrument_name:
            trk.append(mido.MetaMessage("instrument_name", name=track.instrument_name, time=0))

        # (abs_tick, order, seq, message). On a shared tick: note_off, note_on,
        # then the note_off of zero-length notes so each pair stays on → off.
        timeline: list[tuple[int, int, int, mido.Message]] = []
        for seq, evt in enumerate(track.events):
            note = note_number(evt.pitch)
            on_tick = int(math.floor(evt.start_tick + 0.5))
            off_tick = on_tick + evt.duration_ticks
            timeline.append((on_tick, 1, seq, mido.Message(
                "note_on", note=note, velocity=DEFAULT_VELOCITY,
            )))
            off_order = 0 if evt.duration_ticks > 0 else 2
            timeline.append((off_tick, off_order, seq, mido.Message(
                "note_off", note=note, velocity=0,
            )))
        timeline.sort(key=lambda item: item[:3])

        prev_tick = 0
        for abs_tick, _order, _seq, msg in timeline:
            trk.append(msg.copy(time=abs_tick - prev_tick))
            prev_tick = abs_tick

        trk.append(mido.MetaMessage("end_of_track", time=0))
        return mid

    @staticmethod
    def to_bytes(track: Track) -> bytes:
        """Serialize *track* to SMF bytes without touching the filesystem."""
        buf = io.BytesIO()
        MidiWriter.to_midi_file(track).save(file=buf)
        return buf.getvalue()

    @staticmethod
    def save(track: Track, file_path: str | Path) -> Path:
        """Write *track* to *file_path*, replacing any existing file.

        Args:
            track: Snapshot from TrackAccumulator.
            file_path: Output .mid file path. Parent folders are created.
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(MidiWriter.to_bytes(track))
        return path
