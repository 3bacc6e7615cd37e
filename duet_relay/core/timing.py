"""Millisecond → tick conversion for notes played on the browser keyboard.

Pure Python, no I/O. The arithmetic follows the tick domain the generation
backend was trained on, so it must not be "corrected" to a tempo-exact
formula.
"""

from __future__ import annotations

import math
import re

from .constants import MIDI_NOTE_MAX, MIDI_NOTE_MIN, START_TICK_DIVISOR
from .track import NoteEvent

# Semitone offset from C
_PITCH_CLASS = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
_ACCIDENTAL = {"": 0, "#": 1, "##": 2, "b": -1, "bb": -2}

_PITCH_RE = re.compile(r"^([A-Ga-g])(#{1,2}|b{1,2})?(-?\d+)$")


def convert(pitch: str, start_ms: float, duration_ms: float, tempo_bpm: float) -> NoteEvent:
    """Turn a played note into a tick-domain ``NoteEvent``.

    Args:
        pitch: Symbolic note name, e.g. ``"C4"``.
        start_ms: Onset in milliseconds since recording start.
        duration_ms: Held duration in milliseconds.
        tempo_bpm: Tempo of the active track (must be > 0).
    """
    start_tick = start_ms / START_TICK_DIVISOR
    beats_per_second = tempo_bpm / 60
    duration_beats = (duration_ms * 0.001) * beats_per_second
    duration_ticks = max(0, math.floor(duration_beats * tempo_bpm))
    return NoteEvent(pitch=pitch, start_tick=start_tick, duration_ticks=duration_ticks)


def note_number(pitch: str | int) -> int:
    """Return the MIDI note number for a pitch name (C4 = 60).

    Integers and digit strings are taken as MIDI numbers directly.

    Raises:
        ValueError: If the pitch cannot be parsed or falls outside 0-127.
    """
    if isinstance(pitch, int):
        number = pitch
    else:
        text = str(pitch).strip()
        if text.isdigit():
            number = int(text)
        else:
            m = _PITCH_RE.match(text)
            if m is None:
                raise ValueError(f"Unrecognised pitch name: {pitch!r}")
            letter, accidental, octave = m.groups()
            number = (
                (int(octave) + 1) * 12
                + _PITCH_CLASS[letter.upper()]
                + _ACCIDENTAL[accidental or ""]
            )

    if not MIDI_NOTE_MIN <= number <= MIDI_NOTE_MAX:
        raise ValueError(f"Pitch out of MIDI range: {pitch!r}")
    return number
