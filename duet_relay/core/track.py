"""Active recording track — note events plus tempo/meter/instrument metadata.

Pure Python, no Socket.IO dependency. Handlers may run on different
threads under Flask-SocketIO's threading mode, so every access to the
active track goes through one lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .constants import (
    DEFAULT_INSTRUMENT,
    DEFAULT_INSTRUMENT_NAME,
    DEFAULT_TEMPO_BPM,
    DEFAULT_TIME_SIGNATURE,
)


@dataclass(frozen=True, slots=True)
class NoteEvent:
    """A single played note in the tick domain."""

    pitch: str             # symbolic note name, e.g. "C4"
    start_tick: float      # start_ms / 4, may be fractional
    duration_ticks: int    # >= 0


@dataclass(frozen=True)
class Track:
    """Immutable view of one recording, as handed to the writer."""

    events: tuple[NoteEvent, ...] = ()
    tempo_bpm: int = DEFAULT_TEMPO_BPM
    time_signature: tuple[int, int] = DEFAULT_TIME_SIGNATURE
    instrument: int = DEFAULT_INSTRUMENT
    instrument_name: str = DEFAULT_INSTRUMENT_NAME


@dataclass
class _ActiveTrack:
    tempo_bpm: int
    time_signature: tuple[int, int]
    instrument: int
    instrument_name: str
    events: list[NoteEvent] = field(default_factory=list)


class TrackAccumulator:
    """Collects note events for the one active recording.

    ``reset`` may be called at any time; events appended before it are
    dropped. Writers must work from ``snapshot()``, never from the live
    track.
    """

    def __init__(
        self,
        tempo_bpm: int = DEFAULT_TEMPO_BPM,
        time_signature: tuple[int, int] = DEFAULT_TIME_SIGNATURE,
        instrument: int = DEFAULT_INSTRUMENT,
        instrument_name: str = DEFAULT_INSTRUMENT_NAME,
    ) -> None:
        self._lock = threading.Lock()
        self._track = _ActiveTrack(tempo_bpm, tuple(time_signature), instrument, instrument_name)

    @property
    def tempo_bpm(self) -> int:
        with self._lock:
            return self._track.tempo_bpm

    @property
    def event_count(self) -> int:
        with self._lock:
            return len(self._track.events)

    def reset(
        self,
        tempo_bpm: int = DEFAULT_TEMPO_BPM,
        time_signature: tuple[int, int] = DEFAULT_TIME_SIGNATURE,
        instrument: int = DEFAULT_INSTRUMENT,
        instrument_name: str = DEFAULT_INSTRUMENT_NAME,
    ) -> None:
        """Discard the active track and start an empty one."""
        if tempo_bpm <= 0:
            raise ValueError(f"tempo_bpm must be positive, got {tempo_bpm}")
        with self._lock:
            self._track = _ActiveTrack(tempo_bpm, tuple(time_signature), instrument, instrument_name)

    def append(self, event: NoteEvent) -> None:
        """Add an event in arrival order. No dedup, no overlap checks."""
        with self._lock:
            self._track.events.append(event)

    def snapshot(self) -> Track:
        """Return a detached copy of the active track."""
        with self._lock:
            t = self._track
            return Track(
                events=tuple(t.events),
                tempo_bpm=t.tempo_bpm,
                time_signature=t.time_signature,
                instrument=t.instrument,
                instrument_name=t.instrument_name,
            )
