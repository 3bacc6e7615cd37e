"""Handshake protocol between the browser client, the relay and the backend.

Keeps the three parties agreeing on which backend port is current and
when a recording or a generated result is ready. Transport-agnostic: the
server passes in an ``emit(event, *args, to=sid)`` callable.

State cycle::

    IDLE ──connect/port──▶ PORT_KNOWN ──new_track──▶ RECORDING_IN_PROGRESS
      ▲                                                     │ write_midi
      └──────────────── persisted ◀── WRITE_IN_FLIGHT ◀─────┘
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

from .backend_client import BackendClient
from .config import ConfigManager
from .constants import (
    DEFAULT_INSTRUMENT,
    DEFAULT_INSTRUMENT_NAME,
    DEFAULT_TEMPO_BPM,
    DEFAULT_TIME_SIGNATURE,
    EVT_FINISHED_WRITING,
    EVT_NEW_MIDI,
    EVT_NEW_PORT,
)
from .persistence import PersistenceSequencer
from .session import Session
from .timing import convert, note_number

log = logging.getLogger(__name__)

Emitter = Callable[..., Any]


class ProtocolState(Enum):
    IDLE = "idle"
    PORT_KNOWN = "port_known"
    RECORDING_IN_PROGRESS = "recording_in_progress"
    WRITE_IN_FLIGHT = "write_in_flight"


class HandshakeProtocol:
    """Reacts to client and backend signals and keeps the session in sync.

    Notes are accepted in any state, including before the first
    ``new_track``. A ``new_track`` during a write starts a new recording
    without touching the snapshot being written.
    """

    def __init__(
        self,
        session: Session,
        persistence: PersistenceSequencer,
        backend: BackendClient,
        emit: Emitter,
        track_defaults: dict[str, Any] | None = None,
        notify_backend: bool = True,
    ) -> None:
        self.session = session
        self.persistence = persistence
        self.backend = backend
        self._emit = emit
        self._track_defaults = track_defaults or {
            "tempo_bpm": DEFAULT_TEMPO_BPM,
            "time_signature": DEFAULT_TIME_SIGNATURE,
            "instrument": DEFAULT_INSTRUMENT,
            "instrument_name": DEFAULT_INSTRUMENT_NAME,
        }
        self._notify_backend = notify_backend
        self._state = ProtocolState.IDLE
        self._state_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: ConfigManager,
        session: Session,
        persistence: PersistenceSequencer,
        backend: BackendClient,
        emit: Emitter,
    ) -> HandshakeProtocol:
        defaults = {
            "tempo_bpm": int(config.get("recording.tempo_bpm")),
            "time_signature": config.time_signature,
            "instrument": int(config.get("recording.instrument")),
            "instrument_name": str(config.get("recording.instrument_name", "")),
        }
        return cls(
            session,
            persistence,
            backend,
            emit,
            track_defaults=defaults,
            notify_backend=bool(config.get("backend.notify_on_recording", True)),
        )

    @property
    def state(self) -> ProtocolState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: ProtocolState) -> None:
        with self._state_lock:
            self._state = state
        log.debug("Protocol state -> %s", state.value)

    def _mark_port_known(self) -> None:
        with self._state_lock:
            if self._state is ProtocolState.IDLE:
                self._state = ProtocolState.PORT_KNOWN

    # ── Client connection ───────────────────────────────

    def client_connected(self, sid: str) -> None:
        """Register *sid* and bring it up to date with the backend port."""
        self.session.register_client(sid)
        self._mark_port_known()
        log.info("Client connected: %s", sid)
        self._emit(EVT_NEW_PORT, self.session.backend_port, to=sid)

    def client_disconnected(self, sid: str) -> None:
        # The handle is left in place; the next connect overwrites it.
        log.info("Client disconnected: %s", sid)

    # ── Backend notices ─────────────────────────────────

    def port_changed(self, port: int) -> None:
        """Store the backend's new port and forward it to the client."""
        if self.session.set_backend_port(port):
            log.info("Backend port is now %d", port)
        self._mark_port_known()
        sid = self.session.client_sid
        if sid is not None:
            self._emit(EVT_NEW_PORT, self.session.backend_port, to=sid)

    def content_ready(self) -> None:
        """Tell the client new generated MIDI is available. Dropped if nobody is connected."""
        sid = self.session.client_sid
        if sid is None:
            log.debug("New MIDI ready but no client connected; dropping")
            return
        self._emit(EVT_NEW_MIDI, to=sid)

    # ── Recording ───────────────────────────────────────

    def start_recording(self) -> None:
        self.session.accumulator.reset(**self._track_defaults)
        self._set_state(ProtocolState.RECORDING_IN_PROGRESS)
        log.info("New recording started")

    def note_captured(self, pitch: str, start_ms: float, duration_ms: float) -> None:
        """Convert a played note with the current tempo and add it to the track."""
        try:
            note_number(pitch)
        except ValueError:
            log.warning("Dropping note with unknown pitch %r", pitch)
            return
        acc = self.session.accumulator
        acc.append(convert(pitch, float(start_ms), float(duration_ms), acc.tempo_bpm))
        log.debug("Added note %s at %s ms", pitch, start_ms)

    def recording_complete(self, sid: str | None) -> None:
        """Persist the current track and announce it.

        ``finished_writing_recording`` goes to the requesting client and
        again to the registered client, so one browser may get it twice.
        """
        # Snapshot before the first pause so later notes or resets can't leak in.
        track = self.session.accumulator.snapshot()
        self._set_state(ProtocolState.WRITE_IN_FLIGHT)
        try:
            self.persistence.persist(track)
        except (OSError, ValueError):
            log.exception("Failed to write recording")
            return
        finally:
            # A new_track that arrived mid-write keeps RECORDING_IN_PROGRESS
            with self._state_lock:
                if self._state is ProtocolState.WRITE_IN_FLIGHT:
                    self._state = ProtocolState.IDLE

        if sid is not None:
            self._emit(EVT_FINISHED_WRITING, to=sid)
        current = self.session.client_sid
        if current is not None:
            self._emit(EVT_FINISHED_WRITING, to=current)

        if self._notify_backend:
            self.backend.from_recorded()

    # ── Generation requests from the client ─────────────

    def generate_from_scratch(self) -> None:
        self.backend.from_scratch()

    def generate_from_conditioned(self, selection: str | int) -> None:
        self.backend.from_conditioned(selection)
