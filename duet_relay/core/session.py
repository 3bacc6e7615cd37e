"""Process-wide relay session: current client, backend port, active track."""

from __future__ import annotations

import logging
import threading

from .config import ConfigManager
from .constants import DEFAULT_BACKEND_PORT
from .track import TrackAccumulator

log = logging.getLogger(__name__)


class Session:
    """Who the relay is talking to right now.

    One instance per process, passed to every handler. Only the most
    recently connected client counts; older handles are simply overwritten.
    """

    def __init__(
        self,
        backend_port: int = DEFAULT_BACKEND_PORT,
        accumulator: TrackAccumulator | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._client_sid: str | None = None
        self._backend_port = int(backend_port)
        self.accumulator = accumulator if accumulator is not None else TrackAccumulator()

    @classmethod
    def from_config(cls, config: ConfigManager) -> Session:
        """Build a session seeded with the configured port and track defaults."""
        accumulator = TrackAccumulator(
            tempo_bpm=int(config.get("recording.tempo_bpm")),
            time_signature=config.time_signature,
            instrument=int(config.get("recording.instrument")),
            instrument_name=str(config.get("recording.instrument_name", "")),
        )
        return cls(backend_port=int(config.get("backend.port")), accumulator=accumulator)

    @property
    def client_sid(self) -> str | None:
        with self._lock:
            return self._client_sid

    @property
    def backend_port(self) -> int:
        with self._lock:
            return self._backend_port

    def register_client(self, sid: str) -> None:
        """Make *sid* the current client (last connected wins)."""
        with self._lock:
            previous, self._client_sid = self._client_sid, sid
        if previous is not None and previous != sid:
            log.debug("Client %s replaces %s", sid, previous)

    def set_backend_port(self, port: int) -> bool:
        """Store a new backend port. Returns True if the value changed."""
        port = int(port)
        with self._lock:
            changed = port != self._backend_port
            self._backend_port = port
        return changed
