"""Flask + Socket.IO front door of the relay.

Socket.IO carries the browser's note stream and the relay's notifications;
two plain HTTP routes receive notices from the generation backend.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from flask import Flask, request
from flask_cors import CORS
from flask_socketio import SocketIO

from .core.backend_client import BackendClient
from .core.config import ConfigManager
from .core.constants import (
    ACK_MIDI_READY,
    ACK_PYTHON_PORT,
    EVT_GENERATE,
    EVT_GENERATE_CONDITIONED,
    EVT_NEW_NOTE,
    EVT_NEW_TRACK,
    EVT_WRITE_MIDI,
)
from .core.handshake import HandshakeProtocol
from .core.persistence import PersistenceSequencer
from .core.session import Session

log = logging.getLogger(__name__)


def create_app(
    config: ConfigManager,
    spawn: Callable[..., object] | None = None,
) -> tuple[Flask, SocketIO]:
    """Build the Flask app, its SocketIO server and the handshake protocol.

    Args:
        config: Loaded relay configuration.
        spawn: Runner for outbound backend requests. Defaults to a SocketIO
            background task so a slow backend never blocks a handler.
    """
    app = Flask(__name__)
    CORS(app)
    # Events from a client are handled one at a time, in arrival order
    socketio = SocketIO(
        app, cors_allowed_origins="*", async_mode="threading", async_handlers=False,
    )

    session = Session.from_config(config)
    backend = BackendClient(
        session,
        host=str(config.get("backend.host", "localhost")),
        timeout=float(config.get("backend.timeout", 5.0)),
        spawn=spawn or socketio.start_background_task,
    )
    persistence = PersistenceSequencer.from_config(config, sleep=socketio.sleep)
    protocol = HandshakeProtocol.from_config(config, session, persistence, backend, socketio.emit)
    app.extensions["duet_relay"] = protocol

    # ── Backend → relay ─────────────────────────────────

    @app.post("/midi_ready")
    def midi_ready():
        protocol.content_ready()
        return ACK_MIDI_READY

    @app.post("/python_port")
    def python_port():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            payload = request.form
        raw = payload.get("new_port")
        try:
            port = int(raw)
        except (TypeError, ValueError):
            log.warning("Ignoring invalid backend port %r", raw)
            return ACK_PYTHON_PORT
        protocol.port_changed(port)
        return ACK_PYTHON_PORT

    # ── Browser ↔ relay ─────────────────────────────────

    @socketio.on("connect")
    def on_connect(auth=None):
        protocol.client_connected(request.sid)

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        protocol.client_disconnected(request.sid)

    @socketio.on(EVT_NEW_NOTE)
    def on_new_note(pitch, start, duration):
        protocol.note_captured(pitch, start, duration)

    @socketio.on(EVT_NEW_TRACK)
    def on_new_track():
        protocol.start_recording()

    @socketio.on(EVT_WRITE_MIDI)
    def on_write_midi():
        protocol.recording_complete(request.sid)

    @socketio.on(EVT_GENERATE)
    def on_generate():
        protocol.generate_from_scratch()

    @socketio.on(EVT_GENERATE_CONDITIONED)
    def on_generate_conditioned(selection):
        protocol.generate_from_conditioned(selection)

    return app, socketio
