"""End-to-end tests through Flask's HTTP client and Flask-SocketIO's test client."""

from __future__ import annotations

from unittest.mock import Mock

import mido
import pytest

from duet_relay.core.backend_client import BackendClient
from duet_relay.server import create_app


def _inline(fn, *args):
    fn(*args)


@pytest.fixture
def relay(config):
    app, socketio = create_app(config, spawn=_inline)
    protocol = app.extensions["duet_relay"]
    protocol.backend = Mock(spec=BackendClient)
    return app, socketio, protocol


def _names(received):
    return [r["name"] for r in received]


class TestBackendRoutes:
    def test_midi_ready_without_client(self, relay):
        app, socketio, _ = relay
        resp = app.test_client().post("/midi_ready")
        assert resp.status_code == 200
        assert resp.get_data(as_text=True) == "POST request - midi ready in frontend!"
        # Nothing queued for a client that connects afterwards
        client = socketio.test_client(app)
        assert _names(client.get_received()) == ["new_port"]

    def test_midi_ready_reaches_client(self, relay):
        app, socketio, _ = relay
        client = socketio.test_client(app)
        client.get_received()
        app.test_client().post("/midi_ready")
        assert _names(client.get_received()) == ["new_midi"]

    def test_python_port_json(self, relay):
        app, socketio, protocol = relay
        client = socketio.test_client(app)
        assert client.get_received() == [{"name": "new_port", "args": [12000], "namespace": "/"}]
        resp = app.test_client().post("/python_port", json={"new_port": 12500})
        assert resp.get_data(as_text=True) == "POST request - Got new port!"
        received = client.get_received()
        assert received[0]["name"] == "new_port"
        assert received[0]["args"] == [12500]
        assert protocol.session.backend_port == 12500

    def test_python_port_form(self, relay):
        app, _, protocol = relay
        app.test_client().post("/python_port", data={"new_port": "12600"})
        assert protocol.session.backend_port == 12600

    def test_python_port_invalid_is_acknowledged(self, relay):
        app, _, protocol = relay
        resp = app.test_client().post("/python_port", json={"new_port": "abc"})
        assert resp.status_code == 200
        assert protocol.session.backend_port == 12000


class TestRecordingFlow:
    def test_record_and_write(self, relay, config):
        app, socketio, protocol = relay
        client = socketio.test_client(app)
        client.get_received()

        client.emit("new_track")
        client.emit("new_note", "C4", 0, 500)
        client.emit("new_note", "E4", 500, 250)
        client.emit("write_midi")

        assert _names(client.get_received()) == ["finished_writing_recording"] * 2
        mid = mido.MidiFile(str(config.recording_path))
        ons = [m.note for m in mid.tracks[0] if m.type == "note_on"]
        assert ons == [60, 64]
        assert config.backend_path.exists()
        protocol.backend.from_recorded.assert_called_once_with()

    def test_write_empty_track(self, relay, config):
        app, socketio, _ = relay
        client = socketio.test_client(app)
        client.get_received()
        client.emit("new_track")
        client.emit("write_midi")
        assert "finished_writing_recording" in _names(client.get_received())
        assert config.recording_path.exists()

    def test_last_connected_client_also_notified(self, relay):
        app, socketio, _ = relay
        first = socketio.test_client(app)
        second = socketio.test_client(app)
        first.get_received()
        second.get_received()
        first.emit("write_midi")
        assert _names(first.get_received()) == ["finished_writing_recording"]
        assert _names(second.get_received()) == ["finished_writing_recording"]

    def test_generate_events(self, relay):
        app, socketio, protocol = relay
        client = socketio.test_client(app)
        client.emit("generate")
        client.emit("generate_conditioned", "1")
        protocol.backend.from_scratch.assert_called_once_with()
        protocol.backend.from_conditioned.assert_called_once_with("1")


class TestDispatch:
    def test_client_events_handled_in_arrival_order(self, relay):
        _, socketio, _ = relay
        assert socketio.server.async_handlers is False

    def test_notes_appended_in_send_order(self, relay):
        app, socketio, protocol = relay
        client = socketio.test_client(app)
        client.emit("new_track")
        pitches = ["C4", "D4", "E4", "F4", "G4", "A4", "B4", "C5"]
        for i, pitch in enumerate(pitches):
            client.emit("new_note", pitch, i * 100, 100)
        events = protocol.session.accumulator.snapshot().events
        assert [e.pitch for e in events] == pitches
