"""Timing, protocol and port constants shared by the relay core."""

# Start times arrive in milliseconds and are divided by this to get ticks.
START_TICK_DIVISOR = 4.0

# Tick resolution of the written artifact (pulses per quarter note).
TICKS_PER_BEAT = 128

# Initial backend port; the backend announces a new one via /python_port
DEFAULT_BACKEND_PORT = 12000
DEFAULT_SERVER_PORT = 5000

# Recording defaults for every new track
DEFAULT_TEMPO_BPM = 120
DEFAULT_TIME_SIGNATURE = (4, 4)
DEFAULT_INSTRUMENT = 2
DEFAULT_INSTRUMENT_NAME = "Piano"
DEFAULT_VELOCITY = 64

# Pause around the delete/write/copy steps of a recording write (seconds)
DEFAULT_SETTLE_DELAY = 0.1

MIDI_NOTE_MIN = 0
MIDI_NOTE_MAX = 127

# Socket.IO event names
EVT_NEW_NOTE = "new_note"
EVT_NEW_TRACK = "new_track"
EVT_WRITE_MIDI = "write_midi"
EVT_GENERATE = "generate"
EVT_GENERATE_CONDITIONED = "generate_conditioned"
EVT_NEW_PORT = "new_port"
EVT_NEW_MIDI = "new_midi"
EVT_FINISHED_WRITING = "finished_writing_recording"

# HTTP acknowledgements sent back to the backend
ACK_MIDI_READY = "POST request - midi ready in frontend!"
ACK_PYTHON_PORT = "POST request - Got new port!"
