"""Shared test fixtures."""

from __future__ import annotations

import pytest

from duet_relay.core.config import ConfigManager


@pytest.fixture
def config(tmp_path):
    """Config in a temp dir with artifacts under tmp_path and no settle pauses."""
    cfg = ConfigManager(config_dir=tmp_path / "config")
    cfg.set("storage.recording_path", str(tmp_path / "midi" / "my_recording.mid"))
    cfg.set("storage.backend_path", str(tmp_path / "backend" / "result" / "my_recording.mid"))
    cfg.set("storage.settle_delay", 0)
    return cfg
