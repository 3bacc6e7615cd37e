"""Configuration persistence using JSON format.

Stored at ~/.duet_relay/config.json unless another directory is given.
Missing keys are filled in from ``DEFAULT_CONFIG`` so older files keep
working after new settings are added.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any

from .constants import (
    DEFAULT_BACKEND_PORT,
    DEFAULT_INSTRUMENT,
    DEFAULT_INSTRUMENT_NAME,
    DEFAULT_SERVER_PORT,
    DEFAULT_SETTLE_DELAY,
    DEFAULT_TEMPO_BPM,
    DEFAULT_TIME_SIGNATURE,
)

log = logging.getLogger(__name__)


# Default configuration schema
DEFAULT_CONFIG = {
    "version": "1.0",
    "server": {
        "host": "127.0.0.1",
        "port": DEFAULT_SERVER_PORT,
    },
    "backend": {
        "host": "localhost",
        "port": DEFAULT_BACKEND_PORT,
        "timeout": 5.0,  # seconds
        "notify_on_recording": True,
    },
    "recording": {
        "tempo_bpm": DEFAULT_TEMPO_BPM,
        "time_signature": list(DEFAULT_TIME_SIGNATURE),
        "instrument": DEFAULT_INSTRUMENT,  # GM program number
        "instrument_name": DEFAULT_INSTRUMENT_NAME,
    },
    "storage": {
        "recording_path": "midi/my_recording.mid",
        # Input folder of the generation backend, next to this checkout
        "backend_path": "../PopMusicTransformerPytorch/src/transformer/result/my_recording.mid",
        "settle_delay": DEFAULT_SETTLE_DELAY,  # seconds, 0 disables
    },
}


class ConfigManager:
    """Manages relay configuration with JSON persistence."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config manager.

        Args:
            config_dir: Custom config directory. If None, uses ~/.duet_relay/
        """
        if config_dir is None:
            config_dir = Path.home() / ".duet_relay"
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / "config.json"
        self._config: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load config from disk or create default."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        if self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    loaded = json.load(f)
                # Merge with defaults (in case new keys were added)
                self._config = self._merge_defaults(loaded)
            except (json.JSONDecodeError, OSError) as e:
                log.warning("Failed to load config: %s. Using defaults.", e)
                self._config = copy.deepcopy(DEFAULT_CONFIG)
        else:
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save()

    def _merge_defaults(self, loaded: dict) -> dict:
        """Recursively merge loaded config with defaults."""
        def deep_merge(base: dict, override: dict) -> dict:
            merged = copy.deepcopy(base)
            for key, value in override.items():
                if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                    merged[key] = deep_merge(merged[key], value)
                else:
                    merged[key] = value
            return merged

        return deep_merge(DEFAULT_CONFIG, loaded)

    def _save(self) -> None:
        """Write config to disk."""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            log.warning("Failed to save config: %s", e)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value using dot notation.

        Example:
            config.get("backend.port")
            config.get("storage.settle_delay", 0.1)
        """
        keys = key_path.split(".")
        value = self._config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set config value using dot notation and save.

        Example:
            config.set("server.port", 5050)
        """
        keys = key_path.split(".")
        target = self._config
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value
        self._save()

    # ── Typed accessors ─────────────────────────────────

    @property
    def time_signature(self) -> tuple[int, int]:
        beats, unit = self.get("recording.time_signature", list(DEFAULT_TIME_SIGNATURE))
        return int(beats), int(unit)

    @property
    def recording_path(self) -> Path:
        return Path(self.get("storage.recording_path"))

    @property
    def backend_path(self) -> Path | None:
        """Hand-off location read by the backend, or None to skip the copy."""
        raw = self.get("storage.backend_path")
        return Path(raw) if raw else None
