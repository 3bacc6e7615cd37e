"""Write a recording to disk and hand a copy to the generation backend.

The steps run strictly in order: delete, pause, write, copy, pause. The
pauses paper over a filesystem where a file rewritten right after unlink
could come back with stale data; set ``settle_delay`` to 0 on storage
with synchronous unlink.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable
from pathlib import Path

from .config import ConfigManager
from .constants import DEFAULT_SETTLE_DELAY
from .midi_writer import MidiWriter
from .track import Track

log = logging.getLogger(__name__)


class PersistenceSequencer:
    """Replace the recording artifact and mirror it to the backend folder."""

    def __init__(
        self,
        recording_path: str | Path,
        backend_path: str | Path | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Callable[[float], object] = time.sleep,
    ) -> None:
        self.recording_path = Path(recording_path)
        self.backend_path = Path(backend_path) if backend_path else None
        self.settle_delay = max(0.0, float(settle_delay))
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: ConfigManager,
        sleep: Callable[[float], object] = time.sleep,
    ) -> PersistenceSequencer:
        return cls(
            recording_path=config.recording_path,
            backend_path=config.backend_path,
            settle_delay=float(config.get("storage.settle_delay", DEFAULT_SETTLE_DELAY)),
            sleep=sleep,
        )

    def persist(self, track: Track) -> Path:
        """Write *track* to the recording path and copy it for the backend.

        *track* must already be a snapshot; nothing here reads the live
        accumulator. Delete and copy failures are logged and skipped.

        Returns:
            The recording path.
        """
        self._remove_existing()
        self._pause()

        path = MidiWriter.save(track, self.recording_path)
        log.info("Wrote %d notes to %s", len(track.events), path)

        self._copy_to_backend()
        self._pause()
        return path

    def _remove_existing(self) -> None:
        try:
            self.recording_path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            log.warning("Could not delete %s", self.recording_path, exc_info=True)

    def _copy_to_backend(self) -> None:
        if self.backend_path is None:
            return
        try:
            self.backend_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.recording_path, self.backend_path)
            log.info("Copied recording to %s", self.backend_path)
        except OSError:
            log.warning("Couldn't copy recording to %s", self.backend_path, exc_info=True)

    def _pause(self) -> None:
        if self.settle_delay > 0:
            self._sleep(self.settle_delay)
