"""One-way requests to the generation backend.

The backend's port can change while the relay runs, so the URL is built
from the session on every call. Failures are logged and never raised;
nothing is retried.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

import requests

from .session import Session

log = logging.getLogger(__name__)


def _run_inline(fn: Callable[..., object], *args: object) -> None:
    fn(*args)


class BackendClient:
    """Fire-and-forget HTTP client for the backend's generation endpoints."""

    def __init__(
        self,
        session: Session,
        host: str = "localhost",
        timeout: float = 5.0,
        spawn: Callable[..., object] = _run_inline,
        http: requests.Session | None = None,
    ) -> None:
        self._session = session
        self._host = host
        self._timeout = timeout
        self._spawn = spawn
        self._http = http if http is not None else requests.Session()

    def url(self, path: str) -> str:
        return f"http://{self._host}:{self._session.backend_port}{path}"

    def from_scratch(self) -> None:
        """Ask for a fresh set of generated bars."""
        self._spawn(self._send, "GET", "/from_scratch", None)

    def from_recorded(self) -> None:
        """Ask for generation conditioned on the just-written recording."""
        self._spawn(self._send, "POST", "/from_recorded", None)

    def from_conditioned(self, selection: str | int) -> None:
        """Ask for generation conditioned on a previously generated result."""
        self._spawn(self._send, "POST", "/from_conditioned", json.dumps(str(selection)))

    def _send(self, method: str, path: str, body: str | None) -> None:
        url = self.url(path)
        try:
            resp = self._http.request(method, url, data=body, timeout=self._timeout)
        except requests.RequestException as e:
            log.warning("Backend unreachable (%s %s): %s", method, url, e)
            return
        log.info("Backend %s %s -> %d", method, path, resp.status_code)
