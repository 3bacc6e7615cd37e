"""Entry point: logging, config and the Socket.IO server."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .core.config import ConfigManager
from .server import create_app


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="duet-relay",
        description="Relay between the browser piano and the MIDI generation backend.",
    )
    parser.add_argument("--config-dir", type=Path, default=None,
                        help="directory holding config.json (default: ~/.duet_relay)")
    parser.add_argument("--host", default=None, help="interface to listen on")
    parser.add_argument("--port", type=int, default=None, help="port to listen on")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    # Global exception handler
    def exception_hook(exctype, value, tb):
        logging.error("Unhandled exception", exc_info=(exctype, value, tb))
        sys.__excepthook__(exctype, value, tb)

    sys.excepthook = exception_hook

    config = ConfigManager(config_dir=args.config_dir)
    host = args.host or config.get("server.host", "127.0.0.1")
    port = args.port or int(config.get("server.port"))

    app, socketio = create_app(config)
    logging.getLogger(__name__).info("listening on %s:%d", host, port)
    socketio.run(app, host=host, port=port, debug=False, allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
