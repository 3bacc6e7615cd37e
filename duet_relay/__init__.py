"""duet_relay — Socket.IO relay between a browser piano and a MIDI generation backend."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("duet-relay")
except PackageNotFoundError:
    # Source checkout without metadata — read pyproject.toml directly
    try:
        import tomllib
        from pathlib import Path

        _toml = Path(__file__).resolve().parent.parent / "pyproject.toml"
        with open(_toml, "rb") as f:
            __version__ = tomllib.load(f)["project"]["version"]
    except Exception:
        __version__ = "0.0.0-dev"
