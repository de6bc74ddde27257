from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_MANTA_URL = "https://us-east.manta.joyent.com"
DEFAULT_KEY_PATH = "~/.ssh/id_rsa"


def _parse_env_line(line: str) -> tuple[str, str] | None:
    line = line.strip()
    if line.startswith("export "):
        line = line[len("export "):].lstrip()
    if not line or line.startswith("#"):
        return None
    name, sep, raw = line.partition("=")
    name = name.strip()
    if not sep or not name:
        return None
    raw = raw.strip()
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in {"'", "\""}:
        raw = raw[1:-1]
    return name, raw


def _load_env_file(env_file: Path | None = None) -> None:
    """Export assignments from a dotenv file; the process environment wins."""
    env_file = env_file or ENV_FILE
    if not env_file.is_file():
        return
    with env_file.open(encoding="utf-8") as handle:
        for line in handle:
            parsed = _parse_env_line(line)
            if parsed is not None:
                os.environ.setdefault(*parsed)


_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    flag = value.strip().lower()
    if flag in _TRUE_VALUES:
        return True
    if flag in _FALSE_VALUES:
        return False
    raise ValueError(f"Expected a boolean flag, got {value!r}")


def _as_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass
class Settings:
    MANTA_URL: str = DEFAULT_MANTA_URL
    MANTA_USER: str | None = None
    MANTA_KEY_PATH: str = DEFAULT_KEY_PATH
    MANTA_KEY_ID: str | None = None
    MANTA_TIMEOUT: float | None = None
    MANTA_LIST_PAGE_SIZE: int = 1000
    MANTA_TRACE_HTTP: bool = False
    MANTA_ENABLE_METRICS: bool = True

    def __post_init__(self) -> None:
        scheme = self.MANTA_URL.split(":", 1)[0].lower()
        if scheme not in {"http", "https"}:
            raise ValueError("MANTA_URL must be an http:// or https:// endpoint.")
        if self.MANTA_LIST_PAGE_SIZE <= 0:
            raise ValueError("MANTA_LIST_PAGE_SIZE must be positive.")
        if self.MANTA_TIMEOUT is not None and self.MANTA_TIMEOUT <= 0:
            raise ValueError("MANTA_TIMEOUT must be positive when set.")

    @property
    def key_path(self) -> Path:
        return Path(self.MANTA_KEY_PATH).expanduser()

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            MANTA_URL=os.environ.get("MANTA_URL", cls.MANTA_URL).rstrip("/"),
            MANTA_USER=os.environ.get("MANTA_USER"),
            MANTA_KEY_PATH=os.environ.get("MANTA_KEY_PATH", cls.MANTA_KEY_PATH),
            MANTA_KEY_ID=os.environ.get("MANTA_KEY_ID"),
            MANTA_TIMEOUT=_as_float(os.environ.get("MANTA_TIMEOUT")),
            MANTA_LIST_PAGE_SIZE=int(
                os.environ.get("MANTA_LIST_PAGE_SIZE", cls.MANTA_LIST_PAGE_SIZE)
            ),
            MANTA_TRACE_HTTP=_as_bool(
                os.environ.get("MANTA_TRACE_HTTP"), cls.MANTA_TRACE_HTTP
            ),
            MANTA_ENABLE_METRICS=_as_bool(
                os.environ.get("MANTA_ENABLE_METRICS"), cls.MANTA_ENABLE_METRICS
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
