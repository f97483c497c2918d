"""Loader settings read from the environment."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_CHUNK_SIZE = 5000000
DEFAULT_WRAPPER_KEY = "traceEvents"
DEFAULT_LEGACY_MARKER = "Chrome"
DEFAULT_MAX_KEY_SEARCH = 16 * 1024 * 1024
DEFAULT_HTTP_TIMEOUT = 30.0


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class LoaderSettings:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    wrapper_key: str = DEFAULT_WRAPPER_KEY
    legacy_marker: str = DEFAULT_LEGACY_MARKER
    # 0 disables the cap on how far the wrapper key is searched for
    max_key_search: int = DEFAULT_MAX_KEY_SEARCH
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LoaderSettings":
        """Build settings from TRACE_* environment variables."""
        if environ is None:
            environ = os.environ
        chunk_size = _env_int(environ, "TRACE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
        if chunk_size == 0:
            raise ValueError("TRACE_CHUNK_SIZE must be positive")
        return cls(
            chunk_size=chunk_size,
            wrapper_key=environ.get("TRACE_WRAPPER_KEY") or DEFAULT_WRAPPER_KEY,
            legacy_marker=environ.get("TRACE_LEGACY_MARKER") or DEFAULT_LEGACY_MARKER,
            max_key_search=_env_int(environ, "TRACE_MAX_KEY_SEARCH", DEFAULT_MAX_KEY_SEARCH),
            http_timeout=_env_float(environ, "TRACE_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        )
