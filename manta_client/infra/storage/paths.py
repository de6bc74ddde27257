"""Path validation and wire encoding for object store paths."""

from __future__ import annotations

from urllib.parse import quote

from manta_client.infra.storage.client import EncodingError

# RFC 3986 unreserved characters are never escaped; "/" separates segments.
_SAFE_CHARS = "/-._~"


def normalize_path(path: str) -> str:
    """Validate an absolute object path and collapse redundant slashes.

    Raises:
        EncodingError: If the path is empty, relative, or contains NUL bytes.
    """
    if not isinstance(path, str):
        raise EncodingError(f"Object path must be a string, got {type(path).__name__}")
    if not path:
        raise EncodingError("Object path must not be empty")
    if not path.startswith("/"):
        raise EncodingError(f"Object path must be absolute: {path!r}")
    if "\x00" in path:
        raise EncodingError("Object path must not contain NUL bytes")

    segments = [segment for segment in path.split("/") if segment]
    return "/" + "/".join(segments)


def encode_path(path: str) -> str:
    """Percent-encode a normalized path for use in a request URL."""
    normalized = normalize_path(path)
    try:
        return quote(normalized, safe=_SAFE_CHARS, encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"Object path is not valid UTF-8: {path!r}") from exc


def join_path(directory: str, name: str) -> str:
    if not name or "/" in name:
        raise EncodingError(f"Invalid directory entry name: {name!r}")
    base = normalize_path(directory)
    if base == "/":
        return f"/{name}"
    return f"{base}/{name}"
