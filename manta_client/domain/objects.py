"""Domain objects for stored entries and their metadata headers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Iterable, Iterator, Mapping, MutableMapping, Union

from requests.structures import CaseInsensitiveDict

from manta_client.infra.storage.client import EncodingError
from manta_client.infra.storage.paths import normalize_path

if TYPE_CHECKING:
    import requests

DURABILITY_LEVEL = "durability-level"
CONTENT_TYPE = "content-type"
CONTENT_LENGTH = "content-length"
RESULT_SET_SIZE = "result-set-size"
ETAG = "etag"
LAST_MODIFIED = "last-modified"

DIRECTORY_CONTENT_TYPE = "application/json; type=directory"
LINK_CONTENT_TYPE = "application/json; type=link"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
BINARY_CONTENT_TYPE = "application/octet-stream"

DEFAULT_CHUNK_SIZE = 64 * 1024

Content = Union[str, bytes, IO[bytes], Iterable[bytes]]


def _positive_int(name: str, value: Any) -> int:
    number = _non_negative_int(name, value)
    if number == 0:
        raise EncodingError(f"{name} must be a positive integer, got {value!r}")
    return number


def _non_negative_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise EncodingError(f"{name} must be an integer, got {value!r}")
    try:
        number = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"{name} must be an integer, got {value!r}") from exc
    if number < 0:
        raise EncodingError(f"{name} must not be negative, got {value!r}")
    return number


# Header name -> coercion applied on assignment; everything else is an opaque string.
_TYPED_HEADERS = {
    DURABILITY_LEVEL: _positive_int,
    CONTENT_LENGTH: _non_negative_int,
    RESULT_SET_SIZE: _non_negative_int,
}


class ObjectHeaders(MutableMapping[str, Any]):
    """Case-insensitive header bag with typed values for the headers the store defines.

    ``durability-level`` must be a positive integer, ``content-length`` and
    ``result-set-size`` non-negative integers. Any other header is kept as a
    string and passed through verbatim.
    """

    def __init__(self, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._store: CaseInsensitiveDict = CaseInsensitiveDict()
        self.update(data or {}, **kwargs)

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str) or not key.strip():
            raise EncodingError(f"Header name must be a non-empty string, got {key!r}")
        coerce = _TYPED_HEADERS.get(key.lower())
        if coerce is not None:
            self._store[key] = coerce(key, value)
            return
        text = str(value)
        if "\r" in text or "\n" in text:
            raise EncodingError(f"Header {key} must not contain line breaks")
        self._store[key] = text

    def __getitem__(self, key: str) -> Any:
        return self._store[key]

    def __delitem__(self, key: str) -> None:
        del self._store[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"ObjectHeaders({dict(self._store.items())!r})"

    def to_wire(self) -> dict[str, str]:
        return {key: str(value) for key, value in self._store.items()}

    @classmethod
    def from_wire(cls, raw: Mapping[str, str]) -> "ObjectHeaders":
        headers = cls()
        for key, value in raw.items():
            try:
                headers[key] = value
            except EncodingError:
                # Keep malformed server values readable instead of failing the read.
                headers._store[key] = value
        return headers


@dataclass
class MantaObject:
    """A named entry in the store: a plain object or a directory marker.

    Objects built by callers carry ``content`` for a write. Objects returned
    by ``get`` own an open response stream, exposed through ``iter_bytes``,
    ``read_bytes``, ``read_text`` and ``save_to``; close them (or use them as
    context managers) when the body is not fully read. Writing back a fetched
    object streams its unread body; once the body is gone it cannot be written.
    """

    path: str
    content: Content | None = None
    headers: ObjectHeaders = field(default_factory=ObjectHeaders)
    is_directory: bool = False
    _response: "requests.Response | None" = field(default=None, repr=False, compare=False)
    _fetched: bool = field(default=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.path = normalize_path(self.path)
        if not isinstance(self.headers, ObjectHeaders):
            self.headers = ObjectHeaders(self.headers)
        if self.is_directory and self.content is not None:
            raise EncodingError(f"Directory {self.path} cannot carry content")

    @classmethod
    def from_response(
        cls, path: str, response: "requests.Response", *, stream: bool
    ) -> "MantaObject":
        headers = ObjectHeaders.from_wire(response.headers)
        is_directory = _is_directory(headers.get(CONTENT_TYPE))
        return cls(
            path=path,
            headers=headers,
            is_directory=is_directory,
            _response=response if stream else None,
            _fetched=True,
        )

    def set_header(self, name: str, value: Any) -> None:
        self.headers[name] = value

    def get_header(self, name: str, default: Any = None) -> Any:
        return self.headers.get(name, default)

    @property
    def content_type(self) -> str | None:
        return self.headers.get(CONTENT_TYPE)

    @property
    def durability_level(self) -> int | None:
        value = self.headers.get(DURABILITY_LEVEL)
        return value if isinstance(value, int) else None

    @property
    def etag(self) -> str | None:
        return self.headers.get(ETAG)

    @property
    def last_modified(self) -> datetime | None:
        value = self.headers.get(LAST_MODIFIED)
        if not value:
            return None
        try:
            return parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None

    def upload_content(self) -> Content | None:
        """Return what a write should send for this object.

        A fetched object re-sends its still-open body. One whose body was
        already read, or that came from ``head``, has nothing to send.
        """
        if self.content is not None:
            return self.content
        if self._response is not None:
            return self.iter_bytes()
        if self._fetched:
            raise EncodingError(f"Body of {self.path} was already consumed or never fetched")
        return None

    @property
    def has_stream(self) -> bool:
        return self._response is not None

    def iter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks, closing the stream when exhausted or abandoned."""
        if self._response is None:
            yield from self._iter_local_content(chunk_size)
            return
        try:
            for chunk in self._response.iter_content(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        finally:
            self.close()

    def read_bytes(self) -> bytes:
        return b"".join(self.iter_bytes())

    def read_text(self, encoding: str = "utf-8") -> str:
        try:
            return self.read_bytes().decode(encoding)
        except UnicodeDecodeError as exc:
            raise EncodingError(f"Content of {self.path} is not valid {encoding}") from exc

    def save_to(self, destination: str | Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Path:
        target = Path(destination)
        with target.open("wb") as handle:
            for chunk in self.iter_bytes(chunk_size):
                handle.write(chunk)
        return target

    def close(self) -> None:
        response, self._response = self._response, None
        if response is not None:
            response.close()

    def __enter__(self) -> "MantaObject":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _iter_local_content(self, chunk_size: int) -> Iterator[bytes]:
        content = self.content
        if content is None:
            return
        if isinstance(content, str):
            yield content.encode("utf-8")
        elif isinstance(content, (bytes, bytearray)):
            yield bytes(content)
        elif hasattr(content, "read"):
            chunk = content.read(chunk_size)
            while chunk:
                yield chunk
                chunk = content.read(chunk_size)
        else:
            yield from content


def _is_directory(content_type: str | None) -> bool:
    if not content_type:
        return False
    return "type=directory" in content_type.replace(" ", "").lower()
