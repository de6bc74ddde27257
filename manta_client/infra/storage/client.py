"""Object store client protocol and error taxonomy.

This module defines the abstract interface for a path-addressed object store
(objects, directories and snaplinks) together with the exceptions every
implementation raises.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Iterator, Mapping, Protocol

if TYPE_CHECKING:
    from manta_client.domain.objects import MantaObject


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    OBJECT_TYPE = "object_type"
    REQUEST_FAILED = "request_failed"
    ENCODING = "encoding"
    SIGNING = "signing"


class MantaError(Exception):
    """Base class for all object store client errors."""

    kind: ErrorKind = ErrorKind.REQUEST_FAILED


class NotFound(MantaError):
    """Raised when the store reports that a path does not exist (HTTP 404)."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, path: str, *, code: str | None = None, message: str | None = None):
        self.path = path
        self.code = code
        self.message = message
        super().__init__(f"{path} not found" + (f": {message}" if message else ""))


class ObjectTypeError(MantaError):
    """Raised when an operation does not apply to the kind of object at a path."""

    kind = ErrorKind.OBJECT_TYPE

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class RequestFailed(MantaError):
    """Raised for non-404 error statuses and transport failures.

    ``status_code`` is ``None`` when no response was received at all.
    """

    kind = ErrorKind.REQUEST_FAILED

    def __init__(
        self,
        status_code: int | None,
        body: str,
        *,
        code: str | None = None,
        message: str | None = None,
    ):
        self.status_code = status_code
        self.body = body
        self.code = code
        detail = message or body or "no response body"
        label = f"HTTP {status_code}" if status_code is not None else "transport error"
        super().__init__(f"{label}: {detail}")


class EncodingError(MantaError, ValueError):
    """Raised for malformed paths, header values or payloads."""

    kind = ErrorKind.ENCODING


class SigningError(MantaError):
    """Raised when the request signing key cannot be loaded or does not match."""

    kind = ErrorKind.SIGNING


class ObjectStoreClient(Protocol):
    """Protocol defining the interface for path-addressed object stores.

    Every call is an independent request/response exchange; implementations
    keep no state between calls and never cache reads.
    """

    def put(self, obj: "MantaObject") -> None:
        """Write an object at its path, creating or overwriting it.

        Raises:
            EncodingError: If the path or content is malformed.
            NotFound: If the parent directory does not exist.
            RequestFailed: If the store rejects the write.
        """
        ...

    def get(self, path: str) -> "MantaObject":
        """Fetch an object; its content is an open stream the caller must consume or close.

        Raises:
            NotFound: If nothing exists at ``path``.
        """
        ...

    def head(self, path: str) -> "MantaObject":
        """Fetch only the metadata for ``path``.

        Raises:
            NotFound: If nothing exists at ``path``.
        """
        ...

    def delete(self, path: str) -> None:
        """Delete a single object or an empty directory.

        Raises:
            NotFound: If nothing exists at ``path``.
        """
        ...

    def delete_recursive(self, path: str) -> None:
        """Delete ``path`` and, when it is a directory, all of its descendants."""
        ...

    def put_directory(self, path: str, headers: Mapping[str, object] | None = None) -> None:
        """Create a directory; creating an existing directory succeeds."""
        ...

    def put_snap_link(
        self,
        link_path: str,
        target_path: str,
        headers: Mapping[str, object] | None = None,
    ) -> None:
        """Create a snapshot link at ``link_path`` to the current ``target_path``.

        Raises:
            NotFound: If ``target_path`` does not exist.
        """
        ...

    def list_objects(self, path: str) -> list["MantaObject"]:
        """List the immediate children of a directory.

        Raises:
            ObjectTypeError: If ``path`` is not a directory.
        """
        ...

    def iter_objects(self, path: str) -> Iterator["MantaObject"]:
        """Lazily list the immediate children of a directory, page by page."""
        ...
