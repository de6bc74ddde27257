"""Manta-compatible object store client implementation.

This module provides the HTTP client for a path-addressed object store in
the style of Joyent Manta: objects and directories live under
``/<login>/stor/...``, requests are authenticated with HTTP Signatures, and
directory listings are streamed as newline-delimited JSON.

Dependencies:
    - requests
    - pydantic
"""

from __future__ import annotations

import logging
import uuid
from datetime import timezone
from email.utils import format_datetime
from typing import TYPE_CHECKING, Any, Iterator, Mapping

import requests
from pydantic import ValidationError
from requests.auth import AuthBase
from requests.structures import CaseInsensitiveDict

from manta_client.common.config import get_settings
from manta_client.domain.objects import (
    BINARY_CONTENT_TYPE,
    CONTENT_LENGTH,
    CONTENT_TYPE,
    DIRECTORY_CONTENT_TYPE,
    DURABILITY_LEVEL,
    ETAG,
    LAST_MODIFIED,
    LINK_CONTENT_TYPE,
    RESULT_SET_SIZE,
    TEXT_CONTENT_TYPE,
    Content,
    MantaObject,
    ObjectHeaders,
)
from manta_client.domain.schemas import DirectoryEntry, ErrorBody
from manta_client.infra.observability.hooks import REQUEST_ID_HEADER, RequestTraceHook
from manta_client.infra.storage.client import (
    EncodingError,
    NotFound,
    ObjectTypeError,
    RequestFailed,
    SigningError,
)
from manta_client.infra.storage.paths import encode_path, join_path, normalize_path
from manta_client.infra.storage.signer import HttpSignatureAuth

if TYPE_CHECKING:
    from manta_client.common.config import Settings

DIRECTORY_LISTING_TYPE = "application/x-json-stream; type=directory"
SOURCE_NOT_FOUND_CODE = "SourceObjectNotFound"

# Headers describing a stored copy or a single exchange; never sent back on a write.
_UNWRITABLE_HEADERS = frozenset(
    {
        CONTENT_LENGTH,
        ETAG,
        LAST_MODIFIED,
        RESULT_SET_SIZE,
        REQUEST_ID_HEADER,
        "authorization",
        "connection",
        "date",
        "keep-alive",
        "server",
        "transfer-encoding",
        "x-response-time",
        "x-server-name",
    }
)

logger = logging.getLogger(__name__)


class MantaClient:
    """Client for a remote path-addressed object store.

    Each call is one signed request/response exchange; the client keeps no
    state between calls and never caches what it reads. A ``requests.Session``
    may be injected to reuse connections or to mount a custom transport.
    """

    def __init__(
        self,
        *,
        url: str,
        login: str,
        signer: AuthBase,
        session: requests.Session | None = None,
        timeout: float | None = None,
        list_page_size: int = 1000,
        trace_http: bool = False,
        enable_metrics: bool = True,
    ) -> None:
        if list_page_size <= 0:
            raise ValueError("list_page_size must be positive")
        self._url = url.rstrip("/")
        self._login = login
        self._signer = signer
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._timeout = timeout
        self._list_page_size = list_page_size
        self._hook = RequestTraceHook(trace_http=trace_http, enable_metrics=enable_metrics)

    @classmethod
    def from_settings(
        cls,
        settings: "Settings | None" = None,
        *,
        session: requests.Session | None = None,
    ) -> "MantaClient":
        """Build a client from configuration, loading the signing key from disk.

        Raises:
            SigningError: If the login is missing or the key cannot be used.
        """
        settings = settings or get_settings()
        if not settings.MANTA_USER:
            raise SigningError("MANTA_USER is required")
        signer = HttpSignatureAuth.from_key_file(
            login=settings.MANTA_USER,
            key_path=settings.key_path,
            key_id=settings.MANTA_KEY_ID,
        )
        return cls(
            url=settings.MANTA_URL,
            login=settings.MANTA_USER,
            signer=signer,
            session=session,
            timeout=settings.MANTA_TIMEOUT,
            list_page_size=settings.MANTA_LIST_PAGE_SIZE,
            trace_http=settings.MANTA_TRACE_HTTP,
            enable_metrics=settings.MANTA_ENABLE_METRICS,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def login(self) -> str:
        return self._login

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "MantaClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def put(self, obj: MantaObject) -> None:
        """Write an object, creating or overwriting it."""
        if obj.is_directory:
            self.put_directory(obj.path, obj.headers)
            return

        body, default_type = _encode_body(obj.upload_content())
        headers = _writable_headers(obj.headers)
        if CONTENT_TYPE not in obj.headers:
            headers[CONTENT_TYPE] = default_type

        try:
            response = self._request("PUT", obj.path, headers=headers, data=body)
        finally:
            # A re-sent body stream is released even when the write fails early.
            obj.close()
        response.close()
        logger.debug("put object path=%s", obj.path)

    def get(self, path: str) -> MantaObject:
        """Fetch an object; the returned object owns the open response stream."""
        normalized = normalize_path(path)
        response = self._request("GET", normalized, stream=True)
        try:
            return MantaObject.from_response(normalized, response, stream=True)
        except Exception:
            response.close()
            raise

    def head(self, path: str) -> MantaObject:
        """Fetch only the metadata of an object or directory."""
        normalized = normalize_path(path)
        response = self._request("HEAD", normalized)
        try:
            return MantaObject.from_response(normalized, response, stream=False)
        finally:
            response.close()

    def exists(self, path: str) -> bool:
        try:
            self.head(path)
        except NotFound:
            return False
        return True

    def delete(self, path: str) -> None:
        """Delete a single object or an empty directory."""
        response = self._request("DELETE", path)
        response.close()
        logger.debug("deleted path=%s", path)

    def delete_recursive(self, path: str) -> None:
        """Delete ``path`` and every descendant, deepest entries first.

        Deletion happens client-side and is not atomic: when a request fails,
        the error propagates at once and entries already removed stay removed.
        Children that disappear concurrently are skipped.
        """
        target = normalize_path(path)
        try:
            children = self.list_objects(target)
        except ObjectTypeError:
            children = []

        for child in children:
            try:
                if child.is_directory:
                    self.delete_recursive(child.path)
                else:
                    self.delete(child.path)
            except NotFound:
                logger.debug("child vanished during recursive delete path=%s", child.path)

        self.delete(target)

    def put_directory(
        self, path: str, headers: Mapping[str, Any] | None = None
    ) -> None:
        """Create a directory; an existing directory is left as is."""
        wire = _writable_headers(ObjectHeaders(headers or {}))
        wire[CONTENT_TYPE] = DIRECTORY_CONTENT_TYPE
        response = self._request("PUT", path, headers=wire)
        response.close()
        logger.debug("put directory path=%s", path)

    def put_snap_link(
        self,
        link_path: str,
        target_path: str,
        headers: Mapping[str, Any] | None = None,
    ) -> None:
        """Create a snapshot link that serves ``target_path`` as it is now.

        Raises:
            NotFound: If ``target_path`` (or the parent of ``link_path``) does not exist.
        """
        wire = _writable_headers(ObjectHeaders(headers or {}))
        wire[CONTENT_TYPE] = LINK_CONTENT_TYPE
        wire["Location"] = encode_path(target_path)
        try:
            response = self._request("PUT", link_path, headers=wire)
        except NotFound as exc:
            if exc.code == SOURCE_NOT_FOUND_CODE:
                raise NotFound(
                    normalize_path(target_path), code=exc.code, message=exc.message
                ) from exc
            raise
        response.close()
        logger.debug("put snaplink path=%s target=%s", link_path, target_path)

    def list_objects(self, path: str) -> list[MantaObject]:
        """List the immediate children of a directory."""
        return list(self.iter_objects(path))

    def iter_objects(self, path: str) -> Iterator[MantaObject]:
        """Yield the immediate children of a directory, one listing page at a time.

        The store's ``marker`` is inclusive, so each page after the first
        repeats the previous page's last entry; it is fetched one extra and
        skipped here.
        """
        directory = normalize_path(path)
        marker: str | None = None
        while True:
            limit = self._list_page_size
            params = {"limit": str(limit)}
            if marker is not None:
                limit += 1
                params = {"limit": str(limit), "marker": marker}
            entries = self._fetch_listing(directory, params)
            fresh = [entry for entry in entries if entry.name != marker]
            for entry in fresh:
                yield _entry_to_object(directory, entry)
            if len(entries) < limit or not fresh:
                return
            marker = entries[-1].name

    def _fetch_listing(
        self, directory: str, params: dict[str, str]
    ) -> list[DirectoryEntry]:
        response = self._request("GET", directory, params=params, stream=True)
        try:
            content_type = response.headers.get(CONTENT_TYPE, "")
            if not _is_directory_listing(content_type):
                raise ObjectTypeError(directory, "is not a directory")
            entries: list[DirectoryEntry] = []
            for line in response.iter_lines():
                if not line.strip():
                    continue
                try:
                    entries.append(DirectoryEntry.model_validate_json(line))
                except ValidationError as exc:
                    raise EncodingError(
                        f"Malformed directory entry in {directory}: {exc}"
                    ) from exc
            return entries
        finally:
            response.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: Any = None,
        params: Mapping[str, str] | None = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send one signed request and map error statuses to exceptions.

        On success the caller owns the response and must close it.
        """
        encoded = encode_path(path)
        request_id = str(uuid.uuid4())
        send_headers = {REQUEST_ID_HEADER: request_id}
        send_headers.update(headers or {})

        try:
            response = self._session.request(
                method,
                f"{self._url}{encoded}",
                headers=send_headers,
                data=data,
                params=params,
                stream=stream,
                timeout=self._timeout,
                auth=self._signer,
                hooks={"response": [self._hook]},
            )
        except requests.RequestException as exc:
            self._hook.record_transport_error(method, encoded, request_id, exc)
            raise RequestFailed(None, str(exc)) from exc

        if response.status_code >= 400:
            try:
                raise _error_for(normalize_path(path), response)
            finally:
                response.close()
        return response


def _encode_body(content: Content | None) -> tuple[Any, str]:
    if content is None:
        return b"", BINARY_CONTENT_TYPE
    if isinstance(content, str):
        return content.encode("utf-8"), TEXT_CONTENT_TYPE
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content), BINARY_CONTENT_TYPE
    if hasattr(content, "read"):
        return content, BINARY_CONTENT_TYPE
    try:
        return iter(content), BINARY_CONTENT_TYPE
    except TypeError as exc:
        raise EncodingError(
            f"Unsupported content type {type(content).__name__}"
        ) from exc


def _writable_headers(headers: ObjectHeaders) -> CaseInsensitiveDict:
    return CaseInsensitiveDict(
        {
            key: value
            for key, value in headers.to_wire().items()
            if key.lower() not in _UNWRITABLE_HEADERS
        }
    )


def _error_for(path: str, response: requests.Response) -> Exception:
    body = response.text or ""
    code: str | None = None
    message: str | None = None
    if body:
        try:
            parsed = ErrorBody.model_validate_json(body)
        except ValidationError:
            parsed = None
        if parsed is not None:
            code, message = parsed.code, parsed.message

    if response.status_code == 404:
        return NotFound(path, code=code, message=message)
    return RequestFailed(response.status_code, body, code=code, message=message)


def _is_directory_listing(content_type: str) -> bool:
    def squash(value: str) -> str:
        return value.replace(" ", "").lower()

    return squash(content_type) == squash(DIRECTORY_LISTING_TYPE)


def _entry_to_object(directory: str, entry: DirectoryEntry) -> MantaObject:
    headers = ObjectHeaders()
    if entry.is_directory:
        headers[CONTENT_TYPE] = DIRECTORY_CONTENT_TYPE
    if entry.etag:
        headers[ETAG] = entry.etag
    if entry.size is not None:
        headers[CONTENT_LENGTH] = entry.size
    if entry.durability is not None:
        headers[DURABILITY_LEVEL] = entry.durability
    if entry.mtime is not None:
        headers[LAST_MODIFIED] = format_datetime(
            entry.mtime.astimezone(timezone.utc), usegmt=True
        )
    return MantaObject(
        path=join_path(directory, entry.name),
        headers=headers,
        is_directory=entry.is_directory,
        _fetched=True,
    )
