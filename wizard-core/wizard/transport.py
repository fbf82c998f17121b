"""HTTP transport to the installer backend.

This module provides the two request styles the wizard uses:

    - ApiClient.fetch_json: one-shot request whose body is a single JSON
      document (metadata, config, default path, exit).
    - ApiClient.open_stream: long-lived request whose body is a sequence of
      newline-delimited JSON events, delivered while the request runs.

Every URL gets a ``nocache`` query parameter from a per-session counter so
repeated identical requests are never answered from a cache. Requests are
single-shot: nothing here retries, times out or cancels.
"""

from __future__ import annotations

import codecs
import itertools
import json
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import aiohttp
import structlog

from .lines import LineBuffer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from types import TracebackType

logger = structlog.get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
DEFAULT_CHUNK_SIZE = 65536  # 64 KB chunks

# Characters encodeURIComponent leaves alone besides letters and digits
_FORM_SAFE = "-_.!~*'()"


class TransportError(Exception):
    """Exception raised when a request fails or is answered with an error."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialize transport error.

        Args:
            message: Error message.
            status: HTTP status, or None when no response was received.
        """
        super().__init__(message)
        self.status = status


class ProtocolDecodeError(TransportError):
    """A streamed line was not valid JSON."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"Malformed event from installer: {reason}")
        self.line = line
        self.reason = reason


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def encode_form(pairs: Iterable[tuple[str, Any]]) -> str:
    """Encode key/value pairs as an url-encoded form body.

    Both keys and values are percent-encoded the way ``encodeURIComponent``
    does it, so spaces become ``%20`` rather than ``+``.

    Args:
        pairs: Ordered key/value pairs.

    Returns:
        The form body, e.g. ``core=true&path=C%3A%5CGames``.
    """
    return "&".join(
        f"{quote(str(key), safe=_FORM_SAFE)}={quote(_form_value(value), safe=_FORM_SAFE)}"
        for key, value in pairs
    )


def _normalize_body(data: Any) -> list[tuple[str, Any]] | None:
    if data is None:
        return None
    if isinstance(data, dict):
        return list(data.items())
    return list(data)


class ApiClient:
    """Session-scoped client for the installer backend.

    Example:
        >>> async with ApiClient("http://127.0.0.1:8000") as client:
        ...     metadata = await client.fetch_json("/api/installation-status")
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Address of the backend, e.g. ``http://127.0.0.1:8000``.
            session: Optional session to reuse. Created on first use otherwise.
        """
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._counter = itertools.count()
        self._log = logger.bind(component="api_client")

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
            self._owns_session = True
        return self._session

    def build_url(self, path: str) -> str:
        """Absolute URL for ``path`` with a fresh cache-busting token."""
        return f"{self.base_url}{path}?nocache={next(self._counter)}"

    def _request(self, path: str, data: Any = None) -> Any:
        """Start a request. GET without a body, POST with one."""
        pairs = _normalize_body(data)
        method = "GET" if pairs is None else "POST"
        url = self.build_url(path)
        body = encode_form(pairs) if pairs is not None else None

        self._log.debug("request_started", method=method, url=url)
        return self._get_session().request(
            method,
            url,
            data=body,
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )

    async def fetch_json(self, path: str, data: Any = None) -> Any:
        """Perform a one-shot request and decode its JSON body.

        Args:
            path: Endpoint path, e.g. ``/api/config``.
            data: Optional form pairs (mapping or sequence); selects POST.

        Returns:
            The decoded JSON document.

        Raises:
            TransportError: On network failure, a non-200 status, or a body
                that is not JSON.
        """
        try:
            async with self._request(path, data) as response:
                content_type = response.headers.get("Content-Type", "")
                if response.status != 200 or JSON_CONTENT_TYPE not in content_type:
                    raise TransportError(
                        f"HTTP error {response.status}: {response.reason}",
                        status=response.status,
                    )
                text = await response.text()
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error: {e}") from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise TransportError(f"Invalid JSON from {path}: {e}", status=200) from e

    def open_stream(self, path: str, data: Any = None) -> StreamingRequest:
        """Prepare a streaming request; call ``send()`` to run it."""
        return StreamingRequest(self, path, data)


class StreamingRequest:
    """One request whose body is a newline-delimited JSON event stream.

    Callbacks are registered before ``send()``:

        request = client.open_stream("/api/start-install", pairs)
        request.on_event(handle_event).on_complete(handle_success, handle_failure)
        await request.send()

    Event callbacks fire in line order while the body of a 200 response
    arrives; other responses deliver no events. After the last one, exactly
    one terminal callback fires: ``success(raw_text)`` for a 200 response,
    ``failure(error)`` otherwise.
    """

    def __init__(self, client: ApiClient, path: str, data: Any = None) -> None:
        self._client = client
        self.path = path
        self._data = data
        self._event_callbacks: list[Callable[[Any], None]] = []
        self._success_callbacks: list[Callable[[str], None]] = []
        self._failure_callbacks: list[Callable[[TransportError], None]] = []
        self._buffer = LineBuffer()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._decode_error: ProtocolDecodeError | None = None
        self._sent = False
        self._log = logger.bind(component="streaming_request", path=path)

    def on_event(self, callback: Callable[[Any], None]) -> StreamingRequest:
        """Register a callback for every decoded line."""
        self._event_callbacks.append(callback)
        return self

    def on_complete(
        self,
        success: Callable[[str], None],
        failure: Callable[[TransportError], None],
    ) -> StreamingRequest:
        """Register the terminal callbacks."""
        self._success_callbacks.append(success)
        self._failure_callbacks.append(failure)
        return self

    async def send(self) -> None:
        """Run the request to the end, dispatching callbacks along the way."""
        if self._sent:
            raise RuntimeError(f"Streaming request to {self.path} was already sent")
        self._sent = True

        received = bytearray()
        offset = 0
        try:
            async with self._client._request(self.path, self._data) as response:
                status = response.status
                reason = response.reason
                if status != 200:
                    # Error pages are not event streams
                    await response.read()
                else:
                    async for chunk in response.content.iter_chunked(DEFAULT_CHUNK_SIZE):
                        received.extend(chunk)
                        offset = self._deliver(received, offset)
                    offset = self._deliver(received, offset, final=True)
        except aiohttp.ClientError as e:
            self._log.warning("stream_network_error", error=str(e))
            self._fail(TransportError(f"Network error: {e}"))
            return

        if status != 200:
            self._log.warning("stream_http_error", status=status, reason=reason)
            self._fail(TransportError(f"HTTP error {status}: {reason}", status=status))
        elif self._decode_error is not None:
            self._fail(self._decode_error)
        else:
            self._log.debug("stream_completed", bytes=len(received))
            raw_text = bytes(received).decode("utf-8", errors="replace")
            for callback in self._success_callbacks:
                callback(raw_text)

    def _deliver(self, received: bytearray, offset: int, final: bool = False) -> int:
        """Parse the part of ``received`` past ``offset``.

        Returns:
            The new offset (everything received so far has been consumed).
        """
        new_text = self._decoder.decode(bytes(received[offset:]), final=final)
        for line in self._buffer.push(new_text):
            self._dispatch(line)
        return len(received)

    def _dispatch(self, line: str) -> None:
        if self._decode_error is not None:
            return

        self._log.debug("stream_line", line=line)
        try:
            contents = json.loads(line)
        except json.JSONDecodeError as e:
            self._log.error("stream_line_undecodable", line=line, error=str(e))
            self._decode_error = ProtocolDecodeError(line, str(e))
            return

        for callback in self._event_callbacks:
            callback(contents)

    def _fail(self, error: TransportError) -> None:
        for callback in self._failure_callbacks:
            callback(error)
