"""Lifecycle of a single request to the Wit.ai HTTP API.

WHY: Every call to the service (text classification, streamed speech,
app introspection) follows the same lifecycle: build the URI, pick the
credential and content type for the endpoint, optionally stream a body
while the connection is open, read the JSON response, and tell the
caller exactly once how it ended. Callers (microphone capture, editor
tooling, the CLI) should only deal with callbacks, never with sockets.

HOW: RequestSession validates and prepares headers synchronously in
start(), then runs the exchange with asyncio.run() on a daemon worker
thread using httpx.AsyncClient. A streamed body is an async generator
fed from a queue; write() and close_request_stream() may be called from
any thread and hand chunks to the worker loop with
call_soon_threadsafe. All shared state sits behind one threading.Lock.

RULES:
- start() never blocks on network I/O
- Configuration errors are raised from start() before any connection is opened
- Transport, HTTP and parse failures never raise; they end up in `result`
- on_response fires exactly once, after status/description/payload are final
- write() outside the open write side raises RequestStreamClosedError
- Callbacks run on the worker thread; callers marshal to their own threads
- Tokens are never logged
"""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
import threading
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any, Optional, Tuple, Union
from urllib.parse import quote

import httpx

from wit_session.api.models import (
    LocalFailure,
    ProtocolFailure,
    QueryParam,
    RequestKind,
    SessionResult,
    SessionState,
    Success,
    TransportFailure,
)
from wit_session.config import (
    AUDIO_CONTENT_TYPE,
    WIT_ACCEPT_HEADER,
    WIT_API_HOST,
    WIT_API_SCHEME,
    WIT_CONNECT_TIMEOUT_S,
    WIT_REQUEST_TIMEOUT_S,
    WitConfiguration,
)

logger = logging.getLogger(__name__)

_DNS_ERROR_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)

_END_OF_BODY = None


class WitSessionError(Exception):
    """Base class for errors raised synchronously by RequestSession."""


class ConfigurationError(WitSessionError):
    """Raised when the configuration cannot serve the requested endpoint."""


class ServerTokenUnavailableError(ConfigurationError):
    """Raised when a privileged endpoint is requested without a server token.

    WHY: The entities/app/apps endpoints are only usable from a developer
    context that holds the server token. Sending the request with an
    empty credential would fail later with a confusing 401.

    RULES:
    - Raised by start() before any connection is opened
    - Raised the same way on every call with the same configuration
    """


class SessionStateError(WitSessionError, RuntimeError):
    """Raised when start() is called on a session that already started."""


class RequestStreamClosedError(WitSessionError, OSError):
    """Raised by write() when the request body is not open for writing."""


QueryParamLike = Union[QueryParam, Tuple[str, str]]


def build_uri(
    path: str,
    query_params: Iterable[QueryParam] = (),
    host: str = WIT_API_HOST,
) -> str:
    """Build the request URI for a resource path and query parameters.

    RULES:
    - Keys are used verbatim, values are percent-encoded (RFC 3986 unreserved kept)
    - No "?" when there are no query parameters
    - The path is used verbatim after a single leading slash
    """
    uri = "{}://{}/{}".format(WIT_API_SCHEME, host, path.lstrip("/"))
    params = list(query_params)
    if params:
        uri += "?" + "&".join(
            "{}={}".format(p.key, quote(p.value, safe="")) for p in params
        )
    return uri


def _transport_failure_code(exc: httpx.TransportError) -> TransportFailure:
    """Map an httpx transport exception to a failure category."""
    if isinstance(exc, httpx.TimeoutException):
        return TransportFailure.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        message = str(exc).lower()
        if any(marker in message for marker in _DNS_ERROR_MARKERS):
            return TransportFailure.NAME_RESOLUTION_FAILURE
        if isinstance(exc.__context__, ssl.SSLError) or "ssl" in message or "certificate" in message:
            return TransportFailure.SECURE_CHANNEL_FAILURE
        return TransportFailure.CONNECT_FAILURE
    if isinstance(exc, httpx.WriteError):
        return TransportFailure.SEND_FAILURE
    if isinstance(exc, httpx.ReadError):
        return TransportFailure.RECEIVE_FAILURE
    if isinstance(exc, httpx.ProtocolError):
        return TransportFailure.PROTOCOL_ERROR
    return TransportFailure.UNKNOWN_ERROR


class RequestSession:
    """One request/response exchange with the Wit.ai API.

    WHY: Speech requests stream microphone audio while the connection is
    open, so the caller needs to know when it may start writing, and
    every request needs a single, reliable completion signal regardless
    of how it ended.

    HOW: Construct with a configuration, a resource path and query
    parameters, set the callbacks, then call start(). For speech
    requests, write chunks after on_input_ready fires and finish with
    close_request_stream(). on_response is called once the session is
    COMPLETED; inspect `result` (or the legacy status_code /
    status_description / response_payload trio).

    RULES:
    - No network activity before start()
    - start() on a non-idle session raises SessionStateError
    - on_input_ready(session) fires once the streamed body is open;
      without a listener the body is closed immediately
    - on_raw_response(text) fires with the body of a success response
    - on_response(session) fires exactly once; do not call wait() from it
    - The session is immutable once COMPLETED
    """

    def __init__(
        self,
        configuration: WitConfiguration,
        path: str,
        *query_params: QueryParamLike,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        host: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> None:
        self._configuration = configuration
        self._path = path
        self._query_params = tuple(
            p if isinstance(p, QueryParam) else QueryParam(*p) for p in query_params
        )
        self._kind = RequestKind.from_path(path)
        self._transport = transport
        self._host = host or WIT_API_HOST
        self._timeout = timeout or httpx.Timeout(
            WIT_REQUEST_TIMEOUT_S, connect=WIT_CONNECT_TIMEOUT_S,
        )

        self.on_input_ready: Optional[Callable[[RequestSession], None]] = None
        self.on_response: Optional[Callable[[RequestSession], None]] = None
        self.on_raw_response: Optional[Callable[[str], None]] = None

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._state = SessionState.IDLE
        self._status_code = 0
        self._status_description = ""
        self._payload: Any = None
        self._result: Optional[SessionResult] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._body_queue: Optional[asyncio.Queue] = None
        self._body_open = False
        self._body_close_requested = False
        self._buffered_bytes = 0
        self._thread: Optional[threading.Thread] = None

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return "RequestSession(kind={}, path={!r}, state={})".format(
            self._kind.name, self._path, self._state.value,
        )

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def kind(self) -> RequestKind:
        return self._kind

    @property
    def path(self) -> str:
        return self._path

    @property
    def query_params(self) -> Tuple[QueryParam, ...]:
        return self._query_params

    @property
    def uri(self) -> str:
        return build_uri(self._path, self._query_params, host=self._host)

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        """True between start() and completion."""
        with self._lock:
            return self._state not in (SessionState.IDLE, SessionState.COMPLETED)

    @property
    def status_code(self) -> int:
        with self._lock:
            return self._status_code

    @property
    def status_description(self) -> str:
        with self._lock:
            return self._status_description

    @property
    def buffered_bytes(self) -> int:
        """Bytes accepted by write() that the transport has not pulled yet."""
        with self._lock:
            return self._buffered_bytes

    @property
    def response_payload(self) -> Any:
        """Parsed JSON body; None unless the session ended in Success."""
        with self._lock:
            return self._payload

    @property
    def result(self) -> Optional[SessionResult]:
        with self._lock:
            return self._result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the request on a worker thread and return immediately.

        WHY: Callers are often UI or audio threads that must not block
        on DNS, TLS or the server.

        HOW: Builds the headers (which validates the credentials) while
        still IDLE, moves to STARTING, then runs the async exchange with
        asyncio.run() on a daemon thread.

        RULES:
        - Raises SessionStateError unless the session is IDLE
        - Raises ServerTokenUnavailableError for privileged kinds without
          a server token; the session stays IDLE and nothing is sent
        - Raises ConfigurationError when the client token is empty
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise SessionStateError(
                    "Request {} was already started (state: {}).".format(
                        self._path, self._state.value,
                    )
                )
            headers = self._build_headers()
            self._state = SessionState.STARTING
            self._status_code = 0
            self._status_description = "Starting request"

        uri = self.uri
        logger.debug("Starting %s request %s %s", self._kind.name, self._kind.content_policy.method, uri)
        self._thread = threading.Thread(
            target=self._run,
            args=(uri, headers),
            name="wit-session-{}".format(self._kind.name.lower()),
            daemon=True,
        )
        self._thread.start()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until on_response has returned. Returns False on timeout."""
        return self._done.wait(timeout)

    # ------------------------------------------------------------------
    # Streamed request body
    # ------------------------------------------------------------------

    def write(self, data: bytes, offset: int = 0, length: Optional[int] = None) -> None:
        """Append bytes to the streamed request body.

        WHY: Speech requests are sent while the user is still talking, so
        audio arrives in chunks for as long as the connection is open.

        HOW: Copies data[offset:offset + length] and hands the copy to
        the worker loop's body queue. The caller keeps ownership of
        `data`; nothing references it after write() returns.

        RULES:
        - Only valid between on_input_ready and close_request_stream()
        - Raises RequestStreamClosedError otherwise, never silently drops
        - Raises ValueError when offset/length fall outside data
        - Empty slices are accepted and send nothing
        - The body buffer is unbounded; callers producing faster than the
          socket drains should throttle on buffered_bytes
        """
        if length is None:
            length = len(data) - offset
        if offset < 0 or length < 0 or offset + length > len(data):
            raise ValueError(
                "offset={} length={} out of range for {} bytes".format(offset, length, len(data))
            )
        chunk = bytes(data[offset:offset + length])

        with self._lock:
            if not self._body_open:
                raise RequestStreamClosedError(
                    "Request body is not open. Call start() on the RequestSession and wait "
                    "for the on_input_ready callback before attempting to send data."
                )
            if chunk:
                self._buffered_bytes += len(chunk)
                self._loop.call_soon_threadsafe(self._body_queue.put_nowait, chunk)

    def close_request_stream(self) -> None:
        """Close the streamed request body.

        RULES:
        - Required for speech requests; the response never completes otherwise
        - Idempotent: later calls do nothing
        - Called before the body opened, the body ends as soon as it opens
          and on_input_ready is not invoked
        """
        with self._lock:
            self._body_close_requested = True
            self._close_body_locked()

    def _close_body_locked(self) -> bool:
        if not self._body_open:
            return False
        self._body_open = False
        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._body_queue.put_nowait, _END_OF_BODY)
        return True

    async def _iter_body(self) -> AsyncIterator[bytes]:
        """Yield body chunks until the write side is closed.

        httpx pulls the first chunk once the request line and headers are
        on the wire, which is when the write side counts as open.
        """
        with self._lock:
            open_now = not self._body_close_requested
            if open_now:
                self._body_open = True
                self._state = SessionState.WRITING_BODY

        if not open_now:
            return

        if self.on_input_ready is None:
            self.close_request_stream()
        else:
            self._invoke("on_input_ready", self.on_input_ready, self)

        sent = 0
        while True:
            chunk = await self._body_queue.get()
            if chunk is _END_OF_BODY:
                break
            with self._lock:
                self._buffered_bytes -= len(chunk)
            sent += len(chunk)
            yield chunk
        logger.debug("Request body for %s closed after %d bytes", self._path, sent)

    # ------------------------------------------------------------------
    # Exchange (worker thread)
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict:
        if self._kind.is_privileged:
            if not self._configuration.has_server_token:
                raise ServerTokenUnavailableError(
                    "The {} endpoint requires a server access token, which is not "
                    "available in this context.".format(self._kind.command)
                )
            token = self._configuration.server_access_token.strip()
        else:
            token = (self._configuration.client_access_token or "").strip()
            if not token:
                raise ConfigurationError("Client access token is empty.")

        headers = {
            "Accept": WIT_ACCEPT_HEADER,
            "Authorization": "Bearer {}".format(token),
        }
        if self._kind.is_streaming:
            headers["Content-Type"] = AUDIO_CONTENT_TYPE
        return headers

    def _run(self, uri: str, headers: dict) -> None:
        try:
            asyncio.run(self._exchange(uri, headers))
        except Exception as exc:
            logger.exception("Request %s failed unexpectedly", self._path)
            self._complete(ProtocolFailure(int(TransportFailure.UNKNOWN_ERROR), str(exc)))

    async def _exchange(self, uri: str, headers: dict) -> None:
        content = None
        with self._lock:
            self._loop = asyncio.get_running_loop()
            if self._kind.is_streaming:
                self._body_queue = asyncio.Queue()
                content = self._iter_body()

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                request = client.build_request(
                    self._kind.content_policy.method, uri, headers=headers, content=content,
                )
                response = await client.send(request, stream=True)
                try:
                    self._response_started()
                    result = await self._read_response(response)
                finally:
                    await response.aclose()
        except httpx.TransportError as exc:
            code = _transport_failure_code(exc)
            description = str(exc) or type(exc).__name__
            logger.warning("Request %s failed (%s): %s", self._path, code.name, description)
            result = ProtocolFailure(int(code), description)

        self._complete(result)

    def _response_started(self) -> None:
        with self._lock:
            if self._close_body_locked():
                logger.info("Request stream for %s was still open when the response arrived. Closing.", self._path)
            self._state = SessionState.AWAITING_RESPONSE

    async def _read_response(self, response: httpx.Response) -> SessionResult:
        status = response.status_code
        description = response.reason_phrase
        with self._lock:
            self._status_code = status
            self._status_description = description

        if not response.is_success:
            logger.warning("Request %s returned %d %s", self._path, status, description)
            return ProtocolFailure(status, description)

        try:
            body = await response.aread()
        except httpx.HTTPError as exc:
            logger.warning("Could not read response body for %s: %s", self._path, exc)
            return LocalFailure(str(exc) or type(exc).__name__)

        try:
            text = body.decode(response.charset_encoding or "utf-8")
        except (UnicodeDecodeError, LookupError) as exc:
            logger.warning("Response body for %s could not be decoded: %s", self._path, exc)
            return LocalFailure(str(exc))

        if self.on_raw_response is not None:
            self._invoke("on_raw_response", self.on_raw_response, text)

        try:
            payload = json.loads(text)
        except ValueError as exc:
            logger.warning("Response body for %s is not valid JSON: %s", self._path, exc)
            return LocalFailure(str(exc))

        return Success(status, description, payload)

    def _complete(self, result: SessionResult) -> None:
        """Record the result and fire on_response, at most once."""
        with self._lock:
            if self._state is SessionState.COMPLETED:
                return
            self._close_body_locked()
            self._result = result
            self._status_code = result.status_code
            self._status_description = result.description
            self._payload = result.payload if isinstance(result, Success) else None
            self._state = SessionState.COMPLETED

        logger.info(
            "Request %s completed: %s %d %s",
            self._path, type(result).__name__, result.status_code, result.description,
        )
        try:
            self._invoke("on_response", self.on_response, self)
        finally:
            self._done.set()

    def _invoke(self, name: str, callback: Optional[Callable[[Any], None]], arg: Any) -> None:
        if callback is None:
            return
        try:
            callback(arg)
        except Exception:
            logger.exception("%s callback for %s raised", name, self._path)
