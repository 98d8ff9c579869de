"""
Core HTTP transport for the Abby API.

Handles request building, interceptors, the pluggable fetch function and
error handling. The SDK layer builds one HTTPClient per Abby instance.
"""

import asyncio
import http.client
import inspect
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from abby_sdk.core.abort import AbortSignal
from abby_sdk.core.errors import APIError, TransportError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# Request / Response
# =============================================================================


@dataclass(eq=False)
class Request:
    """
    An outgoing HTTP request.

    Requests compare and hash by identity so they can key per-call state
    (see EventRelay).
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    signal: AbortSignal | None = None

    def get_header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing any existing header with the same name."""
        lowered = name.lower()
        for key in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[key]
        self.headers[name] = value


@dataclass(eq=False)
class Response:
    """An HTTP response as returned by a fetch function."""

    status: int
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    status_text: str = ""

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @property
    def ok(self) -> bool:
        """True for 2xx statuses."""
        return 200 <= self.status <= 299

    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Parse the body as JSON. Raises ValueError on malformed bodies."""
        try:
            return json.loads(self.body)
        except RecursionError as e:
            # Nesting deeper than the interpreter's recursion limit
            raise ValueError(f"JSON body nested too deeply: {e}") from e


Fetch = Callable[[Request], Awaitable[Response]]
RequestInterceptor = Callable[[Request], "Request | Awaitable[Request]"]
ResponseInterceptor = Callable[[Response, Request], "Response | Awaitable[Response]"]


# =============================================================================
# Interceptors
# =============================================================================


class Interceptors(Generic[F]):
    """Ordered registry of interceptor functions."""

    def __init__(self) -> None:
        self._fns: dict[int, F] = {}
        self._next_id = 0

    def use(self, fn: F) -> int:
        """Register an interceptor and return its id (for eject)."""
        interceptor_id = self._next_id
        self._next_id += 1
        self._fns[interceptor_id] = fn
        return interceptor_id

    def eject(self, interceptor_id: int) -> None:
        """Remove a previously registered interceptor. Unknown ids are ignored."""
        self._fns.pop(interceptor_id, None)

    def clear(self) -> None:
        self._fns.clear()

    def __len__(self) -> int:
        return len(self._fns)

    def __iter__(self) -> Iterator[F]:
        return iter(list(self._fns.values()))


class InterceptorChain:
    """Request and response interceptors of one HTTPClient."""

    def __init__(self) -> None:
        self.request: Interceptors[RequestInterceptor] = Interceptors()
        self.response: Interceptors[ResponseInterceptor] = Interceptors()


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


# =============================================================================
# Default fetch
# =============================================================================


def _send(request: Request, timeout: float | None) -> Response:
    req = urllib.request.Request(
        request.url,
        data=request.body,
        headers=request.headers,
        method=request.method,
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return Response(
                status=response.status,
                url=response.geturl(),
                headers=dict(response.headers.items()),
                body=response.read(),
                status_text=response.reason or "",
            )

    except urllib.error.HTTPError as e:
        # Non-2xx statuses are responses, not failures, at this level
        return Response(
            status=e.code,
            url=e.geturl() or request.url,
            headers=dict(e.headers.items()) if e.headers else {},
            body=e.read() or b"",
            status_text=e.reason or "",
        )

    except urllib.error.URLError as e:
        raise TransportError(f"Connection error: {e.reason}") from e

    except TimeoutError as e:
        raise TransportError(f"Connection timed out after {timeout} seconds") from e

    except (OSError, http.client.HTTPException) as e:
        # Failures while reading the response are not wrapped in URLError
        raise TransportError(f"Connection error: {e}") from e


async def urllib_fetch(request: Request, timeout: float | None = None) -> Response:
    """
    Perform a request with urllib in a worker thread.

    Args:
        request: The request to send
        timeout: Socket timeout in seconds (None for the global default)

    Returns:
        The response, including non-2xx ones

    Raises:
        TransportError: When no HTTP response was received
        AbortError: When the request signal is already aborted

    """
    if request.signal is not None:
        request.signal.throw_if_aborted()
    return await asyncio.to_thread(_send, request, timeout)


# =============================================================================
# HTTP client
# =============================================================================


def error_message(status: int, status_text: str, payload: Any) -> str:
    """Pick a human readable message out of an error payload."""
    if isinstance(payload, dict):
        if isinstance(payload.get("message"), str):
            return payload["message"]
        # Handle both {"error": "message"} and {"error": {"message": "..."}}
        error_field = payload.get("error")
        if isinstance(error_field, str):
            return error_field
        if isinstance(error_field, dict) and isinstance(error_field.get("message"), str):
            return error_field["message"]
    return f"HTTP {status} {status_text}".strip()


class HTTPClient:
    """
    Low-level HTTP client for the Abby API.

    Handles:
    - URL building and query encoding
    - JSON request bodies
    - Request/response interceptors
    - Raising APIError for non-2xx responses (when throw_on_error is set)

    Example:
        client = HTTPClient("https://api.app-abby.com")
        client.interceptors.request.use(add_auth)
        response = await client.get("/me")

    """

    def __init__(
        self,
        base_url: str,
        fetch: Fetch | None = None,
        headers: dict[str, str] | None = None,
        throw_on_error: bool = False,
    ):
        """
        Initialize the HTTP client.

        Args:
            base_url: API base URL, prepended to relative paths
            fetch: Function performing the network call (defaults to urllib_fetch)
            headers: Headers applied to every request before interceptors run
            throw_on_error: Raise APIError for non-2xx responses

        """
        self.base_url = base_url.rstrip("/")
        self.fetch: Fetch = fetch or urllib_fetch
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.throw_on_error = throw_on_error
        self.interceptors = InterceptorChain()

    def build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        """Build full URL from path and query params."""
        url = path if path.startswith(("http://", "https://")) else f"{self.base_url}{path}"
        if params:
            # Filter out None values and URL-encode
            filtered = {k: _query_value(v) for k, v in params.items() if v is not None}
            if filtered:
                separator = "&" if "?" in url else "?"
                url = f"{url}{separator}{urllib.parse.urlencode(filtered, doseq=True)}"
        return url

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        signal: AbortSignal | None = None,
        throw_on_error: bool | None = None,
    ) -> Response:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            path: API path (e.g., /contacts) or absolute URL
            params: Query parameters; None values are dropped
            json: Request body, JSON-encoded when not None
            headers: Per-call headers
            signal: Caller-supplied abort signal
            throw_on_error: Override the client-level setting for this call

        Response interceptors receive the request this method built, so state
        keyed on it stays valid when a request interceptor returns a new one.

        Returns:
            The response after all response interceptors ran

        Raises:
            APIError: On non-2xx responses when throwing is enabled
            TransportError: On network failures
            AbortError: When the call was aborted

        """
        request = Request(
            method=method.upper(),
            url=self.build_url(path, params),
            headers=dict(self.headers),
            signal=signal,
        )
        if json is not None:
            request.body = _json_dumps(json)
            request.set_header("Content-Type", "application/json")
        for name, value in (headers or {}).items():
            request.set_header(name, value)

        original = request
        for interceptor in self.interceptors.request:
            request = await _resolve(interceptor(request))

        logger.debug("%s %s", request.method, request.url)
        response = await self.fetch(request)

        for interceptor in self.interceptors.response:
            response = await _resolve(interceptor(response, original))

        should_throw = self.throw_on_error if throw_on_error is None else throw_on_error
        if should_throw and not response.ok:
            raise _api_error(response)
        return response

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    async def get(self, path: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Response:
        """Make a GET request."""
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> Response:
        """Make a POST request."""
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs: Any) -> Response:
        """Make a PUT request."""
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs: Any) -> Response:
        """Make a PATCH request."""
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Response:
        """Make a DELETE request."""
        return await self.request("DELETE", path, **kwargs)


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _json_dumps(data: Any) -> bytes:
    return json.dumps(data, default=str).encode("utf-8")


def _api_error(response: Response) -> APIError:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    return APIError(
        error_message(response.status, response.status_text, payload),
        status=response.status,
        details=payload if isinstance(payload, dict) else None,
        request_id=response.headers.get("x-request-id"),
    )
