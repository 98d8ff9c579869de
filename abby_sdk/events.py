"""
Response events for SDK subscribers.

EventRelay sits on an HTTPClient as a request/response interceptor pair,
times every call and republishes the outcome through an EventEmitter:

    abby.on("response", lambda e: print(e.method, e.url, e.status, e.duration))
    abby.on("error", lambda e: sentry.capture_message(e.message or e.status_text))
"""

import asyncio
import inspect
import time
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, Union

from abby_sdk.core.client import Request, Response

EventKind = Literal["error", "response"]
EVENT_KINDS: tuple[str, ...] = ("error", "response")


@dataclass(frozen=True)
class ResponseEvent:
    """Emitted for every API response, successful or not."""

    status: int
    url: str
    method: str
    duration: int  # milliseconds
    ok: bool


@dataclass(frozen=True)
class ErrorEvent:
    """Emitted for every non-2xx API response."""

    status: int
    status_text: str
    url: str
    method: str
    duration: int  # milliseconds
    message: str | None = None
    body: Any = None
    request_id: str | None = None


Event = Union[ResponseEvent, ErrorEvent]
Listener = Callable[[Any], Any]


class EventEmitter:
    """Minimal typed event emitter with isolated listener invocation."""

    def __init__(self) -> None:
        self._listeners: dict[str, set[Listener]] = {kind: set() for kind in EVENT_KINDS}
        self._pending: set[asyncio.Future] = set()

    def _listeners_for(self, kind: str) -> set[Listener]:
        try:
            return self._listeners[kind]
        except KeyError:
            raise ValueError(f"Unknown event kind {kind!r}, expected one of {EVENT_KINDS}") from None

    def on(self, kind: EventKind, listener: Listener) -> "EventEmitter":
        """Subscribe ``listener`` to events of ``kind``."""
        self._listeners_for(kind).add(listener)
        return self

    def off(self, kind: EventKind, listener: Listener) -> "EventEmitter":
        """Unsubscribe ``listener``. Removing an unknown listener is a no-op."""
        self._listeners_for(kind).discard(listener)
        return self

    def listener_count(self, kind: EventKind) -> int:
        return len(self._listeners_for(kind))

    def emit(self, kind: EventKind, event: Event) -> None:
        """
        Invoke every listener of ``kind`` with ``event``.

        A failing listener never stops the others and never reaches the caller.
        Coroutine listeners are scheduled and not awaited.
        """
        for listener in list(self._listeners_for(kind)):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    self._schedule(result)
            except Exception:  # noqa: S110
                pass

    def _schedule(self, awaitable: Any) -> None:
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if not future.cancelled():
            future.exception()


def _extract_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    if isinstance(body.get("message"), str):
        return body["message"]
    if isinstance(body.get("error"), str):
        return body["error"]
    return None


class EventRelay:
    """
    Interceptor pair that turns completed calls into events.

    Register ``on_request`` as a request interceptor and ``on_response`` as a
    response interceptor on the same client.
    """

    def __init__(self, emitter: EventEmitter):
        self.emitter = emitter
        # Keyed by request identity; entries are popped when the response arrives
        self._started: weakref.WeakKeyDictionary[Request, float] = weakref.WeakKeyDictionary()

    @property
    def in_flight(self) -> int:
        """Number of requests whose response has not been observed yet."""
        return len(self._started)

    def on_request(self, request: Request) -> Request:
        self._started[request] = time.monotonic()
        return request

    def on_response(self, response: Response, request: Request | None = None) -> Response:
        started = self._started.pop(request, None) if request is not None else None
        duration = round((time.monotonic() - started) * 1000) if started is not None else 0
        method = request.method if request is not None and request.method else "GET"

        self.emitter.emit(
            "response",
            ResponseEvent(
                status=response.status,
                url=response.url,
                method=method,
                duration=duration,
                ok=response.ok,
            ),
        )

        if not response.ok:
            message: str | None = None
            body: Any = None
            try:
                body = response.json()
                message = _extract_message(body)
            except ValueError:
                # Not JSON
                pass

            self.emitter.emit(
                "error",
                ErrorEvent(
                    status=response.status,
                    status_text=response.status_text,
                    url=response.url,
                    method=method,
                    duration=duration,
                    message=message,
                    body=body,
                    request_id=response.headers.get("x-request-id"),
                ),
            )

        return response
