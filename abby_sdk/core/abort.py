"""
Cooperative cancellation for in-flight requests.

An AbortController owns an AbortSignal. Fetch functions receive the signal on
the request and either poll ``signal.aborted``, subscribe with
``add_listener`` or simply ``await signal.wait()``.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from abby_sdk.core.errors import AbortError

T = TypeVar("T")


class AbortSignal:
    """Read-only view of an abort state, shared with the fetch function."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Any = None
        self._listeners: list[Callable[[Any], None]] = []

    @property
    def aborted(self) -> bool:
        """Whether abort() has been called on the owning controller."""
        return self._event.is_set()

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, listener: Callable[[Any], None]) -> None:
        """Call ``listener(reason)`` once when the signal fires."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[Any], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def throw_if_aborted(self) -> None:
        if self.aborted:
            raise AbortError(reason=self._reason)

    async def wait(self) -> None:
        """Block until the signal fires."""
        await self._event.wait()

    def _fire(self, reason: Any) -> None:
        if self.aborted:
            return
        self._reason = reason
        self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(reason)


class AbortController:
    """Owner of an AbortSignal."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        """Fire the signal. Calling abort() more than once has no further effect."""
        self.signal._fire(reason)


async def race_abort(awaitable: Awaitable[T], signal: AbortSignal) -> T:
    """
    Await ``awaitable`` unless ``signal`` fires first.

    When the signal wins, the pending work is cancelled and AbortError is raised.
    When both finish in the same loop iteration, the result of the work wins.
    """
    if signal.aborted:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise AbortError(reason=signal.reason)

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    # Collect the cancelled task so its outcome is never left unretrieved
    await asyncio.gather(task, return_exceptions=True)
    raise AbortError(reason=signal.reason)
