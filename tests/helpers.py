"""Test helper utilities for the Abby SDK test suite."""

import json
import secrets
from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import Any

from abby_sdk.core.client import Request, Response
from abby_sdk.core.errors import AbortError


def generate_test_api_key() -> str:
    """Generate a fake API key for testing."""
    return f"test_{secrets.token_hex(8)}"


def make_response(
    request: Request,
    data: Any = None,
    status: int = 200,
    headers: dict[str, str] | None = None,
    body: bytes | None = None,
) -> Response:
    """Build a response for ``request``; ``data`` is JSON-encoded unless ``body`` is given."""
    if body is None:
        body = json.dumps(data if data is not None else {}).encode("utf-8")
    return Response(
        status=status,
        url=request.url,
        headers={"Content-Type": "application/json", **(headers or {})},
        body=body,
        status_text=HTTPStatus(status).phrase,
    )


class MockFetch:
    """
    Fetch function that records every request and answers with a canned response.

    Pass ``handler`` for full control; it may be sync or async.
    """

    def __init__(
        self,
        data: Any = None,
        status: int = 200,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        handler: Callable[[Request], Response | Awaitable[Response]] | None = None,
    ):
        self.data = data
        self.status = status
        self.headers = headers
        self.body = body
        self.handler = handler
        self.requests: list[Request] = []

    @property
    def last_request(self) -> Request:
        return self.requests[-1]

    async def __call__(self, request: Request) -> Response:
        self.requests.append(request)
        if self.handler is not None:
            result = self.handler(request)
            if isinstance(result, Response):
                return result
            return await result
        return make_response(request, self.data, self.status, self.headers, self.body)


async def hang_until_aborted(request: Request) -> Response:
    """Fetch that never resolves on its own; it only ends when the signal fires."""
    assert request.signal is not None
    await request.signal.wait()
    raise AbortError(reason=request.signal.reason)
