"""
Unit tests for the core HTTP client.

Tests cover:
- URL building and query encoding
- Request bodies and headers
- Interceptor registration, order and ejection
- APIError construction for non-2xx responses
- The urllib fetch against a local HTTP server
"""

import json
import socket
import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest
from helpers import MockFetch

from abby_sdk import Abby, APIError, TransportError
from abby_sdk.core.client import HTTPClient, Request, Response, error_message, urllib_fetch

BASE_URL = "https://api.app-abby.com"


class TestBuildUrl:
    """Tests for HTTPClient.build_url."""

    def test_relative_path(self) -> None:
        client = HTTPClient(BASE_URL + "/")

        assert client.build_url("/me") == "https://api.app-abby.com/me"

    def test_absolute_url_passes_through(self) -> None:
        client = HTTPClient(BASE_URL)

        assert client.build_url("https://other.example.com/x") == "https://other.example.com/x"

    def test_params_drop_none_and_encode_bools(self) -> None:
        client = HTTPClient(BASE_URL)

        url = client.build_url("/contacts", {"page": 2, "limit": 5, "archived": False, "search": None})

        assert url == "https://api.app-abby.com/contacts?page=2&limit=5&archived=false"

    def test_params_appended_to_existing_query(self) -> None:
        client = HTTPClient(BASE_URL)

        assert client.build_url("/contacts?page=1", {"limit": 5}) == "https://api.app-abby.com/contacts?page=1&limit=5"


class TestRequest:
    """Tests for request construction."""

    @pytest.mark.asyncio
    async def test_json_body(self, mock_fetch: MockFetch) -> None:
        client = HTTPClient(BASE_URL, fetch=mock_fetch)

        await client.post("/contact", {"firstname": "Ada"})

        request = mock_fetch.last_request
        assert request.method == "POST"
        assert json.loads(request.body) == {"firstname": "Ada"}
        assert request.get_header("content-type") == "application/json"
        assert request.get_header("Accept") == "application/json"

    @pytest.mark.asyncio
    async def test_no_body_without_json(self, mock_fetch: MockFetch) -> None:
        client = HTTPClient(BASE_URL, fetch=mock_fetch)

        await client.delete("/contact/c1")

        assert mock_fetch.last_request.body is None
        assert mock_fetch.last_request.get_header("Content-Type") is None

    @pytest.mark.asyncio
    async def test_per_call_headers(self, mock_fetch: MockFetch) -> None:
        client = HTTPClient(BASE_URL, fetch=mock_fetch, headers={"X-Default": "1"})

        await client.get("/me", headers={"accept": "application/pdf"})

        request = mock_fetch.last_request
        assert request.get_header("Accept") == "application/pdf"
        assert request.get_header("X-Default") == "1"
        assert len([k for k in request.headers if k.lower() == "accept"]) == 1

    def test_request_identity(self) -> None:
        """Verify equal-looking requests are still distinct keys."""
        first = Request("GET", "https://x")
        second = Request("GET", "https://x")

        assert first != second
        assert len({first, second}) == 2


class TestInterceptors:
    """Tests for interceptor registration."""

    @pytest.mark.asyncio
    async def test_run_in_registration_order(self, mock_fetch: MockFetch) -> None:
        client = HTTPClient(BASE_URL, fetch=mock_fetch)
        calls: list[str] = []

        def first(request: Request) -> Request:
            calls.append("first")
            return request

        async def second(request: Request) -> Request:
            calls.append("second")
            request.set_header("X-Second", "yes")
            return request

        def on_response(response: Response, request: Request) -> Response:
            calls.append(f"response:{request.method}")
            return response

        client.interceptors.request.use(first)
        client.interceptors.request.use(second)
        client.interceptors.response.use(on_response)
        await client.get("/me")

        assert calls == ["first", "second", "response:GET"]
        assert mock_fetch.last_request.get_header("X-Second") == "yes"

    @pytest.mark.asyncio
    async def test_eject(self, mock_fetch: MockFetch) -> None:
        client = HTTPClient(BASE_URL, fetch=mock_fetch)
        calls: list[str] = []
        interceptor_id = client.interceptors.request.use(lambda r: calls.append("x") or r)

        client.interceptors.request.eject(interceptor_id)
        client.interceptors.request.eject(999)
        await client.get("/me")

        assert calls == []
        assert len(client.interceptors.request) == 0

    @pytest.mark.asyncio
    async def test_response_interceptor_can_replace_response(self, mock_fetch: MockFetch) -> None:
        client = HTTPClient(BASE_URL, fetch=mock_fetch)
        client.interceptors.response.use(lambda response, request: Response(299, response.url, body=b'"patched"'))

        response = await client.get("/me")

        assert response.status == 299
        assert response.json() == "patched"

    def test_clear(self) -> None:
        client = HTTPClient(BASE_URL)
        client.interceptors.request.use(lambda r: r)
        client.interceptors.request.use(lambda r: r)

        client.interceptors.request.clear()

        assert len(client.interceptors.request) == 0


class TestErrors:
    """Tests for non-2xx handling."""

    @pytest.mark.asyncio
    async def test_no_raise_by_default(self) -> None:
        client = HTTPClient(BASE_URL, fetch=MockFetch({"message": "nope"}, status=400))

        response = await client.get("/me")

        assert response.ok is False
        assert response.status == 400

    @pytest.mark.asyncio
    async def test_raise_when_enabled(self) -> None:
        client = HTTPClient(BASE_URL, fetch=MockFetch({"message": "nope"}, status=400), throw_on_error=True)

        with pytest.raises(APIError) as exc_info:
            await client.get("/me")

        assert exc_info.value.status == 400
        assert exc_info.value.message == "nope"
        assert exc_info.value.to_dict() == {"error": "nope", "details": {"message": "nope"}, "status": 400}

    @pytest.mark.asyncio
    async def test_per_call_override(self) -> None:
        client = HTTPClient(BASE_URL, fetch=MockFetch(status=500), throw_on_error=True)

        response = await client.get("/me", throw_on_error=False)

        assert response.status == 500

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"message": "plain"}, "plain"),
            ({"error": "flat"}, "flat"),
            ({"error": {"message": "nested", "code": "test_error"}}, "nested"),
            ({"unexpected": True}, "HTTP 418 I'm a Teapot"),
            (None, "HTTP 418 I'm a Teapot"),
        ],
    )
    def test_error_message_shapes(self, payload: object, expected: str) -> None:
        assert error_message(418, "I'm a Teapot", payload) == expected


# =============================================================================
# urllib fetch against a real socket
# =============================================================================


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        if self.path == "/me":
            status = 200
            payload = {"auth": self.headers.get("Authorization"), "client": self.headers.get("X-Abby-Client")}
            extra = {}
        else:
            status = 404
            payload = {"message": "not found"}
            extra = {"X-Request-Id": "req-404"}

        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        for name, value in extra.items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        pass


@pytest.fixture
def server_url() -> Iterator[str]:
    httpd = HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_port}"
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def hangup_url() -> Iterator[str]:
    """A server that reads the request and closes the socket without replying."""
    listener = socket.socket()
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)

    def serve() -> None:
        conn, _ = listener.accept()
        with conn:
            conn.recv(65536)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{listener.getsockname()[1]}"
    thread.join(timeout=5)
    listener.close()


def _closed_port() -> int:
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class TestUrllibFetch:
    """Tests for the default fetch function."""

    @pytest.mark.asyncio
    async def test_success(self, server_url: str) -> None:
        response = await urllib_fetch(Request("GET", f"{server_url}/me", headers={"Authorization": "Bearer k"}))

        assert response.status == 200
        assert response.status_text == "OK"
        assert response.json()["auth"] == "Bearer k"

    @pytest.mark.asyncio
    async def test_http_error_is_a_response(self, server_url: str) -> None:
        response = await urllib_fetch(Request("GET", f"{server_url}/missing"))

        assert response.status == 404
        assert response.ok is False
        assert response.headers["x-request-id"] == "req-404"
        assert response.json() == {"message": "not found"}

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        with pytest.raises(TransportError, match="Connection error"):
            await urllib_fetch(Request("GET", f"http://127.0.0.1:{_closed_port()}/me"), timeout=2)

    @pytest.mark.asyncio
    async def test_connection_closed_without_response(self, hangup_url: str) -> None:
        with pytest.raises(TransportError, match="Connection error"):
            await urllib_fetch(Request("GET", f"{hangup_url}/me"), timeout=5)

    @pytest.mark.asyncio
    async def test_abby_end_to_end(self, server_url: str) -> None:
        """Verify the default transport carries auth and feeds the error event."""
        abby = Abby("live_key", base_url=server_url, timeout=5000)
        errors = []
        abby.on("error", errors.append)

        response = await abby.get_client().get("/me")
        with pytest.raises(APIError):
            await abby.get_client().get("/missing")

        assert response.json() == {"auth": "Bearer live_key", "client": "abby-python"}
        assert errors[0].message == "not found"
        assert errors[0].request_id == "req-404"
