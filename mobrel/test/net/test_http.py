"""Tests for mobrel.net.http."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from mobrel.core.result import Err, Ok
from mobrel.net.http import HttpClient, HttpResponse, MockHttpClient, RealHttpClient


class _Handler(BaseHTTPRequestHandler):
    def do_PUT(self) -> None:
        length = int(self.headers.get("Content-Length", "0"))
        body = self.rfile.read(length)
        if self.path == "/conflict":
            self._reply(409, b'{"message": "exists"}')
        else:
            self._reply(200, body)

    def do_GET(self) -> None:
        if self.path == "/truncated":
            self.send_response(200)
            self.send_header("Content-Length", "100")
            self.end_headers()
            self.wfile.write(b'{"a"')
            self.close_connection = True
            return
        token = self.headers.get("X-API-Token", "")
        self._reply(200, ('{"token": "%s"}' % token).encode())

    def _reply(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        del format, args


@pytest.fixture
def server_url() -> Iterator[str]:
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


class TestHttpResponse:
    def test_ok_range(self) -> None:
        assert HttpResponse(url="u", status=204, reason="").ok
        assert not HttpResponse(url="u", status=409, reason="").ok

    def test_json_empty_body(self) -> None:
        assert HttpResponse(url="u", status=204, reason="").json() == Ok(None)

    def test_json_invalid(self) -> None:
        result = HttpResponse(url="u", status=200, reason="", body=b"<html>").json()
        assert isinstance(result, Err)
        assert "invalid JSON" in result.error


class TestRealHttpClient:
    def test_round_trip(self, server_url: str) -> None:
        client = RealHttpClient(timeout=5)
        result = client.request("PUT", f"{server_url}/config", body=b'{"a": 1}')

        assert isinstance(result, Ok)
        assert result.value.status == 200
        assert result.value.json() == Ok({"a": 1})

    def test_headers_are_sent(self, server_url: str) -> None:
        client = RealHttpClient(timeout=5)
        result = client.request("GET", f"{server_url}/x", headers={"X-API-Token": "t0k"})

        assert isinstance(result, Ok)
        assert result.value.json() == Ok({"token": "t0k"})

    def test_error_status_is_a_response(self, server_url: str) -> None:
        client = RealHttpClient(timeout=5)
        result = client.request("PUT", f"{server_url}/conflict", body=b"{}")

        assert isinstance(result, Ok)
        assert result.value.status == 409
        assert "exists" in result.value.text

    def test_unreachable_host_is_transport_error(self) -> None:
        client = RealHttpClient(timeout=2)
        result = client.request("GET", "http://127.0.0.1:9/nothing")

        assert isinstance(result, Err)
        assert result.error.method == "GET"
        assert result.error.message.startswith("GET http://127.0.0.1:9/nothing failed")

    def test_truncated_body_is_transport_error(self, server_url: str) -> None:
        result = RealHttpClient(timeout=5).request("GET", f"{server_url}/truncated")

        assert isinstance(result, Err)
        assert result.error.method == "GET"
        assert "IncompleteRead" in result.error.reason

    def test_invalid_url_is_transport_error(self) -> None:
        result = RealHttpClient().request("GET", "not a url")
        assert isinstance(result, Err)


class TestMockHttpClient:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)

    def test_unknown_url_is_404(self) -> None:
        result = MockHttpClient().request("GET", "https://x.test/a")
        assert isinstance(result, Ok)
        assert result.value.status == 404

    def test_queue_then_repeat_last(self) -> None:
        client = MockHttpClient()
        client.respond("PUT", "https://x.test/a", 409)
        client.respond("PUT", "https://x.test/a", 200, {"ok": True})

        statuses = []
        for _ in range(3):
            result = client.request("PUT", "https://x.test/a", body=b"{}")
            assert isinstance(result, Ok)
            statuses.append(result.value.status)

        assert statuses == [409, 200, 200]
        assert len(client.calls_to("PUT", "https://x.test/")) == 3

    def test_fail(self) -> None:
        client = MockHttpClient()
        client.fail("GET", "https://x.test/a", "connection refused")

        result = client.request("GET", "https://x.test/a")
        assert isinstance(result, Err)
        assert result.error.reason == "connection refused"

    def test_records_json_body(self) -> None:
        client = MockHttpClient()
        client.request("POST", "https://x.test/a", body=b'{"k": "v"}', headers={"A": "b"})

        call = client.calls[0]
        assert call.json() == {"k": "v"}
        assert call.headers == {"A": "b"}
