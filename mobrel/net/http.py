"""HTTP client abstraction for the remote build and device-management services.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Scripted implementation for testing

Any status code is a successful *transport*: non-2xx answers come back as an
``HttpResponse`` so callers decide what 409 or 500 mean. Only failures to get
an answer at all (DNS, refused connection, timeout, truncated body) are
``TransportError``.
"""

from __future__ import annotations

import http.client
import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from mobrel.core.result import Err, Ok, Result

__all__ = [
    "HttpCall",
    "HttpClient",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "TransportError",
    "json_body",
]


@dataclass(frozen=True, slots=True)
class TransportError:
    """Network-level failure reaching a remote service.

    Attributes:
        url: The URL that could not be reached
        method: HTTP method of the request
        reason: Human-readable cause
    """

    url: str
    method: str
    reason: str

    @property
    def message(self) -> str:
        return f"{self.method} {self.url} failed: {self.reason}"

    @property
    def hint(self) -> str | None:
        return "Check network access to the remote service"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class HttpResponse:
    url: str
    status: int
    reason: str
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Result[object, str]:
        """Decode the body as JSON. An empty body decodes to None."""
        if not self.body.strip():
            return Ok(None)
        try:
            return Ok(json.loads(self.body.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(f"invalid JSON from {self.url}: {e}")


def json_body(payload: object) -> bytes:
    return json.dumps(payload).encode("utf-8")


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    Injected into the publisher and the device-management client so unit
    tests never touch the network.
    """

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> Result[HttpResponse, TransportError]:
        """Send one request and return the response, whatever its status.

        ``timeout`` overrides the client default for slow calls such as uploads.
        """
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - Non-2xx statuses returned as responses (body preserved)
    - Timeout handling
    """

    def __init__(self, timeout: float = 60.0, user_agent: str = "mobrel/0.3.0") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> Result[HttpResponse, TransportError]:
        all_headers = {"User-Agent": self.user_agent, **(headers or {})}
        try:
            req = urllib.request.Request(url, data=body, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=timeout if timeout is not None else self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(
                    HttpResponse(
                        url=url,
                        status=response.status,
                        reason=response.reason or "",
                        body=response.read(),
                    )
                )
        except urllib.error.HTTPError as e:
            payload = e.read() if e.fp is not None else b""
            return Ok(HttpResponse(url=url, status=e.code, reason=str(e.reason), body=payload))
        except urllib.error.URLError as e:
            return Err(TransportError(url=url, method=method, reason=str(e.reason)))
        except http.client.HTTPException as e:
            # Connection dropped mid-response, e.g. IncompleteRead.
            return Err(TransportError(url=url, method=method, reason=f"{type(e).__name__}: {e}"))
        except TimeoutError:
            return Err(TransportError(url=url, method=method, reason="Request timed out"))
        except ValueError as e:
            return Err(TransportError(url=url, method=method, reason=str(e)))
        except OSError as e:
            return Err(TransportError(url=url, method=method, reason=str(e)))


@dataclass(frozen=True, slots=True)
class HttpCall:
    """A request recorded by MockHttpClient."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None

    def json(self) -> object:
        return json.loads(self.body) if self.body else None


@dataclass
class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are queued per ``(method, url)``; the last queued response is
    repeated once the queue is down to one entry. Unknown URLs answer 404.

    Usage:
        client = MockHttpClient()
        client.respond("GET", "https://mdm.example.com/API/x", 200, {"a": 1})
        client.fail("PUT", "https://api.example.com/y", "connection refused")
    """

    calls: list[HttpCall] = field(default_factory=lambda: [])
    _responses: dict[tuple[str, str], list[HttpResponse | TransportError]] = field(
        default_factory=lambda: {}
    )

    def respond(
        self,
        method: str,
        url: str,
        status: int,
        payload: object = None,
        *,
        reason: str = "",
    ) -> None:
        if isinstance(payload, bytes):
            body = payload
        elif isinstance(payload, str):
            body = payload.encode("utf-8")
        elif payload is None:
            body = b""
        else:
            body = json_body(payload)
        response = HttpResponse(url=url, status=status, reason=reason, body=body)
        self._responses.setdefault((method, url), []).append(response)

    def fail(self, method: str, url: str, reason: str) -> None:
        error = TransportError(url=url, method=method, reason=reason)
        self._responses.setdefault((method, url), []).append(error)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> Result[HttpResponse, TransportError]:
        del timeout
        self.calls.append(HttpCall(method=method, url=url, headers=dict(headers or {}), body=body))

        queue = self._responses.get((method, url))
        if not queue:
            return Ok(HttpResponse(url=url, status=404, reason="Not Found (mock)"))

        scripted = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(scripted, TransportError):
            return Err(scripted)
        return Ok(scripted)

    def calls_to(self, method: str, url_prefix: str = "") -> list[HttpCall]:
        return [c for c in self.calls if c.method == method and c.url.startswith(url_prefix)]
