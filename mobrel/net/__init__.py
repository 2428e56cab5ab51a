"""HTTP transport for remote services."""

from .http import (
    HttpCall,
    HttpClient,
    HttpResponse,
    MockHttpClient,
    RealHttpClient,
    TransportError,
)

__all__ = [
    "HttpCall",
    "HttpClient",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "TransportError",
]
