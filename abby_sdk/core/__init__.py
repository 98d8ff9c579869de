"""
Core layer - Raw types, services and HTTP transport.

This layer provides:
- Typed dataclasses matching the OpenAPI spec
- Per-resource service classes, each bound to an explicit HTTPClient
- Low-level HTTP client with interceptors and a pluggable fetch function
"""

from abby_sdk.core.abort import AbortController, AbortSignal, race_abort
from abby_sdk.core.client import (
    Fetch,
    HTTPClient,
    Interceptors,
    Request,
    Response,
    urllib_fetch,
)
from abby_sdk.core.errors import (
    AbbyError,
    AbortError,
    APIError,
    ConfigurationError,
    TransportError,
    ValidationError,
)
from abby_sdk.core.types import (
    Billing,
    Company,
    Contact,
    Me,
    Opportunity,
    Organization,
    PaginatedResponse,
    User,
)

__all__ = [
    "APIError",
    "AbbyError",
    "AbortController",
    "AbortError",
    "AbortSignal",
    "Billing",
    "Company",
    "ConfigurationError",
    "Contact",
    "Fetch",
    "HTTPClient",
    "Interceptors",
    "Me",
    "Opportunity",
    "Organization",
    "PaginatedResponse",
    "Request",
    "Response",
    "TransportError",
    "User",
    "ValidationError",
    "race_abort",
    "urllib_fetch",
]
