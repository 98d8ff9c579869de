"""
Abby SDK - Python library for the Abby API.

Layers:
- core: Raw types, services and HTTP transport (from OpenAPI)
- sdk: High-level Abby client with per-instance auth, timeout and events
- cli: Opinionated command-line interface
"""

from abby_sdk.core.errors import (
    AbbyError,
    AbortError,
    APIError,
    ConfigurationError,
    TransportError,
    ValidationError,
)
from abby_sdk.events import ErrorEvent, ResponseEvent
from abby_sdk.sdk import Abby, AbbyConfig
from abby_sdk.version import __version__

__all__ = [
    "APIError",
    "Abby",
    "AbbyConfig",
    "AbbyError",
    "AbortError",
    "ConfigurationError",
    "ErrorEvent",
    "ResponseEvent",
    "TransportError",
    "ValidationError",
    "__version__",
]
