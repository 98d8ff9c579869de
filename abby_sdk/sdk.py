"""
Abby SDK - High-level client with nice ergonomics.

This layer wires an isolated HTTPClient per Abby instance (auth, timeout,
events) and exposes the generated services bound to it.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any

from abby_sdk.core.abort import AbortController, race_abort
from abby_sdk.core.client import Fetch, HTTPClient, Request, Response, urllib_fetch
from abby_sdk.core.errors import ConfigurationError
from abby_sdk.core.services import (
    AdvanceService,
    AssetService,
    BillingService,
    CompanyService,
    ContactService,
    CustomerPortalService,
    EstimateService,
    InvoiceService,
    OpportunityService,
    OrganizationService,
)
from abby_sdk.events import EventEmitter, EventKind, EventRelay
from abby_sdk.version import __version__

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.app-abby.com"
DEFAULT_TIMEOUT = 30000  # milliseconds

SDK_CLIENT_NAME = "abby-python"
API_KEY_HELP = "Get your API key from https://app.abby.fr/settings/api"


@dataclass
class AbbyConfig:
    """Configuration options for an Abby client."""

    base_url: str = DEFAULT_BASE_URL
    timeout: int = DEFAULT_TIMEOUT
    headers: dict[str, str] = field(default_factory=dict)
    fetch: Fetch | None = None

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be a positive number of milliseconds, got {self.timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "AbbyConfig":
        """Build a config from ABBY_BASE_URL / ABBY_TIMEOUT, then apply overrides."""
        values: dict[str, Any] = {}
        if os.environ.get("ABBY_BASE_URL"):
            values["base_url"] = os.environ["ABBY_BASE_URL"]
        timeout_env = os.environ.get("ABBY_TIMEOUT")
        if timeout_env:
            try:
                values["timeout"] = int(timeout_env)
            except ValueError:
                raise ConfigurationError(f"ABBY_TIMEOUT must be an integer, got {timeout_env!r}") from None
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def with_timeout(fetch: Fetch, timeout: int) -> Fetch:
    """
    Wrap ``fetch`` so every call is aborted after ``timeout`` milliseconds.

    A signal already carried by the request is honoured too: whichever of the
    timer and the caller's signal fires first aborts the call with AbortError.
    """

    async def fetch_with_timeout(request: Request) -> Response:
        controller = AbortController()
        timer = asyncio.get_running_loop().call_later(timeout / 1000, _abort_on_timeout, controller, request, timeout)
        caller_signal = request.signal

        try:
            if caller_signal is not None:
                if caller_signal.aborted:
                    controller.abort(caller_signal.reason)
                else:
                    caller_signal.add_listener(controller.abort)

            return await race_abort(fetch(replace(request, signal=controller.signal)), controller.signal)
        finally:
            timer.cancel()
            if caller_signal is not None:
                caller_signal.remove_listener(controller.abort)

    return fetch_with_timeout


def _abort_on_timeout(controller: AbortController, request: Request, timeout: int) -> None:
    logger.debug("Aborting %s %s after %dms", request.method, request.url, timeout)
    controller.abort()


class Abby:
    """
    Abby API client.

    Each instance creates its own isolated HTTP client with its own
    interceptors, so several instances with different API keys can coexist.

    Example:
        abby = Abby("your_api_key")

        # Get current company info
        me = await abby.company.get_me()

        # Subscribe to failed calls
        abby.on("error", lambda e: print(e.status, e.message))

    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str | None = None,
        timeout: int | None = None,
        headers: dict[str, str] | None = None,
        fetch: Fetch | None = None,
        config: AbbyConfig | None = None,
    ):
        """
        Initialize the Abby client.

        Args:
            api_key: Abby API key (required)
            base_url: API base URL (default https://api.app-abby.com)
            timeout: Request timeout in milliseconds (default 30000)
            headers: Additional headers to include in every request
            fetch: Custom fetch function (proxies, mocking, ...)
            config: Base configuration; explicit keyword arguments win over it

        Raises:
            ConfigurationError: When api_key is empty or missing

        """
        if not api_key:
            raise ConfigurationError(f"Abby API key is required. {API_KEY_HELP}")

        base = config or AbbyConfig()
        self.config = replace(
            base,
            base_url=base_url or base.base_url,
            timeout=timeout if timeout is not None else base.timeout,
            headers=dict(headers if headers is not None else base.headers),
            fetch=fetch or base.fetch,
        )
        self._api_key = api_key

        base_fetch = self.config.fetch or partial(urllib_fetch, timeout=self.config.timeout / 1000)

        # One client per instance; nothing is shared between Abby objects
        self._client = HTTPClient(
            base_url=self.config.base_url,
            fetch=with_timeout(base_fetch, self.config.timeout),
            throw_on_error=True,
        )
        self._events = EventEmitter()
        self._relay = EventRelay(self._events)
        self._initialize_client()

        logger.debug("Abby client created (base_url=%s, timeout=%dms)", self.config.base_url, self.config.timeout)

        # Services, bound to this instance's client
        self.company = CompanyService(self._client)
        self.contact = ContactService(self._client)
        self.organization = OrganizationService(self._client)
        self.invoice = InvoiceService(self._client)
        self.estimate = EstimateService(self._client)
        self.billing = BillingService(self._client)
        self.advance = AdvanceService(self._client)
        self.asset = AssetService(self._client)
        self.customer_portal = CustomerPortalService(self._client)
        self.opportunity = OpportunityService(self._client)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Abby":
        """
        Create a client from ABBY_API_KEY, ABBY_BASE_URL and ABBY_TIMEOUT.

        Keyword overrides (base_url, timeout, headers, fetch) win over the
        environment.
        """
        api_key = overrides.pop("api_key", None) or os.environ.get("ABBY_API_KEY")
        if not api_key:
            raise ConfigurationError(f"ABBY_API_KEY environment variable not set. {API_KEY_HELP}")
        return cls(api_key, config=AbbyConfig.from_env(**overrides))

    def _initialize_client(self) -> None:
        """Register the auth and event interceptors on this instance's client."""

        def authenticate(request: Request) -> Request:
            self._relay.on_request(request)

            request.set_header("Authorization", f"Bearer {self._api_key}")
            for name, value in self.config.headers.items():
                request.set_header(name, value)

            # SDK identification
            request.set_header("X-Abby-Client", SDK_CLIENT_NAME)
            request.set_header("X-Abby-Client-Version", self.version)
            return request

        self._client.interceptors.request.use(authenticate)
        self._client.interceptors.response.use(self._relay.on_response)

    @property
    def version(self) -> str:
        """The SDK version sent with every request."""
        return __version__

    def get_client(self) -> HTTPClient:
        """
        Get the underlying HTTP client for advanced usage.

        Example:
            client = abby.get_client()
            client.interceptors.response.use(log_response)
            response = await client.get("/some/uncovered/endpoint")

        """
        return self._client

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, event: EventKind, listener: Callable[[Any], Any]) -> "Abby":
        """
        Subscribe to SDK events ("error" or "response").

        Returns the client for chaining.
        """
        self._events.on(event, listener)
        return self

    def off(self, event: EventKind, listener: Callable[[Any], Any]) -> "Abby":
        """Unsubscribe a listener previously passed to on()."""
        self._events.off(event, listener)
        return self
