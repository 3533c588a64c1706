"""Base class and registry for provider adapters.

Each third-party image-generation backend has its own adapter that translates
the provider-agnostic :class:`~huiben.core.models.GenerationRequest` into the
backend's wire schema and extracts generated image references from its
response.

Provider Adapter Pattern
------------------------
Adapters implement two capabilities:

- ``build_request`` - produce the JSON body for the provider endpoint
- ``parse_response`` - turn the decoded JSON response into a list of image
  references (remote URLs or data URIs)

The shared ``generate`` method performs the HTTP call in between and maps
failures onto the error taxonomy:

- transport errors and non-2xx responses -> ``RequestFailedError``
- response bodies that are not a JSON object -> ``ResponseParseFailedError``

Adapters never retry.

Usage Example
-------------
    >>> from huiben.core.provider_adapters import provider_registry
    >>> from huiben.core.models import Provider
    >>> adapter = provider_registry.instantiate(Provider.SEEDREAM, credentials, config)
    >>> images = adapter.generate(request, prompt="a fox in the snow", inline_images=None)

See Also
--------
- huiben.core.adapters.seedream: size-based provider with sequential generation
- huiben.core.adapters.banana_pro: aspect-ratio / size-tier provider
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .config import HuibenConfig
from .errors import RequestFailedError, ResponseParseFailedError, UnsupportedProviderError
from .models import GenerationRequest, Provider
from .secret_store import ProviderCredentials

logger = logging.getLogger(__name__)

# Longest upstream error body quoted in a RequestFailedError message.
_MAX_ERROR_TEXT = 500


class ProviderAdapterBase(ABC):
    """Abstract base class for all provider adapters.

    Attributes
    ----------
    name : str
        Human-readable provider name
    provider : Provider
        Provider this adapter serves
    description : str
        Brief description of the provider's request style
    credentials : ProviderCredentials
        Base URL and API key
    config : HuibenConfig
        Application configuration
    client : httpx.Client | None
        Shared HTTP client; when None a client is created per call
    """

    name: str = "Base Provider Adapter"
    provider: Provider
    description: str = "Base class for provider adapters"

    def __init__(
        self,
        credentials: ProviderCredentials,
        config: HuibenConfig,
        client: httpx.Client | None = None,
    ) -> None:
        self.credentials = credentials
        self.config = config
        self.client = client

    @property
    def base_url(self) -> str:
        return self.credentials.base_url.rstrip("/")

    @abstractmethod
    def endpoint(self) -> str:
        """Full URL of the generation endpoint (without query parameters)."""

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def query_params(self) -> dict[str, str]:
        return {}

    @abstractmethod
    def build_request(
        self, request: GenerationRequest, prompt: str, inline_images: list[str] | None
    ) -> dict[str, Any]:
        """Build the provider JSON body.

        Args:
            request: Provider-agnostic request (dimensions, options)
            prompt: Final prompt text, binding annotations included
            inline_images: URLs, data URIs or bare base64 strings, or None

        Returns:
            JSON-serialisable request body
        """

    @abstractmethod
    def parse_response(self, payload: dict[str, Any]) -> list[str]:
        """Extract generated image references from a decoded response."""

    def _post(self, client: httpx.Client, body: dict[str, Any]) -> httpx.Response:
        return client.post(
            self.endpoint(),
            json=body,
            headers=self.headers(),
            params=self.query_params(),
        )

    def generate(
        self, request: GenerationRequest, prompt: str, inline_images: list[str] | None
    ) -> list[str]:
        """Call the provider once and return generated image references.

        Raises:
            RequestFailedError: On transport failure or a non-2xx status
            ResponseParseFailedError: If the body is not a JSON object
            NoImagesGeneratedError: If the adapter requires images and got none
        """
        body = self.build_request(request, prompt, inline_images)
        logger.info(
            "Calling %s at %s with %d inline images",
            self.name,
            self.endpoint(),
            len(inline_images or []),
        )

        try:
            if self.client is not None:
                response = self._post(self.client, body)
            else:
                timeout = httpx.Timeout(self.config.generation_timeout)
                with httpx.Client(timeout=timeout) as client:
                    response = self._post(client, body)
        except httpx.HTTPError as e:
            raise RequestFailedError(f"{self.name} request failed: {e}") from e

        if not response.is_success:
            text = response.text[:_MAX_ERROR_TEXT]
            logger.error("%s returned %s: %s", self.name, response.status_code, text)
            raise RequestFailedError(
                f"{self.name} returned {response.status_code} {response.reason_phrase}: {text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ResponseParseFailedError(f"{self.name} returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ResponseParseFailedError(f"{self.name} returned a non-object JSON body")

        images = self.parse_response(payload)
        logger.info("%s returned %d images", self.name, len(images))
        return images


class ProviderRegistry:
    """Registry mapping each Provider to its adapter class.

    Usage
    -----
        >>> provider_registry.register(MyAdapter)
        >>> adapter = provider_registry.instantiate(Provider.SEEDREAM, creds, config)
    """

    def __init__(self) -> None:
        self._adapters: dict[Provider, type[ProviderAdapterBase]] = {}

    def register(self, adapter_class: type[ProviderAdapterBase]) -> type[ProviderAdapterBase]:
        provider = adapter_class.provider
        if provider in self._adapters:
            logger.warning("Provider adapter for '%s' is already registered, overwriting", provider.value)
        self._adapters[provider] = adapter_class
        logger.debug("Registered provider adapter: %s", adapter_class.name)
        return adapter_class

    def instantiate(
        self,
        provider: Provider,
        credentials: ProviderCredentials,
        config: HuibenConfig,
        client: httpx.Client | None = None,
    ) -> ProviderAdapterBase:
        """Create an adapter for ``provider``.

        Raises:
            UnsupportedProviderError: If no adapter is registered for it
        """
        adapter_class = self._adapters.get(provider)
        if adapter_class is None:
            available = ", ".join(p.value for p in self.list_available())
            raise UnsupportedProviderError(
                f"no adapter registered for '{provider}' (available: {available})"
            )
        return adapter_class(credentials=credentials, config=config, client=client)

    def list_available(self) -> list[Provider]:
        return list(self._adapters.keys())


# Global provider registry instance
provider_registry = ProviderRegistry()
