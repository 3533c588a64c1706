"""Seedream provider adapter.

Seedream is a size-based provider that can return several images for one
prompt through sequential generation.

Seedream Specifics
------------------
- **Endpoint**: ``POST {base_url}/v1/images/generations``
- **Auth**: ``Authorization: Bearer <api_key>``
- **size**: free-form string, ``"2K"`` when the request leaves it unset
- **sequential_image_generation**: ``"auto"`` when unset; in ``auto`` mode
  the body also carries ``{"max_images": 3}`` as a hint
- **image**: reference images as data URIs; remote URLs pass through

Responses list generated image URLs under ``data[].url``.  An empty list is
returned as-is; the orchestrator decides what an empty result means.
"""

from __future__ import annotations

import logging
from typing import Any

from ..models import GenerationRequest, Provider
from ..provider_adapters import ProviderAdapterBase, provider_registry

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "2K"
DEFAULT_SEQUENTIAL_MODE = "auto"
SEQUENTIAL_MAX_IMAGES = 3


def as_data_uri(image: str) -> str:
    """Format an inline image for the ``image`` array.

    Data URIs and http(s) URLs are returned unchanged; anything else is
    treated as bare base64 PNG data.
    """
    if image.startswith(("data:", "http://", "https://")):
        return image
    return f"data:image/png;base64,{image}"


class SeedreamAdapter(ProviderAdapterBase):
    """Adapter for the Seedream images API."""

    name = "Seedream"
    provider = Provider.SEEDREAM
    description = "Size-based generation with optional sequential multi-image output"

    def endpoint(self) -> str:
        return f"{self.base_url}/v1/images/generations"

    def headers(self) -> dict[str, str]:
        headers = super().headers()
        headers["Authorization"] = f"Bearer {self.credentials.api_key}"
        return headers

    def build_request(
        self, request: GenerationRequest, prompt: str, inline_images: list[str] | None
    ) -> dict[str, Any]:
        mode = request.sequential_mode or DEFAULT_SEQUENTIAL_MODE
        body: dict[str, Any] = {
            "model": self.config.seedream_model,
            "prompt": prompt,
            "size": request.size or DEFAULT_SIZE,
            "sequential_image_generation": mode,
        }
        if mode == "auto":
            body["sequential_image_generation_options"] = {"max_images": SEQUENTIAL_MAX_IMAGES}
        if request.response_format:
            body["response_format"] = request.response_format
        body["watermark"] = bool(request.watermark)

        if inline_images:
            body["image"] = [as_data_uri(image) for image in inline_images]

        return body

    def parse_response(self, payload: dict[str, Any]) -> list[str]:
        data = payload.get("data")
        if not isinstance(data, list):
            logger.warning("Seedream response carried no data array")
            return []
        return [
            item["url"]
            for item in data
            if isinstance(item, dict) and isinstance(item.get("url"), str)
        ]


# Register the adapter with the global provider registry
provider_registry.register(SeedreamAdapter)
