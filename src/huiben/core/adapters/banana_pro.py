"""Banana Pro provider adapter.

Banana Pro speaks the ``generateContent`` protocol: a single user turn made
of inline image parts followed by one text part, plus a generation config
describing the output aspect ratio and size tier.

Banana Pro Specifics
--------------------
- **Endpoint**: ``POST {base_url}/v1beta/models/{model}:generateContent``
- **Auth**: API key passed as the ``key`` query parameter
- **aspectRatio**: ``width:height`` reduced by their gcd
- **imageSize**: tier chosen from the requested width

============  ==========
Width         imageSize
============  ==========
<= 576        ``256k``
<= 1024       ``1K``
<= 2048       ``2K``
larger        ``4K``
============  ==========

Each response candidate contributes at most one image: its first part that
carries inline data.  An empty result raises ``NoImagesGeneratedError``; a body
whose candidates, content or parts have the wrong JSON type raises
``ResponseParseFailedError``.
"""

from __future__ import annotations

import logging
from math import gcd
from typing import Any

from ..errors import NoImagesGeneratedError, RequestFailedError, ResponseParseFailedError
from ..models import GenerationRequest, Provider
from ..provider_adapters import ProviderAdapterBase, provider_registry

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"


def calculate_aspect_ratio(width: int, height: int) -> str:
    """Reduce ``width:height`` by their greatest common divisor.

    >>> calculate_aspect_ratio(1920, 1080)
    '16:9'
    """
    divisor = gcd(width, height)
    if divisor == 0:
        return "1:1"
    return f"{width // divisor}:{height // divisor}"


def image_size_tier(width: int) -> str:
    if width <= 576:
        return "256k"
    if width <= 1024:
        return "1K"
    if width <= 2048:
        return "2K"
    return "4K"


def image_part(image: str) -> dict[str, Any]:
    """Build the request part for one inline image.

    Remote URLs become ``fileData`` parts.  Data URIs keep the MIME type from
    their header; bare base64 is sent as PNG.
    """
    if image.startswith(("http://", "https://")):
        return {"fileData": {"mimeType": DEFAULT_MIME_TYPE, "fileUri": image}}

    mime_type = DEFAULT_MIME_TYPE
    data = image
    if image.startswith("data:"):
        header, _, data = image.partition(",")
        declared = header[len("data:"):].split(";", 1)[0]
        if declared:
            mime_type = declared
    return {"inlineData": {"mimeType": mime_type, "data": data}}


class BananaProAdapter(ProviderAdapterBase):
    """Adapter for the Banana Pro generateContent API."""

    name = "Banana Pro"
    provider = Provider.BANANA_PRO
    description = "Aspect-ratio and size-tier generation over generateContent"

    def endpoint(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.config.banana_pro_model}:generateContent"

    def query_params(self) -> dict[str, str]:
        return {"key": self.credentials.api_key}

    def build_request(
        self, request: GenerationRequest, prompt: str, inline_images: list[str] | None
    ) -> dict[str, Any]:
        parts = [image_part(image) for image in inline_images or []]
        parts.append({"text": prompt})

        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {
                    "aspectRatio": calculate_aspect_ratio(request.width, request.height),
                    "imageSize": image_size_tier(request.width),
                },
            },
        }

    def parse_response(self, payload: dict[str, Any]) -> list[str]:
        if "error" in payload:
            error = payload["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise RequestFailedError(f"Banana Pro reported an error: {message}")

        candidates = payload.get("candidates") or []
        if not isinstance(candidates, list):
            raise ResponseParseFailedError("Banana Pro 'candidates' is not a list")

        images: list[str] = []
        for candidate in candidates:
            if not isinstance(candidate, dict):
                raise ResponseParseFailedError("Banana Pro candidate is not an object")
            content = candidate.get("content") or {}
            if not isinstance(content, dict):
                raise ResponseParseFailedError("Banana Pro candidate content is not an object")
            parts = content.get("parts") or []
            if not isinstance(parts, list):
                raise ResponseParseFailedError("Banana Pro content parts is not a list")
            for part in parts:
                inline = part.get("inlineData") if isinstance(part, dict) else None
                if isinstance(inline, dict) and isinstance(inline.get("data"), str):
                    mime_type = inline.get("mimeType") or DEFAULT_MIME_TYPE
                    images.append(f"data:{mime_type};base64,{inline['data']}")
                    break

        if not images:
            raise NoImagesGeneratedError("Banana Pro returned no images")
        return images


# Register the adapter with the global provider registry
provider_registry.register(BananaProAdapter)
