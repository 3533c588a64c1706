"""Pydantic request models for the Huiben Studio API.

These models define the JSON schema for every API endpoint that takes a
body.  Every multi-word field accepts both its snake_case name and the
camelCase spelling used by the web frontend.

Models
------
ParseRequest
    Payload for ``POST /api/parse`` and ``POST /api/extract-characters``.
BindingsForPromptRequest
    Payload for ``POST /api/bindings/for-prompt``.
SaveImageRequest, BindRequest, CharacterRequest
    Payloads for the binding and reference image routes.
TagRequest
    Payload for the tag add/remove routes.
GenerateImageRequest
    Payload for ``POST /api/generate``; converts to a
    :class:`~huiben.core.models.GenerationRequest`.
ConnectionTestRequest
    Payload for ``POST /api/test-connection``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from huiben.core.models import DEFAULT_IMAGE_TYPE, CharacterBindingInfo, GenerationRequest


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ParseRequest(BaseModel):
    """Request body carrying a raw prompt.

    Attributes:
        prompt: Raw prompt text, possibly containing ``@name`` markers.
    """

    prompt: str = Field(..., description="Raw prompt text.")


class BindingsForPromptRequest(BaseModel):
    """Request body for ``POST /api/bindings/for-prompt``.

    Attributes:
        characters: Character names, either as a list or as one
            comma-separated string.
    """

    characters: list[str] | str | None = Field(
        default=None,
        description="Character names (list or comma-separated string).",
    )

    def names(self) -> list[str]:
        if self.characters is None:
            return []
        if isinstance(self.characters, str):
            raw = self.characters.split(",")
        else:
            raw = self.characters
        return [name.strip() for name in raw if name.strip()]


class SaveImageRequest(_CamelModel):
    """Request body for ``POST /api/save-image``.

    Attributes:
        character_name: Character to bind the uploaded image to.
        image_data: Base64 image bytes, optionally as a ``data:`` URI.
        image_type: Reference category.
    """

    character_name: str = Field(..., alias="characterName")
    image_data: str = Field(..., alias="imageData")
    image_type: str = Field(default=DEFAULT_IMAGE_TYPE, alias="imageType")


class BindRequest(_CamelModel):
    """Request body for ``POST /api/bind``."""

    character_name: str = Field(..., alias="characterName")
    reference_image_path: str | None = Field(default=None, alias="referenceImagePath")
    image_type: str = Field(default=DEFAULT_IMAGE_TYPE, alias="imageType")


class CharacterRequest(_CamelModel):
    """Request body naming a single character."""

    character_name: str = Field(..., alias="characterName")


class TagRequest(_CamelModel):
    """Request body for the tag add/remove routes."""

    character_name: str = Field(..., alias="characterName")
    tag: str


class SearchRequest(BaseModel):
    keyword: str


class ByTypeRequest(_CamelModel):
    image_type: str = Field(..., alias="imageType")


class CharacterBindingBody(_CamelModel):
    """One resolved character binding sent along with a generate request."""

    character_name: str = Field(..., alias="characterName")
    reference_image_path: str | None = Field(default=None, alias="referenceImagePath")
    image_type: str = Field(default=DEFAULT_IMAGE_TYPE, alias="imageType")


class GenerateImageRequest(_CamelModel):
    """Request body for ``POST /api/generate``.

    Attributes:
        model: Provider name (``seedream`` or ``banana_pro``).  Unknown
            names are accepted here and reported in the generation result.
        prompt: Prompt text sent to the provider.
        character_bindings: Bound characters whose reference images are
            inlined and whose names annotate the prompt.
        width: Output width, used for Banana Pro aspect ratio and size tier.
        height: Output height.
        count: Requested image count.
        quality: Quality hint.
        size: Seedream size string (``"2K"`` when omitted).
        sequential_image_generation: Seedream sequential mode.
        response_format: Seedream response format.
        watermark: Seedream watermark flag.
        images: Extra inline images (http(s) URLs, data URIs or base64).
    """

    model: str = Field(default="seedream", description="Provider name.")
    prompt: str = Field(default="", description="Prompt text.")
    character_bindings: list[CharacterBindingBody] = Field(
        default_factory=list, alias="characterBindings"
    )
    width: int = Field(default=1024, ge=0)
    height: int = Field(default=1024, ge=0)
    count: int = Field(default=1, ge=1)
    quality: str = "standard"
    size: str | None = None
    sequential_image_generation: str | None = Field(
        default=None, alias="sequentialImageGeneration"
    )
    response_format: str | None = Field(default=None, alias="responseFormat")
    watermark: bool | None = None
    images: list[str] | None = Field(default=None, description="Extra inline images.")

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            provider=self.model,
            prompt=self.prompt,
            character_bindings=[
                CharacterBindingInfo(
                    character_name=b.character_name,
                    reference_image_path=b.reference_image_path,
                    image_type=b.image_type,
                )
                for b in self.character_bindings
            ],
            width=self.width,
            height=self.height,
            count=self.count,
            quality=self.quality,
            size=self.size,
            sequential_mode=self.sequential_image_generation,
            response_format=self.response_format,
            watermark=self.watermark,
            inline_images=self.images,
        )


class ConnectionTestRequest(_CamelModel):
    """Request body for ``POST /api/test-connection``.

    When both ``base_url`` and ``api_key`` are given they are checked
    directly; otherwise the stored credentials for ``model`` are used.
    """

    model: str
    base_url: str | None = Field(default=None, alias="baseUrl")
    api_key: str | None = Field(default=None, alias="apiKey")
