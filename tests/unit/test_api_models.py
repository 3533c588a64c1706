"""Tests for huiben.api.models — Pydantic request models.

Tests cover:
- camelCase and snake_case spellings of multi-word fields.
- Default values for optional fields.
- Conversion of generate requests into GenerationRequest.
- Character name normalisation for the for-prompt route.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from huiben.api.models import (
    BindingsForPromptRequest,
    BindRequest,
    ConnectionTestRequest,
    GenerateImageRequest,
    SaveImageRequest,
)
from huiben.core.models import CharacterBindingInfo


class TestAliases:
    """Both spellings of multi-word fields are accepted."""

    def test_camel_case(self):
        req = BindRequest.model_validate(
            {"characterName": "小明", "referenceImagePath": "/r.png", "imageType": "场景"}
        )
        assert (req.character_name, req.reference_image_path, req.image_type) == (
            "小明",
            "/r.png",
            "场景",
        )

    def test_snake_case(self):
        req = BindRequest.model_validate({"character_name": "小明"})
        assert req.reference_image_path is None
        assert req.image_type == "人物"

    def test_save_image_requires_data(self):
        with pytest.raises(ValidationError):
            SaveImageRequest.model_validate({"characterName": "小明"})

    def test_connection_test_overrides_optional(self):
        req = ConnectionTestRequest.model_validate({"model": "seedream"})
        assert req.base_url is None
        assert req.api_key is None


class TestBindingsForPromptRequest:
    """Character names arrive as a list or a comma-separated string."""

    def test_list(self):
        assert BindingsForPromptRequest(characters=["小明", " 小红 ", ""]).names() == ["小明", "小红"]

    def test_comma_separated(self):
        assert BindingsForPromptRequest(characters="小明, 小红,,").names() == ["小明", "小红"]

    def test_missing(self):
        assert BindingsForPromptRequest().names() == []


class TestGenerateImageRequest:
    """Test GenerateImageRequest defaults and conversion."""

    def test_defaults(self):
        req = GenerateImageRequest()
        assert req.model == "seedream"
        assert req.width == 1024
        assert req.height == 1024
        assert req.count == 1
        assert req.character_bindings == []
        assert req.images is None

    def test_count_must_be_positive(self):
        with pytest.raises(ValidationError):
            GenerateImageRequest(count=0)

    def test_to_generation_request(self):
        req = GenerateImageRequest.model_validate(
            {
                "model": "banana_pro",
                "prompt": "在森林里",
                "characterBindings": [
                    {"characterName": "小明", "referenceImagePath": "/refs/xm.png"},
                    {"characterName": "小红"},
                ],
                "width": 1920,
                "height": 1080,
                "sequentialImageGeneration": "disabled",
                "responseFormat": "url",
                "watermark": True,
                "images": ["https://cdn.test/x.png"],
            }
        )

        generation = req.to_generation_request()

        assert generation.provider == "banana_pro"
        assert generation.prompt == "在森林里"
        assert generation.character_bindings == [
            CharacterBindingInfo("小明", "/refs/xm.png", "人物"),
            CharacterBindingInfo("小红", None, "人物"),
        ]
        assert (generation.width, generation.height) == (1920, 1080)
        assert generation.sequential_mode == "disabled"
        assert generation.response_format == "url"
        assert generation.watermark is True
        assert generation.inline_images == ["https://cdn.test/x.png"]

    def test_unknown_model_accepted(self):
        """Unknown providers are reported by the orchestrator, not rejected here."""
        assert GenerateImageRequest(model="dalle").to_generation_request().provider == "dalle"
