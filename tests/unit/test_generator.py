"""Tests for huiben.core.generator — the generation orchestrator.

Provider traffic is served by recording mock transports; reference images
are PNG or JPEG files written to a temporary directory.
"""

from __future__ import annotations

import base64
import os

import httpx
import pytest
from PIL import Image

from huiben.core.errors import (
    ConfigMissingError,
    MissingCredentialError,
    TaskNotFoundError,
    UnsupportedProviderError,
)
from huiben.core.generator import GenerationOrchestrator, annotate_prompt
from huiben.core.image_payload import ImagePayloadAdapter
from huiben.core.models import CharacterBindingInfo, GenerationRequest, GenerationTask, TaskStatus
from huiben.core.secret_store import ApiConfig, ProviderCredentials
from huiben.core.task_table import TaskTable


@pytest.fixture
def task_table() -> TaskTable:
    return TaskTable()


@pytest.fixture
def large_png(temp_dir):
    """An 800x800 noise PNG, larger than the 1 MiB inline limit."""
    path = temp_dir / "large.png"
    Image.frombytes("RGB", (800, 800), os.urandom(800 * 800 * 3)).save(path, format="PNG")
    assert path.stat().st_size > 1024 * 1024
    return path


@pytest.fixture
def orchestrator_factory(test_config, task_table):
    """Build an orchestrator talking to the given transport."""

    def _build(api_configs, transport) -> GenerationOrchestrator:
        return GenerationOrchestrator(
            config=test_config,
            api_configs=api_configs,
            tasks=task_table,
            payloads=ImagePayloadAdapter(),
            http_client=httpx.Client(transport=transport),
        )

    return _build


class TestAnnotatePrompt:
    def test_bound_characters_appended_in_order(self):
        bindings = [
            CharacterBindingInfo("小明", "/refs/xm.png"),
            CharacterBindingInfo("小红"),
            CharacterBindingInfo("小刚", "/refs/xg.png"),
        ]
        assert (
            annotate_prompt("在森林里", bindings)
            == "在森林里 [小明: /refs/xm.png] [小刚: /refs/xg.png]"
        )

    def test_no_bindings(self):
        assert annotate_prompt("plain", []) == "plain"


class TestGenerateSuccess:
    """Successful generation calls."""

    def test_seedream_success(self, orchestrator_factory, configured_api_store, seedream_transport, task_table):
        orchestrator = orchestrator_factory(configured_api_store, seedream_transport)

        result = orchestrator.generate(GenerationRequest(provider="seedream", prompt="a fox"))

        assert result.success is True
        assert result.error is None
        assert result.images == ["https://cdn.test/a.png", "https://cdn.test/b.png"]
        assert result.task_id.startswith("task_")
        assert len(task_table) == 0

    def test_bound_reference_inlined_and_prompt_annotated(
        self, orchestrator_factory, configured_api_store, seedream_transport, make_png
    ):
        ref = make_png("xm.png")
        orchestrator = orchestrator_factory(configured_api_store, seedream_transport)
        request = GenerationRequest(
            provider="seedream",
            prompt="在森林里跑步",
            character_bindings=[
                CharacterBindingInfo("小明", str(ref)),
                CharacterBindingInfo("小红"),
            ],
            inline_images=["https://cdn.test/extra.png"],
        )

        result = orchestrator.generate(request)

        assert result.success is True
        body = seedream_transport.last_json()
        assert body["prompt"] == f"在森林里跑步 [小明: {ref}]"
        expected_ref = "data:image/png;base64," + base64.b64encode(ref.read_bytes()).decode()
        assert body["image"] == ["https://cdn.test/extra.png", expected_ref]

    def test_missing_reference_file_skipped(
        self, orchestrator_factory, configured_api_store, seedream_transport, temp_dir
    ):
        orchestrator = orchestrator_factory(configured_api_store, seedream_transport)
        missing = str(temp_dir / "gone.png")
        request = GenerationRequest(
            provider="seedream",
            prompt="p",
            character_bindings=[CharacterBindingInfo("小明", missing)],
        )

        result = orchestrator.generate(request)

        assert result.success is True
        body = seedream_transport.last_json()
        assert "image" not in body
        # The annotation still names the bound path
        assert body["prompt"] == f"p [小明: {missing}]"

    def test_recompressed_reference_sent_as_jpeg_to_seedream(
        self, orchestrator_factory, configured_api_store, seedream_transport, large_png
    ):
        orchestrator = orchestrator_factory(configured_api_store, seedream_transport)
        request = GenerationRequest(
            provider="seedream",
            prompt="p",
            character_bindings=[CharacterBindingInfo("小明", str(large_png))],
        )

        assert orchestrator.generate(request).success is True

        [image] = seedream_transport.last_json()["image"]
        assert image.startswith("data:image/jpeg;base64,")
        assert base64.b64decode(image.partition(",")[2]).startswith(b"\xff\xd8\xff")

    def test_recompressed_reference_sent_as_jpeg_to_banana_pro(
        self, orchestrator_factory, configured_api_store, make_transport, large_png
    ):
        transport = make_transport(
            status=200,
            payload={"candidates": [{"content": {"parts": [{"inlineData": {"data": "QQ=="}}]}}]},
        )
        orchestrator = orchestrator_factory(configured_api_store, transport)
        request = GenerationRequest(
            provider="banana_pro",
            prompt="p",
            character_bindings=[CharacterBindingInfo("小明", str(large_png))],
        )

        assert orchestrator.generate(request).success is True

        image_part, text_part = transport.last_json()["contents"][0]["parts"]
        assert image_part["inlineData"]["mimeType"] == "image/jpeg"
        assert base64.b64decode(image_part["inlineData"]["data"]).startswith(b"\xff\xd8\xff")
        assert text_part == {"text": "p [小明: " + str(large_png) + "]"}

    def test_small_jpeg_reference_keeps_mime_type(
        self, orchestrator_factory, configured_api_store, seedream_transport, temp_dir
    ):
        ref = temp_dir / "photo.jpg"
        Image.new("RGB", (16, 16), (10, 20, 30)).save(ref, format="JPEG")
        orchestrator = orchestrator_factory(configured_api_store, seedream_transport)
        request = GenerationRequest(
            provider="seedream",
            prompt="p",
            character_bindings=[CharacterBindingInfo("小明", str(ref))],
        )

        orchestrator.generate(request)

        [image] = seedream_transport.last_json()["image"]
        assert image == "data:image/jpeg;base64," + base64.b64encode(ref.read_bytes()).decode()

    def test_banana_pro_dispatch(self, orchestrator_factory, configured_api_store, make_transport):
        transport = make_transport(
            status=200,
            payload={"candidates": [{"content": {"parts": [{"inlineData": {"data": "QQ=="}}]}}]},
        )
        orchestrator = orchestrator_factory(configured_api_store, transport)

        result = orchestrator.generate(
            GenerationRequest(provider="banana_pro", prompt="p", width=1920, height=1080)
        )

        assert result.images == ["data:image/png;base64,QQ=="]
        assert transport.requests[0].url.host == "banana.test"
        assert transport.last_json()["generationConfig"]["imageConfig"]["aspectRatio"] == "16:9"


class TestGenerateFailure:
    """Failures are reported in the result, never raised."""

    def test_unknown_provider(self, orchestrator_factory, configured_api_store, seedream_transport, task_table):
        orchestrator = orchestrator_factory(configured_api_store, seedream_transport)

        result = orchestrator.generate(GenerationRequest(provider="unknown", prompt="p"))

        assert result.success is False
        assert result.images == []
        assert "UnsupportedProvider" in result.error
        assert seedream_transport.requests == []
        assert len(task_table) == 0

    def test_config_missing(self, orchestrator_factory, api_config_store, seedream_transport):
        orchestrator = orchestrator_factory(api_config_store, seedream_transport)

        result = orchestrator.generate(GenerationRequest(provider="seedream", prompt="p"))

        assert result.success is False
        assert "ConfigMissing" in result.error

    def test_blank_key(self, orchestrator_factory, api_config_store, seedream_transport):
        api_config_store.save(
            ApiConfig(seedream=ProviderCredentials(base_url="https://seedream.test", api_key="  "))
        )
        orchestrator = orchestrator_factory(api_config_store, seedream_transport)

        result = orchestrator.generate(GenerationRequest(provider="seedream", prompt="p"))

        assert result.success is False
        assert "MissingCredential" in result.error
        assert seedream_transport.requests == []

    def test_provider_error(self, orchestrator_factory, configured_api_store, make_transport, task_table):
        transport = make_transport(lambda request: httpx.Response(503, text="maintenance"))
        orchestrator = orchestrator_factory(configured_api_store, transport)

        result = orchestrator.generate(GenerationRequest(provider="seedream", prompt="p"))

        assert result.success is False
        assert "RequestFailed" in result.error
        assert "503" in result.error
        assert len(task_table) == 0


class TestTaskLifecycle:
    """Observe task states while the provider call is in flight."""

    def test_processing_at_30_during_call(self, orchestrator_factory, configured_api_store, make_transport, task_table):
        observed: list[GenerationTask] = []

        def handler(request):
            [task_id] = list(task_table._tasks)
            observed.append(task_table.get(task_id))
            return httpx.Response(200, json={"data": []})

        orchestrator = orchestrator_factory(configured_api_store, make_transport(handler))
        result = orchestrator.generate(GenerationRequest(provider="seedream", prompt="p"))

        assert observed[0].id == result.task_id
        assert observed[0].status is TaskStatus.PROCESSING
        assert observed[0].progress == 30

    def test_poll_after_completion_raises(self, orchestrator_factory, configured_api_store, seedream_transport):
        orchestrator = orchestrator_factory(configured_api_store, seedream_transport)
        result = orchestrator.generate(GenerationRequest(provider="seedream", prompt="p"))

        with pytest.raises(TaskNotFoundError):
            orchestrator.poll_task(result.task_id)


class TestConnectivity:
    """Test the reachability check."""

    @pytest.mark.parametrize("status, expected", [(200, True), (204, True), (401, True), (403, False), (500, False)])
    def test_status_mapping(self, orchestrator_factory, api_config_store, make_transport, status, expected):
        transport = make_transport(lambda request: httpx.Response(status))
        orchestrator = orchestrator_factory(api_config_store, transport)

        assert orchestrator.test_connectivity("seedream", "https://ping.test", "k") is expected
        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/v1/models"
        assert request.headers["Authorization"] == "Bearer k"

    def test_transport_failure_is_false(self, orchestrator_factory, api_config_store):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        orchestrator = orchestrator_factory(api_config_store, httpx.MockTransport(handler))
        assert orchestrator.test_connectivity("seedream", "https://ping.test", "k") is False

    def test_uses_stored_credentials(self, orchestrator_factory, configured_api_store, make_transport):
        transport = make_transport(lambda request: httpx.Response(200))
        orchestrator = orchestrator_factory(configured_api_store, transport)

        assert orchestrator.test_connectivity("banana_pro") is True
        assert transport.requests[0].url.host == "banana.test"
        assert transport.requests[0].headers["Authorization"] == "Bearer bp-key"

    def test_partial_override_uses_stored(self, orchestrator_factory, configured_api_store, make_transport):
        transport = make_transport(lambda request: httpx.Response(200))
        orchestrator = orchestrator_factory(configured_api_store, transport)

        orchestrator.test_connectivity("seedream", base_url="https://ignored.test")
        assert transport.requests[0].url.host == "seedream.test"

    def test_no_stored_config(self, orchestrator_factory, api_config_store, make_transport):
        orchestrator = orchestrator_factory(api_config_store, make_transport(status=200))
        with pytest.raises(ConfigMissingError):
            orchestrator.test_connectivity("seedream")

    def test_unknown_provider(self, orchestrator_factory, configured_api_store, make_transport):
        orchestrator = orchestrator_factory(configured_api_store, make_transport(status=200))
        with pytest.raises(UnsupportedProviderError):
            orchestrator.test_connectivity("dalle")

    def test_blank_stored_key(self, orchestrator_factory, api_config_store, make_transport):
        api_config_store.save(api_config_store.default())
        orchestrator = orchestrator_factory(api_config_store, make_transport(status=200))
        with pytest.raises(MissingCredentialError):
            orchestrator.test_connectivity("seedream")
