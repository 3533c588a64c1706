"""Shared pytest fixtures for Huiben Studio tests."""

import io
import json
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest
from PIL import Image

from huiben.core.binding_store import BindingStore, TagStore
from huiben.core.config import HuibenConfig
from huiben.core.secret_store import (
    ApiConfig,
    ApiConfigStore,
    ProviderCredentials,
    SecretStore,
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> HuibenConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        HuibenConfig instance for testing
    """
    return HuibenConfig(
        _env_file=None,
        data_dir=temp_dir / "data",
        reference_images_dir=temp_dir / "data" / "reference_images",
        connectivity_timeout=2.0,
    )


@pytest.fixture
def binding_store(test_config: HuibenConfig) -> BindingStore:
    return BindingStore(test_config.bindings_path)


@pytest.fixture
def tag_store(test_config: HuibenConfig) -> TagStore:
    return TagStore(test_config.tags_path)


@pytest.fixture
def secret_store(test_config: HuibenConfig) -> SecretStore:
    return SecretStore(test_config.key_path)


@pytest.fixture
def api_config_store(test_config: HuibenConfig, secret_store: SecretStore) -> ApiConfigStore:
    return ApiConfigStore(test_config.api_config_path, secret_store, test_config)


@pytest.fixture
def configured_api_store(api_config_store: ApiConfigStore) -> ApiConfigStore:
    """An ApiConfigStore with keys saved for both providers."""
    api_config_store.save(
        ApiConfig(
            seedream=ProviderCredentials(base_url="https://seedream.test", api_key="sd-key"),
            banana_pro=ProviderCredentials(base_url="https://banana.test", api_key="bp-key"),
        )
    )
    return api_config_store


@pytest.fixture
def make_png(temp_dir: Path) -> Callable[..., Path]:
    """Factory writing a solid-colour PNG into the temp directory.

    Returns:
        Callable ``(name, size=(64, 64), color=(200, 30, 30)) -> Path``
    """

    def _make(name: str = "ref.png", size=(64, 64), color=(200, 30, 30)) -> Path:
        path = temp_dir / name
        Image.new("RGB", size, color).save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def png_bytes() -> bytes:
    """A small PNG image as raw bytes."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (0, 128, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served.

    Args:
        handler: ``httpx.Request -> httpx.Response`` callable
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Factory for recording mock transports.

    Returns:
        Callable ``(handler) -> RecordingTransport``, or
        ``(status=..., payload=...)`` for a fixed JSON answer
    """

    def _make(handler=None, *, status: int = 200, payload=None) -> RecordingTransport:
        if handler is None:
            return RecordingTransport(lambda request: httpx.Response(status, json=payload))
        return RecordingTransport(handler)

    return _make


@pytest.fixture
def seedream_transport() -> RecordingTransport:
    """Transport answering like a healthy Seedream endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/v1/models"):
            return httpx.Response(200, json={"data": []})
        return httpx.Response(
            200,
            json={"data": [{"url": "https://cdn.test/a.png"}, {"url": "https://cdn.test/b.png"}]},
        )

    return RecordingTransport(handler)


@pytest.fixture
def test_client(monkeypatch, test_config: HuibenConfig, seedream_transport: RecordingTransport):
    """FastAPI TestClient backed by a temporary data directory.

    Provider calls go to ``seedream_transport`` instead of the network.

    Yields:
        Started TestClient; provider requests are recorded on ``seedream_transport``
    """
    from fastapi.testclient import TestClient

    from huiben.api import main

    monkeypatch.setattr(main, "config", test_config)

    with TestClient(main.app) as client:
        main.app.state.orchestrator.http_client = httpx.Client(transport=seedream_transport)
        yield client
        main.app.state.orchestrator.http_client.close()
