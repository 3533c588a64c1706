"""Encrypted provider credentials and plaintext generation preferences.

Provider credentials (base URL and API key per provider) are stored as JSON
encrypted with AES-256-GCM.  The 32-byte key is generated on first use and
persisted next to the credential file; the ciphertext layout is::

    nonce (12 bytes) || ciphertext-with-tag

Generation preferences contain nothing secret and are stored as plaintext
JSON in a sibling file.

Both stores cache the last loaded or saved value in memory.  The cache is
guarded by a lock held only while it is read or replaced.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import HuibenConfig
from .errors import (
    ConfigMissingError,
    DecryptFailedError,
    MalformedCiphertextError,
    UnsupportedProviderError,
)
from .models import Provider

logger = logging.getLogger(__name__)

KEY_SIZE = 32
NONCE_SIZE = 12


class SecretStore:
    """AES-256-GCM encryption with a key persisted on first use.

    Attributes
    ----------
    key_path : Path
        File holding the raw 32-byte key
    """

    def __init__(self, key_path: Path) -> None:
        self.key_path = Path(key_path)
        self._lock = threading.Lock()
        self._key: bytes | None = None

    def _get_or_create_key(self) -> bytes:
        with self._lock:
            if self._key is not None:
                return self._key

            if self.key_path.exists():
                key = self.key_path.read_bytes()
                if len(key) == KEY_SIZE:
                    self._key = key
                    return key
                logger.warning("Key file %s has the wrong length, generating a new key", self.key_path)

            key = os.urandom(KEY_SIZE)
            self.key_path.parent.mkdir(parents=True, exist_ok=True)
            self.key_path.write_bytes(key)
            logger.info("Generated new encryption key at %s", self.key_path)
            self._key = key
            return key

    def encrypt(self, data: bytes) -> bytes:
        """Encrypt ``data`` and prepend a fresh random nonce."""
        nonce = os.urandom(NONCE_SIZE)
        return nonce + AESGCM(self._get_or_create_key()).encrypt(nonce, data, None)

    def decrypt(self, blob: bytes) -> bytes:
        """Decrypt ``nonce || ciphertext``.

        Raises:
            MalformedCiphertextError: If the blob is shorter than a nonce
            DecryptFailedError: If authentication fails (wrong key or tampering)
        """
        if len(blob) < NONCE_SIZE:
            raise MalformedCiphertextError(
                f"expected at least {NONCE_SIZE} bytes, got {len(blob)}"
            )

        nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
        try:
            return AESGCM(self._get_or_create_key()).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptFailedError("ciphertext failed authentication") from e


class ProviderCredentials(BaseModel):
    """Endpoint and key for one provider."""

    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field(default="", alias="baseUrl")
    api_key: str = Field(default="", alias="apiKey")


class ApiConfig(BaseModel):
    """Credentials for every supported provider."""

    model_config = ConfigDict(populate_by_name=True)

    seedream: ProviderCredentials = Field(default_factory=ProviderCredentials)
    banana_pro: ProviderCredentials = Field(
        default_factory=ProviderCredentials, alias="bananaPro"
    )

    def credentials_for(self, provider: Provider) -> ProviderCredentials:
        if provider is Provider.SEEDREAM:
            return self.seedream
        if provider is Provider.BANANA_PRO:
            return self.banana_pro
        raise UnsupportedProviderError(f"no credentials slot for '{provider}'")


class GenerationConfig(BaseModel):
    """Persisted generation preferences."""

    model_config = ConfigDict(populate_by_name=True)

    model: str = "seedream"
    width: int = 1
    height: int = 1
    count: int = 1
    quality: str = "standard"
    size: str | None = "1024x1024"
    sequential_image_generation: str | None = Field(
        default="disabled", alias="sequentialImageGeneration"
    )
    response_format: str | None = Field(default="url", alias="responseFormat")
    watermark: bool | None = False


class ApiConfigStore:
    """Encrypted, cached provider credentials."""

    def __init__(self, path: Path, secrets: SecretStore, config: HuibenConfig) -> None:
        self.path = Path(path)
        self.secrets = secrets
        self._config = config
        self._lock = threading.Lock()
        self._cached: ApiConfig | None = None

    def default(self) -> ApiConfig:
        """Default endpoints with empty keys."""
        return ApiConfig(
            seedream=ProviderCredentials(base_url=self._config.seedream_base_url),
            banana_pro=ProviderCredentials(base_url=self._config.banana_pro_base_url),
        )

    def save(self, api_config: ApiConfig) -> None:
        payload = api_config.model_dump_json(indent=2).encode("utf-8")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(self.secrets.encrypt(payload))

        with self._lock:
            self._cached = api_config.model_copy(deep=True)
        logger.info("Saved encrypted API configuration to %s", self.path)

    def load(self) -> ApiConfig:
        """Decrypt the stored configuration and refresh the cache.

        Raises:
            ConfigMissingError: If no configuration has been saved
            DecryptFailedError: If the file cannot be authenticated
            MalformedCiphertextError: If the file is truncated
        """
        if not self.path.exists():
            raise ConfigMissingError("no API configuration saved; configure a provider first")

        plaintext = self.secrets.decrypt(self.path.read_bytes())
        try:
            api_config = ApiConfig.model_validate_json(plaintext)
        except ValidationError as e:
            raise ConfigMissingError(f"stored API configuration is invalid: {e}") from e

        with self._lock:
            self._cached = api_config
        return api_config.model_copy(deep=True)

    def get(self) -> ApiConfig:
        """Return the cached configuration, loading it on first use."""
        with self._lock:
            if self._cached is not None:
                return self._cached.model_copy(deep=True)
        return self.load()


class GenerationConfigStore:
    """Plaintext, cached generation preferences."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._cached: GenerationConfig | None = None

    @staticmethod
    def default() -> GenerationConfig:
        return GenerationConfig()

    def save(self, generation_config: GenerationConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump(generation_config.model_dump(), handle, ensure_ascii=False, indent=2)

        with self._lock:
            self._cached = generation_config.model_copy()

    def load(self) -> GenerationConfig:
        """Read the stored preferences.

        Raises:
            ConfigMissingError: If no preferences have been saved
        """
        if not self.path.exists():
            raise ConfigMissingError("no generation configuration saved")

        with open(self.path, encoding="utf-8") as handle:
            generation_config = GenerationConfig.model_validate(json.load(handle))

        with self._lock:
            self._cached = generation_config
        return generation_config.model_copy()

    def load_or_default(self) -> GenerationConfig:
        with self._lock:
            if self._cached is not None:
                return self._cached.model_copy()
        try:
            return self.load()
        except ConfigMissingError:
            return self.default()
