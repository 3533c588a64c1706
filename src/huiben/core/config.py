"""Configuration management for Huiben Studio.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the HUIBEN_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (HUIBEN_* prefix)
2. .env file in the project root
3. Default values defined in HuibenConfig

Example .env file:
    HUIBEN_DATA_DIR=/var/lib/huiben
    HUIBEN_SERVER_PORT=8765
    HUIBEN_SEEDREAM_BASE_URL=https://eggfans.com
    HUIBEN_CONNECTIVITY_TIMEOUT=5

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Application code that needs a different configuration (tests, embedding)
constructs its own ``HuibenConfig`` and passes it explicitly.

Usage Example
-------------
    from huiben.core.config import config

    print(config.bindings_path)
    print(config.seedream_model)

Files Under data_dir
--------------------
- ``character_bindings.json``: character name -> binding record
- ``character_tags.json``: character name -> list of tags
- ``api_config.json``: provider credentials, AES-256-GCM encrypted
- ``generation_config.json``: generation preferences, plaintext JSON
- ``key.bin``: the 32-byte key protecting ``api_config.json``

Reference images uploaded through the API are written to
``reference_images_dir``.

Inline Image Limits
-------------------
Reference images larger than ``inline_image_max_bytes`` are decoded,
downscaled so that neither side exceeds ``inline_image_max_dimension`` and
re-encoded as JPEG at ``inline_image_jpeg_quality`` before being inlined into
a provider request.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HuibenConfig(BaseSettings):
    """Main configuration for Huiben Studio.

    Values are loaded from environment variables with the HUIBEN_ prefix,
    with fallback to defaults defined here. Directory fields are created on
    initialization if they don't exist.

    Attributes
    ----------
    Storage:
        data_dir : Path
            Directory holding bindings, tags, config files and the key file
        reference_images_dir : Path
            Directory for uploaded character reference images

    Server:
        server_host : str
            Bind address for the HTTP API
        server_port : int
            Port for the HTTP API (1024-65535)

    Providers:
        seedream_base_url : str
            Default base URL offered for the Seedream provider
        banana_pro_base_url : str
            Default base URL offered for the Banana Pro provider
        seedream_model : str
            Model name sent in Seedream request bodies
        banana_pro_model : str
            Model name used in the Banana Pro endpoint path

    Inline images:
        inline_image_max_bytes : int
            Files above this size are recompressed before inlining
        inline_image_max_dimension : int
            Longest side allowed after recompression
        inline_image_jpeg_quality : int
            JPEG quality used for recompression

    Timeouts:
        connectivity_timeout : float
            Timeout in seconds for connectivity checks
        generation_timeout : float | None
            Timeout in seconds for generation calls (None = no deadline)

    Examples
    --------
        >>> custom = HuibenConfig(data_dir="/tmp/huiben", server_port=9000)
        >>> custom.api_config_path
        PosixPath('/tmp/huiben/api_config.json')
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HUIBEN_",
        case_sensitive=False,
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for bindings, tags, config files and the key file",
    )
    reference_images_dir: Path = Field(
        default=Path("data/reference_images"),
        description="Directory for uploaded character reference images",
    )

    # Server settings
    server_host: str = Field(
        default="127.0.0.1",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8765,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level used by the console entry point",
    )

    # Provider defaults
    seedream_base_url: str = Field(
        default="https://eggfans.com",
        description="Default base URL for the Seedream provider",
    )
    banana_pro_base_url: str = Field(
        default="https://api.zhongzhuan.chat",
        description="Default base URL for the Banana Pro provider",
    )
    seedream_model: str = Field(
        default="doubao-seedream-4-0-250828",
        description="Model name sent in Seedream request bodies",
    )
    banana_pro_model: str = Field(
        default="gemini-3.1-flash-image-preview",
        description="Model name used in the Banana Pro generateContent path",
    )

    # Inline image preparation
    inline_image_max_bytes: int = Field(
        default=1024 * 1024,
        description="Reference images above this size are recompressed",
        ge=1,
    )
    inline_image_max_dimension: int = Field(
        default=1024,
        description="Longest side of a recompressed reference image",
        ge=64,
    )
    inline_image_jpeg_quality: int = Field(
        default=80,
        description="JPEG quality used when recompressing reference images",
        ge=1,
        le=95,
    )

    # Timeouts
    connectivity_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for connectivity checks",
        gt=0,
    )
    generation_timeout: float | None = Field(
        default=None,
        description="Timeout in seconds for generation calls (None disables the deadline)",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.reference_images_dir.mkdir(parents=True, exist_ok=True)

    @property
    def bindings_path(self) -> Path:
        """JSON file holding character bindings."""
        return self.data_dir / "character_bindings.json"

    @property
    def tags_path(self) -> Path:
        """JSON file holding character tags."""
        return self.data_dir / "character_tags.json"

    @property
    def api_config_path(self) -> Path:
        """Encrypted provider credential file."""
        return self.data_dir / "api_config.json"

    @property
    def generation_config_path(self) -> Path:
        """Plaintext generation preference file."""
        return self.data_dir / "generation_config.json"

    @property
    def key_path(self) -> Path:
        """Key file protecting the provider credentials."""
        return self.data_dir / "key.bin"


# Global configuration instance
config = HuibenConfig()
