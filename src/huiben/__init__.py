"""Huiben Studio - character-aware prompt compilation and image generation dispatch."""

__version__ = "0.1.0"

from huiben.core.config import HuibenConfig, config
from huiben.core.provider_adapters import ProviderAdapterBase, provider_registry

# Import adapters to ensure they're registered
from huiben.core.adapters import BananaProAdapter, SeedreamAdapter  # noqa: F401

__all__ = [
    "ProviderAdapterBase",
    "provider_registry",
    "HuibenConfig",
    "config",
    "SeedreamAdapter",
    "BananaProAdapter",
]
