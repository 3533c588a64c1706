"""Provider adapter implementations.

Importing this package registers every adapter with the global
``provider_registry``.
"""

from huiben.core.adapters.banana_pro import BananaProAdapter
from huiben.core.adapters.seedream import SeedreamAdapter

__all__ = ["BananaProAdapter", "SeedreamAdapter"]
