"""Core prompt compilation and generation dispatch pipeline.

This package provides the components behind Huiben Studio:

- **Prompt compiler**: splits a raw prompt into classified segments and
  extracts ``@character`` references (prompt_parser.py, keywords.py)
- **Binding stores**: JSON-backed character bindings and tags plus the
  binding resolver (binding_store.py, reference_library.py)
- **Secret store**: AES-256-GCM protected provider credentials and plaintext
  generation preferences (secret_store.py)
- **Image payloads**: reference image inlining with recompression
  (image_payload.py)
- **Provider adapters**: one adapter per image-generation backend, found
  through ``provider_registry`` (provider_adapters.py, adapters/)
- **Orchestrator**: task tracking and single-call dispatch (generator.py,
  task_table.py)
- **HuibenConfig**: configuration using Pydantic Settings (config.py)

Usage Example
-------------
    from huiben.core import compile_prompt

    parsed = compile_prompt("在阳光明媚的森林里@小明 正在愉快地跑步")
    print([s.kind for s in parsed.segments], parsed.character_names)
"""

# Import adapters to ensure they're registered
from huiben.core.adapters import BananaProAdapter, SeedreamAdapter  # noqa: F401
from huiben.core.config import HuibenConfig, config
from huiben.core.generator import GenerationOrchestrator
from huiben.core.prompt_parser import compile_prompt, extract_characters
from huiben.core.provider_adapters import ProviderAdapterBase, provider_registry

__all__ = [
    "GenerationOrchestrator",
    "HuibenConfig",
    "ProviderAdapterBase",
    "compile_prompt",
    "config",
    "extract_characters",
    "provider_registry",
]
