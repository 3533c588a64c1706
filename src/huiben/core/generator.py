"""Generation orchestrator.

The orchestrator is the single entry point for generating images.  For each
call it creates a task, resolves credentials and the provider adapter,
inlines bound reference images, annotates the prompt with the bound
characters and calls the provider once.

Task Lifecycle
--------------
    pending (0%) -> processing (10%) -> processing (30%) -> completed (100%)
                                                        \\-> failed (0%)

The task is removed from the table as soon as it reaches a terminal state.

Failure Handling
----------------
``generate`` never raises.  Every error raised while preparing or calling the
provider is logged and returned as ``GenerationResult(success=False)`` with
the error's string form (``"<code>: <message>"``) in ``error``.

Usage Example
-------------
    >>> orchestrator = GenerationOrchestrator(config, api_configs, TaskTable(), payloads)
    >>> result = orchestrator.generate(
    ...     GenerationRequest(provider="seedream", prompt="在森林里 @小明 跑步")
    ... )
    >>> result.success
    True
"""

from __future__ import annotations

import logging

import httpx

from .config import HuibenConfig
from .errors import MissingCredentialError
from .image_payload import ImagePayloadAdapter
from .models import (
    CharacterBindingInfo,
    GenerationRequest,
    GenerationResult,
    GenerationTask,
    Provider,
    TaskStatus,
)
from .provider_adapters import ProviderRegistry, provider_registry
from .secret_store import ApiConfigStore, ProviderCredentials
from .task_table import TaskTable

logger = logging.getLogger(__name__)


def annotate_prompt(prompt: str, bindings: list[CharacterBindingInfo]) -> str:
    """Append ``" [<name>: <path>]"`` for each binding with a reference image."""
    annotated = prompt
    for binding in bindings:
        if binding.reference_image_path:
            annotated += f" [{binding.character_name}: {binding.reference_image_path}]"
    return annotated


class GenerationOrchestrator:
    """Run generation calls and track their progress.

    Attributes
    ----------
    config : HuibenConfig
        Application configuration (timeouts, model names)
    api_configs : ApiConfigStore
        Source of provider credentials
    tasks : TaskTable
        Live task table polled by callers
    payloads : ImagePayloadAdapter
        Turns bound reference images into inline payloads
    registry : ProviderRegistry
        Provider adapter lookup
    http_client : httpx.Client | None
        Shared client handed to adapters and used for connectivity checks;
        when None, a client is created per call
    """

    def __init__(
        self,
        config: HuibenConfig,
        api_configs: ApiConfigStore,
        tasks: TaskTable,
        payloads: ImagePayloadAdapter,
        registry: ProviderRegistry = provider_registry,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self.api_configs = api_configs
        self.tasks = tasks
        self.payloads = payloads
        self.registry = registry
        self.http_client = http_client

    def _inline_images(self, request: GenerationRequest) -> list[str] | None:
        images = list(request.inline_images or [])
        for binding in request.character_bindings:
            if not binding.reference_image_path:
                continue
            data_uri = self.payloads.prepare_reference(binding.reference_image_path).data_uri
            if data_uri is not None:
                images.append(data_uri)
        return images or None

    def _run(self, task_id: str, request: GenerationRequest) -> list[str]:
        self.tasks.update(task_id, TaskStatus.PROCESSING, 10, "Preparing request")
        api_config = self.api_configs.get()

        self.tasks.update(task_id, TaskStatus.PROCESSING, 30, "Calling provider")
        provider = Provider.parse(request.provider)
        credentials = api_config.credentials_for(provider)
        if not credentials.api_key.strip():
            raise MissingCredentialError(f"no API key configured for {provider.value}")

        inline_images = self._inline_images(request)
        prompt = annotate_prompt(request.prompt, request.character_bindings)

        adapter = self.registry.instantiate(
            provider, credentials, self.config, client=self.http_client
        )
        return adapter.generate(request, prompt, inline_images)

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """Run one generation call.

        Args:
            request: Provider-agnostic generation request

        Returns:
            GenerationResult; ``success`` is False and ``error`` is set when
            anything went wrong
        """
        task = self.tasks.create()
        logger.info("Starting generation task %s with provider %r", task.id, request.provider)

        try:
            images = self._run(task.id, request)
        except Exception as e:
            logger.error("Generation task %s failed: %s", task.id, e)
            self.tasks.update(task.id, TaskStatus.FAILED, 0, str(e))
            return GenerationResult(success=False, task_id=task.id, error=str(e))
        else:
            self.tasks.update(task.id, TaskStatus.COMPLETED, 100, "Generation complete")
            logger.info("Generation task %s produced %d images", task.id, len(images))
            return GenerationResult(success=True, task_id=task.id, images=images)
        finally:
            self.tasks.remove(task.id)

    def poll_task(self, task_id: str) -> GenerationTask:
        """Current progress of a live task.

        Raises:
            TaskNotFoundError: If the task is unknown or already finished
        """
        return self.tasks.get(task_id)

    def _connectivity_credentials(
        self, provider_name: str, base_url: str | None, api_key: str | None
    ) -> ProviderCredentials:
        if base_url is not None and api_key is not None:
            return ProviderCredentials(base_url=base_url, api_key=api_key)

        provider = Provider.parse(provider_name)
        credentials = self.api_configs.get().credentials_for(provider)
        if not credentials.api_key.strip():
            raise MissingCredentialError(f"no API key configured for {provider.value}")
        return credentials

    def test_connectivity(
        self, provider: str, base_url: str | None = None, api_key: str | None = None
    ) -> bool:
        """Request ``GET {base_url}/v1/models``.

        A 2xx or 401 response counts as reachable; any other status or a
        transport failure does not.

        Raises:
            ConfigMissingError: If stored credentials are needed but none exist
            UnsupportedProviderError: If ``provider`` is unknown
            MissingCredentialError: If the stored key is blank
        """
        credentials = self._connectivity_credentials(provider, base_url, api_key)
        url = f"{credentials.base_url.rstrip('/')}/v1/models"
        headers = {"Authorization": f"Bearer {credentials.api_key}"}
        timeout = self.config.connectivity_timeout

        try:
            if self.http_client is not None:
                response = self.http_client.get(url, headers=headers, timeout=timeout)
            else:
                with httpx.Client(timeout=timeout) as client:
                    response = client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Connectivity check to %s failed: %s", url, e)
            return False

        reachable = response.is_success or response.status_code == 401
        logger.info("Connectivity check to %s returned %s", url, response.status_code)
        return reachable
