"""Huiben Studio — FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
Routes are thin: they validate the body with a model from
:mod:`huiben.api.models` and delegate to the core services built at startup
and stored on ``app.state``:

- ``bindings`` / ``tags`` / ``library``: character bindings, tags and the
  reference image directory
- ``resolver``: joins prompt characters against the bindings
- ``api_configs`` / ``generation_configs``: provider credentials (encrypted)
  and generation preferences (plaintext)
- ``orchestrator``: runs generation calls and tracks their tasks

Errors from the core are :class:`~huiben.core.errors.HuibenError` subclasses
and are turned into JSON error responses by a single exception handler.

Endpoints
---------
========  ====================================  ==============================
Method    Path                                  Purpose
========  ====================================  ==============================
POST      ``/api/parse``                        Compile a prompt
POST      ``/api/extract-characters``           Character names only
GET       ``/api/bindings``                     All bindings
POST      ``/api/bindings/for-prompt``          Resolve names to bindings
POST      ``/api/save-image``                   Upload and bind an image
POST      ``/api/bind``                         Bind an existing file
POST      ``/api/unbind``                       Unbind a character
POST      ``/api/generate``                     Run one generation call
GET       ``/api/progress/{task_id}``           Poll a live task
GET       ``/api/image``                        Serve a stored image
POST      ``/api/config/save``                  Save provider credentials
GET       ``/api/config/load``                  Load provider credentials
GET       ``/api/config/default``               Default provider credentials
POST      ``/api/test-connection``              Check provider reachability
POST      ``/api/generation-config/save``       Save generation preferences
GET       ``/api/generation-config/load``       Load generation preferences
GET       ``/api/generation-config/default``    Default generation preferences
GET       ``/api/reference-images``             Query the reference library
POST      ``/api/reference-images/search``      Search by name or tag
POST      ``/api/reference-images/by-type``     Filter by reference category
POST      ``/api/reference-images/delete``      Delete image, binding and tags
GET       ``/api/reference-images/tags``        Distinct tags
POST      ``/api/reference-images/tags/add``    Tag a character
POST      ``/api/reference-images/tags/remove`` Untag a character
========  ====================================  ==============================

Usage
-----
CLI (installed entry point)::

    huiben

Direct invocation::

    python -m huiben.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from huiben import __version__
from huiben.api.models import (
    BindingsForPromptRequest,
    BindRequest,
    ByTypeRequest,
    CharacterRequest,
    ConnectionTestRequest,
    GenerateImageRequest,
    ParseRequest,
    SaveImageRequest,
    SearchRequest,
    TagRequest,
)
from huiben.core.binding_store import BindingResolver, BindingStore, TagStore
from huiben.core.config import HuibenConfig, config
from huiben.core.errors import (
    BindingError,
    ConfigMissingError,
    EmptyInputError,
    HuibenError,
    TaskNotFoundError,
)
from huiben.core.generator import GenerationOrchestrator
from huiben.core.image_payload import ImagePayloadAdapter
from huiben.core.prompt_parser import compile_prompt, extract_character_names
from huiben.core.reference_library import ReferenceLibrary
from huiben.core.secret_store import (
    ApiConfig,
    ApiConfigStore,
    GenerationConfig,
    GenerationConfigStore,
    SecretStore,
)
from huiben.core.task_table import TaskTable

logger = logging.getLogger(__name__)

# HTTP status for each core error; anything else is a 500.
ERROR_STATUS: dict[type[HuibenError], int] = {
    EmptyInputError: 400,
    BindingError: 400,
    TaskNotFoundError: 404,
    ConfigMissingError: 404,
}


def build_services(app: FastAPI, cfg: HuibenConfig) -> None:
    """Create the core services for ``cfg`` and store them on ``app.state``."""
    bindings = BindingStore(cfg.bindings_path)
    tags = TagStore(cfg.tags_path)

    app.state.config = cfg
    app.state.bindings = bindings
    app.state.tags = tags
    app.state.library = ReferenceLibrary(bindings, tags, cfg.reference_images_dir)
    app.state.resolver = BindingResolver(bindings)
    app.state.api_configs = ApiConfigStore(cfg.api_config_path, SecretStore(cfg.key_path), cfg)
    app.state.generation_configs = GenerationConfigStore(cfg.generation_config_path)
    app.state.orchestrator = GenerationOrchestrator(
        config=cfg,
        api_configs=app.state.api_configs,
        tasks=TaskTable(),
        payloads=ImagePayloadAdapter(
            max_bytes=cfg.inline_image_max_bytes,
            max_dimension=cfg.inline_image_max_dimension,
            jpeg_quality=cfg.inline_image_jpeg_quality,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the core services on startup.

    Services are created from the module-level :data:`config`, so tests can
    point the application at a temporary data directory by replacing it
    before the application starts.
    """
    build_services(app, config)
    logger.info("Huiben Studio services initialised (data dir: %s)", config.data_dir)

    yield


app = FastAPI(
    title="Huiben Studio",
    description="Character-aware prompt compilation and image generation dispatch.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so the frontend can be served from a different
# origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HuibenError)
async def huiben_error_handler(request: Request, exc: HuibenError) -> JSONResponse:
    status_code = next(
        (status for error, status in ERROR_STATUS.items() if isinstance(exc, error)), 500
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Prompt and binding routes.
# ---------------------------------------------------------------------------


@app.post("/api/parse")
async def parse_prompt(req: ParseRequest) -> dict:
    """Compile a prompt and mark which characters are bound.

    Raises:
        EmptyInputError: (400) if the prompt is empty.
    """
    parsed = compile_prompt(req.prompt)
    return app.state.resolver.annotate(parsed).to_dict()


@app.post("/api/extract-characters")
async def extract_characters(req: ParseRequest) -> list[str]:
    return extract_character_names(req.prompt)


@app.get("/api/bindings")
async def get_all_bindings() -> list[dict]:
    return [b.model_dump() for b in app.state.bindings.list()]


@app.post("/api/bindings/for-prompt")
async def get_bindings_for_prompt(req: BindingsForPromptRequest) -> list[dict]:
    """Resolve character names to their reference images.

    Unknown or unbound names are returned with ``reference_image_path`` null.
    """
    return [info.to_dict() for info in app.state.resolver.resolve_names(req.names())]


@app.post("/api/save-image")
async def save_reference_image(req: SaveImageRequest) -> dict:
    binding = app.state.library.save_reference_image(
        req.character_name, req.image_data, req.image_type
    )
    return binding.model_dump()


@app.post("/api/bind")
async def bind_character(req: BindRequest) -> dict:
    binding = app.state.bindings.bind(
        req.character_name, req.reference_image_path or "", req.image_type
    )
    return binding.model_dump()


@app.post("/api/unbind")
async def unbind_character(req: CharacterRequest) -> bool:
    return app.state.bindings.unbind(req.character_name)


# ---------------------------------------------------------------------------
# Generation routes.
# ---------------------------------------------------------------------------


@app.post("/api/generate")
def generate_image(req: GenerateImageRequest) -> dict:
    """Run one generation call.

    Declared as a plain function so FastAPI runs it in its worker thread
    pool; the provider call blocks for as long as the provider takes.

    Failures are reported in the body (``success`` false, ``error`` set),
    never as an HTTP error status.
    """
    result = app.state.orchestrator.generate(req.to_generation_request())
    return result.to_dict()


@app.get("/api/progress/{task_id}")
async def get_generation_progress(task_id: str) -> dict:
    """Return the progress of a live task.

    Raises:
        TaskNotFoundError: (404) if the task is unknown or already finished.
    """
    return app.state.orchestrator.poll_task(task_id).to_dict()


@app.get("/api/image")
async def get_image(path: str) -> FileResponse:
    """Serve a stored reference image by path.

    ``file:///`` prefixes produced by the frontend are stripped.  Only files
    inside the reference image directory are served.

    Raises:
        HTTPException: 404 if the file does not exist or lies outside the
            reference image directory.
    """
    images_dir = app.state.config.reference_images_dir.resolve()
    file_path = Path(path.removeprefix("file://")).resolve()
    if not file_path.is_relative_to(images_dir) or not file_path.is_file():
        logger.warning("Refusing to serve image path %s", path)
        raise HTTPException(status_code=404, detail="Image not found")
    return FileResponse(file_path)


# ---------------------------------------------------------------------------
# Configuration routes.
# ---------------------------------------------------------------------------


@app.post("/api/config/save")
async def save_api_config(api_config: ApiConfig) -> bool:
    app.state.api_configs.save(api_config)
    return True


@app.get("/api/config/load")
async def load_api_config() -> dict:
    """Return the stored provider credentials.

    Raises:
        ConfigMissingError: (404) if nothing has been saved yet.
    """
    return app.state.api_configs.load().model_dump(by_alias=True)


@app.get("/api/config/default")
async def get_default_api_config() -> dict:
    return app.state.api_configs.default().model_dump(by_alias=True)


@app.post("/api/test-connection")
def test_connection(req: ConnectionTestRequest) -> bool:
    """Check that a provider endpoint is reachable.

    Configuration problems (nothing stored, unknown provider, blank key) are
    reported as ``false`` like an unreachable endpoint.
    """
    try:
        return app.state.orchestrator.test_connectivity(req.model, req.base_url, req.api_key)
    except HuibenError as e:
        logger.warning("Connection test for %r not attempted: %s", req.model, e)
        return False


@app.post("/api/generation-config/save")
async def save_generation_config(generation_config: GenerationConfig) -> bool:
    app.state.generation_configs.save(generation_config)
    return True


@app.get("/api/generation-config/load")
async def load_generation_config() -> dict:
    """Return the stored generation preferences, or the defaults."""
    return app.state.generation_configs.load_or_default().model_dump()


@app.get("/api/generation-config/default")
async def get_default_generation_config() -> dict:
    return GenerationConfigStore.default().model_dump()


# ---------------------------------------------------------------------------
# Reference library routes.
# ---------------------------------------------------------------------------


@app.get("/api/reference-images")
async def get_reference_images(
    image_type: str | None = None,
    search: str | None = None,
    tags: str | None = None,
) -> list[dict]:
    """Query the reference library.

    Args:
        image_type: Keep only this reference category.
        search: Case-insensitive substring of the name or of any tag.
        tags: Comma-separated tags that must all be present.
    """
    tag_list = tags.split(",") if tags else None
    return app.state.library.query(image_type=image_type, search=search, tags=tag_list)


@app.post("/api/reference-images/search")
async def search_reference_images(req: SearchRequest) -> list[dict]:
    return app.state.library.search(req.keyword)


@app.post("/api/reference-images/by-type")
async def get_references_by_type(req: ByTypeRequest) -> list[dict]:
    return app.state.library.by_type(req.image_type)


@app.post("/api/reference-images/delete")
async def delete_reference_image(req: CharacterRequest) -> bool:
    return app.state.library.delete_reference_image(req.character_name)


@app.get("/api/reference-images/tags")
async def get_all_tags() -> list[str]:
    return app.state.tags.list_all_distinct()


@app.post("/api/reference-images/tags/add")
async def add_tag(req: TagRequest) -> list[str]:
    return app.state.tags.add(req.character_name, req.tag)


@app.post("/api/reference-images/tags/remove")
async def remove_tag(req: TagRequest) -> list[str]:
    return app.state.tags.remove(req.character_name, req.tag)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~huiben.core.config.config`
    (``HUIBEN_SERVER_HOST``, ``HUIBEN_SERVER_PORT``, ``HUIBEN_LOG_LEVEL``).

    This function is registered as the ``huiben`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "huiben.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
