"""Value types flowing through the prompt and generation pipeline.

All types here are created per call and never shared between requests.  The
``to_dict()`` helpers produce the JSON shape returned by the HTTP layer.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .errors import UnsupportedProviderError

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_TYPE = "人物"


class SegmentKind(str, Enum):
    """Category assigned to one clause of a cleaned prompt."""

    SCENE = "scene"
    ACTION = "action"
    CHARACTER = "character"
    BACKGROUND = "background"
    TIME = "time"
    WEATHER = "weather"
    STYLE = "style"
    OTHER = "other"


class Provider(str, Enum):
    """Supported image-generation backends."""

    SEEDREAM = "seedream"
    BANANA_PRO = "banana_pro"

    @classmethod
    def parse(cls, name: str) -> Provider:
        """Map a provider name onto the closed set of providers.

        Args:
            name: Provider name as supplied by the caller

        Returns:
            The matching Provider member

        Raises:
            UnsupportedProviderError: If the name is not a supported provider
        """
        try:
            return cls(name)
        except ValueError as e:
            supported = ", ".join(p.value for p in cls)
            raise UnsupportedProviderError(
                f"unknown model '{name}' (supported: {supported})"
            ) from e


class TaskStatus(str, Enum):
    """Lifecycle states of a generation task."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass
class PromptSegment:
    """One classified clause of a cleaned prompt.

    Offsets index into the cleaned prompt (character markers removed).
    """

    kind: SegmentKind
    text: str
    start_offset: int
    end_offset: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "content": self.text,
            "start_index": self.start_offset,
            "end_index": self.end_offset,
        }


@dataclass
class CharacterReference:
    """An ``@name`` marker found in a raw prompt."""

    name: str
    bound_reference_image: str | None = None
    bound: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "reference_image": self.bound_reference_image,
            "bound": self.bound,
        }


@dataclass
class ParsedPrompt:
    """Result of compiling a raw prompt."""

    original: str
    segments: list[PromptSegment] = field(default_factory=list)
    characters: list[CharacterReference] = field(default_factory=list)

    @property
    def character_names(self) -> list[str]:
        return [c.name for c in self.characters]

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "segments": [s.to_dict() for s in self.segments],
            "characters": [c.to_dict() for c in self.characters],
        }


@dataclass
class CharacterBindingInfo:
    """A character joined against the binding store, ready for generation."""

    character_name: str
    reference_image_path: str | None = None
    image_type: str = DEFAULT_IMAGE_TYPE

    @property
    def has_reference(self) -> bool:
        return bool(self.reference_image_path)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GenerationRequest:
    """Provider-agnostic generation request.

    ``provider`` stays a plain string so that unknown providers are rejected
    by the orchestrator and reported in the result rather than at
    construction time.  ``inline_images`` entries are http(s) URLs, data URIs
    or bare base64 image bytes.
    """

    provider: str
    prompt: str
    character_bindings: list[CharacterBindingInfo] = field(default_factory=list)
    width: int = 1024
    height: int = 1024
    count: int = 1
    quality: str = "standard"
    size: str | None = None
    sequential_mode: str | None = None
    response_format: str | None = None
    watermark: bool | None = None
    inline_images: list[str] | None = None


@dataclass
class GenerationTask:
    """Short-lived progress record for one in-flight generation call."""

    id: str
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
        }


@dataclass
class GenerationResult:
    """Normalized outcome of a generation call."""

    success: bool
    task_id: str
    images: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "images": list(self.images),
            "error": self.error,
            "task_id": self.task_id,
        }
