"""Character binding and tag storage, and the binding resolver.

Bindings associate a character name with a reference image on disk.  They are
persisted as a single JSON object keyed by character name::

    {
      "小明": {
        "character_name": "小明",
        "reference_image_path": "/data/reference_images/小明_1718000000000.png",
        "image_type": "人物",
        "created_at": "1718000000",
        "bound": true
      }
    }

Tags are persisted in a sibling JSON object mapping character name to a list
of tag strings.

Both stores keep the whole map in memory, guarded by a lock that is held only
while the map is read, mutated or written back.  Concurrent writers to the
same name follow last-writer-wins.

The :class:`BindingResolver` joins character references from a compiled
prompt against the binding store.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import replace
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .errors import BindingError
from .models import DEFAULT_IMAGE_TYPE, CharacterBindingInfo, CharacterReference, ParsedPrompt

logger = logging.getLogger(__name__)


def _load_json_object(path: Path) -> dict:
    """Load a JSON object from disk, returning an empty dict when unusable.

    A missing file is the normal first-run state.  A corrupt file is logged
    and treated as empty so the application can still start; the next write
    replaces it.
    """
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable store file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring store file %s: expected a JSON object", path)
        return {}
    return data


def _save_json_object(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(data, handle, ensure_ascii=False, indent=2)


class Binding(BaseModel):
    """Stored association between a character and a reference image."""

    model_config = ConfigDict(populate_by_name=True)

    character_name: str = Field(..., alias="characterName")
    reference_image_path: str | None = Field(default=None, alias="referenceImagePath")
    image_type: str = Field(default=DEFAULT_IMAGE_TYPE, alias="imageType")
    created_at: str = Field(default_factory=lambda: str(int(time.time())), alias="createdAt")
    bound: bool = True


class BindingStore:
    """JSON-file backed map of character name to :class:`Binding`.

    Attributes
    ----------
    path : Path
        Location of the JSON file
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._bindings: dict[str, Binding] = {}

        for name, raw in _load_json_object(self.path).items():
            try:
                self._bindings[name] = Binding.model_validate(raw)
            except ValueError as e:
                logger.warning("Skipping invalid binding for %r: %s", name, e)

        logger.info("Loaded %d character bindings from %s", len(self._bindings), self.path)

    def _persist(self) -> None:
        # Caller holds the lock.
        _save_json_object(
            self.path, {name: b.model_dump() for name, b in self._bindings.items()}
        )

    def get(self, name: str) -> Binding | None:
        with self._lock:
            binding = self._bindings.get(name)
            return binding.model_copy() if binding else None

    def put(self, name: str, binding: Binding) -> None:
        with self._lock:
            self._bindings[name] = binding.model_copy()
            self._persist()

    def delete(self, name: str) -> bool:
        """Remove a binding. Returns False when no binding existed."""
        with self._lock:
            if self._bindings.pop(name, None) is None:
                return False
            self._persist()
            return True

    def list(self) -> list[Binding]:
        with self._lock:
            return [b.model_copy() for b in self._bindings.values()]

    def bind(self, name: str, reference_image_path: str, image_type: str) -> Binding:
        """Bind a character to an existing image file.

        Raises:
            BindingError: If the name is empty or the file does not exist
        """
        if not name:
            raise BindingError("character name cannot be empty")
        if not reference_image_path or not Path(reference_image_path).exists():
            raise BindingError(f"reference image does not exist: {reference_image_path}")

        binding = Binding(
            character_name=name,
            reference_image_path=reference_image_path,
            image_type=image_type or DEFAULT_IMAGE_TYPE,
        )
        self.put(name, binding)
        logger.info("Bound character %r to %s", name, reference_image_path)
        return binding

    def unbind(self, name: str) -> bool:
        """Mark a binding unbound and drop its image path, keeping the record."""
        with self._lock:
            binding = self._bindings.get(name)
            if binding is None:
                return False
            binding.bound = False
            binding.reference_image_path = None
            self._persist()

        logger.info("Unbound character %r", name)
        return True


class TagStore:
    """JSON-file backed map of character name to a list of tags."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._tags: dict[str, list[str]] = {}

        for name, tags in _load_json_object(self.path).items():
            if isinstance(tags, list):
                self._tags[name] = [str(t) for t in tags]

    def _persist(self) -> None:
        _save_json_object(self.path, self._tags)

    def get(self, name: str) -> list[str]:
        with self._lock:
            return list(self._tags.get(name, []))

    def add(self, name: str, tag: str) -> list[str]:
        """Attach a tag to a character. Adding an existing tag is a no-op."""
        tag = tag.strip()
        if not tag:
            raise BindingError("tag cannot be empty")
        with self._lock:
            tags = self._tags.setdefault(name, [])
            if tag not in tags:
                tags.append(tag)
                self._persist()
            return list(tags)

    def remove(self, name: str, tag: str) -> list[str]:
        with self._lock:
            tags = self._tags.get(name)
            if tags and tag in tags:
                tags.remove(tag)
                if not tags:
                    del self._tags[name]
                self._persist()
            return list(self._tags.get(name, []))

    def delete(self, name: str) -> None:
        """Drop every tag of a character."""
        with self._lock:
            if self._tags.pop(name, None) is not None:
                self._persist()

    def list_all_distinct(self) -> list[str]:
        with self._lock:
            return sorted({tag for tags in self._tags.values() for tag in tags})


class BindingResolver:
    """Join character references against the binding store.

    Lookup failures in the store propagate to the caller; there are no
    partial results.
    """

    def __init__(self, store: BindingStore) -> None:
        self.store = store

    def resolve(self, characters: list[CharacterReference]) -> list[CharacterBindingInfo]:
        """Resolve each character to its reference image, if bound.

        Args:
            characters: Character references, typically from a compiled prompt

        Returns:
            One CharacterBindingInfo per character, in the same order.
            Unknown or unbound characters get ``reference_image_path=None``.
        """
        resolved: list[CharacterBindingInfo] = []

        for character in characters:
            binding = self.store.get(character.name)
            if binding is not None and binding.bound:
                resolved.append(
                    CharacterBindingInfo(
                        character_name=character.name,
                        reference_image_path=binding.reference_image_path,
                        image_type=binding.image_type,
                    )
                )
            else:
                resolved.append(CharacterBindingInfo(character_name=character.name))

        return resolved

    def resolve_names(self, names: list[str]) -> list[CharacterBindingInfo]:
        return self.resolve([CharacterReference(name=n) for n in names])

    def annotate(self, parsed: ParsedPrompt) -> ParsedPrompt:
        """Return a copy of ``parsed`` whose characters carry their binding state."""
        characters = [
            replace(
                reference,
                bound=info.has_reference,
                bound_reference_image=info.reference_image_path,
            )
            for reference, info in zip(parsed.characters, self.resolve(parsed.characters))
        ]
        return replace(parsed, characters=characters)
