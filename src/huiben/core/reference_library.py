"""Reference image library built on the binding and tag stores.

The library owns the reference image directory.  Uploaded images are decoded
from base64 (optionally wrapped in a ``data:`` URI), written as
``<character>_<epoch-millis>.png`` and bound to the character.  Deleting a
reference removes the file, the binding and the character's tags.

Listing helpers return plain dictionaries combining the binding record with
its tags, which is the shape served by the HTTP API.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import time
from pathlib import Path

from .binding_store import Binding, BindingStore, TagStore
from .errors import BindingError
from .models import DEFAULT_IMAGE_TYPE

logger = logging.getLogger(__name__)

# Same grammar as an ``@name`` marker; the name becomes part of a file name.
CHARACTER_NAME = re.compile(r"\w+")


def decode_image_data(image_data: str) -> bytes:
    """Decode raw base64 or a ``data:<mime>;base64,<payload>`` URI.

    Raises:
        BindingError: If the data is not valid base64
    """
    payload = image_data
    if "," in image_data:
        parts = image_data.split(",")
        if len(parts) != 2:
            raise BindingError("invalid image data format")
        payload = parts[1]

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BindingError(f"image data is not valid base64: {e}") from e


class ReferenceLibrary:
    """Reference image storage and queries.

    Attributes
    ----------
    bindings : BindingStore
        Character bindings
    tags : TagStore
        Character tags
    images_dir : Path
        Directory where uploaded reference images are written
    """

    def __init__(self, bindings: BindingStore, tags: TagStore, images_dir: Path) -> None:
        self.bindings = bindings
        self.tags = tags
        self.images_dir = Path(images_dir)
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def save_reference_image(
        self, character_name: str, image_data: str, image_type: str = DEFAULT_IMAGE_TYPE
    ) -> Binding:
        """Store an uploaded image and bind it to the character.

        Args:
            character_name: Character to bind
            image_data: Base64 image bytes, optionally as a data URI
            image_type: Reference category (e.g. 人物 or 场景)

        Returns:
            The new binding

        Raises:
            BindingError: If the name is empty, is not a valid character name
                (word characters only) or the image data is invalid
        """
        if not character_name:
            raise BindingError("character name cannot be empty")
        if not CHARACTER_NAME.fullmatch(character_name):
            raise BindingError(f"invalid character name: {character_name!r}")

        image_bytes = decode_image_data(image_data)
        file_path = self.images_dir / f"{character_name}_{int(time.time() * 1000)}.png"
        file_path.write_bytes(image_bytes)
        logger.info("Saved reference image for %r to %s", character_name, file_path)

        return self.bindings.bind(character_name, str(file_path), image_type)

    def delete_reference_image(self, character_name: str) -> bool:
        """Delete a character's reference image, binding and tags."""
        binding = self.bindings.get(character_name)
        if binding is not None and binding.reference_image_path:
            path = Path(binding.reference_image_path)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove reference image %s: %s", path, e)

        self.tags.delete(character_name)
        return self.bindings.delete(character_name)

    def _entry(self, binding: Binding) -> dict:
        entry = binding.model_dump()
        entry["tags"] = self.tags.get(binding.character_name)
        return entry

    def query(
        self,
        image_type: str | None = None,
        search: str | None = None,
        tags: list[str] | None = None,
    ) -> list[dict]:
        """List reference images matching every given filter.

        Args:
            image_type: Keep only this reference category
            search: Case-insensitive substring of the name or of any tag
            tags: Keep only characters carrying all of these tags

        Returns:
            Binding dictionaries with a ``tags`` list, sorted by name
        """
        wanted_tags = [t.strip() for t in tags or [] if t.strip()]
        needle = (search or "").strip().lower()
        results: list[dict] = []

        for binding in sorted(self.bindings.list(), key=lambda b: b.character_name):
            entry = self._entry(binding)
            if image_type and binding.image_type != image_type:
                continue
            if wanted_tags and not all(t in entry["tags"] for t in wanted_tags):
                continue
            if needle and not (
                needle in binding.character_name.lower()
                or any(needle in t.lower() for t in entry["tags"])
            ):
                continue
            results.append(entry)

        return results

    def search(self, keyword: str) -> list[dict]:
        return self.query(search=keyword)

    def by_type(self, image_type: str) -> list[dict]:
        return self.query(image_type=image_type)
