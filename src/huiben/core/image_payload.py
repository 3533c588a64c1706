"""Reference image preparation for inlining into provider requests.

Providers receive reference images inline as base64.  Large files make
request bodies huge, so files above a byte threshold are decoded, downscaled
and re-encoded as JPEG before encoding.

Outcomes
--------
Every call reports which path was taken:

=============  =========================================================
Outcome        Meaning
=============  =========================================================
PASSTHROUGH    File is at or below the threshold; bytes encoded as-is
RECOMPRESSED   File was decoded, downscaled if needed and re-encoded JPEG
DEGRADED       File was above the threshold but could not be decoded or
               re-encoded; the original bytes were encoded unmodified
SKIPPED        File is missing or unreadable; nothing to inline
=============  =========================================================

A decode failure never fails the generation request; it only degrades the
payload to the raw bytes.
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class PrepareOutcome(str, Enum):
    PASSTHROUGH = "passthrough"
    RECOMPRESSED = "recompressed"
    DEGRADED = "degraded"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PreparedImage:
    """Result of preparing one reference image."""

    path: str
    outcome: PrepareOutcome
    data: str | None = None
    mime_type: str = "image/png"

    @property
    def data_uri(self) -> str | None:
        if self.data is None:
            return None
        return f"data:{self.mime_type};base64,{self.data}"


def _sniff_mime(data: bytes) -> str:
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"RIFF") and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return "image/png"


class ImagePayloadAdapter:
    """Turn reference image files into transport-ready base64 strings.

    Attributes
    ----------
    max_bytes : int
        Files above this size are recompressed
    max_dimension : int
        Longest side after downscaling
    jpeg_quality : int
        Quality used for the JPEG re-encode
    """

    def __init__(
        self, max_bytes: int = 1024 * 1024, max_dimension: int = 1024, jpeg_quality: int = 80
    ) -> None:
        self.max_bytes = max_bytes
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality

    def _recompress(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            # thumbnail() keeps the aspect ratio and never enlarges.
            if img.width > self.max_dimension or img.height > self.max_dimension:
                img.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")

            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=self.jpeg_quality)
            return buffer.getvalue()

    def prepare_reference(self, path: str | Path) -> PreparedImage:
        """Prepare one reference image and report the path taken.

        Args:
            path: Location of the reference image

        Returns:
            PreparedImage carrying the outcome and, unless skipped, the
            base64 payload
        """
        path_str = str(path)

        try:
            data = Path(path).read_bytes()
        except OSError as e:
            logger.warning("Skipping reference image %s: %s", path_str, e)
            return PreparedImage(path=path_str, outcome=PrepareOutcome.SKIPPED)

        if len(data) <= self.max_bytes:
            return PreparedImage(
                path=path_str,
                outcome=PrepareOutcome.PASSTHROUGH,
                data=base64.b64encode(data).decode("ascii"),
                mime_type=_sniff_mime(data),
            )

        try:
            compressed = self._recompress(data)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(
                "Could not recompress %s (%d bytes), sending original bytes: %s",
                path_str,
                len(data),
                e,
            )
            return PreparedImage(
                path=path_str,
                outcome=PrepareOutcome.DEGRADED,
                data=base64.b64encode(data).decode("ascii"),
                mime_type=_sniff_mime(data),
            )

        logger.info(
            "Recompressed reference image %s from %d to %d bytes",
            path_str,
            len(data),
            len(compressed),
        )
        return PreparedImage(
            path=path_str,
            outcome=PrepareOutcome.RECOMPRESSED,
            data=base64.b64encode(compressed).decode("ascii"),
            mime_type="image/jpeg",
        )

    def prepare(self, path: str | Path) -> str | None:
        """Return the base64 payload for ``path``, or None when skipped."""
        return self.prepare_reference(path).data
