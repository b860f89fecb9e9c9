"""Typed field format labels.

This module turns free-form serializer names from manifests into a
closed enumeration so preview logic never compares raw strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FormatKind(Enum):
    """Known field serializer families."""

    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    BYTES = "bytes"
    JPEG = "jpeg"
    PNG = "png"
    PIL = "pil"
    TIFF = "tiff"
    AUDIO = "audio"
    WAV = "wav"
    MP3 = "mp3"
    FLAC = "flac"
    TENSOR = "tensor"
    NUMPY = "numpy"
    PICKLE = "pickle"
    JSON = "json"
    UNKNOWN = "unknown"


_KIND_BY_NAME: dict[str, FormatKind] = {
    "str": FormatKind.TEXT,
    "string": FormatKind.TEXT,
    "text": FormatKind.TEXT,
    "int": FormatKind.INTEGER,
    "float": FormatKind.FLOAT,
    "bool": FormatKind.BOOLEAN,
    "bytes": FormatKind.BYTES,
    "bin": FormatKind.BYTES,
    "jpeg": FormatKind.JPEG,
    "jpg": FormatKind.JPEG,
    "pil": FormatKind.PIL,
    "png": FormatKind.PNG,
    "tiff": FormatKind.TIFF,
    "audio": FormatKind.AUDIO,
    "wav": FormatKind.WAV,
    "mp3": FormatKind.MP3,
    "flac": FormatKind.FLAC,
    "tensor": FormatKind.TENSOR,
    "no_header_tensor": FormatKind.TENSOR,
    "numpy": FormatKind.NUMPY,
    "no_header_numpy": FormatKind.NUMPY,
    "pickle": FormatKind.PICKLE,
    "json": FormatKind.JSON,
}


@dataclass(frozen=True)
class FormatLabel:
    """One declared field format.

    Attributes:
        kind: Parsed serializer family, ``UNKNOWN`` when unrecognized.
        raw: Original label string from the manifest.
    """

    kind: FormatKind
    raw: str

    @property
    def is_unknown(self) -> bool:
        """Return whether the label did not match a known family."""
        return self.kind is FormatKind.UNKNOWN


UNKNOWN_FORMAT = FormatLabel(kind=FormatKind.UNKNOWN, raw="")


def parse_format_label(raw: str) -> FormatLabel:
    """Parse one manifest format label.

    Labels such as ``"jpeg"`` map directly; ``"tensor:float32"`` style
    labels are matched on the part before the colon; labels with an
    audio container name embedded (``"audio/flac"``) resolve to it.

    Args:
        raw: Label string as written in the manifest.

    Returns:
        Typed format label retaining the original string.
    """
    normalized = raw.strip().lower()
    kind = _KIND_BY_NAME.get(normalized)
    if kind is None and ":" in normalized:
        kind = _KIND_BY_NAME.get(normalized.split(":", 1)[0].strip())
    if kind is None:
        for container in ("wav", "mp3", "flac"):
            if container in normalized:
                kind = _KIND_BY_NAME[container]
                break
    return FormatLabel(kind=kind or FormatKind.UNKNOWN, raw=raw)
