"""File extension guessing for field payloads.

This module maps declared format labels to canonical extensions and
falls back to magic-byte sniffing when the label does not decide.
"""

from __future__ import annotations

from core.constants import FALLBACK_EXTENSION, MAGIC_SAMPLE_BYTES
from core.format_labels import FormatKind, FormatLabel

_EXTENSION_BY_KIND: dict[FormatKind, str] = {
    FormatKind.TEXT: "txt",
    FormatKind.INTEGER: "txt",
    FormatKind.FLOAT: "txt",
    FormatKind.BOOLEAN: "txt",
    FormatKind.JPEG: "jpg",
    FormatKind.PNG: "png",
    FormatKind.PIL: "png",
    FormatKind.TIFF: "tiff",
    FormatKind.AUDIO: "wav",
    FormatKind.WAV: "wav",
    FormatKind.MP3: "mp3",
    FormatKind.FLAC: "flac",
    FormatKind.TENSOR: "pt",
    FormatKind.NUMPY: "npy",
    FormatKind.PICKLE: "pkl",
    FormatKind.JSON: "json",
}

# (offset, signature, extension); first match wins.
_SIGNATURES: tuple[tuple[int, bytes, str], ...] = (
    (0, b"\xff\xd8\xff", "jpg"),
    (0, b"\x89PNG\r\n\x1a\n", "png"),
    (0, b"GIF87a", "gif"),
    (0, b"GIF89a", "gif"),
    (0, b"II*\x00", "tiff"),
    (0, b"MM\x00*", "tiff"),
    (0, b"fLaC", "flac"),
    (0, b"OggS", "ogg"),
    (0, b"ID3", "mp3"),
    (0, b"%PDF-", "pdf"),
    (0, b"PK\x03\x04", "zip"),
    (0, b"\x1f\x8b", "gz"),
    (0, b"BZh", "bz2"),
    (0, b"\xfd7zXZ\x00", "xz"),
    (0, b"\x28\xb5\x2f\xfd", "zst"),
    (0, b"7z\xbc\xaf\x27\x1c", "7z"),
    (0, b"\x93NUMPY", "npy"),
    (0, b"BM", "bmp"),
)

_RIFF_FORMS = {b"WAVE": "wav", b"WEBP": "webp", b"AVI ": "avi"}


def detect_magic_extension(data: bytes) -> str | None:
    """Sniff a file extension from leading magic bytes.

    Args:
        data: Payload bytes; only the leading sample is inspected.

    Returns:
        Extension without the dot, or ``None`` when nothing matches.
    """
    head = data[:MAGIC_SAMPLE_BYTES]
    if len(head) >= 12 and head[:4] == b"RIFF":
        form = _RIFF_FORMS.get(head[8:12])
        if form is not None:
            return form
    for offset, signature, extension in _SIGNATURES:
        if head[offset : offset + len(signature)] == signature:
            return extension
    if len(head) >= 2 and head[0] == 0xFF and (head[1] & 0xE0) == 0xE0:
        return "mp3"
    return None


def guess_extension(label: FormatLabel | None, data: bytes) -> str | None:
    """Guess a file extension from the declared label and payload bytes.

    Known labels decide through a fixed table; raw ``bytes`` labels
    sniff magic bytes and fall back to ``bin``. Unrecognized labels may
    still carry an extension as ``kind:ext`` or a dotted suffix.
    Otherwise magic bytes decide, then non-empty UTF-8 text maps to ``txt``.

    Args:
        label: Declared format label, if any.
        data: Payload bytes.

    Returns:
        Extension without the dot, or ``None`` when undecided.
    """
    if label is not None:
        if label.kind is FormatKind.BYTES:
            return detect_magic_extension(data) or FALLBACK_EXTENSION
        extension = _EXTENSION_BY_KIND.get(label.kind)
        if extension is not None:
            return extension
        extension = _extension_from_raw_label(label.raw)
        if extension is not None:
            return extension
    magic = detect_magic_extension(data)
    if magic is not None:
        return magic
    if _is_nonempty_text(data):
        return "txt"
    return None


def _extension_from_raw_label(raw: str) -> str | None:
    """Pull an explicit extension out of an unrecognized label."""
    label = raw.strip()
    if ":" in label:
        subtype = label.split(":", 1)[1].strip().lstrip(".")
        if subtype.isalnum():
            return subtype.lower()
    if "." in label:
        suffix = label.rsplit(".", 1)[1].strip()
        if suffix.isalnum():
            return suffix.lower()
    return None


def _is_nonempty_text(data: bytes) -> bool:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return bool(text.strip()) and "\x00" not in text
