"""Bounded previews of arbitrary field payloads.

This module classifies payloads as text or binary and renders a
truncated text body and hex snippet. It has no failure path: any byte
string yields a preview, falling back to a binary classification.
"""

from __future__ import annotations

from core.constants import (
    CLASSIFY_SAMPLE_BYTES,
    HEX_SNIPPET_BYTES,
    NON_PRINTABLE_RATIO_THRESHOLD,
    PREVIEW_TEXT_MAX_CHARS,
    TRUNCATION_MARKER,
)
from core.format_labels import FormatLabel
from core.types import FieldPreview
from preview.extension_guess import guess_extension

_TEXT_CONTROL_BYTES = frozenset(b"\t\n\r\x0b\x0c")
_UTF8_MAX_SEQUENCE = 4


def preview(data: bytes, format_hint: FormatLabel | None = None) -> FieldPreview:
    """Build a bounded preview of one field payload.

    Args:
        data: Full field bytes.
        format_hint: Declared format label for the field, if known.

    Returns:
        Preview with text or hex rendering and a guessed extension.
    """
    binary = is_binary(data)
    return FieldPreview(
        preview_text=None if binary else render_text(data),
        hex_snippet=render_hex(data),
        guessed_extension=guess_extension(format_hint, data),
        is_binary=binary,
        byte_size=len(data),
    )


def is_binary(data: bytes) -> bool:
    """Classify a payload by its leading sample.

    Binary when the sample has a NUL byte, too many control bytes, or
    is not valid UTF-8 (a sequence cut by the sample edge is tolerated).
    """
    sample = data[:CLASSIFY_SAMPLE_BYTES]
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    non_printable = sum(
        1 for byte in sample if (byte < 0x20 and byte not in _TEXT_CONTROL_BYTES) or byte == 0x7F
    )
    if non_printable / len(sample) > NON_PRINTABLE_RATIO_THRESHOLD:
        return True
    return not _is_utf8_sample(sample, truncated=len(data) > len(sample))


def render_text(data: bytes) -> str:
    """Decode with replacement and cap the character count."""
    text = data.decode("utf-8", errors="replace")
    if len(text) > PREVIEW_TEXT_MAX_CHARS:
        return text[:PREVIEW_TEXT_MAX_CHARS] + TRUNCATION_MARKER
    return text


def render_hex(data: bytes) -> str:
    """Render leading bytes as space-separated uppercase hex pairs."""
    snippet = " ".join(f"{byte:02X}" for byte in data[:HEX_SNIPPET_BYTES])
    if len(data) > HEX_SNIPPET_BYTES:
        return f"{snippet} {TRUNCATION_MARKER}"
    return snippet


def _is_utf8_sample(sample: bytes, truncated: bool) -> bool:
    try:
        sample.decode("utf-8")
    except UnicodeDecodeError as error:
        cut_at_edge = (
            truncated
            and error.reason == "unexpected end of data"
            and error.start >= len(sample) - (_UTF8_MAX_SEQUENCE - 1)
        )
        return cut_at_edge
    return True
