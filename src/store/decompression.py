"""Bounded decompression of shard data regions.

This module maps manifest codec names onto decoders and streams their
output in fixed-size reads so oversized payloads fail before allocation.
"""

from __future__ import annotations

from typing import BinaryIO

import zstandard

from core.constants import DECOMPRESS_READ_SIZE, ZSTD_CODEC_NAMES
from core.errors import CorruptShardError, ResourceLimitError, UnsupportedCompressionError


def normalize_codec(codec: str | None) -> str | None:
    """Return the canonical codec name, or ``None`` for uncompressed data.

    Raises:
        UnsupportedCompressionError: If the codec name is not recognized.
    """
    if codec is None:
        return None
    normalized = codec.strip().lower()
    if not normalized or normalized == "none":
        return None
    if normalized in ZSTD_CODEC_NAMES:
        return "zstd"
    raise UnsupportedCompressionError(
        f"Unsupported compression codec '{codec}'. "
        f"Supported codecs: {', '.join(ZSTD_CODEC_NAMES)}."
    )


def decompress_stream(source: BinaryIO, codec: str, max_bytes: int, label: str) -> bytes:
    """Decompress ``source`` fully while enforcing a size ceiling.

    Args:
        source: Readable binary stream positioned at compressed data.
        codec: Canonical codec name from ``normalize_codec``.
        max_bytes: Largest accepted decompressed size.
        label: Path or name used in error messages.

    Returns:
        Decompressed bytes.

    Raises:
        ResourceLimitError: If output would exceed ``max_bytes``.
        CorruptShardError: If the compressed stream is invalid.
    """
    if codec != "zstd":
        raise UnsupportedCompressionError(f"Unsupported compression codec '{codec}'.")
    output = bytearray()
    decompressor = zstandard.ZstdDecompressor()
    try:
        with decompressor.stream_reader(source, read_across_frames=True) as reader:
            while True:
                chunk = reader.read(DECOMPRESS_READ_SIZE)
                if not chunk:
                    break
                if len(output) + len(chunk) > max_bytes:
                    raise ResourceLimitError(
                        f"Decompressed size of {label} exceeds the {max_bytes}-byte ceiling. "
                        "Raise SHARDLENS_MAX_DECOMPRESSED_BYTES to open it."
                    )
                output.extend(chunk)
    except zstandard.ZstdError as error:
        raise CorruptShardError(f"Failed to decompress {label}: {error}.") from error
    return bytes(output)
