"""Little-endian offset table decoding.

This module validates the offset arrays that delimit records inside a
shard and fields inside a record. Both scopes share one set of rules.
"""

from __future__ import annotations

import struct

from core.constants import U32_LE_FORMAT, U32_SIZE
from core.errors import CorruptShardError


def read_u32(buffer: bytes, position: int) -> int:
    """Read one little-endian u32 at ``position``.

    Raises:
        CorruptShardError: If fewer than four bytes remain.
    """
    if position < 0 or position + U32_SIZE > len(buffer):
        raise CorruptShardError(
            f"Truncated u32 at byte {position}: buffer holds {len(buffer)} bytes."
        )
    return struct.unpack_from(U32_LE_FORMAT, buffer, position)[0]


def table_size(entry_count: int) -> int:
    """Return the byte size of an offset table delimiting ``entry_count`` regions."""
    return (entry_count + 1) * U32_SIZE


def decode_offsets(table: bytes, entry_count: int) -> tuple[int, ...]:
    """Decode ``entry_count + 1`` offsets from a raw table.

    Args:
        table: Raw table bytes.
        entry_count: Number of delimited regions.

    Returns:
        Decoded offsets.

    Raises:
        CorruptShardError: If the table length does not match.
    """
    expected = table_size(entry_count)
    if len(table) != expected:
        raise CorruptShardError(
            f"Offset table holds {len(table)} bytes, expected {expected} "
            f"for {entry_count} entries."
        )
    return struct.unpack(f"<{entry_count + 1}I", table)


def validate_offsets(offsets: tuple[int, ...], region_size: int, scope: str) -> None:
    """Check offset invariants against the region they index.

    Args:
        offsets: Decoded offsets, one more than the region count.
        region_size: Byte length of the indexed region.
        scope: Human-readable location used in error messages.

    Raises:
        CorruptShardError: If the first offset is not zero, offsets
            decrease, or the final offset differs from ``region_size``.
    """
    if not offsets or offsets[0] != 0:
        first = offsets[0] if offsets else None
        raise CorruptShardError(f"{scope}: first offset is {first}, expected 0.")
    for index in range(len(offsets) - 1):
        if offsets[index] > offsets[index + 1]:
            raise CorruptShardError(
                f"{scope}: offset {index + 1} ({offsets[index + 1]}) is below "
                f"offset {index} ({offsets[index]})."
            )
    if offsets[-1] != region_size:
        raise CorruptShardError(
            f"{scope}: final offset {offsets[-1]} does not match region size {region_size}."
        )
