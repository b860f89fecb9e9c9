"""Record and field extraction.

This module splits records into fields using the per-record field
sub-offset table. It performs pure offset arithmetic over slices
served by a ``ShardHandle`` and never touches shard files itself.
"""

from __future__ import annotations

from typing import Sequence

from core.constants import MAX_DISCOVERED_FIELD_COUNT, U32_SIZE
from core.errors import CorruptShardError, IndexOutOfRangeError
from core.format_labels import FormatLabel
from core.types import FieldMeta, RecordMeta
from store.offset_table import decode_offsets, read_u32, table_size, validate_offsets
from store.shard_reader import ShardHandle


def list_records(handle: ShardHandle, field_formats: Sequence[FormatLabel]) -> list[RecordMeta]:
    """Describe every record of an open shard.

    Args:
        handle: Open shard handle.
        field_formats: Declared field formats; their count drives layout.

    Returns:
        Record metadata in shard order.

    Raises:
        CorruptShardError: If a record's field sub-table is invalid.
    """
    field_count = len(field_formats)
    records: list[RecordMeta] = []
    for record_index in range(handle.record_count):
        total_bytes = handle.record_length(record_index)
        if field_count == 1:
            fields = (FieldMeta(field_index=0, byte_size=total_bytes),)
        else:
            head = handle.slice_record(record_index, limit=table_size(field_count))
            offsets = _field_offsets(head, total_bytes, field_count, handle, record_index)
            fields = tuple(
                FieldMeta(field_index=index, byte_size=offsets[index + 1] - offsets[index])
                for index in range(field_count)
            )
        records.append(
            RecordMeta(record_index=record_index, total_bytes=total_bytes, fields=fields)
        )
    return records


def read_field(
    handle: ShardHandle,
    field_formats: Sequence[FormatLabel],
    record_index: int,
    field_index: int,
) -> bytes:
    """Return the payload bytes of one field.

    Args:
        handle: Open shard handle.
        field_formats: Declared field formats.
        record_index: Zero-based record position.
        field_index: Zero-based field position.

    Returns:
        Field payload bytes.

    Raises:
        IndexOutOfRangeError: If either index is out of bounds.
        CorruptShardError: If the record's field sub-table is invalid.
    """
    field_count = len(field_formats)
    record = handle.slice_record(record_index)
    if not 0 <= field_index < field_count:
        raise IndexOutOfRangeError(
            f"Field index {field_index} out of range for records with {field_count} fields."
        )
    if field_count == 1:
        return record
    offsets = _field_offsets(record, len(record), field_count, handle, record_index)
    payload_start = table_size(field_count)
    start = payload_start + offsets[field_index]
    end = payload_start + offsets[field_index + 1]
    return record[start:end]


def discover_field_count(record: bytes) -> int:
    """Infer how many fields a record holds when no manifest declares it.

    Returns the smallest field count of at least two whose sub-offset
    table is consistent with the record length and covers a non-empty
    payload, or one when the record does not start with such a table.
    Records whose fields would all be empty, such as runs of zero bytes,
    count as one field.

    Args:
        record: Full record bytes.

    Returns:
        Discovered field count.
    """
    if len(record) < table_size(2) or read_u32(record, 0) != 0:
        return 1
    previous = 0
    for field_count in range(1, MAX_DISCOVERED_FIELD_COUNT + 1):
        position = field_count * U32_SIZE
        if position + U32_SIZE > len(record):
            break
        offset = read_u32(record, position)
        if offset < previous:
            break
        previous = offset
        if offset > 0 and field_count >= 2 and offset == len(record) - table_size(field_count):
            return field_count
    return 1


def _field_offsets(
    head: bytes,
    record_length: int,
    field_count: int,
    handle: ShardHandle,
    record_index: int,
) -> tuple[int, ...]:
    """Decode and validate a record's field sub-offset table."""
    scope = f"Shard {handle.shard.filename} record {record_index}"
    header_size = table_size(field_count)
    if record_length < header_size:
        raise CorruptShardError(
            f"{scope}: {record_length} bytes cannot hold a {field_count}-field sub-table."
        )
    offsets = decode_offsets(head[:header_size], field_count)
    validate_offsets(offsets, record_length - header_size, scope)
    return offsets
