"""Shard file reading.

This module opens one shard, validates its record offset table, and
exposes bounds-checked record slices. Compressed data regions are
decompressed once and shared through the single-slot ``ShardCache``;
plain shards are read with bounded seeks instead of being loaded.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO

from core.constants import SHARD_HEADER_SIZE
from core.errors import CorruptShardError, IndexOutOfRangeError, NotFoundError, ShardIOError
from core.logging_config import get_logger
from core.types import DatasetManifest, ShardSummary
from store.decompression import decompress_stream, normalize_codec
from store.offset_table import decode_offsets, read_u32, table_size, validate_offsets
from store.shard_cache import BufferLease, ShardCache

_LOGGER = get_logger(__name__)


class ShardHandle:
    """Open view over one shard's records.

    Handles backed by a cached buffer hold a lease until closed; plain
    handles open the shard file on the first slice and keep it open for
    later slices until closed.
    """

    def __init__(
        self,
        shard: ShardSummary,
        offsets: tuple[int, ...],
        data_start: int,
        lease: BufferLease | None = None,
    ) -> None:
        self._shard = shard
        self._offsets = offsets
        self._data_start = data_start
        self._lease = lease
        self._file: BinaryIO | None = None

    @property
    def shard(self) -> ShardSummary:
        """Return the summary this handle was opened from."""
        return self._shard

    @property
    def record_count(self) -> int:
        """Return the number of records stored in the shard."""
        return len(self._offsets) - 1

    @property
    def offsets(self) -> tuple[int, ...]:
        """Return the validated record offset table."""
        return self._offsets

    @property
    def data_size(self) -> int:
        """Return the byte length of the (decompressed) data region."""
        return self._offsets[-1]

    @property
    def is_compressed(self) -> bool:
        """Return whether records are served from a decompressed buffer."""
        return self._lease is not None

    def record_length(self, record_index: int) -> int:
        """Return the byte length of one record.

        Raises:
            IndexOutOfRangeError: If ``record_index`` is out of bounds.
        """
        self._check_index(record_index)
        return self._offsets[record_index + 1] - self._offsets[record_index]

    def slice_record(self, record_index: int, limit: int | None = None) -> bytes:
        """Return the bytes of one record.

        Args:
            record_index: Zero-based record position.
            limit: Optional cap on the number of leading bytes returned.

        Returns:
            Record bytes, or its first ``limit`` bytes.

        Raises:
            IndexOutOfRangeError: If ``record_index`` is out of bounds.
            NotFoundError: If a plain shard file disappeared before its first slice.
            CorruptShardError: If a plain shard file shrank since opening.
        """
        length = self.record_length(record_index)
        if limit is not None:
            length = min(length, limit)
        start = self._offsets[record_index]
        if self._lease is not None:
            return bytes(self._lease.view[start : start + length])
        return self._read_file_range(self._data_start + start, length)

    def close(self) -> None:
        """Release the buffer lease and close the shard file, if open."""
        if self._lease is not None:
            self._lease.release()
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "ShardHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _check_index(self, record_index: int) -> None:
        if not 0 <= record_index < self.record_count:
            raise IndexOutOfRangeError(
                f"Record index {record_index} out of range for shard "
                f"{self._shard.filename} with {self.record_count} records."
            )

    def _read_file_range(self, position: int, length: int) -> bytes:
        path = self._shard.absolute_path
        try:
            if self._file is None:
                self._file = path.open("rb")
            self._file.seek(position)
            data = self._file.read(length)
        except FileNotFoundError as error:
            raise NotFoundError(f"Shard file not found at {path}.") from error
        except OSError as error:
            raise ShardIOError(f"Failed to read shard at {path}: {error}.") from error
        if len(data) != length:
            raise CorruptShardError(
                f"Shard at {path} ended after {len(data)} of {length} bytes at offset {position}."
            )
        return data


class ShardReader:
    """Open shards described by a manifest."""

    def __init__(self, cache: ShardCache, max_decompressed_bytes: int) -> None:
        """Create a reader.

        Args:
            cache: Cache holding the resident decompressed shard.
            max_decompressed_bytes: Ceiling for one decompressed data region.
        """
        self._cache = cache
        self._max_decompressed_bytes = max_decompressed_bytes

    def open(self, manifest: DatasetManifest, shard: ShardSummary) -> ShardHandle:
        """Open one shard and validate its offset table.

        Args:
            manifest: Manifest declaring the shard's compression.
            shard: Shard to open.

        Returns:
            Handle exposing record slices.

        Raises:
            NotFoundError: If the shard file is missing.
            UnsupportedCompressionError: If the codec is unknown.
            CorruptShardError: If the offset table is invalid.
            ResourceLimitError: If decompression exceeds the ceiling.
            ShardIOError: For other read failures.
        """
        codec = normalize_codec(manifest.compression)
        path = shard.absolute_path
        try:
            with path.open("rb") as handle:
                status = os.fstat(handle.fileno())
                file_size = status.st_size
                offsets = _read_offset_table(handle, file_size, path)
                data_start = SHARD_HEADER_SIZE + table_size(len(offsets) - 1)
                if codec is None:
                    validate_offsets(offsets, file_size - data_start, f"Shard {path}")
                    lease = None
                else:
                    lease = self._acquire_region(handle, path, status, offsets, codec)
        except FileNotFoundError as error:
            raise NotFoundError(
                f"Shard file not found at {path}. Reload the manifest if files moved."
            ) from error
        except OSError as error:
            raise ShardIOError(f"Failed to read shard at {path}: {error}.") from error
        _LOGGER.debug(
            "shard_opened",
            shard_path=str(path),
            record_count=len(offsets) - 1,
            compression=codec,
        )
        return ShardHandle(shard, offsets, data_start, lease)

    def _acquire_region(
        self,
        handle: BinaryIO,
        path: Path,
        status: os.stat_result,
        offsets: tuple[int, ...],
        codec: str,
    ) -> BufferLease:
        """Lease the decompressed data region, decompressing on a cache miss.

        The cache key carries the file size and modification time, so a
        shard rewritten in place misses the cache and is decompressed again.
        """

        def load() -> bytes:
            region = decompress_stream(handle, codec, self._max_decompressed_bytes, str(path))
            validate_offsets(offsets, len(region), f"Shard {path}")
            _LOGGER.info(
                "shard_decompressed",
                shard_path=str(path),
                decompressed_bytes=len(region),
            )
            return region

        lease = self._cache.acquire(region_cache_key(path, status), load)
        try:
            validate_offsets(offsets, len(lease.view), f"Shard {path}")
        except CorruptShardError:
            lease.release()
            raise
        return lease


def _read_offset_table(handle: BinaryIO, file_size: int, path: Path) -> tuple[int, ...]:
    """Read the record count and offset table from the file header."""
    header = handle.read(SHARD_HEADER_SIZE)
    if len(header) != SHARD_HEADER_SIZE:
        raise CorruptShardError(f"Shard {path} is too short to hold a record count.")
    record_count = read_u32(header, 0)
    expected = table_size(record_count)
    if expected > file_size - SHARD_HEADER_SIZE:
        raise CorruptShardError(
            f"Shard {path}: offset table for {record_count} records needs {expected} bytes, "
            f"file holds {file_size - SHARD_HEADER_SIZE} after the header."
        )
    return decode_offsets(handle.read(expected), record_count)


def region_cache_key(path: Path, status: os.stat_result) -> str:
    """Return the cache key for one version of a shard file."""
    return f"{path}|{status.st_size}|{status.st_mtime_ns}"
