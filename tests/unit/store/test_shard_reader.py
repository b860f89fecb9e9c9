"""Unit tests for shard opening and record slicing."""

from __future__ import annotations

import os
import struct

import pytest

from core.errors import (
    CorruptShardError,
    IndexOutOfRangeError,
    NotFoundError,
    ResourceLimitError,
    UnsupportedCompressionError,
)
from store.manifest_loader import load_manifest
from store.shard_cache import ShardCache
from store.shard_reader import ShardReader
from tests.shard_builders import write_manifest, write_scenario_dataset, write_shard


def _open(tmp_path, records, compression=None, ceiling=1 << 20, cache=None):
    shard_path = write_shard(tmp_path / "s.bin", records, compress=compression == "zstd")
    manifest = load_manifest(write_manifest(tmp_path, ["bytes"], [shard_path], compression))
    reader = ShardReader(cache or ShardCache(), ceiling)
    return reader.open(manifest, manifest.shards[0])


def _write_raw(tmp_path, count: int, offsets: list[int], region: bytes):
    shard_path = tmp_path / "s.bin"
    shard_path.write_bytes(struct.pack(f"<I{len(offsets)}I", count, *offsets) + region)
    manifest = load_manifest(write_manifest(tmp_path, ["bytes"], [shard_path]))
    return manifest, manifest.shards[0]


def test_open_reads_record_count(tmp_path) -> None:
    """Handle should expose the header record count."""
    handle = _open(tmp_path, [b"a", b"bc", b"def"])

    assert handle.record_count == 3


def test_slice_record_returns_record_bytes(tmp_path) -> None:
    """Records should slice exactly between consecutive offsets."""
    handle = _open(tmp_path, [b"a", b"bc", b"def"])

    assert [handle.slice_record(index) for index in range(3)] == [b"a", b"bc", b"def"]


def test_slice_record_honors_limit(tmp_path) -> None:
    """A limit should cap the number of returned bytes."""
    handle = _open(tmp_path, [b"abcdef"])

    assert handle.slice_record(0, limit=2) == b"ab"


def test_slice_record_accepts_last_index(tmp_path) -> None:
    """The last record index should succeed."""
    handle = _open(tmp_path, [b"a", b"b"])

    assert handle.slice_record(handle.record_count - 1) == b"b"


def test_slice_record_rejects_index_equal_to_count(tmp_path) -> None:
    """An index equal to the record count should be out of range."""
    handle = _open(tmp_path, [b"a", b"b"])

    with pytest.raises(IndexOutOfRangeError):
        handle.slice_record(handle.record_count)

    assert handle.record_count == 2


def test_open_rejects_nonzero_first_offset(tmp_path) -> None:
    """offset[0] must be zero."""
    manifest, shard = _write_raw(tmp_path, 1, [1, 3], b"abc")

    with pytest.raises(CorruptShardError):
        ShardReader(ShardCache(), 1 << 20).open(manifest, shard)

    assert shard.record_count == 1


def test_open_rejects_final_offset_mismatch(tmp_path) -> None:
    """offset[N] must equal the data region length."""
    manifest, shard = _write_raw(tmp_path, 1, [0, 2], b"abc")

    with pytest.raises(CorruptShardError):
        ShardReader(ShardCache(), 1 << 20).open(manifest, shard)

    assert shard.record_count == 1


def test_open_rejects_decreasing_offsets(tmp_path) -> None:
    """Offsets must be non-decreasing."""
    manifest, shard = _write_raw(tmp_path, 2, [0, 3, 2], b"ab")

    with pytest.raises(CorruptShardError):
        ShardReader(ShardCache(), 1 << 20).open(manifest, shard)

    assert shard.record_count == 2


def test_open_rejects_truncated_offset_table(tmp_path) -> None:
    """A header claiming more offsets than the file holds should fail."""
    manifest, shard = _write_raw(tmp_path, 1000, [0], b"")

    with pytest.raises(CorruptShardError):
        ShardReader(ShardCache(), 1 << 20).open(manifest, shard)

    assert shard.record_count == 1000


def test_open_raises_for_stale_manifest(tmp_path) -> None:
    """A shard deleted after manifest load should fail with NotFound."""
    manifest = load_manifest(write_scenario_dataset(tmp_path))
    manifest.shards[0].absolute_path.unlink()

    with pytest.raises(NotFoundError):
        ShardReader(ShardCache(), 1 << 20).open(manifest, manifest.shards[0])

    assert manifest.shards[0].exists_on_disk


def test_open_decompresses_zstd_region(tmp_path) -> None:
    """Compressed data regions should be sliced after decompression."""
    handle = _open(tmp_path, [b"alpha", b"beta"], compression="zstd")

    assert handle.slice_record(1) == b"beta" and handle.is_compressed


def test_open_rejects_unknown_codec(tmp_path) -> None:
    """Unrecognized codec names should fail as unsupported."""
    with pytest.raises(UnsupportedCompressionError):
        _open(tmp_path, [b"a"], compression="lz4")

    assert (tmp_path / "s.bin").exists()


def test_open_enforces_decompression_ceiling(tmp_path) -> None:
    """Oversized decompressed regions should fail without filling the cache."""
    cache = ShardCache()

    with pytest.raises(ResourceLimitError):
        _open(tmp_path, [b"x" * 5000, b"y" * 5000], compression="zstd", ceiling=4096, cache=cache)

    assert cache.current_key is None


def test_open_reuses_cached_region(tmp_path) -> None:
    """Reopening the same compressed shard should hit the cache."""
    cache = ShardCache()
    shard_path = write_shard(tmp_path / "s.bin", [b"abc"], compress=True)
    manifest = load_manifest(write_manifest(tmp_path, ["bytes"], [shard_path], "zstd"))
    reader = ShardReader(cache, 1 << 20)

    with reader.open(manifest, manifest.shards[0]):
        pass
    with reader.open(manifest, manifest.shards[0]):
        pass

    assert cache.stats().hits == 1 and cache.stats().misses == 1


def test_open_evicts_previous_compressed_shard(tmp_path) -> None:
    """Opening a different compressed shard should evict the resident one."""
    cache = ShardCache()
    first = write_shard(tmp_path / "a.bin", [b"abc"], compress=True)
    second = write_shard(tmp_path / "b.bin", [b"def"], compress=True)
    manifest = load_manifest(write_manifest(tmp_path, ["bytes"], [first, second], "zstd"))
    reader = ShardReader(cache, 1 << 20)

    with reader.open(manifest, manifest.shards[0]) as first_handle:
        with reader.open(manifest, manifest.shards[1]):
            survivor = first_handle.slice_record(0)

    assert survivor == b"abc" and cache.current_key.startswith(f"{second.resolve()}|")


def test_open_plain_shard_ignores_cache(tmp_path) -> None:
    """Uncompressed shards should be read without populating the cache."""
    cache = ShardCache()
    manifest = load_manifest(write_scenario_dataset(tmp_path))

    with ShardReader(cache, 1 << 20).open(manifest, manifest.shards[0]) as handle:
        handle.slice_record(0)

    assert cache.current_key is None


def test_open_rereads_compressed_shard_rewritten_in_place(tmp_path) -> None:
    """A compressed shard rewritten after caching should not serve old bytes."""
    cache = ShardCache()
    shard_path = write_shard(tmp_path / "s.bin", [b"abc"], compress=True)
    manifest = load_manifest(write_manifest(tmp_path, ["bytes"], [shard_path], "zstd"))
    reader = ShardReader(cache, 1 << 20)
    with reader.open(manifest, manifest.shards[0]) as handle:
        first = handle.slice_record(0)
    previous_mtime = shard_path.stat().st_mtime_ns
    write_shard(shard_path, [b"xyz"], compress=True)
    os.utime(shard_path, ns=(previous_mtime + 1_000_000_000, previous_mtime + 1_000_000_000))

    with reader.open(manifest, manifest.shards[0]) as handle:
        second = handle.slice_record(0)

    assert (first, second) == (b"abc", b"xyz") and cache.stats().misses == 2


def test_plain_handle_reuses_open_file_across_slices(tmp_path) -> None:
    """Slices after the first should read from the file opened for it."""
    shard_path = write_shard(tmp_path / "s.bin", [b"abc", b"def"])
    manifest = load_manifest(write_manifest(tmp_path, ["bytes"], [shard_path]))

    with ShardReader(ShardCache(), 1 << 20).open(manifest, manifest.shards[0]) as handle:
        first = handle.slice_record(0)
        shard_path.unlink()
        second = handle.slice_record(1)

    assert (first, second) == (b"abc", b"def")
