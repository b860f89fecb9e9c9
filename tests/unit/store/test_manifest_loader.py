"""Unit tests for manifest loading."""

from __future__ import annotations

import json

import pytest
import zstandard

from core.errors import CorruptShardError, MalformedManifestError, NotFoundError
from core.format_labels import FormatKind
from store.manifest_loader import load_from_raw_shards, load_manifest
from tests.shard_builders import build_record, write_manifest, write_scenario_dataset, write_shard


def test_load_manifest_parses_field_formats(tmp_path) -> None:
    """Loader should parse one format label per field."""
    manifest_path = write_scenario_dataset(tmp_path)

    manifest = load_manifest(manifest_path)

    assert [label.kind for label in manifest.field_formats] == [
        FormatKind.TEXT,
        FormatKind.JPEG,
        FormatKind.BYTES,
    ]


def test_load_manifest_resolves_shard_paths(tmp_path) -> None:
    """Shard paths should resolve against the manifest directory."""
    manifest = load_manifest(write_scenario_dataset(tmp_path))

    shard = manifest.shards[0]

    assert shard.absolute_path == tmp_path.resolve() / "shard-0.bin" and shard.exists_on_disk


def test_load_manifest_marks_missing_shards(tmp_path) -> None:
    """Shards missing on disk should load with exists_on_disk unset."""
    manifest_path = write_scenario_dataset(tmp_path)
    (tmp_path / "shard-0.bin").unlink()

    manifest = load_manifest(manifest_path)

    assert manifest.shards[0].exists_on_disk is False


def test_load_manifest_accepts_dataset_directory(tmp_path) -> None:
    """A directory should resolve to its index.json."""
    write_scenario_dataset(tmp_path)

    manifest = load_manifest(tmp_path)

    assert manifest.manifest_path.name == "index.json"


def test_load_manifest_from_shard_uses_neighbor_manifest(tmp_path) -> None:
    """A shard path should load the manifest stored next to it."""
    write_scenario_dataset(tmp_path)

    manifest = load_manifest(tmp_path / "shard-0.bin")

    assert manifest.field_count == 3


def test_load_manifest_reads_compressed_document(tmp_path) -> None:
    """A zstd-compressed manifest should be decompressed before parsing."""
    plain_path = write_scenario_dataset(tmp_path)
    compressed = zstandard.ZstdCompressor().compress(plain_path.read_bytes())
    plain_path.unlink()
    (tmp_path / "index.json.zstd").write_bytes(compressed)

    manifest = load_manifest(tmp_path)

    assert len(manifest.shards) == 1


def test_load_manifest_parses_native_index(tmp_path) -> None:
    """The native chunks/config dialect should map onto the same model."""
    write_shard(tmp_path / "chunk-0-0.bin", [b"a", b"bc"])
    payload = {
        "chunks": [
            {"filename": "chunk-0-0.bin", "chunk_size": 2, "chunk_bytes": 15, "dim": None}
        ],
        "config": {"data_format": ["str"], "compression": None, "chunk_size": 2},
    }
    (tmp_path / "index.json").write_text(json.dumps(payload), encoding="utf-8")

    manifest = load_manifest(tmp_path / "index.json")

    assert manifest.nominal_records_per_shard == 2 and manifest.raw_config == payload["config"]


def test_load_manifest_passes_raw_config_through(tmp_path) -> None:
    """rawConfig should be preserved unchanged."""
    shard_path = write_shard(tmp_path / "s.bin", [b"x"])
    manifest_path = write_manifest(
        tmp_path, ["bytes"], [shard_path], rawConfig={"seed": 7, "nested": {"a": [1]}}
    )

    manifest = load_manifest(manifest_path)

    assert manifest.raw_config == {"seed": 7, "nested": {"a": [1]}}


def test_load_manifest_raises_for_missing_path(tmp_path) -> None:
    """Loading should fail with NotFound for a missing manifest."""
    with pytest.raises(NotFoundError):
        load_manifest(tmp_path / "absent.json")

    assert not (tmp_path / "absent.json").exists()


@pytest.mark.parametrize(
    "payload",
    [
        {"fieldFormats": ["str"]},
        {"shards": [], "fieldFormats": "str"},
        {"shards": [], "fieldFormats": []},
        {
            "shards": [{"filename": "a.bin", "recordCount": "2", "byteSize": 1}],
            "fieldFormats": ["str"],
        },
        {"shards": [{"recordCount": 2, "byteSize": 1}], "fieldFormats": ["str"]},
        {"shards": [{"filename": "a.bin", "recordCount": 2}], "fieldFormats": ["str"]},
        [1, 2, 3],
    ],
)
def test_load_manifest_rejects_malformed_documents(tmp_path, payload: object) -> None:
    """Documents missing required keys or types should fail as malformed."""
    manifest_path = tmp_path / "index.json"
    manifest_path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(MalformedManifestError):
        load_manifest(manifest_path)

    assert manifest_path.exists()


def test_load_manifest_rejects_invalid_json(tmp_path) -> None:
    """Non-JSON manifests should fail as malformed."""
    manifest_path = tmp_path / "index.json"
    manifest_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(MalformedManifestError):
        load_manifest(manifest_path)

    assert manifest_path.exists()


def test_load_from_raw_shards_uses_placeholder_formats(tmp_path) -> None:
    """Raw shards without a manifest should get one unknown placeholder field."""
    shard_path = write_shard(tmp_path / "a.bin", [b"x", b"yz", b""])

    manifest = load_from_raw_shards([shard_path])

    assert manifest.has_placeholder_formats and manifest.shards[0].record_count == 3


def test_load_from_raw_shards_reads_file_size(tmp_path) -> None:
    """Raw shard summaries should report the on-disk file size."""
    shard_path = write_shard(tmp_path / "a.bin", [b"abc"])

    manifest = load_from_raw_shards([shard_path])

    assert manifest.shards[0].byte_size == shard_path.stat().st_size


def test_load_from_raw_shards_adopts_neighbor_manifest(tmp_path) -> None:
    """A neighbor manifest should contribute formats for the selected shards only."""
    first = write_shard(tmp_path / "a.bin", [build_record([b"1", b"2"])])
    second = write_shard(tmp_path / "b.bin", [build_record([b"3", b"4"])])
    write_manifest(tmp_path, ["str", "str"], [first, second])

    manifest = load_from_raw_shards([second])

    assert manifest.field_count == 2 and [s.filename for s in manifest.shards] == ["b.bin"]


def test_load_from_raw_shards_rejects_empty_selection() -> None:
    """An empty path list should fail as malformed."""
    with pytest.raises(MalformedManifestError):
        load_from_raw_shards([])

    assert True


def test_load_from_raw_shards_raises_for_missing_file(tmp_path) -> None:
    """Missing shard files should fail with NotFound."""
    with pytest.raises(NotFoundError):
        load_from_raw_shards([tmp_path / "missing.bin"])

    assert not (tmp_path / "missing.bin").exists()


def test_load_from_raw_shards_rejects_truncated_header(tmp_path) -> None:
    """A file too short for its offset table should fail as corrupt."""
    shard_path = tmp_path / "short.bin"
    shard_path.write_bytes(b"\x05\x00\x00\x00\x00\x00")

    with pytest.raises(CorruptShardError):
        load_from_raw_shards([shard_path])

    assert shard_path.exists()
