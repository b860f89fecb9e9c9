"""Dataset manifest loading.

This module parses manifest documents (canonical or native chunked
index dialect) into immutable ``DatasetManifest`` snapshots, and
synthesizes manifests for bare shard files picked without one.
"""

from __future__ import annotations

from dataclasses import replace
import json
from pathlib import Path
from typing import Any, Sequence

from core.constants import DEFAULT_MAX_DECOMPRESSED_BYTES, RAW_SHARDS_CONFIG_SOURCE
from core.errors import CorruptShardError, MalformedManifestError, NotFoundError, ShardIOError
from core.format_labels import UNKNOWN_FORMAT, FormatLabel, parse_format_label
from core.logging_config import get_logger
from core.types import DatasetManifest, ShardSummary
from store.decompression import decompress_stream
from store.manifest_paths import (
    find_neighbor_manifest,
    is_compressed_manifest,
    is_shard_path,
    resolve_manifest_path,
)
from store.offset_table import read_u32, table_size

_LOGGER = get_logger(__name__)


def load_manifest(
    path: str | Path,
    max_decompressed_bytes: int = DEFAULT_MAX_DECOMPRESSED_BYTES,
) -> DatasetManifest:
    """Load a dataset manifest from a file, directory, or shard path.

    Args:
        path: Manifest file, dataset directory, manifest stem, or shard file.
        max_decompressed_bytes: Ceiling for compressed manifest documents.

    Returns:
        Immutable manifest snapshot.

    Raises:
        NotFoundError: If no manifest or shard exists at ``path``.
        MalformedManifestError: If the document fails validation.
    """
    candidate = Path(path).expanduser()
    if is_shard_path(candidate) and candidate.is_file():
        neighbor = find_neighbor_manifest(candidate)
        if neighbor is None:
            return load_from_raw_shards([candidate], max_decompressed_bytes)
        candidate = neighbor
    manifest_path = resolve_manifest_path(candidate).resolve()
    manifest = _parse_manifest_file(manifest_path, max_decompressed_bytes)
    _LOGGER.info(
        "manifest_loaded",
        manifest_path=str(manifest_path),
        manifest_id=manifest.manifest_id,
        shard_count=len(manifest.shards),
        field_count=manifest.field_count,
        compression=manifest.compression,
    )
    return manifest


def load_from_raw_shards(
    paths: Sequence[str | Path],
    max_decompressed_bytes: int = DEFAULT_MAX_DECOMPRESSED_BYTES,
) -> DatasetManifest:
    """Synthesize a manifest from shard files picked without a manifest.

    A manifest stored next to the first shard contributes field formats,
    compression, and per-shard metadata. Otherwise the field formats
    are a single unknown placeholder and shard metadata comes from each
    file header.

    Args:
        paths: Shard file paths in selection order.
        max_decompressed_bytes: Ceiling for a compressed neighbor manifest.

    Returns:
        Synthesized manifest snapshot.

    Raises:
        MalformedManifestError: If no paths are supplied.
        NotFoundError: If a shard file is missing.
        CorruptShardError: If a shard header cannot be read.
    """
    if not paths:
        raise MalformedManifestError("No shard paths provided. Select at least one shard file.")
    shard_paths = [Path(item).expanduser().resolve() for item in paths]
    for shard_path in shard_paths:
        if not shard_path.is_file():
            raise NotFoundError(f"Shard file not found at {shard_path}.")
    neighbor = find_neighbor_manifest(shard_paths[0])
    if neighbor is None:
        manifest = _synthesize_manifest(shard_paths)
    else:
        base = _parse_manifest_file(neighbor.resolve(), max_decompressed_bytes)
        manifest = _adopt_neighbor_manifest(base, shard_paths)
    _LOGGER.info(
        "raw_shards_loaded",
        manifest_id=manifest.manifest_id,
        shard_count=len(manifest.shards),
        neighbor_manifest=str(neighbor) if neighbor else None,
    )
    return manifest


def _synthesize_manifest(shard_paths: list[Path]) -> DatasetManifest:
    """Build a placeholder manifest from shard headers alone."""
    summaries = tuple(_summary_from_header(shard_path) for shard_path in shard_paths)
    return DatasetManifest(
        manifest_path=shard_paths[0],
        root_dir=shard_paths[0].parent,
        field_formats=(UNKNOWN_FORMAT,),
        compression=None,
        nominal_records_per_shard=None,
        nominal_shard_bytes=None,
        raw_config={
            "source": RAW_SHARDS_CONFIG_SOURCE,
            "fieldFormats": [UNKNOWN_FORMAT.kind.value],
        },
        shards=summaries,
        is_synthesized=True,
    )


def _adopt_neighbor_manifest(base: DatasetManifest, shard_paths: list[Path]) -> DatasetManifest:
    """Restrict a neighbor manifest to the selected shard files."""
    listed = {summary.filename: summary for summary in base.shards}
    summaries: list[ShardSummary] = []
    for shard_path in shard_paths:
        known = listed.get(shard_path.name)
        if known is None:
            summaries.append(_summary_from_header(shard_path))
        else:
            summaries.append(replace(known, absolute_path=shard_path, exists_on_disk=True))
    return replace(base, shards=tuple(summaries), is_synthesized=True)


def _summary_from_header(shard_path: Path) -> ShardSummary:
    """Read record count and size from a shard file header."""
    try:
        byte_size = shard_path.stat().st_size
        with shard_path.open("rb") as handle:
            header = handle.read(4)
            record_count = read_u32(header, 0)
            table = handle.read(table_size(record_count))
    except FileNotFoundError as error:
        raise NotFoundError(f"Shard file not found at {shard_path}.") from error
    except CorruptShardError as error:
        raise CorruptShardError(f"Shard header unreadable at {shard_path}: {error}") from error
    except OSError as error:
        raise ShardIOError(f"Failed to read shard header at {shard_path}: {error}.") from error
    if len(table) != table_size(record_count):
        raise CorruptShardError(
            f"Shard header unreadable at {shard_path}: offset table for "
            f"{record_count} records is truncated."
        )
    return ShardSummary(
        filename=shard_path.name,
        absolute_path=shard_path,
        record_count=record_count,
        byte_size=byte_size,
    )


def _parse_manifest_file(manifest_path: Path, max_decompressed_bytes: int) -> DatasetManifest:
    """Read, decode, and validate one manifest document."""
    payload = _read_manifest_payload(manifest_path, max_decompressed_bytes)
    root_dir = manifest_path.parent
    if "shards" in payload:
        return _manifest_from_canonical(payload, manifest_path, root_dir)
    if "chunks" in payload:
        return _manifest_from_native(payload, manifest_path, root_dir)
    raise MalformedManifestError(
        f"Manifest at {manifest_path} has no 'shards' list. "
        "Regenerate the manifest with its shard listing."
    )


def _read_manifest_payload(manifest_path: Path, max_decompressed_bytes: int) -> dict[str, Any]:
    """Load the manifest JSON object, decompressing zstd documents."""
    try:
        if is_compressed_manifest(manifest_path):
            with manifest_path.open("rb") as handle:
                raw = decompress_stream(
                    handle, "zstd", max_decompressed_bytes, str(manifest_path)
                )
        else:
            raw = manifest_path.read_bytes()
    except FileNotFoundError as error:
        raise NotFoundError(f"Manifest not found at {manifest_path}.") from error
    except CorruptShardError as error:
        raise MalformedManifestError(
            f"Manifest at {manifest_path} is not valid zstd: {error}"
        ) from error
    except OSError as error:
        raise ShardIOError(f"Failed to read manifest at {manifest_path}: {error}.") from error
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise MalformedManifestError(
            f"Failed to parse manifest at {manifest_path}: {error}. "
            "Check that the file is a JSON document."
        ) from error
    if not isinstance(payload, dict):
        raise MalformedManifestError(
            f"Failed to parse manifest at {manifest_path}: expected JSON object at top level."
        )
    return payload


def _manifest_from_canonical(
    payload: dict[str, Any],
    manifest_path: Path,
    root_dir: Path,
) -> DatasetManifest:
    """Build a manifest from the canonical ``shards``/``fieldFormats`` dialect."""
    context = str(manifest_path)
    raw_config = payload.get("rawConfig", {})
    if not isinstance(raw_config, dict):
        raise MalformedManifestError(f"Manifest at {context}: 'rawConfig' must be an object.")
    shards = tuple(
        _shard_from_entry(entry, root_dir, context, ("recordCount", "byteSize", "fixedDim"))
        for entry in _require_list(payload, "shards", context)
    )
    return DatasetManifest(
        manifest_path=manifest_path,
        root_dir=root_dir,
        field_formats=_parse_field_formats(payload, "fieldFormats", context),
        compression=_optional_str(payload, "compression", context),
        nominal_records_per_shard=_optional_int(payload, "nominalRecordsPerShard", context),
        nominal_shard_bytes=_optional_int(payload, "nominalShardBytes", context),
        raw_config=raw_config,
        shards=shards,
    )


def _manifest_from_native(
    payload: dict[str, Any],
    manifest_path: Path,
    root_dir: Path,
) -> DatasetManifest:
    """Build a manifest from the native ``chunks``/``config`` index dialect."""
    context = str(manifest_path)
    config = payload.get("config")
    if not isinstance(config, dict):
        raise MalformedManifestError(f"Manifest at {context}: 'config' must be an object.")
    shards = tuple(
        _shard_from_entry(entry, root_dir, context, ("chunk_size", "chunk_bytes", "dim"))
        for entry in _require_list(payload, "chunks", context)
    )
    return DatasetManifest(
        manifest_path=manifest_path,
        root_dir=root_dir,
        field_formats=_parse_field_formats(config, "data_format", context),
        compression=_optional_str(config, "compression", context),
        nominal_records_per_shard=_optional_int(config, "chunk_size", context),
        nominal_shard_bytes=_optional_int(config, "chunk_bytes", context),
        raw_config=config,
        shards=shards,
    )


def _shard_from_entry(
    entry: object,
    root_dir: Path,
    context: str,
    keys: tuple[str, str, str],
) -> ShardSummary:
    """Validate one shard listing entry and probe its file."""
    count_key, size_key, dim_key = keys
    if not isinstance(entry, dict):
        raise MalformedManifestError(f"Manifest at {context}: shard entries must be objects.")
    filename = entry.get("filename")
    if not isinstance(filename, str) or not filename:
        raise MalformedManifestError(f"Manifest at {context}: shard entry missing 'filename'.")
    absolute_path = root_dir / filename
    return ShardSummary(
        filename=filename,
        absolute_path=absolute_path,
        record_count=_require_int(entry, count_key, f"{context} shard {filename}"),
        byte_size=_require_int(entry, size_key, f"{context} shard {filename}"),
        fixed_dim=_optional_int(entry, dim_key, f"{context} shard {filename}"),
        exists_on_disk=_probe_exists(absolute_path),
    )


def _probe_exists(path: Path) -> bool:
    """Stat ``path``; only a missing file counts as absent."""
    try:
        path.stat()
    except FileNotFoundError:
        return False
    except OSError as error:
        raise ShardIOError(f"Failed to stat shard at {path}: {error}.") from error
    return True


def _parse_field_formats(
    container: dict[str, Any],
    key: str,
    context: str,
) -> tuple[FormatLabel, ...]:
    """Parse the per-field format label list."""
    labels = _require_list(container, key, context)
    if not labels:
        raise MalformedManifestError(f"Manifest at {context}: '{key}' must not be empty.")
    if not all(isinstance(label, str) for label in labels):
        raise MalformedManifestError(f"Manifest at {context}: '{key}' must hold strings.")
    return tuple(parse_format_label(label) for label in labels)


def _require_list(container: dict[str, Any], key: str, context: str) -> list[Any]:
    value = container.get(key)
    if not isinstance(value, list):
        raise MalformedManifestError(f"Manifest at {context}: '{key}' must be a list.")
    return value


def _require_int(container: dict[str, Any], key: str, context: str) -> int:
    value = container.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedManifestError(
            f"Manifest at {context}: '{key}' must be a non-negative integer, got {value!r}."
        )
    return value


def _optional_int(container: dict[str, Any], key: str, context: str) -> int | None:
    if container.get(key) is None:
        return None
    return _require_int(container, key, context)


def _optional_str(container: dict[str, Any], key: str, context: str) -> str | None:
    value = container.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedManifestError(f"Manifest at {context}: '{key}' must be a string.")
    return value or None
