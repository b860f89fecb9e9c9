"""Request facade for dataset browsing.

This module exposes the list, preview, and materialize operations over
a registry of loaded manifests. It owns the shard cache and a worker
pool so callers can move decompression off an interactive thread.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
import threading
from typing import Any, Callable, Sequence, TypeVar

from core.config import ShardLensConfig
from core.errors import NotFoundError
from core.format_labels import UNKNOWN_FORMAT, FormatLabel
from core.types import (
    DatasetManifest,
    FieldCoordinates,
    FieldPreview,
    RecordMeta,
    ShardSummary,
)
from preview.content_preview import preview
from preview.extension_guess import guess_extension
from preview.leaf_materializer import materialize
from store.manifest_loader import load_from_raw_shards, load_manifest
from store.record_extractor import discover_field_count, list_records, read_field
from store.shard_cache import CacheStats, ShardCache
from store.shard_reader import ShardHandle, ShardReader

_ResultT = TypeVar("_ResultT")


class DatasetBrowser:
    """Primary entry point for browsing manifest-and-shard datasets."""

    def __init__(self, config: ShardLensConfig | None = None) -> None:
        """Create a browser.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or ShardLensConfig.from_env()
        self._cache = ShardCache()
        self._reader = ShardReader(self._cache, self._config.max_decompressed_bytes)
        self._manifests: dict[str, DatasetManifest] = {}
        self._registry_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def config(self) -> ShardLensConfig:
        """Return the runtime configuration."""
        return self._config

    def load_manifest(self, path: str | Path) -> DatasetManifest:
        """Load and register a manifest.

        Args:
            path: Manifest file, dataset directory, or shard file.

        Returns:
            Registered manifest snapshot.
        """
        return self._register(load_manifest(path, self._config.max_decompressed_bytes))

    def load_from_raw_shards(self, paths: Sequence[str | Path]) -> DatasetManifest:
        """Synthesize and register a manifest for bare shard files.

        Args:
            paths: Shard file paths in selection order.

        Returns:
            Registered manifest snapshot.
        """
        return self._register(load_from_raw_shards(paths, self._config.max_decompressed_bytes))

    def manifest(self, manifest_id: str) -> DatasetManifest:
        """Look up a registered manifest.

        Raises:
            NotFoundError: If no manifest with ``manifest_id`` was loaded.
        """
        with self._registry_lock:
            manifest = self._manifests.get(manifest_id)
        if manifest is None:
            raise NotFoundError(
                f"Manifest id '{manifest_id}' is not loaded. Load the manifest first."
            )
        return manifest

    def list_records(self, manifest_id: str, shard_filename: str) -> list[RecordMeta]:
        """Describe every record of one shard.

        Args:
            manifest_id: Registered manifest identifier.
            shard_filename: Shard file name listed by the manifest.

        Returns:
            Record metadata in shard order.
        """
        manifest, shard = self._locate(manifest_id, shard_filename)
        with self._reader.open(manifest, shard) as handle:
            return list_records(handle, _field_formats(manifest, handle))

    def read_field(
        self,
        manifest_id: str,
        shard_filename: str,
        record_index: int,
        field_index: int,
    ) -> tuple[bytes, FormatLabel]:
        """Return one field's bytes with its declared format label."""
        manifest, shard = self._locate(manifest_id, shard_filename)
        with self._reader.open(manifest, shard) as handle:
            formats = _field_formats(manifest, handle)
            data = read_field(handle, formats, record_index, field_index)
        return data, formats[field_index]

    def preview_field(
        self,
        manifest_id: str,
        shard_filename: str,
        record_index: int,
        field_index: int,
    ) -> FieldPreview:
        """Build a bounded preview of one field.

        Args:
            manifest_id: Registered manifest identifier.
            shard_filename: Shard file name listed by the manifest.
            record_index: Zero-based record position.
            field_index: Zero-based field position.

        Returns:
            Field preview.
        """
        data, label = self.read_field(manifest_id, shard_filename, record_index, field_index)
        return preview(data, label)

    def materialize_field(
        self,
        manifest_id: str,
        shard_filename: str,
        record_index: int,
        field_index: int,
    ) -> Path:
        """Write one field to its deterministic materialization path.

        Args:
            manifest_id: Registered manifest identifier.
            shard_filename: Shard file name listed by the manifest.
            record_index: Zero-based record position.
            field_index: Zero-based field position.

        Returns:
            Path of the written file, ready for an external viewer.
        """
        data, label = self.read_field(manifest_id, shard_filename, record_index, field_index)
        identity = FieldCoordinates(
            manifest_id=manifest_id,
            shard_filename=shard_filename,
            record_index=record_index,
            field_index=field_index,
        )
        extension = guess_extension(label, data)
        return materialize(data, extension, identity, self._config.materialize_dir)

    def submit(
        self,
        operation: Callable[..., _ResultT],
        *args: Any,
        **kwargs: Any,
    ) -> Future[_ResultT]:
        """Run an operation on the worker pool.

        Args:
            operation: Bound browser method or other callable.
            *args: Positional arguments for ``operation``.
            **kwargs: Keyword arguments for ``operation``.

        Returns:
            Future resolving to the operation result or its typed error.
        """
        with self._registry_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._config.worker_threads,
                    thread_name_prefix="shardlens",
                )
            executor = self._executor
        return executor.submit(operation, *args, **kwargs)

    def cache_stats(self) -> CacheStats:
        """Return shard cache counters."""
        return self._cache.stats()

    def close(self) -> None:
        """Shut down the worker pool and drop the cached shard."""
        with self._registry_lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=True)
        self._cache.clear()

    def __enter__(self) -> "DatasetBrowser":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _register(self, manifest: DatasetManifest) -> DatasetManifest:
        with self._registry_lock:
            self._manifests[manifest.manifest_id] = manifest
        return manifest

    def _locate(
        self,
        manifest_id: str,
        shard_filename: str,
    ) -> tuple[DatasetManifest, ShardSummary]:
        manifest = self.manifest(manifest_id)
        shard = manifest.shard(shard_filename)
        if shard is None:
            raise NotFoundError(
                f"Shard '{shard_filename}' is not listed by manifest {manifest.manifest_path}."
            )
        return manifest, shard


def _field_formats(manifest: DatasetManifest, handle: ShardHandle) -> tuple[FormatLabel, ...]:
    """Return declared formats, discovering the field count for raw shards."""
    if not manifest.has_placeholder_formats or handle.record_count == 0:
        return manifest.field_formats
    field_count = discover_field_count(handle.slice_record(0))
    return (UNKNOWN_FORMAT,) * field_count
