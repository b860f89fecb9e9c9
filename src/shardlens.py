"""Public SDK surface for ShardLens.

This module provides a stable import path for library users.
It re-exports the browser facade, typed models, and error classes.
"""

from __future__ import annotations

from core.config import ShardLensConfig
from core.errors import (
    CorruptShardError,
    IndexOutOfRangeError,
    MalformedManifestError,
    NotFoundError,
    ResourceLimitError,
    ShardIOError,
    ShardLensError,
    UnsupportedCompressionError,
)
from core.format_labels import FormatKind, FormatLabel, parse_format_label
from core.types import (
    DatasetManifest,
    FieldCoordinates,
    FieldMeta,
    FieldPreview,
    RecordMeta,
    ShardSummary,
)
from preview.content_preview import preview
from store.dataset_browser import DatasetBrowser
from store.manifest_loader import load_from_raw_shards, load_manifest

__all__ = [
    "CorruptShardError",
    "DatasetBrowser",
    "DatasetManifest",
    "FieldCoordinates",
    "FieldMeta",
    "FieldPreview",
    "FormatKind",
    "FormatLabel",
    "IndexOutOfRangeError",
    "MalformedManifestError",
    "NotFoundError",
    "RecordMeta",
    "ResourceLimitError",
    "ShardIOError",
    "ShardLensConfig",
    "ShardLensError",
    "ShardSummary",
    "UnsupportedCompressionError",
    "load_from_raw_shards",
    "load_manifest",
    "parse_format_label",
    "preview",
]
