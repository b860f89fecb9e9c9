"""Shared typed models.

This module defines immutable data models shared by the manifest
loader, shard reader, previewer, and request facade.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
from pathlib import Path
from typing import Any, Mapping

from core.format_labels import UNKNOWN_FORMAT, FormatLabel


@dataclass(frozen=True)
class ShardSummary:
    """Manifest-level description of one shard file.

    Attributes:
        filename: Shard file name as listed by the manifest.
        absolute_path: Resolved on-disk location of the shard.
        record_count: Number of records declared for the shard.
        byte_size: Declared shard file size in bytes.
        fixed_dim: Optional vector width for fixed-width payloads.
        exists_on_disk: Whether the file existed when the manifest loaded.
    """

    filename: str
    absolute_path: Path
    record_count: int
    byte_size: int
    fixed_dim: int | None = None
    exists_on_disk: bool = True


@dataclass(frozen=True)
class DatasetManifest:
    """Immutable snapshot of one loaded dataset manifest.

    Attributes:
        manifest_path: Manifest file path, or first shard for raw loads.
        root_dir: Directory shard filenames are resolved against.
        field_formats: One declared format per field position.
        compression: Optional codec name for shard data regions.
        nominal_records_per_shard: Optional configured records per shard.
        nominal_shard_bytes: Optional configured bytes per shard.
        raw_config: Opaque configuration passed through unchanged.
        shards: Ordered shard summaries.
        is_synthesized: Whether the manifest was built from raw shards.
    """

    manifest_path: Path
    root_dir: Path
    field_formats: tuple[FormatLabel, ...]
    compression: str | None
    nominal_records_per_shard: int | None
    nominal_shard_bytes: int | None
    raw_config: Mapping[str, Any]
    shards: tuple[ShardSummary, ...]
    is_synthesized: bool = False

    @property
    def manifest_id(self) -> str:
        """Return a stable identifier derived from the manifest path."""
        seed = str(self.manifest_path)
        if self.is_synthesized:
            seed = "|".join(str(shard.absolute_path) for shard in self.shards)
        return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:12]

    @property
    def field_count(self) -> int:
        """Return the number of fields every record carries."""
        return len(self.field_formats)

    @property
    def has_placeholder_formats(self) -> bool:
        """Return whether field formats still await discovery from a shard."""
        return self.field_formats == (UNKNOWN_FORMAT,)

    def shard(self, filename: str) -> ShardSummary | None:
        """Return the shard summary with a matching filename."""
        for summary in self.shards:
            if summary.filename == filename:
                return summary
        return None


@dataclass(frozen=True)
class FieldMeta:
    """Size of one field inside a record.

    Attributes:
        field_index: Zero-based position in the manifest field formats.
        byte_size: Field payload length in bytes.
    """

    field_index: int
    byte_size: int


@dataclass(frozen=True)
class RecordMeta:
    """Layout of one record inside a shard.

    Attributes:
        record_index: Zero-based record position in the shard.
        total_bytes: Full record length including any field sub-header.
        fields: Ordered field sizes.
    """

    record_index: int
    total_bytes: int
    fields: tuple[FieldMeta, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FieldPreview:
    """Bounded rendering of one field payload.

    Attributes:
        preview_text: Truncated text rendering for text payloads.
        hex_snippet: Uppercase hex rendering of the leading bytes.
        guessed_extension: Best-guess file extension without the dot.
        is_binary: Whether the payload was classified as binary.
        byte_size: Full payload length, independent of truncation.
    """

    preview_text: str | None
    hex_snippet: str
    guessed_extension: str | None
    is_binary: bool
    byte_size: int


@dataclass(frozen=True)
class FieldCoordinates:
    """Stable identity of one field across requests.

    Attributes:
        manifest_id: Identifier of the loaded manifest.
        shard_filename: Shard file name inside the manifest.
        record_index: Zero-based record position.
        field_index: Zero-based field position.
    """

    manifest_id: str
    shard_filename: str
    record_index: int
    field_index: int
