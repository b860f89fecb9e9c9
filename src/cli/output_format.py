"""Plain-text and JSON rendering for CLI results."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from enum import Enum
import json
from pathlib import Path
from typing import Any

from core.format_labels import FormatLabel
from core.types import DatasetManifest, FieldPreview, RecordMeta


def to_jsonable(value: Any) -> Any:
    """Convert result models into JSON-safe primitives."""
    if isinstance(value, FormatLabel):
        return value.raw or value.kind.value
    if isinstance(value, DatasetManifest):
        payload = {key: to_jsonable(item) for key, item in _shallow_fields(value).items()}
        payload["manifest_id"] = value.manifest_id
        return payload
    if is_dataclass(value) and not isinstance(value, type):
        return {key: to_jsonable(item) for key, item in _shallow_fields(value).items()}
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def render_json(value: Any) -> str:
    """Render any result as indented JSON."""
    return json.dumps(to_jsonable(value), indent=2, sort_keys=True, ensure_ascii=False)


def render_manifest(manifest: DatasetManifest) -> str:
    """Render a manifest summary and its shard table."""
    lines = [
        f"manifest_id={manifest.manifest_id}",
        f"manifest_path={manifest.manifest_path}",
        f"root_dir={manifest.root_dir}",
        "field_formats=" + ",".join(to_jsonable(label) for label in manifest.field_formats),
        f"compression={manifest.compression or '-'}",
        f"shard_count={len(manifest.shards)}",
    ]
    for shard in manifest.shards:
        lines.append(
            f"{shard.filename}\t{shard.record_count}\t{shard.byte_size}\t"
            f"{'present' if shard.exists_on_disk else 'missing'}"
        )
    return "\n".join(lines)


def render_records(records: list[RecordMeta]) -> str:
    """Render one line per record with its field sizes."""
    return "\n".join(
        f"{record.record_index}\t{record.total_bytes}\t"
        + ",".join(str(field.byte_size) for field in record.fields)
        for record in records
    )


def render_preview(field_preview: FieldPreview) -> str:
    """Render preview attributes followed by the text or hex body."""
    lines = [
        f"byte_size={field_preview.byte_size}",
        f"is_binary={str(field_preview.is_binary).lower()}",
        f"guessed_extension={field_preview.guessed_extension or '-'}",
        f"hex={field_preview.hex_snippet}",
    ]
    if field_preview.preview_text is not None:
        lines.append(field_preview.preview_text)
    return "\n".join(lines)


def _shallow_fields(value: Any) -> dict[str, Any]:
    """Return dataclass fields by name without deep-copying them."""
    return {item.name: getattr(value, item.name) for item in fields(value)}
