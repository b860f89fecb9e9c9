"""Materialization of field payloads to disk.

This module writes one field's bytes to a deterministic file so an
external viewer can open it. The same field always maps to the same
path, and rewrites replace the previous file atomically.
"""

from __future__ import annotations

import os
from pathlib import Path
import re
import tempfile

from core.constants import FALLBACK_EXTENSION
from core.errors import ShardIOError
from core.logging_config import get_logger
from core.types import FieldCoordinates

_LOGGER = get_logger(__name__)
_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9]")


def leaf_path(
    target_dir: Path,
    identity: FieldCoordinates,
    guessed_extension: str | None,
) -> Path:
    """Build the deterministic output path for one field.

    Args:
        target_dir: Directory receiving materialized files.
        identity: Field coordinates.
        guessed_extension: Extension without the dot, if guessed.

    Returns:
        Output file path.
    """
    extension = _sanitize(guessed_extension or "") or FALLBACK_EXTENSION
    name = (
        f"{_sanitize(identity.manifest_id)}-{_sanitize(identity.shard_filename)}"
        f"-r{identity.record_index}-f{identity.field_index}.{extension}"
    )
    return target_dir / name


def materialize(
    data: bytes,
    guessed_extension: str | None,
    identity: FieldCoordinates,
    target_dir: Path,
) -> Path:
    """Write field bytes to their deterministic path.

    The payload goes to a sibling temporary file that is flushed,
    fsynced, and closed before replacing the destination.

    Args:
        data: Field payload.
        guessed_extension: Extension without the dot, if guessed.
        identity: Field coordinates used to derive the file name.
        target_dir: Directory receiving materialized files.

    Returns:
        Path of the written file.

    Raises:
        ShardIOError: If the directory or file cannot be written.
    """
    destination = leaf_path(target_dir, identity, guessed_extension)
    temp_name: str | None = None
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=target_dir,
            prefix=f".{destination.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            temp_name = handle.name
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, destination)
    except OSError as error:
        if temp_name is not None and os.path.exists(temp_name):
            os.unlink(temp_name)
        raise ShardIOError(
            f"Failed to materialize field at {destination}: {error}. "
            "Check write permissions and available disk space."
        ) from error
    _LOGGER.info("field_materialized", path=str(destination), byte_size=len(data))
    return destination


def _sanitize(value: str) -> str:
    return _UNSAFE_CHARACTERS.sub("-", value)
