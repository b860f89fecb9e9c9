"""Manifest and shard path resolution.

This module finds the manifest document a user meant when they pick a
directory, a stem, or a shard file next to its manifest.
"""

from __future__ import annotations

from pathlib import Path

from core.constants import MANIFEST_CANDIDATE_NAMES, MANIFEST_STEM_SUFFIXES, SHARD_FILE_SUFFIXES
from core.errors import NotFoundError


def is_shard_path(path: Path) -> bool:
    """Return whether ``path`` looks like a shard file rather than a manifest."""
    if path.suffix.lower() in SHARD_FILE_SUFFIXES:
        return True
    return ".bin" in path.name


def is_compressed_manifest(path: Path) -> bool:
    """Return whether the manifest file is stored zstd-compressed."""
    return "zst" in path.suffix.lower()


def find_neighbor_manifest(shard_path: Path) -> Path | None:
    """Locate a manifest stored in the same directory as a shard file.

    Args:
        shard_path: Shard file path.

    Returns:
        Manifest path when one exists, else ``None``.
    """
    return _find_in_directory(shard_path.parent)


def resolve_manifest_path(path: Path) -> Path:
    """Resolve a user-supplied path to a concrete manifest file.

    Args:
        path: Manifest file, dataset directory, or manifest stem.

    Returns:
        Existing manifest file path.

    Raises:
        NotFoundError: If no manifest can be located.
    """
    if path.is_file():
        return path
    if path.is_dir():
        found = _find_in_directory(path)
        if found is not None:
            return found
    else:
        for candidate in _stem_candidates(path):
            if candidate.is_file():
                return candidate
    raise NotFoundError(
        f"Manifest not found at {path}. "
        "Pass an index.json file, its dataset directory, or a shard file."
    )


def _find_in_directory(directory: Path) -> Path | None:
    """Search ``directory`` for a well-known or ``*.index.json*`` manifest."""
    if not directory.is_dir():
        return None
    for name in MANIFEST_CANDIDATE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    globbed = sorted(
        entry
        for entry in directory.iterdir()
        if entry.is_file()
        and (entry.name.endswith(".index.json") or ".index.json." in entry.name)
    )
    return globbed[0] if globbed else None


def _stem_candidates(path: Path) -> list[Path]:
    """Build sibling manifest candidates for an extension-less stem."""
    base = path.stem or "index"
    candidates = [path.with_name(f"{path.name}{suffix}") for suffix in MANIFEST_STEM_SUFFIXES]
    candidates.extend(path.with_name(f"{base}{suffix}") for suffix in MANIFEST_STEM_SUFFIXES)
    return candidates
