"""Core constants used across ShardLens modules.

This module centralizes binary layout sizes and preview limits.
Keeping values here avoids magic literals in reader logic.
"""

from __future__ import annotations

U32_SIZE = 4
U32_LE_FORMAT = "<I"
SHARD_HEADER_SIZE = U32_SIZE
MAX_DISCOVERED_FIELD_COUNT = 64
DEFAULT_MATERIALIZE_DIR_NAME = "shardlens"
DEFAULT_MAX_DECOMPRESSED_BYTES = 512 * 1024 * 1024
DEFAULT_WORKER_THREADS = 2
DECOMPRESS_READ_SIZE = 1024 * 1024
CLASSIFY_SAMPLE_BYTES = 4096
MAGIC_SAMPLE_BYTES = 64
HEX_SNIPPET_BYTES = 256
PREVIEW_TEXT_MAX_CHARS = 2000
NON_PRINTABLE_RATIO_THRESHOLD = 0.30
TRUNCATION_MARKER = "…"
FALLBACK_EXTENSION = "bin"
MANIFEST_CANDIDATE_NAMES = (
    "index.json",
    "index.json.zstd",
    "index.json.zst",
    "0.index.json",
    "0.index.json.zstd",
    "0.index.json.zst",
)
MANIFEST_STEM_SUFFIXES = (".json", ".json.zstd", ".json.zst")
SHARD_FILE_SUFFIXES = (".bin", ".zst")
ZSTD_CODEC_NAMES = ("zstd", "zst", "zstandard")
RAW_SHARDS_CONFIG_SOURCE = "raw-shards"
