"""Runtime configuration model for ShardLens.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import tempfile

from core.constants import (
    DEFAULT_MATERIALIZE_DIR_NAME,
    DEFAULT_MAX_DECOMPRESSED_BYTES,
    DEFAULT_WORKER_THREADS,
)
from core.errors import ShardLensConfigError


@dataclass(frozen=True)
class ShardLensConfig:
    """Validated runtime configuration.

    Attributes:
        materialize_dir: Directory receiving materialized leaf files.
        max_decompressed_bytes: Ceiling for one decompressed shard region.
        worker_threads: Worker pool size for off-thread requests.
    """

    materialize_dir: Path
    max_decompressed_bytes: int
    worker_threads: int

    @classmethod
    def from_env(cls) -> "ShardLensConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ShardLensConfigError: If environment values are invalid.
        """
        default_dir = Path(tempfile.gettempdir()) / DEFAULT_MATERIALIZE_DIR_NAME
        materialize_dir_value = os.getenv("SHARDLENS_MATERIALIZE_DIR", str(default_dir))
        max_bytes = parse_positive_int(
            "SHARDLENS_MAX_DECOMPRESSED_BYTES",
            os.getenv("SHARDLENS_MAX_DECOMPRESSED_BYTES", str(DEFAULT_MAX_DECOMPRESSED_BYTES)),
        )
        worker_threads = parse_positive_int(
            "SHARDLENS_WORKER_THREADS",
            os.getenv("SHARDLENS_WORKER_THREADS", str(DEFAULT_WORKER_THREADS)),
        )
        return cls(
            materialize_dir=Path(materialize_dir_value).expanduser().resolve(),
            max_decompressed_bytes=max_bytes,
            worker_threads=worker_threads,
        )


def parse_positive_int(name: str, raw_value: str) -> int:
    """Parse a strictly positive integer setting.

    Args:
        name: Setting name used in error messages.
        raw_value: Raw string value.

    Returns:
        Parsed integer.

    Raises:
        ShardLensConfigError: If value is not a positive integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise ShardLensConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a positive numeric value."
        ) from error
    if value < 1:
        raise ShardLensConfigError(
            f"Invalid {name} value: expected value >= 1, got {value}. "
            f"Set {name} to a positive numeric value."
        )
    return value
