"""ShardLens exception hierarchy.

This module defines typed reader errors with stable error codes.
Each failure class maps to one caller-visible outcome.
"""

from __future__ import annotations


class ShardLensError(Exception):
    """Base exception for all ShardLens failures."""

    code = "error"


class ShardLensConfigError(ShardLensError):
    """Raised for invalid runtime configuration."""

    code = "config"


class NotFoundError(ShardLensError):
    """Raised when a manifest, shard file, or registered id is missing."""

    code = "not_found"


class MalformedManifestError(ShardLensError):
    """Raised when a manifest document fails structural validation."""

    code = "malformed"


class CorruptShardError(ShardLensError):
    """Raised when a shard or record offset table violates its invariants."""

    code = "corrupt_shard"


class IndexOutOfRangeError(ShardLensError):
    """Raised for record or field indexes outside their bounds."""

    code = "index_out_of_range"


class UnsupportedCompressionError(ShardLensError):
    """Raised for codec names the reader cannot decode."""

    code = "unsupported_compression"


class ResourceLimitError(ShardLensError):
    """Raised when decompressed output exceeds the configured ceiling."""

    code = "resource_limit"


class ShardIOError(ShardLensError):
    """Raised for read or write failures that are not a missing file."""

    code = "io_error"
