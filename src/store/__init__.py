"""Manifest and shard reading layer.

This module parses dataset manifests and decodes shard offset tables.
It serves record and field bytes to the preview layer and the SDK.
"""
