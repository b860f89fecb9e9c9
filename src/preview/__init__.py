"""Field payload preview and materialization.

This module classifies field bytes, guesses extensions, and renders
bounded previews. It also writes fields to disk for external viewers.
"""
