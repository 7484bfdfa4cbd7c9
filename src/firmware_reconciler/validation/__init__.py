"""
Validation package.

This makes the validation folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from firmware_reconciler.validation.engine import ValidationConfig, render_errors, validate_settings

__all__ = ["ValidationConfig", "render_errors", "validate_settings"]
