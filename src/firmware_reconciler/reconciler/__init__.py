"""
Reconciler package.

This makes the reconciler folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from firmware_reconciler.reconciler.engine import (
    FirmwareSettingsReconciler,
    ReconcileResult,
    ReconcilerConfig,
)
from firmware_reconciler.reconciler.runner import CycleReport, ReconcileRunner, RunnerConfig

__all__ = [
    "CycleReport",
    "FirmwareSettingsReconciler",
    "ReconcileResult",
    "ReconcileRunner",
    "ReconcilerConfig",
    "RunnerConfig",
]
