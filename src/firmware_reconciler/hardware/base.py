"""
Firmware reader interfaces.

Goal
Define the hardware read boundary without binding the reconciler to a
specific management controller protocol.

The reconciler never talks to hardware. A reader is called by the runner and
its FirmwareReading is handed to the engine as already fetched input.

include_schema
Schemas are comparatively expensive to obtain and rarely change, so callers
may skip them. A reading without a schema carries schema=None.
"""

from __future__ import annotations

from typing import Protocol

from firmware_reconciler.core.types import FirmwareReading, ObjectKey


class FirmwareReader(Protocol):
    """
    Minimal management controller interface.

    read_settings raises ReadFailed when the controller cannot be read.
    Retrying is the reader's concern, not the reconciler's.
    """

    def read_settings(self, host: ObjectKey, include_schema: bool) -> FirmwareReading:
        """Read current settings and optionally the schema for a host."""
