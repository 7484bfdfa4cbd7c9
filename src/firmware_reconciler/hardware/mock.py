"""
In memory firmware reader.

This reader is used for tests and local simulations.
It behaves like a set of management controllers keyed by host.

Features
- Per host settings and schema
- Honours include_schema
- Can inject read failures per host
- Records every call for assertions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from firmware_reconciler.core.errors import ReadFailed
from firmware_reconciler.core.types import AttributeSpec, FirmwareReading, ObjectKey
from firmware_reconciler.hardware.base import FirmwareReader


@dataclass
class InMemoryFirmwareReader(FirmwareReader):
    """
    In memory firmware reader.

    settings
    Host to setting name to value.

    schemas
    Host to schema. Hosts without an entry report an empty schema.

    failing
    Hosts whose reads raise ReadFailed.

    calls
    Log of (host, include_schema) per read.
    """

    settings: Dict[ObjectKey, Dict[str, str]] = field(default_factory=dict)
    schemas: Dict[ObjectKey, Dict[str, AttributeSpec]] = field(default_factory=dict)
    failing: set[ObjectKey] = field(default_factory=set)
    calls: List[Tuple[ObjectKey, bool]] = field(default_factory=list)

    def read_settings(self, host: ObjectKey, include_schema: bool) -> FirmwareReading:
        self.calls.append((host, include_schema))

        if host in self.failing:
            raise ReadFailed(f"management controller for {host} did not answer")

        current = dict(self.settings.get(host, {}))
        if not include_schema:
            return FirmwareReading(settings=current, schema=None)

        return FirmwareReading(settings=current, schema=dict(self.schemas.get(host, {})))
