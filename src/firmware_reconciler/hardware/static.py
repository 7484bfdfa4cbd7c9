"""
Static firmware reader.

Reads a local json file that contains per host readings.
This is useful for dev, tests, and replaying captured controller output.

Schema example
{
  "schemas": {
    "r640": {
      "ProcVirtualization": {"attributeType": "Enumeration", "allowableValues": ["Enabled", "Disabled"]},
      "NetworkBootRetryCount": {"attributeType": "Integer", "lowerBound": 0, "upperBound": 20}
    }
  },
  "hosts": [
    {
      "name": "worker-0",
      "namespace": "metal",
      "schema": "r640",
      "settings": {"ProcVirtualization": "Enabled", "NetworkBootRetryCount": "10"}
    }
  ]
}

schema may also be an inline attribute mapping instead of a name.
The file is read on every call so edits are picked up by the next cycle.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from firmware_reconciler.core.errors import ReadFailed
from firmware_reconciler.core.serialization import schema_from_dict
from firmware_reconciler.core.types import AttributeSpec, FirmwareReading, ObjectKey
from firmware_reconciler.hardware.base import FirmwareReader


def _resolve_schema(raw: Any, named: dict[str, Any]) -> dict[str, AttributeSpec]:
    if isinstance(raw, str):
        raw = named.get(raw, {})
    if not isinstance(raw, dict):
        return {}
    return schema_from_dict(raw)


@dataclass(frozen=True)
class StaticFirmwareReader(FirmwareReader):
    """
    Load readings from a local json file.

    path points to a json file that matches the schema described in the module docstring.
    """

    path: Path

    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ReadFailed(f"cannot read firmware readings from {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ReadFailed(f"firmware readings in {self.path} must be a json object")
        return data

    def read_settings(self, host: ObjectKey, include_schema: bool) -> FirmwareReading:
        data = self._load()
        named = data.get("schemas", {}) or {}
        hosts = data.get("hosts", []) or []

        for obj in hosts:
            if not isinstance(obj, dict):
                continue
            if str(obj.get("name", "")) != host.name:
                continue
            if str(obj.get("namespace", "")) != host.namespace:
                continue

            settings = {str(k): str(v) for k, v in (obj.get("settings", {}) or {}).items()}
            if not include_schema:
                return FirmwareReading(settings=settings, schema=None)
            return FirmwareReading(settings=settings, schema=_resolve_schema(obj.get("schema"), named))

        raise ReadFailed(f"no firmware reading for {host} in {self.path}")
