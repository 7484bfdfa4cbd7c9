"""
Static host source.

Reads a local json file that contains a list of hosts.
This is useful for dev, tests, and small demos.

Schema example
{
  "hosts": [
    {
      "name": "worker-0",
      "namespace": "metal",
      "settings": {"ProcVirtualization": "Disabled", "NetworkBootRetryCount": 5}
    }
  ]
}

Integer json values become integer typed SettingValues, everything else is
kept as a string.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from firmware_reconciler.core.types import SettingValue
from firmware_reconciler.inventory.base import HostRegistration, HostSource

DEFAULT_NAMESPACE = "default"


def _host_from_dict(obj: dict[str, Any]) -> HostRegistration:
    """Convert a host dict into a HostRegistration."""
    settings_obj = obj.get("settings", {}) or {}
    desired = {str(k): SettingValue.parse(v) for k, v in settings_obj.items()}
    return HostRegistration(
        name=str(obj["name"]),
        namespace=str(obj.get("namespace", DEFAULT_NAMESPACE) or DEFAULT_NAMESPACE),
        desired=desired,
    )


@dataclass(frozen=True)
class StaticHostSource(HostSource):
    """
    Load host registrations from a local json file.

    path points to a json file that matches the schema described in the module docstring.
    """

    path: Path

    def load(self) -> list[HostRegistration]:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        hosts = data.get("hosts", []) if isinstance(data, dict) else []

        out: list[HostRegistration] = []
        if isinstance(hosts, list):
            for obj in hosts:
                if isinstance(obj, dict) and "name" in obj:
                    out.append(_host_from_dict(obj))

        return out
