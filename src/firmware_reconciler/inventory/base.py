"""
Host source interfaces.

Goal
Provide pluggable host registration so the reconciler is source agnostic.

A host source stands in for the host identity collaborator. It names the
hosts whose firmware settings are managed and carries their desired
settings. The runner turns registrations into SettingsRecords. The engine
itself never creates one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Protocol

from firmware_reconciler.core.types import ObjectKey, SettingValue


@dataclass(frozen=True)
class HostRegistration:
    """
    One registered host.

    desired holds the operator supplied target values.
    """

    name: str
    namespace: str
    desired: Dict[str, SettingValue] = field(default_factory=dict)

    def key(self) -> ObjectKey:
        return ObjectKey(name=self.name, namespace=self.namespace)


class HostSource(Protocol):
    """
    Host source interface.

    load returns every registered host. Order is not significant.
    """

    def load(self) -> list[HostRegistration]:
        """Load host registrations."""
