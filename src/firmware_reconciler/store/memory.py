"""
In memory object store.

This store is used for tests and local runs.
It behaves like a versioned key value database keyed by kind and ObjectKey.

Features
- Monotonic resource_version per object, starting at "1" on create
- Optimistic concurrency on update
- Copies in and out, so callers never share state with the store
- Fault injection hooks for conflict and outage testing
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, TypeVar, Union

from firmware_reconciler.core.errors import (
    AlreadyExists,
    NotFound,
    PersistenceConflict,
    PersistenceUnavailable,
)
from firmware_reconciler.core.types import ObjectKey, SchemaRecord, SettingsRecord
from firmware_reconciler.store.base import ObjectStore

_Record = Union[SettingsRecord, SchemaRecord]
_R = TypeVar("_R", SettingsRecord, SchemaRecord)

_SETTINGS = "settings"
_SCHEMA = "schema"


@dataclass
class InMemoryObjectStore(ObjectStore):
    """
    In memory object store.

    conflicts_to_inject
    Mapping of kind ("settings" or "schema") to a count. Each pending count
    makes the next update of that kind fail with PersistenceConflict, which
    simulates another writer landing first.

    unavailable
    When True every call raises PersistenceUnavailable.

    writes
    Log of (operation, kind, key) for every write that landed.
    """

    conflicts_to_inject: Dict[str, int] = field(default_factory=dict)
    unavailable: bool = False
    writes: List[Tuple[str, str, ObjectKey]] = field(default_factory=list)
    _objects: Dict[Tuple[str, ObjectKey], _Record] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _check_available(self) -> None:
        if self.unavailable:
            raise PersistenceUnavailable("object store unavailable")

    def _get(self, kind: str, key: ObjectKey) -> _Record:
        with self._lock:
            self._check_available()
            obj = self._objects.get((kind, key))
            if obj is None:
                raise NotFound(f"{kind} {key} not found")
            return copy.deepcopy(obj)

    def _create(self, kind: str, record: _R) -> _R:
        with self._lock:
            self._check_available()
            key = record.key()
            if (kind, key) in self._objects:
                raise AlreadyExists(f"{kind} {key} already exists")
            stored = copy.deepcopy(record)
            stored.resource_version = "1"
            self._objects[(kind, key)] = stored
            self.writes.append(("create", kind, key))
            return copy.deepcopy(stored)

    def _update(self, kind: str, record: _R) -> _R:
        with self._lock:
            self._check_available()
            key = record.key()
            existing = self._objects.get((kind, key))
            if existing is None:
                raise NotFound(f"{kind} {key} not found")

            pending = self.conflicts_to_inject.get(kind, 0)
            if pending > 0:
                self.conflicts_to_inject[kind] = pending - 1
                raise PersistenceConflict(f"{kind} {key} was modified concurrently")

            if record.resource_version != existing.resource_version:
                raise PersistenceConflict(
                    f"{kind} {key} version {record.resource_version} is stale, "
                    f"current is {existing.resource_version}"
                )

            stored = copy.deepcopy(record)
            stored.resource_version = str(int(existing.resource_version) + 1)
            self._objects[(kind, key)] = stored
            self.writes.append(("update", kind, key))
            return copy.deepcopy(stored)

    def get_settings(self, key: ObjectKey) -> SettingsRecord:
        obj = self._get(_SETTINGS, key)
        if not isinstance(obj, SettingsRecord):
            raise TypeError("expected SettingsRecord")
        return obj

    def create_settings(self, record: SettingsRecord) -> SettingsRecord:
        return self._create(_SETTINGS, record)

    def update_settings(self, record: SettingsRecord) -> SettingsRecord:
        return self._update(_SETTINGS, record)

    def list_settings(self) -> list[SettingsRecord]:
        with self._lock:
            self._check_available()
            found = [
                copy.deepcopy(obj)
                for (kind, _), obj in self._objects.items()
                if kind == _SETTINGS and isinstance(obj, SettingsRecord)
            ]
        return sorted(found, key=lambda r: (r.namespace, r.name))

    def get_schema(self, key: ObjectKey) -> SchemaRecord:
        obj = self._get(_SCHEMA, key)
        if not isinstance(obj, SchemaRecord):
            raise TypeError("expected SchemaRecord")
        return obj

    def create_schema(self, record: SchemaRecord) -> SchemaRecord:
        return self._create(_SCHEMA, record)

    def update_schema(self, record: SchemaRecord) -> SchemaRecord:
        return self._update(_SCHEMA, record)

    def schema_names(self) -> list[str]:
        """Return sorted schema names. Useful for deterministic assertions."""
        with self._lock:
            return sorted(key.name for (kind, key) in self._objects if kind == _SCHEMA)
