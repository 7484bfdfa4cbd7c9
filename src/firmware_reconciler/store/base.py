"""
Object store interfaces.

Goal
Keep the reconciler independent of where records live.

Semantics every implementation must provide
get_* raises NotFound when the object is absent.
create_* raises AlreadyExists when the key is taken.
update_* raises PersistenceConflict when resource_version is stale, and
NotFound when the object is gone.
Successful create and update return a copy carrying the new resource_version.

Returned objects are copies. Mutating them does not touch the store until an
update lands.
"""

from __future__ import annotations

from typing import Protocol

from firmware_reconciler.core.types import ObjectKey, SchemaRecord, SettingsRecord


class ObjectStore(Protocol):
    """Persistence collaborator for SettingsRecord and SchemaRecord."""

    def get_settings(self, key: ObjectKey) -> SettingsRecord:
        """Return the settings record for key."""

    def create_settings(self, record: SettingsRecord) -> SettingsRecord:
        """Create a settings record."""

    def update_settings(self, record: SettingsRecord) -> SettingsRecord:
        """Replace a settings record, guarded by record.resource_version."""

    def list_settings(self) -> list[SettingsRecord]:
        """Return all settings records sorted by namespace and name."""

    def get_schema(self, key: ObjectKey) -> SchemaRecord:
        """Return the schema record for key."""

    def create_schema(self, record: SchemaRecord) -> SchemaRecord:
        """Create a schema record."""

    def update_schema(self, record: SchemaRecord) -> SchemaRecord:
        """Replace a schema record, guarded by record.resource_version."""
