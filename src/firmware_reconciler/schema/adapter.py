"""
Schema store adapter.

Purpose
Turn a schema read from hardware into a reference to one shared SchemaRecord.

Many hosts share a firmware schema. We store it once under a content derived
name and track which SettingsRecords resolved to it in owners.

Concurrency
owners is the only field ever written after create. Appending an owner is an
idempotent set union, so on a version conflict we simply re-read and try
again. Content is never rewritten because the name already pins it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from firmware_reconciler.core.errors import NotFound, PersistenceConflict
from firmware_reconciler.core.types import AttributeSpec, ObjectKey, SchemaRecord, SchemaReference
from firmware_reconciler.schema.hashing import schema_name
from firmware_reconciler.store.base import ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaStoreConfig:
    """
    Schema adapter configuration.

    max_conflict_retries
    How many extra attempts to make after a lost create race or a stale
    owners update before the conflict propagates to the caller.
    """

    max_conflict_retries: int = 3


@dataclass(frozen=True)
class SchemaResolution:
    """
    Result of ensure_schema.

    ref
    Reference to store on the SettingsRecord.

    created
    True when this call created the SchemaRecord.

    owner_added
    True when this call appended the owner to an existing SchemaRecord.
    """

    ref: SchemaReference
    created: bool
    owner_added: bool


class SchemaStoreAdapter:
    """Resolve and persist shared schemas."""

    def __init__(self, store: ObjectStore, config: SchemaStoreConfig | None = None) -> None:
        self._store = store
        self._config = config or SchemaStoreConfig()

    def ensure_schema(
        self,
        attributes: Mapping[str, AttributeSpec],
        owner: ObjectKey,
        namespace: str,
    ) -> SchemaResolution:
        """
        Create or join the SchemaRecord for attributes.

        Steps
        1) derive the name from content
        2) create with owners [owner] when absent
        3) otherwise append owner when missing and update
        """

        name = schema_name(attributes)
        key = ObjectKey(name=name, namespace=namespace)
        ref = SchemaReference(name=name, namespace=namespace)

        retries = 0
        while True:
            try:
                return self._ensure_once(key, ref, attributes, owner)
            except PersistenceConflict as exc:
                retries += 1
                if retries > self._config.max_conflict_retries:
                    raise
                logger.warning(
                    "schema %s conflict for owner %s, retrying (%d/%d): %s",
                    key,
                    owner,
                    retries,
                    self._config.max_conflict_retries,
                    exc,
                )

    def _ensure_once(
        self,
        key: ObjectKey,
        ref: SchemaReference,
        attributes: Mapping[str, AttributeSpec],
        owner: ObjectKey,
    ) -> SchemaResolution:
        try:
            existing = self._store.get_schema(key)
        except NotFound:
            existing = None

        if existing is None:
            record = SchemaRecord(
                name=key.name,
                namespace=key.namespace,
                attributes=dict(attributes),
                owners=[owner],
            )
            # AlreadyExists here means another host won the create race
            self._store.create_schema(record)
            logger.info("created schema %s for owner %s", key, owner)
            return SchemaResolution(ref=ref, created=True, owner_added=True)

        if owner in existing.owners:
            return SchemaResolution(ref=ref, created=False, owner_added=False)

        existing.owners.append(owner)
        self._store.update_schema(existing)
        logger.info("added owner %s to schema %s", owner, key)
        return SchemaResolution(ref=ref, created=False, owner_added=True)

    def get_schema(self, ref: SchemaReference) -> SchemaRecord:
        """Resolve a reference. NotFound propagates."""
        return self._store.get_schema(ref.key())
