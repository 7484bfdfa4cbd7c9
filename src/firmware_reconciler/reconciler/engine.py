"""
Reconciliation engine.

This engine runs one reconciliation pass for one host:
schema resolution, change detection, validation, condition bookkeeping and
commit.

Inputs
The SettingsRecord key and a FirmwareReading that the caller already fetched.
The engine performs no hardware I/O and holds no state between passes.

Commit semantics
The record is read once per attempt and written once, guarded by its
resource_version. A conflict restarts the pass from a fresh read with the same
reading. Any other store error propagates and nothing is written for the
record, so a half updated status is never committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from firmware_reconciler.audit.logger import AuditLogger
from firmware_reconciler.core.errors import PersistenceConflict, SettingError
from firmware_reconciler.core.types import (
    ConditionReason,
    ConditionType,
    FirmwareReading,
    ObjectKey,
    SchemaRecord,
    SchemaReference,
    SettingsRecord,
)
from firmware_reconciler.detection.change import changed_keys, detect_change
from firmware_reconciler.schema.adapter import SchemaStoreAdapter, SchemaStoreConfig
from firmware_reconciler.status.conditions import ConditionSet
from firmware_reconciler.store.base import ObjectStore
from firmware_reconciler.validation.engine import ValidationConfig, render_errors, validate_settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReconcilerConfig:
    """
    Engine configuration.

    max_conflict_retries
    Extra attempts after a stale SettingsRecord commit before the conflict
    propagates to the caller.

    validation
    Naming policy and read only handling.

    schema_store
    Retry policy for shared schema owner updates.
    """

    max_conflict_retries: int = 3
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    schema_store: SchemaStoreConfig = field(default_factory=SchemaStoreConfig)


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of a committed pass.

    changed
    True when the reading differed from the previously recorded settings.

    valid
    True when desired settings passed validation.

    errors
    Validation errors, empty when valid.

    record
    The SettingsRecord as committed, including its new resource_version.

    attempts
    Number of attempts it took to land the commit.
    """

    key: ObjectKey
    schema_ref: Optional[SchemaReference]
    changed: bool
    valid: bool
    errors: list[SettingError]
    record: SettingsRecord
    attempts: int = 1


class FirmwareSettingsReconciler:
    """
    Firmware settings reconciler.

    store
    Object store holding SettingsRecords and SchemaRecords.

    audit
    Optional JSON line audit log, one line per committed pass.

    clock
    Returns the current time. Injected so tests can pin timestamps.
    """

    def __init__(
        self,
        store: ObjectStore,
        config: ReconcilerConfig | None = None,
        audit: AuditLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or ReconcilerConfig()
        self._schemas = SchemaStoreAdapter(store, self._config.schema_store)
        self._audit = audit
        self._clock = clock or _utcnow

    def run_once(self, key: ObjectKey, reading: FirmwareReading) -> ReconcileResult:
        """
        Reconcile one host from an already fetched reading.

        Raises PersistenceConflict when the commit keeps losing after the
        configured retries. Other store errors propagate unchanged.
        A failed audit write is logged and does not fail the pass.
        """

        retries = 0
        while True:
            try:
                result = self._attempt(key, reading, attempt=retries + 1)
                break
            except PersistenceConflict as exc:
                retries += 1
                if retries > self._config.max_conflict_retries:
                    logger.warning("giving up on %s after %d conflicts", key, retries)
                    raise
                logger.warning(
                    "conflict committing %s, retrying (%d/%d): %s",
                    key,
                    retries,
                    self._config.max_conflict_retries,
                    exc,
                )

        if self._audit is not None:
            try:
                self._audit.log_pass(result)
            except OSError as exc:
                logger.warning("audit write failed for %s, record already committed: %s", key, exc)

        return result

    def _attempt(self, key: ObjectKey, reading: FirmwareReading, attempt: int) -> ReconcileResult:
        """
        One attempt of the pass.

        Steps
        1) resolve the shared schema, or keep the existing reference when the
           reading carries no schema
        2) detect change against the previously recorded settings
        3) overwrite current and schema_ref
        4) ChangeDetected when changed
        5) validate desired settings against the resolved schema
        6) Valid true or false
        7) stamp last_updated and commit
        """

        record = self._store.get_settings(key)
        now = self._clock()

        schema_ref = record.schema_ref
        if reading.schema is not None:
            resolution = self._schemas.ensure_schema(reading.schema, owner=key, namespace=key.namespace)
            schema_ref = resolution.ref

        previous = dict(record.current)
        latest = dict(reading.settings)
        changed = detect_change(previous, latest)
        if changed:
            logger.info("settings changed on %s: %s", key, ", ".join(changed_keys(previous, latest)))

        record.current = latest
        record.schema_ref = schema_ref

        conditions = ConditionSet(record.conditions)
        if changed:
            conditions.set(
                ConditionType.change_detected.value,
                True,
                ConditionReason.success.value,
                "",
                now,
            )

        schema = self._resolve_schema(schema_ref)
        errors = validate_settings(record.desired, latest, schema, self._config.validation)

        if errors:
            conditions.set(
                ConditionType.valid.value,
                False,
                ConditionReason.configuration_error.value,
                render_errors(errors),
                now,
            )
        else:
            conditions.set(
                ConditionType.valid.value,
                True,
                ConditionReason.success.value,
                "",
                now,
            )

        record.conditions = conditions.to_list()
        record.last_updated = now

        committed = self._store.update_settings(record)

        logger.info(
            "reconciled %s schema=%s changed=%s valid=%s errors=%d",
            key,
            schema_ref.name if schema_ref is not None else "-",
            changed,
            not errors,
            len(errors),
        )

        return ReconcileResult(
            key=key,
            schema_ref=schema_ref,
            changed=changed,
            valid=not errors,
            errors=errors,
            record=committed,
            attempts=attempt,
        )

    def _resolve_schema(self, ref: Optional[SchemaReference]) -> Optional[SchemaRecord]:
        if ref is None:
            return None
        return self._schemas.get_schema(ref)
