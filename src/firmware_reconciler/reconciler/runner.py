"""
Reconcile runner.

Purpose
Continuously:
- Register hosts from the host source
- Read firmware settings for every registered host
- Run the reconciliation engine

This is the composition layer of the system.
It wires the object store, firmware reader, host source and engine.

Core engine remains pure.
Runner handles hardware reads, schema refresh policy and per host failures.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from firmware_reconciler.audit.logger import AuditLogger
from firmware_reconciler.core.errors import AlreadyExists, NotFound, ReconcilerError
from firmware_reconciler.core.types import ObjectKey, SettingsRecord
from firmware_reconciler.hardware.base import FirmwareReader
from firmware_reconciler.inventory.base import HostRegistration, HostSource
from firmware_reconciler.reconciler.engine import (
    FirmwareSettingsReconciler,
    ReconcileResult,
    ReconcilerConfig,
)
from firmware_reconciler.store.base import ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnerConfig:
    """
    Runner configuration.

    interval_seconds
    Sleep duration between cycles.

    schema_refresh_every
    Read the schema on every Nth cycle. 1 means every cycle. Hosts without a
    schema reference always get one read with schema.

    sync_desired
    When True, registration also overwrites desired settings of existing
    records with the host source values.

    engine
    Configuration passed to the reconciliation engine.
    """

    interval_seconds: int = 60
    schema_refresh_every: int = 1
    sync_desired: bool = False
    engine: ReconcilerConfig = field(default_factory=ReconcilerConfig)


@dataclass(frozen=True)
class CycleReport:
    """
    Summary of one cycle.

    results
    Committed passes.

    failures
    Host key to error text for hosts that could not be reconciled.
    """

    results: list[ReconcileResult]
    failures: dict[ObjectKey, str]


class ReconcileRunner:
    """
    Top level reconcile loop.

    This is not the reconciliation engine.
    This is the runtime loop.
    """

    def __init__(
        self,
        store: ObjectStore,
        reader: FirmwareReader,
        host_source: HostSource | None = None,
        config: RunnerConfig | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._config = config or RunnerConfig()
        self._store = store
        self._reader = reader
        self._host_source = host_source
        self._engine = FirmwareSettingsReconciler(
            store=store,
            config=self._config.engine,
            audit=audit,
        )
        self._cycle = 0

    def register_hosts(self) -> list[ObjectKey]:
        """
        Create SettingsRecords for newly registered hosts.

        Returns the keys of records created in this call. A host whose record
        cannot be created or synced is logged and retried on the next cycle.
        """

        if self._host_source is None:
            return []

        created: list[ObjectKey] = []
        for reg in self._host_source.load():
            try:
                if self._register_one(reg):
                    created.append(reg.key())
            except ReconcilerError as exc:
                logger.warning("registration of %s skipped until next cycle: %s", reg.key(), exc)

        return created

    def _register_one(self, reg: HostRegistration) -> bool:
        key = reg.key()
        try:
            existing = self._store.get_settings(key)
        except NotFound:
            try:
                self._store.create_settings(
                    SettingsRecord(name=reg.name, namespace=reg.namespace, desired=dict(reg.desired))
                )
            except AlreadyExists:
                logger.info("host %s registered concurrently", key)
                return False
            logger.info("registered host %s", key)
            return True

        if self._config.sync_desired and existing.desired != reg.desired:
            existing.desired = dict(reg.desired)
            self._store.update_settings(existing)
            logger.info("synced desired settings for %s", key)
        return False

    def _include_schema(self, record: SettingsRecord) -> bool:
        if record.schema_ref is None:
            return True
        every = max(1, self._config.schema_refresh_every)
        return self._cycle % every == 0

    def run_cycle(self) -> CycleReport:
        """
        Execute one reconcile cycle.

        A failure on one host is logged and recorded, the other hosts still run.
        """

        self.register_hosts()

        results: list[ReconcileResult] = []
        failures: dict[ObjectKey, str] = {}

        for record in self._store.list_settings():
            key = record.key()
            try:
                reading = self._reader.read_settings(key, include_schema=self._include_schema(record))
                results.append(self._engine.run_once(key, reading))
            except ReconcilerError as exc:
                logger.warning("reconcile failed for %s: %s", key, exc)
                failures[key] = str(exc)
                continue

            if not results[-1].valid:
                logger.warning(
                    "invalid firmware settings on %s: %s",
                    key,
                    "; ".join(str(e) for e in results[-1].errors),
                )

        self._cycle += 1
        return CycleReport(results=results, failures=failures)

    def run_forever(self) -> None:
        """
        Continuous loop execution.
        """

        while True:
            self.run_cycle()
            time.sleep(self._config.interval_seconds)
