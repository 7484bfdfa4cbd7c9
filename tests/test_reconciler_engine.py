from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from firmware_reconciler.audit.logger import AuditLogger
from firmware_reconciler.core.errors import NotFound, PersistenceConflict
from firmware_reconciler.core.types import (
    AttributeSpec,
    AttributeType,
    FirmwareReading,
    ObjectKey,
    SchemaRecord,
    SchemaReference,
    SettingsRecord,
    SettingValue,
)
from firmware_reconciler.reconciler.engine import FirmwareSettingsReconciler, ReconcilerConfig
from firmware_reconciler.schema.hashing import schema_name
from firmware_reconciler.store.memory import InMemoryObjectStore

NAMESPACE = "myHostNamespace"
HOST = ObjectKey(name="myHostName", namespace=NAMESPACE)
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Clock that advances one minute per call."""

    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


def _schema_attributes() -> dict[str, AttributeSpec]:
    return {
        "AssetTag": AttributeSpec(AttributeType.string, min_length=0, max_length=20, unique=True),
        "CustomPostMessage": AttributeSpec(
            AttributeType.string, min_length=0, max_length=20, unique=False, read_only=False
        ),
        "L2Cache": AttributeSpec(AttributeType.string, min_length=0, max_length=20, read_only=True),
        "NetworkBootRetryCount": AttributeSpec(
            AttributeType.integer, lower_bound=0, upper_bound=20, read_only=False
        ),
        "ProcVirtualization": AttributeSpec(
            AttributeType.enumeration, allowable_values=["Enabled", "Disabled"], read_only=False
        ),
        "SecureBoot": AttributeSpec(
            AttributeType.enumeration, allowable_values=["Enabled", "Disabled"], read_only=True
        ),
    }


def _hardware_settings() -> dict[str, str]:
    return {
        "L2Cache": "10x512 KB",
        "NetworkBootRetryCount": "20",
        "ProcVirtualization": "Disabled",
        "SecureBoot": "Enabled",
        "AssetTag": "X45672917",
    }


def _reading() -> FirmwareReading:
    return FirmwareReading(settings=_hardware_settings(), schema=_schema_attributes())


def _seed(
    store: InMemoryObjectStore,
    desired: dict[str, str] | None = None,
    current: dict[str, str] | None = None,
) -> None:
    store.create_settings(
        SettingsRecord(
            name=HOST.name,
            namespace=HOST.namespace,
            desired={k: SettingValue.from_string(v) for k, v in (desired or {}).items()},
            current=dict(current or {}),
        )
    )


def _expected_ref() -> SchemaReference:
    return SchemaReference(name=schema_name(_schema_attributes()), namespace=NAMESPACE)


def test_initial_record_without_schema_creates_schema_and_is_valid():
    store = InMemoryObjectStore()
    _seed(store)
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    result = engine.run_once(HOST, _reading())

    record = store.get_settings(HOST)
    assert result.valid and not result.changed
    assert record.current == _hardware_settings()
    assert record.schema_ref == _expected_ref()
    assert [(c.type, c.status, c.reason) for c in record.conditions] == [("Valid", True, "Success")]
    assert record.last_updated == T0
    assert record.resource_version == "2"

    schema = store.get_schema(_expected_ref().key())
    assert schema.owners == [HOST]
    assert schema.resource_version == "1"


def test_initial_record_joins_existing_schema():
    store = InMemoryObjectStore()
    _seed(store)
    dummy = ObjectKey(name="dummyhfs", namespace=NAMESPACE)
    store.create_schema(
        SchemaRecord(
            name=_expected_ref().name,
            namespace=NAMESPACE,
            attributes=_schema_attributes(),
            owners=[dummy],
        )
    )
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    engine.run_once(HOST, _reading())

    schema = store.get_schema(_expected_ref().key())
    assert schema.owners == [dummy, HOST]
    assert schema.resource_version == "2"


def test_updated_settings_set_change_detected_before_valid():
    store = InMemoryObjectStore()
    _seed(
        store,
        desired={"NetworkBootRetryCount": "10", "ProcVirtualization": "Enabled", "AssetTag": "Z98765432"},
        current={
            "AssetTag": "Z98765432",
            "L2Cache": "10x256 KB",
            "NetworkBootRetryCount": "10",
            "ProcVirtualization": "Enabled",
        },
    )
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    result = engine.run_once(HOST, _reading())

    record = store.get_settings(HOST)
    assert result.changed and result.valid
    assert record.current == _hardware_settings()
    assert [(c.type, c.status, c.reason) for c in record.conditions] == [
        ("ChangeDetected", True, "Success"),
        ("Valid", True, "Success"),
    ]


def test_invalid_desired_setting_marks_record_invalid():
    store = InMemoryObjectStore()
    _seed(
        store,
        desired={"NetworkBootRetryCount": "1000", "ProcVirtualization": "Enabled"},
        current={"L2Cache": "10x256 KB", "NetworkBootRetryCount": "10", "ProcVirtualization": "Enabled"},
    )
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    result = engine.run_once(HOST, _reading())

    record = store.get_settings(HOST)
    assert not result.valid
    assert [(c.type, c.status, c.reason) for c in record.conditions] == [
        ("ChangeDetected", True, "Success"),
        ("Valid", False, "ConfigurationError"),
    ]
    assert record.conditions[-1].message == (
        "Setting NetworkBootRetryCount is invalid, integer 1000 is above maximum value 20"
    )


def test_enumeration_and_missing_setting_messages_reach_the_condition():
    store = InMemoryObjectStore()
    _seed(store, desired={"ProcVirtualization": "Not enabled", "SomeNewSetting": "foo"})
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    engine.run_once(HOST, _reading())

    valid = store.get_settings(HOST).conditions[-1]
    assert valid.type == "Valid" and valid.status is False
    assert valid.message == (
        "Setting ProcVirtualization is invalid, unknown enumeration value - Not enabled; "
        "Setting SomeNewSetting is not in the Status field"
    )


def test_second_identical_pass_is_idempotent():
    store = InMemoryObjectStore()
    _seed(store, current={"NetworkBootRetryCount": "10"})
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    engine.run_once(HOST, _reading())
    first = store.get_settings(HOST)

    second_result = engine.run_once(HOST, _reading())
    second = store.get_settings(HOST)

    assert not second_result.changed
    assert second.current == first.current
    assert second.schema_ref == first.schema_ref
    assert second.conditions == first.conditions
    assert second.last_updated is not None and first.last_updated is not None
    assert second.last_updated > first.last_updated
    assert store.get_schema(_expected_ref().key()).resource_version == "1"


def test_first_pass_never_sets_change_detected():
    store = InMemoryObjectStore()
    _seed(store)
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    engine.run_once(HOST, _reading())

    record = store.get_settings(HOST)
    assert record.current
    assert "ChangeDetected" not in [c.type for c in record.conditions]


def test_two_hosts_with_reordered_schema_share_one_schema():
    store = InMemoryObjectStore()
    other = ObjectKey(name="otherHost", namespace=NAMESPACE)
    _seed(store)
    store.create_settings(SettingsRecord(name=other.name, namespace=other.namespace))
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    reordered = dict(reversed(list(_schema_attributes().items())))
    r1 = engine.run_once(HOST, _reading())
    r2 = engine.run_once(other, FirmwareReading(settings=_hardware_settings(), schema=reordered))

    assert r1.schema_ref == r2.schema_ref
    assert store.schema_names() == [_expected_ref().name]
    assert store.get_schema(_expected_ref().key()).owners == [HOST, other]


def test_reading_without_schema_keeps_previous_reference():
    store = InMemoryObjectStore()
    _seed(store, desired={"NetworkBootRetryCount": "2000"})
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    engine.run_once(HOST, _reading())
    result = engine.run_once(HOST, FirmwareReading(settings=_hardware_settings(), schema=None))

    assert result.schema_ref == _expected_ref()
    assert [str(e) for e in result.errors] == [
        "Setting NetworkBootRetryCount is invalid, integer 2000 is above maximum value 20"
    ]


def test_commit_conflict_is_retried_from_a_fresh_read():
    store = InMemoryObjectStore()
    _seed(store)
    store.conflicts_to_inject["settings"] = 1
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    result = engine.run_once(HOST, _reading())

    assert result.attempts == 2
    assert store.get_settings(HOST).schema_ref == _expected_ref()
    assert store.get_schema(_expected_ref().key()).owners == [HOST]


def test_commit_conflict_propagates_after_retries():
    store = InMemoryObjectStore()
    _seed(store)
    store.conflicts_to_inject["settings"] = 10
    engine = FirmwareSettingsReconciler(
        store,
        config=ReconcilerConfig(max_conflict_retries=2),
        clock=FakeClock(),
    )

    with pytest.raises(PersistenceConflict):
        engine.run_once(HOST, _reading())

    record = store.get_settings(HOST)
    assert record.current == {}
    assert record.conditions == []
    assert record.last_updated is None


def test_missing_record_is_not_created():
    store = InMemoryObjectStore()
    engine = FirmwareSettingsReconciler(store, clock=FakeClock())

    with pytest.raises(NotFound):
        engine.run_once(HOST, _reading())

    assert store.list_settings() == []


def test_each_committed_pass_is_audited(tmp_path: Path):
    store = InMemoryObjectStore()
    _seed(store, desired={"SysPassword": "secret"})
    audit = AuditLogger(path=tmp_path / "audit" / "reconcile.jsonl")
    engine = FirmwareSettingsReconciler(store, audit=audit, clock=FakeClock())

    engine.run_once(HOST, _reading())

    events = audit.read_events()
    assert len(events) == 1
    assert events[0]["host"] == HOST.name
    assert events[0]["schema"] == _expected_ref().name
    assert events[0]["valid"] is False
    assert events[0]["errors"] == [{"setting": "SysPassword", "message": "Cannot set Password field"}]
    assert "ts_unix" in events[0]
