from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from typing import Any, Mapping

from firmware_reconciler.core.types import (
    AttributeSpec,
    AttributeType,
    SchemaRecord,
    SettingsRecord,
    SettingValue,
    ValueKind,
)


def _normalize(obj: Any) -> Any:
    if isinstance(obj, SettingValue):
        return obj.int_value if obj.kind == ValueKind.integer else obj.str_value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "value"):
        return obj.value
    if isinstance(obj, dict):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_normalize(v) for v in obj]
    return obj


def to_json_safe_dict(obj: Any) -> dict[str, Any]:
    """
    Convert a dataclass object into a JSON safe dict.

    This is intended for transport only.
    """
    raw = asdict(obj)
    normalized = _normalize(raw)
    if not isinstance(normalized, dict):
        raise TypeError("expected dict after normalization")
    return normalized


def attribute_to_canonical_dict(spec: AttributeSpec) -> dict[str, Any]:
    """
    Canonical shape of one attribute.

    Unset optional fields are omitted so that an attribute read with or without
    explicit nulls hashes the same. allowable_values is a set, so it is emitted
    sorted.
    """
    out: dict[str, Any] = {"attribute_type": spec.type_name()}
    if spec.min_length is not None:
        out["min_length"] = spec.min_length
    if spec.max_length is not None:
        out["max_length"] = spec.max_length
    if spec.lower_bound is not None:
        out["lower_bound"] = spec.lower_bound
    if spec.upper_bound is not None:
        out["upper_bound"] = spec.upper_bound
    if spec.allowable_values is not None:
        out["allowable_values"] = sorted(spec.allowable_values)
    if spec.unique is not None:
        out["unique"] = spec.unique
    if spec.read_only is not None:
        out["read_only"] = spec.read_only
    return out


def canonical_schema_json(attributes: Mapping[str, AttributeSpec]) -> str:
    """Deterministic JSON text for a schema, independent of mapping order."""
    payload = {str(name): attribute_to_canonical_dict(spec) for name, spec in attributes.items()}
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def _opt_int(obj: Mapping[str, Any], key: str) -> int | None:
    value = obj.get(key)
    if value is None:
        return None
    return int(value)


def _opt_bool(obj: Mapping[str, Any], key: str) -> bool | None:
    value = obj.get(key)
    if value is None:
        return None
    return bool(value)


def attribute_from_dict(obj: Mapping[str, Any]) -> AttributeSpec:
    """
    Convert an attribute dict into an AttributeSpec.

    Accepts both snake_case and the camelCase keys management controllers report.
    """
    raw_type = str(obj.get("attribute_type", obj.get("attributeType", "")))

    def pick(snake: str, camel: str) -> Any:
        return obj.get(snake, obj.get(camel))

    normalized = {
        "min_length": pick("min_length", "minLength"),
        "max_length": pick("max_length", "maxLength"),
        "lower_bound": pick("lower_bound", "lowerBound"),
        "upper_bound": pick("upper_bound", "upperBound"),
        "unique": obj.get("unique"),
        "read_only": pick("read_only", "readOnly"),
    }

    allowable = pick("allowable_values", "allowableValues")
    attribute_type = AttributeType.parse(raw_type)

    return AttributeSpec(
        attribute_type=attribute_type,
        min_length=_opt_int(normalized, "min_length"),
        max_length=_opt_int(normalized, "max_length"),
        lower_bound=_opt_int(normalized, "lower_bound"),
        upper_bound=_opt_int(normalized, "upper_bound"),
        allowable_values=[str(v) for v in allowable] if isinstance(allowable, list) else None,
        unique=_opt_bool(normalized, "unique"),
        read_only=_opt_bool(normalized, "read_only"),
        raw_type=raw_type if attribute_type == AttributeType.unknown else "",
    )


def schema_from_dict(obj: Mapping[str, Any]) -> dict[str, AttributeSpec]:
    """Convert a name to attribute dict mapping into AttributeSpecs, skipping malformed entries."""
    out: dict[str, AttributeSpec] = {}
    for name, raw in obj.items():
        if isinstance(raw, dict):
            out[str(name)] = attribute_from_dict(raw)
    return out


def settings_record_to_json(record: SettingsRecord) -> dict[str, Any]:
    """
    SettingsRecord transport shape.

    status carries the fields owned by the reconciler.
    """
    payload = to_json_safe_dict(record)
    return {
        "name": payload["name"],
        "namespace": payload["namespace"],
        "resource_version": payload["resource_version"],
        "spec": {"settings": {k: _normalize(v) for k, v in record.desired.items()}},
        "status": {
            "settings": payload["current"],
            "schema": payload["schema_ref"],
            "conditions": payload["conditions"],
            "last_updated": payload["last_updated"],
        },
    }


def schema_record_to_json(record: SchemaRecord) -> dict[str, Any]:
    """SchemaRecord transport shape."""
    return {
        "name": record.name,
        "namespace": record.namespace,
        "resource_version": record.resource_version,
        "owners": [{"name": o.name, "namespace": o.namespace} for o in record.owners],
        "schema": json.loads(canonical_schema_json(record.attributes)),
    }
