"""
Validation engine.

Purpose
Before desired settings are considered authoritative, check every one of
them against the naming policy, the latest hardware reading and the host
schema.

Rules per desired setting, first failing rule wins
1) credential fields are never settable
2) the setting must exist in the latest reading
3) the value must satisfy the AttributeSpec for its type
4) optionally, read only attributes are rejected

Every setting is evaluated, so one pass reports every offending field.

Message text is part of the operator visible status and must stay stable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from firmware_reconciler.core.errors import SettingError
from firmware_reconciler.core.types import (
    AttributeSpec,
    AttributeType,
    SchemaRecord,
    SettingValue,
    ValueKind,
)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class ValidationConfig:
    """
    Validation configuration.

    reserved_name_pattern
    Regular expression searched in setting names. A match marks a credential
    field that may never be set through desired settings.

    reject_read_only
    When True, a desired value for an attribute flagged read_only is an error.
    Off by default. Unique is never enforced here, it needs a fleet wide view.
    """

    reserved_name_pattern: str = r"[Pp]assword"
    reject_read_only: bool = False


def _check_string(name: str, value: str, spec: AttributeSpec) -> Optional[SettingError]:
    length = len(value)
    if spec.max_length is not None and length > spec.max_length:
        return SettingError(
            setting=name,
            message=(
                f"Setting {name} is invalid, string {value} length is above "
                f"maximum length {spec.max_length}"
            ),
        )
    if spec.min_length is not None and length < spec.min_length:
        return SettingError(
            setting=name,
            message=(
                f"Setting {name} is invalid, string {value} length is below "
                f"minimum length {spec.min_length}"
            ),
        )
    return None


def _as_integer(value: SettingValue) -> Optional[int]:
    if value.kind == ValueKind.integer:
        return value.int_value
    if not _INTEGER_RE.fullmatch(value.str_value):
        return None
    return int(value.str_value)


def _check_integer(name: str, value: SettingValue, spec: AttributeSpec) -> Optional[SettingError]:
    number = _as_integer(value)
    if number is None:
        return SettingError(
            setting=name,
            message=f"Setting {name} is invalid, {value} is not an integer",
        )
    if spec.upper_bound is not None and number > spec.upper_bound:
        return SettingError(
            setting=name,
            message=(
                f"Setting {name} is invalid, integer {number} is above "
                f"maximum value {spec.upper_bound}"
            ),
        )
    if spec.lower_bound is not None and number < spec.lower_bound:
        return SettingError(
            setting=name,
            message=(
                f"Setting {name} is invalid, integer {number} is below "
                f"minimum value {spec.lower_bound}"
            ),
        )
    return None


def _check_enumeration(name: str, value: SettingValue, spec: AttributeSpec) -> Optional[SettingError]:
    text = str(value)
    if text not in (spec.allowable_values or []):
        return SettingError(
            setting=name,
            message=f"Setting {name} is invalid, unknown enumeration value - {text}",
        )
    return None


_TYPE_RULES: Dict[AttributeType, Callable[[str, SettingValue, AttributeSpec], Optional[SettingError]]] = {
    AttributeType.string: lambda name, value, spec: _check_string(name, str(value), spec),
    AttributeType.integer: _check_integer,
    AttributeType.enumeration: _check_enumeration,
}


def validate_setting(name: str, value: SettingValue, spec: AttributeSpec) -> Optional[SettingError]:
    """
    Type check one value against its AttributeSpec.

    Unknown attribute types have no rule and always pass.
    """
    rule = _TYPE_RULES.get(spec.attribute_type)
    if rule is None:
        return None
    return rule(name, value, spec)


def validate_settings(
    desired: Mapping[str, SettingValue],
    current: Mapping[str, str],
    schema: Optional[SchemaRecord],
    config: ValidationConfig | None = None,
) -> list[SettingError]:
    """
    Validate desired settings.

    schema may be None when no schema has been resolved yet. In that case only
    the naming and presence rules apply.

    Returns one SettingError per offending setting, ordered by setting name.
    An empty list means the desired settings are valid.
    """

    cfg = config or ValidationConfig()
    reserved = re.compile(cfg.reserved_name_pattern)
    attributes = schema.attributes if schema is not None else {}

    errors: list[SettingError] = []

    for name in sorted(desired):
        value = desired[name]

        if reserved.search(name):
            errors.append(SettingError(setting=name, message="Cannot set Password field"))
            continue

        if name not in current:
            errors.append(
                SettingError(setting=name, message=f"Setting {name} is not in the Status field")
            )
            continue

        spec = attributes.get(name)
        if spec is None:
            continue

        if cfg.reject_read_only and spec.read_only:
            errors.append(
                SettingError(setting=name, message=f"Setting {name} is invalid, it is ReadOnly")
            )
            continue

        err = validate_setting(name, value, spec)
        if err is not None:
            errors.append(err)

    return errors


def render_errors(errors: list[SettingError]) -> str:
    """Condition message for a failed validation."""
    return "; ".join(str(e) for e in errors)
