"""
Core types.

This file defines the shared data structures used across the reconciler.

Important design choice
We keep these types store neutral and driver neutral.

Store neutral means:
Records are plain dataclasses. An ObjectStore decides how they are persisted
and hands out a resource_version token for optimistic concurrency.

Driver neutral means:
A FirmwareReader may talk Redfish, IPMI or a vendor API, but callers only see
a FirmwareReading of setting name to string value plus an optional schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class AttributeType(str, Enum):
    """
    Firmware attribute types.

    String
      Free text bounded by min_length and max_length.

    Integer
      Whole number bounded by lower_bound and upper_bound.

    Enumeration
      One of allowable_values.

    Unknown
      Any type string we do not recognise. Only presence is checked.

    This is a closed set. A new type gets a new member and a new rule in the
    validation engine.
    """

    string = "String"
    integer = "Integer"
    enumeration = "Enumeration"
    unknown = "Unknown"

    @classmethod
    def parse(cls, raw: str) -> "AttributeType":
        """Map a type string read from hardware to a member, Unknown when unrecognised."""
        for member in cls:
            if member.value == raw:
                return member
        return cls.unknown


class ValueKind(str, Enum):
    """Tag for SettingValue."""

    string = "string"
    integer = "integer"


class ConditionType(str, Enum):
    """Condition types written by the reconciler."""

    change_detected = "ChangeDetected"
    valid = "Valid"


class ConditionReason(str, Enum):
    """Machine readable condition reasons."""

    success = "Success"
    configuration_error = "ConfigurationError"


@dataclass(frozen=True)
class ObjectKey:
    """
    Identity of a stored object.

    name and namespace together are unique per record kind.
    """

    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class SchemaReference:
    """Reference from a SettingsRecord to the shared SchemaRecord it resolved to."""

    name: str
    namespace: str

    def key(self) -> ObjectKey:
        return ObjectKey(name=self.name, namespace=self.namespace)


@dataclass(frozen=True)
class SettingValue:
    """
    A desired setting value.

    Desired values may be written as strings or integers. We keep the tag so
    integer typed values are validated without a string round trip, and we
    render both to the same canonical string form with str().
    """

    kind: ValueKind
    int_value: int = 0
    str_value: str = ""

    @classmethod
    def from_int(cls, value: int) -> "SettingValue":
        return cls(kind=ValueKind.integer, int_value=int(value))

    @classmethod
    def from_string(cls, value: str) -> "SettingValue":
        return cls(kind=ValueKind.string, str_value=str(value))

    @classmethod
    def parse(cls, raw: object) -> "SettingValue":
        """
        Build a value from a decoded JSON scalar.

        bool is an int subclass in Python, it is kept as a lower case string.
        """
        if isinstance(raw, bool):
            return cls.from_string(str(raw).lower())
        if isinstance(raw, int):
            return cls.from_int(raw)
        return cls.from_string(str(raw))

    def __str__(self) -> str:
        if self.kind == ValueKind.integer:
            return str(self.int_value)
        return self.str_value


@dataclass(frozen=True)
class AttributeSpec:
    """
    Constraints for a single firmware attribute.

    Only the fields relevant to attribute_type are meaningful, the rest are
    ignored by validation.

    raw_type keeps the original type string for Unknown attributes so the
    canonical schema hash does not collapse distinct unknown types.
    """

    attribute_type: AttributeType
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    lower_bound: Optional[int] = None
    upper_bound: Optional[int] = None
    allowable_values: Optional[List[str]] = None
    unique: Optional[bool] = None
    read_only: Optional[bool] = None
    raw_type: str = ""

    def type_name(self) -> str:
        if self.attribute_type == AttributeType.unknown and self.raw_type:
            return self.raw_type
        return self.attribute_type.value


@dataclass
class Condition:
    """
    A named boolean status flag.

    last_transition_time only moves when status flips.
    """

    type: str
    status: bool
    reason: str
    message: str = ""
    last_transition_time: Optional[datetime] = None


@dataclass
class SettingsRecord:
    """
    Per host firmware settings record.

    desired is written by operators out of band.
    current, schema_ref, conditions and last_updated are owned by the reconciler.
    resource_version is assigned by the object store.
    """

    name: str
    namespace: str
    desired: Dict[str, SettingValue] = field(default_factory=dict)
    current: Dict[str, str] = field(default_factory=dict)
    schema_ref: Optional[SchemaReference] = None
    conditions: List[Condition] = field(default_factory=list)
    last_updated: Optional[datetime] = None
    resource_version: str = ""

    def key(self) -> ObjectKey:
        return ObjectKey(name=self.name, namespace=self.namespace)


@dataclass
class SchemaRecord:
    """
    Shared firmware schema.

    name is content derived, so attributes never change after create.
    owners lists the SettingsRecords that resolved to this schema, no duplicates.
    """

    name: str
    namespace: str
    attributes: Dict[str, AttributeSpec] = field(default_factory=dict)
    owners: List[ObjectKey] = field(default_factory=list)
    resource_version: str = ""

    def key(self) -> ObjectKey:
        return ObjectKey(name=self.name, namespace=self.namespace)


@dataclass(frozen=True)
class FirmwareReading:
    """
    Output of one hardware read.

    settings maps setting name to the value reported by the management controller.
    schema is None when the reader was asked not to include it.
    """

    settings: Dict[str, str]
    schema: Optional[Dict[str, AttributeSpec]] = None
