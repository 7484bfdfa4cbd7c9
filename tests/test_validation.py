import pytest

from firmware_reconciler.core.types import (
    AttributeSpec,
    AttributeType,
    ObjectKey,
    SchemaRecord,
    SettingValue,
)
from firmware_reconciler.validation.engine import (
    ValidationConfig,
    render_errors,
    validate_setting,
    validate_settings,
)


def _schema() -> SchemaRecord:
    attributes = {
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
    return SchemaRecord(
        name="schema-test",
        namespace="metal",
        attributes=attributes,
        owners=[ObjectKey(name="worker-0", namespace="metal")],
    )


def _current() -> dict[str, str]:
    return {
        "CustomPostMessage": "All tests passed",
        "L2Cache": "10x256 KB",
        "NetworkBootRetryCount": "10",
        "ProcVirtualization": "Enabled",
        "SecureBoot": "Enabled",
        "AssetTag": "X45672917",
    }


def _desired(**values: object) -> dict[str, SettingValue]:
    return {k: SettingValue.parse(v) for k, v in values.items()}


@pytest.mark.parametrize(
    ("desired", "expected"),
    [
        (
            _desired(
                CustomPostMessage="All tests passed",
                ProcVirtualization="Disabled",
                NetworkBootRetryCount="20",
            ),
            [],
        ),
        (
            _desired(
                CustomPostMessage="A really long POST message",
                ProcVirtualization="Disabled",
                NetworkBootRetryCount="20",
            ),
            [
                "Setting CustomPostMessage is invalid, string A really long POST message "
                "length is above maximum length 20"
            ],
        ),
        (
            _desired(
                CustomPostMessage="All tests passed",
                ProcVirtualization="Disabled",
                NetworkBootRetryCount="2000",
            ),
            ["Setting NetworkBootRetryCount is invalid, integer 2000 is above maximum value 20"],
        ),
        (
            _desired(
                CustomPostMessage="All tests passed",
                ProcVirtualization="Not enabled",
                NetworkBootRetryCount="20",
            ),
            ["Setting ProcVirtualization is invalid, unknown enumeration value - Not enabled"],
        ),
        (
            _desired(SomeNewSetting="foo"),
            ["Setting SomeNewSetting is not in the Status field"],
        ),
        (
            _desired(
                CustomPostMessage="All tests passed",
                ProcVirtualization="Disabled",
                NetworkBootRetryCount="20",
                SysPassword="Pa%$word",
            ),
            ["Cannot set Password field"],
        ),
    ],
    ids=["valid", "invalid string", "invalid int", "invalid enum", "invalid name", "password"],
)
def test_validate_settings_table(desired, expected):
    errors = validate_settings(desired, _current(), _schema())
    assert [str(e) for e in errors] == expected


def test_scenario_integer_above_upper_bound():
    schema = SchemaRecord(
        name="s",
        namespace="metal",
        attributes={
            "NetworkBootRetryCount": AttributeSpec(AttributeType.integer, lower_bound=0, upper_bound=20)
        },
    )

    errors = validate_settings(
        _desired(NetworkBootRetryCount="1000"),
        {"NetworkBootRetryCount": "10"},
        schema,
    )

    assert len(errors) == 1
    assert errors[0].setting == "NetworkBootRetryCount"
    assert str(errors[0]) == "Setting NetworkBootRetryCount is invalid, integer 1000 is above maximum value 20"


def test_lower_bounds_and_min_length():
    schema = SchemaRecord(
        name="s",
        namespace="metal",
        attributes={
            "Count": AttributeSpec(AttributeType.integer, lower_bound=5, upper_bound=10),
            "Tag": AttributeSpec(AttributeType.string, min_length=3, max_length=8),
        },
    )

    errors = validate_settings(
        _desired(Count=2, Tag="ab"),
        {"Count": "7", "Tag": "abcd"},
        schema,
    )

    assert [str(e) for e in errors] == [
        "Setting Count is invalid, integer 2 is below minimum value 5",
        "Setting Tag is invalid, string ab length is below minimum length 3",
    ]


def test_integer_typed_value_skips_parsing_and_string_value_must_parse():
    spec = AttributeSpec(AttributeType.integer, lower_bound=0, upper_bound=20)

    assert validate_setting("N", SettingValue.from_int(7), spec) is None
    assert validate_setting("N", SettingValue.from_string("+7"), spec) is None
    padded = validate_setting("N", SettingValue.from_string(" 7 "), spec)
    assert padded is not None
    assert str(padded) == "Setting N is invalid,  7  is not an integer"

    err = validate_setting("N", SettingValue.from_string("seven"), spec)
    assert err is not None
    assert str(err) == "Setting N is invalid, seven is not an integer"


def test_every_field_reported_once():
    errors = validate_settings(
        _desired(
            CustomPostMessage="A really long POST message",
            NetworkBootRetryCount="abc",
            Missing="1",
            AdminPassword="x",
        ),
        _current(),
        _schema(),
    )

    assert [e.setting for e in errors] == [
        "AdminPassword",
        "CustomPostMessage",
        "Missing",
        "NetworkBootRetryCount",
    ]


def test_unparseable_integer_absent_from_current_reports_presence():
    errors = validate_settings(_desired(BootRetries="lots"), _current(), _schema())

    assert [str(e) for e in errors] == ["Setting BootRetries is not in the Status field"]


def test_unknown_type_only_checks_presence():
    schema = SchemaRecord(
        name="s",
        namespace="metal",
        attributes={"Mystery": AttributeSpec(AttributeType.parse("Password"))},
    )

    assert validate_settings(_desired(Mystery="anything"), {"Mystery": "x"}, schema) == []


def test_without_schema_only_naming_and_presence_apply():
    errors = validate_settings(
        _desired(NetworkBootRetryCount="2000", Other="1"),
        {"NetworkBootRetryCount": "10"},
        None,
    )

    assert [str(e) for e in errors] == ["Setting Other is not in the Status field"]


def test_read_only_accepted_by_default_and_rejected_when_configured():
    desired = _desired(SecureBoot="Disabled")

    assert validate_settings(desired, _current(), _schema()) == []

    errors = validate_settings(
        desired,
        _current(),
        _schema(),
        ValidationConfig(reject_read_only=True),
    )
    assert [str(e) for e in errors] == ["Setting SecureBoot is invalid, it is ReadOnly"]


def test_render_errors_joins_messages():
    errors = validate_settings(_desired(A="1", B="2"), {}, None)

    assert render_errors(errors) == (
        "Setting A is not in the Status field; Setting B is not in the Status field"
    )
