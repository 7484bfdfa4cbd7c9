"""
Schema content addressing.

The schema name is derived from the canonical JSON of its attributes, so two
hosts that report the same schema in any order resolve to the same name.
"""

from __future__ import annotations

import hashlib
from typing import Mapping

from firmware_reconciler.core.serialization import canonical_schema_json
from firmware_reconciler.core.types import AttributeSpec

SCHEMA_NAME_PREFIX = "schema-"
SCHEMA_HASH_CHARS = 8


def schema_digest(attributes: Mapping[str, AttributeSpec]) -> str:
    """Full hex SHA-256 of the canonical schema text."""
    text = canonical_schema_json(attributes)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def schema_name(attributes: Mapping[str, AttributeSpec]) -> str:
    """Stable object name for a schema, for example schema-4bcc035f."""
    return SCHEMA_NAME_PREFIX + schema_digest(attributes)[:SCHEMA_HASH_CHARS]
