"""
Reconciliation audit trail.

One JSON object per line, one line per committed pass. The line records what
an operator needs to answer "what did the reconciler see and decide for this
host": the schema it resolved, whether settings changed, and every
validation error verbatim.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from firmware_reconciler.reconciler.engine import ReconcileResult


def pass_event(result: "ReconcileResult") -> dict[str, Any]:
    """Audit shape of one reconciliation pass."""
    ref = result.schema_ref
    return {
        "event": "reconcile",
        "host": result.key.name,
        "namespace": result.key.namespace,
        "schema": ref.name if ref is not None else None,
        "changed": result.changed,
        "valid": result.valid,
        "errors": [{"setting": e.setting, "message": e.message} for e in result.errors],
        "resource_version": result.record.resource_version,
        "attempts": result.attempts,
    }


@dataclass(frozen=True)
class AuditLogger:
    """
    JSON line audit logger.

    path
    File the lines are appended to. Parent directories are created on demand.
    """

    path: Path

    def log(self, event: dict[str, Any]) -> None:
        payload = dict(event)
        payload["ts_unix"] = int(time.time())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, sort_keys=True) + "\n")

    def log_pass(self, result: "ReconcileResult") -> None:
        self.log(pass_event(result))

    def read_events(self) -> list[dict[str, Any]]:
        """Return every logged event in order. A missing file means no events."""
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
