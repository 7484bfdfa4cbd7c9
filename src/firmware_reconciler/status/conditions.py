"""
Condition bookkeeping.

Conditions behave like a small ordered map keyed by type.

Rules
1) A type appears at most once.
2) Setting a type that exists replaces it. last_transition_time is kept when
   status did not flip, so an unchanged outcome does not look like a new event.
3) The touched entry moves to the tail. Within one pass the list therefore
   reflects the order in which conditions were set, and ChangeDetected stays
   ahead of Valid whenever both are set in the same pass.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from firmware_reconciler.core.types import Condition


class ConditionSet:
    """Ordered, type keyed view over a list of Condition objects."""

    def __init__(self, conditions: Iterable[Condition] | None = None) -> None:
        self._items: List[Condition] = []
        for cond in conditions or []:
            self._drop(cond.type)
            self._items.append(cond)

    def _drop(self, ctype: str) -> Optional[Condition]:
        for idx, existing in enumerate(self._items):
            if existing.type == ctype:
                return self._items.pop(idx)
        return None

    def get(self, ctype: str) -> Optional[Condition]:
        for cond in self._items:
            if cond.type == ctype:
                return cond
        return None

    def set(
        self,
        ctype: str,
        status: bool,
        reason: str,
        message: str,
        now: datetime,
    ) -> Condition:
        """Upsert a condition and return the stored entry."""
        previous = self._drop(ctype)

        transition = now
        if previous is not None and previous.status == status and previous.last_transition_time:
            transition = previous.last_transition_time

        cond = Condition(
            type=ctype,
            status=status,
            reason=reason,
            message=message,
            last_transition_time=transition,
        )
        self._items.append(cond)
        return cond

    def is_true(self, ctype: str) -> bool:
        cond = self.get(ctype)
        return cond is not None and cond.status

    def types(self) -> List[str]:
        return [c.type for c in self._items]

    def to_list(self) -> List[Condition]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
