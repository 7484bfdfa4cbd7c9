"""
Change detection.

Compares the settings recorded on the previous pass with the latest hardware
reading. The first reading of a host initialises its state and is not a change.
"""

from __future__ import annotations

from typing import Mapping


def detect_change(previous: Mapping[str, str], latest: Mapping[str, str]) -> bool:
    """
    Return True when latest differs from a non empty previous.

    Added, removed and modified keys all count. Order is irrelevant.
    """
    if not previous:
        return False
    return dict(previous) != dict(latest)


def changed_keys(previous: Mapping[str, str], latest: Mapping[str, str]) -> list[str]:
    """Sorted names of settings that were added, removed or modified. Used for logs."""
    names = set(previous) | set(latest)
    return sorted(n for n in names if previous.get(n) != latest.get(n))
