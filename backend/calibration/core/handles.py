from __future__ import annotations

from typing import Iterable


def normalize_handle(handle: str) -> str:
    """Canonical storage form of an account handle: trimmed, no leading '@', lowercase."""
    value = handle.strip().lower()
    while value.startswith("@"):
        value = value[1:].lstrip()
    return value


def normalize_handles(handles: Iterable[str]) -> list[str]:
    """Normalize, drop empties and de-duplicate, keeping first-seen order."""
    seen: dict[str, None] = {}
    for h in handles:
        n = normalize_handle(h)
        if n:
            seen.setdefault(n, None)
    return list(seen)
