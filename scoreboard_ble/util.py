"""Small helpers shared across the library."""
from __future__ import annotations

from collections.abc import Callable


def clamp(value: int, lower: int, upper: int | None = None) -> int:
    """Clamp value into [lower, upper]; upper may be open."""
    if value < lower:
        return lower
    if upper is not None and value > upper:
        return upper
    return value


def subscribe(listeners: list, listener: Callable) -> Callable[[], None]:
    """Append listener and return a callback removing it again."""
    listeners.append(listener)

    def remove() -> None:
        if listener in listeners:
            listeners.remove(listener)

    return remove
