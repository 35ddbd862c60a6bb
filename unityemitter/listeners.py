"""Listener records and the capped buckets that hold them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

Callback = Callable[..., Any]


@dataclass(slots=True, eq=False)
class Listener:
    """A registered callback plus its firing state.

    ``name`` and ``once`` are fixed at registration; ``suspended`` and
    ``emitted`` toggle over the listener's lifetime. The callback itself is
    never touched.
    """

    id: int
    name: str
    callback: Callback
    once: bool = False
    suspended: bool = False
    emitted: bool = False

    def refresh(self) -> None:
        """Reset the mutable state after a repeated registration."""

        self.suspended = False
        self.emitted = False


@dataclass(slots=True, eq=False)
class Bucket:
    """Insertion-ordered group of listeners sharing a capacity."""

    capacity: int
    _listeners: Dict[int, Listener] = field(default_factory=dict, repr=False)

    def add(self, listener: Listener) -> None:
        self._listeners[listener.id] = listener

    def discard(self, listener: Listener) -> None:
        self._listeners.pop(listener.id, None)

    def find(self, callback: Callback, once: bool) -> Optional[Listener]:
        for listener in self._listeners.values():
            if listener.callback is callback and listener.once == once:
                return listener
        return None

    def snapshot(self) -> List[Listener]:
        """Copy of the current members; safe to iterate while mutating."""

        return list(self._listeners.values())

    @property
    def full(self) -> bool:
        return len(self._listeners) >= self.capacity

    def __iter__(self) -> Iterator[Listener]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._listeners)


Chain = List[Bucket]


__all__ = ["Callback", "Listener", "Bucket", "Chain"]
