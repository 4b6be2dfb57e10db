"""Storage targets — where resource values physically live.

The engine only talks to the Storage protocol. A graph keeps its private
values in its own SlotStore; a resource declared with ``share=`` writes to
the given store instead, so several graphs can point one resource at the
same slot (put a SlotStore on a class to get class-variable-like sharing).
"""

from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable


@runtime_checkable
class Storage(Protocol):
    def get(self, name: str, default: object = None) -> object: ...

    def set(self, name: str, value: object) -> None: ...

    def has(self, name: str) -> bool: ...


class SlotStore:
    """Dict-backed Storage."""

    __slots__ = ("_slots",)

    def __init__(self, initial: dict[str, object] | None = None) -> None:
        self._slots: dict[str, object] = dict(initial) if initial else {}

    def get(self, name: str, default: object = None) -> object:
        return self._slots.get(name, default)

    def set(self, name: str, value: object) -> None:
        self._slots[name] = value

    def has(self, name: str) -> bool:
        return name in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"SlotStore({self._slots!r})"
