"""Accessor builder — get/set entry points for defined resources.

The graph only records each resource's AccessorMode. After a definition is
registered, build_accessor() turns it into an Accessor handle, and
ResourceView exposes the handles as plain attributes:

    fruits.fields.apples       # read, computing if needed
    fruits.fields.apples = 3   # write, propagating to dependents

Reading a write-only resource or writing a read-only one raises
AttributeError, the same as a missing attribute.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from resgraph.graph import ResourceDefinition
from resgraph.policy import AccessorMode

if TYPE_CHECKING:
    from resgraph.resources import Resources


class Accessor:
    """Get/set handle for one resource, limited by its accessor mode."""

    __slots__ = ("_resources", "_name", "_mode")

    def __init__(self, resources: Resources, name: str, mode: AccessorMode) -> None:
        self._resources = resources
        self._name = name
        self._mode = mode

    @property
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> AccessorMode:
        return self._mode

    def get(self) -> object:
        if not self._mode.readable:
            raise AttributeError(f"resource {self._name!r} is not readable")
        return self._resources.get(self._name)

    def set(self, value: object) -> None:
        if not self._mode.writable:
            raise AttributeError(f"resource {self._name!r} is not writable")
        self._resources.set(self._name, value)

    def __repr__(self) -> str:
        return f"Accessor({self._name!r}, {self._mode.value})"


def build_accessor(resources: Resources, definition: ResourceDefinition) -> Accessor | None:
    """Accessor for a definition, or None when its mode is ``none``."""
    if definition.accessor is AccessorMode.NONE:
        return None
    return Accessor(resources, definition.name, definition.accessor)


class ResourceView:
    """Attribute-style access to the resources of one Resources instance."""

    __slots__ = ("_accessors",)

    def __init__(self, accessors: dict[str, Accessor]) -> None:
        object.__setattr__(self, "_accessors", accessors)

    def __getattr__(self, name: str) -> object:
        accessor = self._accessors.get(name)
        if accessor is None or not accessor.mode.readable:
            raise AttributeError(name)
        return accessor.get()

    def __setattr__(self, name: str, value: object) -> None:
        accessor = self._accessors.get(name)
        if accessor is None or not accessor.mode.writable:
            raise AttributeError(f"can't set attribute {name!r}")
        accessor.set(value)

    def __dir__(self) -> list[str]:
        return sorted(n for n, a in self._accessors.items() if a.mode.readable)

    def __repr__(self) -> str:
        return f"ResourceView({sorted(self._accessors)!r})"
