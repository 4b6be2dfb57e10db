"""Resource graph — the data side of resgraph.

Holds every resource definition, the per-resource bookkeeping (last sweep id,
stale flag), the private value store and the trigger registry. It knows
nothing about update order; that lives in resgraph.engine.

Values are not kept on ResourceState: they live in the resource's storage
target, which is either this graph's private SlotStore or a shared Storage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping

from resgraph.errors import InvalidArgument, UnknownResource
from resgraph.policy import (
    AccessorMode,
    DependencyPolicy,
    Policy,
    check_name,
    normalize_dependencies,
    parse_accessor,
)
from resgraph.storage import SlotStore, Storage

logger = logging.getLogger(__name__)

# Sweep id of a resource no sweep has touched yet.
NEVER = -1

_ABSENT = object()


@dataclass(frozen=True, eq=False)
class ResourceDefinition:
    """Immutable description of one resource."""

    name: str
    compute: Callable[[], object] | None
    dependencies: Mapping[str, Policy]
    triggers: frozenset[str]
    share: Storage | None
    accessor: AccessorMode

    @property
    def is_root(self) -> bool:
        """True if the engine never satisfies any of this resource's prerequisites."""
        return all(policy is DependencyPolicy.FAIL for policy in self.dependencies.values())


class ResourceState:
    """Mutable bookkeeping for one resource."""

    __slots__ = ("sweep_id", "stale")

    def __init__(self) -> None:
        self.sweep_id: int = NEVER
        self.stale: bool = False

    def __repr__(self) -> str:
        return f"ResourceState(sweep_id={self.sweep_id}, stale={self.stale})"


class ResourceGraph:
    """Definitions, state and storage for a set of named resources."""

    def __init__(self) -> None:
        self._definitions: dict[str, ResourceDefinition] = {}
        self._states: dict[str, ResourceState] = {}
        self._storage = SlotStore()
        self._triggers: set[str] = set()

    # --- Triggers ---

    def register_trigger(self, *tags: str) -> None:
        """Register trigger tags. The registry only ever grows."""
        for tag in tags:
            check_name(tag, "trigger")
        self._triggers.update(tags)

    @property
    def triggers(self) -> frozenset[str]:
        return frozenset(self._triggers)

    # --- Definitions ---

    def define(
        self,
        name: str,
        compute: Callable[[], object] | None = None,
        *,
        depends: object = None,
        triggers: Iterable[str] = (),
        overwrite: bool = False,
        share: Storage | None = None,
        accessor: object = AccessorMode.READ,
    ) -> ResourceDefinition:
        """Register a resource.

        Re-declaring an existing name is a no-op returning the existing
        definition unless overwrite is set. Everything is validated before
        the graph is touched.
        """
        check_name(name)
        if compute is not None and not callable(compute):
            raise InvalidArgument(f"compute for {name!r} is not callable")
        dependencies = normalize_dependencies(depends)
        if name in dependencies:
            raise InvalidArgument(f"resource {name!r} cannot depend on itself")
        if isinstance(triggers, str):
            triggers = (triggers,)
        tags = frozenset(triggers or ())
        unknown = sorted(str(tag) for tag in tags - self._triggers)
        if unknown:
            raise InvalidArgument(f"invalid trigger(s) {', '.join(unknown)} for {name!r}")
        if share is not None and not isinstance(share, Storage):
            raise InvalidArgument(f"share for {name!r} does not implement get/set/has")
        mode = parse_accessor(accessor)

        existing = self._definitions.get(name)
        if existing is not None and not overwrite:
            return existing

        definition = ResourceDefinition(
            name=name,
            compute=compute,
            dependencies=MappingProxyType(dependencies),
            triggers=tags,
            share=share,
            accessor=mode,
        )
        self._definitions[name] = definition
        state = ResourceState()
        if existing is not None:
            state.stale = True
            self._move_value(name, existing.share, share)
            logger.info("Redefined resource %r", name)
        self._states[name] = state
        return definition

    def definition(self, name: str) -> ResourceDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise UnknownResource(name) from None

    def state(self, name: str) -> ResourceState:
        try:
            return self._states[name]
        except KeyError:
            raise UnknownResource(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    # --- Storage ---

    def storage_for(self, name: str) -> Storage:
        definition = self._definitions.get(name)
        if definition is not None and definition.share is not None:
            return definition.share
        return self._storage

    def _move_value(self, name: str, old: Storage | None, new: Storage | None) -> None:
        """Carry a kept value over when a redefinition changes the storage target.

        A value already held by the new target wins.
        """
        source = self._storage if old is None else old
        target = self._storage if new is None else new
        if source is not target and source.has(name) and not target.has(name):
            target.set(name, source.get(name))

    def is_populated(self, name: str) -> bool:
        """True once the resource has been computed or written.

        Undeclared names are plain slots: populated if anything is stored.
        """
        return self.storage_for(name).has(name)

    def peek(self, name: str, default: object = None) -> object:
        """Stored value with no update."""
        return self.storage_for(name).get(name, default)

    def store(self, name: str, value: object, *, transitive: bool = False) -> bool:
        """Write a value and return whether it changed.

        A change marks the dependents stale (all downstream resources when
        transitive). The written resource itself is no longer stale.
        """
        storage = self.storage_for(name)
        old = storage.get(name, _ABSENT)
        storage.set(name, value)
        state = self._states.get(name)
        if state is not None:
            state.stale = False
        changed = old is _ABSENT or (old is not value and old != value)
        if changed:
            self.mark_stale(name, transitive=transitive)
        return changed

    def mark_stale(self, name: str, *, transitive: bool = False) -> None:
        seen = {name}
        frontier = [name]
        while frontier:
            current = frontier.pop()
            for dependant in self.dependants(current):
                self._states[dependant].stale = True
                if transitive and dependant not in seen:
                    seen.add(dependant)
                    frontier.append(dependant)

    # --- Selection ---

    def dependants(self, name: str) -> list[str]:
        """Resources that declare name as a dependency, in declaration order."""
        return [d.name for d in self._definitions.values() if name in d.dependencies]

    def roots(self) -> list[str]:
        """Resources with no dependencies or only ``fail`` dependencies."""
        return [d.name for d in self._definitions.values() if d.is_root]

    def tagged(self, tag: str) -> list[str]:
        return [d.name for d in self._definitions.values() if tag in d.triggers]

    def __repr__(self) -> str:
        return f"ResourceGraph({list(self._definitions)!r})"
