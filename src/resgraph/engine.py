"""Update engine — the propagation algorithm over a ResourceGraph.

Every update runs under a sweep id. A resource records the sweep id before it
resolves its prerequisites, so a diamond or a cycle that reaches it again in
the same sweep is short-circuited instead of recomputing it.

An update walks in three steps:

1. prerequisites, according to each dependency's policy (update_depends),
2. the resource's own computation, if it needs one,
3. dependents, with the same sweep id (update_dependants).

Everything runs synchronously on the caller's stack. Computation errors are
not caught; they propagate to whoever started the sweep.
"""

from __future__ import annotations

import itertools
import logging
from typing import Callable

from resgraph._tracking import active_sweep, sweep_scope
from resgraph.errors import CyclicDependency, InvalidArgument, UnknownTrigger
from resgraph.graph import ResourceDefinition, ResourceGraph, ResourceState
from resgraph.policy import DependencyPolicy

logger = logging.getLogger(__name__)

MARK_MODES = ("eager", "success")
PROPAGATION_MODES = ("eager", "lazy")

Disposer = Callable[[], None]


class UpdateEngine:
    """Reads, writes and update sweeps for one ResourceGraph.

    mark:
        ``"eager"`` leaves the sweep id on a resource whose computation
        raised, so it is not retried in that sweep. ``"success"`` restores
        the previous sweep id. An update that aborts on a missing
        prerequisite always gets its previous sweep id back, so a later path
        in the same sweep can still fill it.
    propagation:
        ``"eager"`` recomputes dependents as soon as a write changes a value.
        ``"lazy"`` only marks everything downstream stale; stale resources
        refresh on their next read.
    """

    def __init__(
        self,
        graph: ResourceGraph,
        *,
        mark: str = "eager",
        propagation: str = "eager",
    ) -> None:
        if mark not in MARK_MODES:
            raise InvalidArgument(f"mark must be one of {MARK_MODES}, got {mark!r}")
        if propagation not in PROPAGATION_MODES:
            raise InvalidArgument(
                f"propagation must be one of {PROPAGATION_MODES}, got {propagation!r}"
            )
        self.graph = graph
        self.mark = mark
        self.propagation = propagation
        self._sweep_ids = itertools.count(1)
        # Resources whose prerequisites or computation are on the stack.
        # None marks the start of a propagation step (update_dependants).
        self._computing: list[str | None] = []
        self._observers: dict[str, list[Callable[[object], None]]] = {}
        self._batch_depth = 0
        self._pending: dict[str, None] = {}

    def new_sweep(self) -> int:
        return next(self._sweep_ids)

    # --- Updates ---

    def update(self, name: str, sweep: int | None = None, *, force: bool = True) -> None:
        """Bring a resource up to date, then its dependents.

        Without force the computation is skipped when the resource already
        holds a value that is not stale. Prerequisites and dependents are
        walked either way.
        """
        definition = self.graph.definition(name)
        state = self.graph.state(name)
        chain = self._open_frames()
        if name in chain:
            raise CyclicDependency(chain[chain.index(name):] + [name])
        if sweep is not None and state.sweep_id == sweep:
            return
        if name in self._computing:
            # reached again through propagation under another sweep
            start = self._computing.index(name)
            path = [frame for frame in self._computing[start:] if frame is not None]
            raise CyclicDependency(path + [name])
        if sweep is None:
            sweep = self.new_sweep()

        previous = state.sweep_id
        state.sweep_id = sweep
        self._computing.append(name)
        try:
            completed = self._refresh(definition, state, sweep, force)
        except BaseException:
            if self.mark == "success":
                state.sweep_id = previous
            raise
        finally:
            self._computing.pop()

        if not completed:
            state.sweep_id = previous
            return
        self.update_dependants(name, sweep)

    def _open_frames(self) -> list[str]:
        """Resources on the stack since the last propagation step."""
        stack = self._computing
        for i in range(len(stack) - 1, -1, -1):
            if stack[i] is None:
                return stack[i + 1:]
        return list(stack)

    def _waiting_on(self, dep: str) -> bool:
        """dep is mid-update below a propagation step and will propagate when done."""
        return dep in self._computing and dep not in self._open_frames()

    def _refresh(
        self,
        definition: ResourceDefinition,
        state: ResourceState,
        sweep: int,
        force: bool,
    ) -> bool:
        name = definition.name
        if not self.update_depends(name, sweep):
            return False
        if definition.compute is None:
            return True
        if not force and not state.stale and self.graph.is_populated(name):
            return True
        logger.debug("sweep %d: computing %r", sweep, name)
        with sweep_scope(self, sweep):
            value = definition.compute()
        self._store(name, value)
        return True

    def update_depends(self, name: str, sweep: int) -> bool:
        """Resolve the prerequisites of name in declaration order.

        Returns False as soon as a ``fail`` prerequisite has no value, or a
        prerequisite is still being updated further down the stack. That one
        reaches name again through its own dependents once it is done.
        """
        graph = self.graph
        for dep, policy in graph.definition(name).dependencies.items():
            if self._waiting_on(dep):
                logger.debug(
                    "sweep %d: %r deferred, prerequisite %r is still updating",
                    sweep, name, dep,
                )
                return False
            if policy is DependencyPolicy.UPDATE:
                self.update(dep, sweep)
            elif policy is DependencyPolicy.KEEP or policy is DependencyPolicy.FAIL:
                if not graph.is_populated(dep):
                    if policy is DependencyPolicy.FAIL:
                        logger.debug(
                            "sweep %d: %r aborted, prerequisite %r is unpopulated",
                            sweep, name, dep,
                        )
                        return False
                    self.update(dep, sweep, force=False)
                elif self._pending_in(dep, sweep):
                    self.update(dep, sweep, force=False)
            elif policy():
                self.update(dep, sweep)
        return True

    def _pending_in(self, dep: str, sweep: int) -> bool:
        """A stale prerequisite this sweep has not reached yet."""
        if dep not in self.graph:
            return False
        state = self.graph.state(dep)
        return state.stale and state.sweep_id != sweep

    def update_dependants(self, name: str, sweep: int) -> None:
        """Update every resource depending on name not yet reached by this sweep."""
        self._computing.append(None)
        try:
            for dependant in self.graph.dependants(name):
                if self.graph.state(dependant).sweep_id != sweep:
                    self.update(dependant, sweep, force=False)
        finally:
            self._computing.pop()

    def fire_trigger(self, tag: str) -> None:
        """Recompute every resource tagged with tag, sharing one sweep."""
        if tag not in self.graph.triggers:
            raise UnknownTrigger(tag)
        sweep = self.new_sweep()
        names = self.graph.tagged(tag)
        logger.debug("sweep %d: trigger %r fires %d resource(s)", sweep, tag, len(names))
        # Stale up front: one may be reached through another's dependents first.
        for name in names:
            self.graph.state(name).stale = True
        for name in names:
            self.update(name, sweep)

    def update_all(self, *, force: bool = False) -> None:
        """Sweep the whole graph once, seeded from its roots.

        Fills every unpopulated resource and refreshes stale ones. With force
        the roots are recomputed too.
        """
        sweep = self.new_sweep()
        for name in self.graph.roots():
            self.update(name, sweep, force=force)

    # --- Reads and writes ---

    def read(self, name: str, default: object = None) -> object:
        """Value of a declared resource, computing it first if needed."""
        state = self.graph.state(name)
        if state.stale or not self.graph.is_populated(name):
            self.update(name, active_sweep(self), force=False)
        return self.graph.peek(name, default)

    def write(self, name: str, value: object) -> None:
        """Store a value from outside the engine.

        Writing an equal value changes nothing downstream.
        """
        lazy = self.propagation == "lazy"
        if not self._store(name, value, transitive=lazy) or lazy:
            return
        self._pending[name] = None
        if self._batch_depth == 0:
            self._flush_pending()

    def _store(self, name: str, value: object, *, transitive: bool = False) -> bool:
        changed = self.graph.store(name, value, transitive=transitive)
        if changed:
            self._notify(name, value)
        return changed

    # --- Batching ---

    def begin_batch(self) -> None:
        """Enter a batching scope. Nested batches are supported."""
        self._batch_depth += 1

    def end_batch(self) -> None:
        """Exit a batching scope. The outermost exit propagates the deferred writes."""
        self._batch_depth -= 1
        if self._batch_depth == 0:
            self._flush_pending()

    def _flush_pending(self) -> None:
        """Propagate queued writes, one sweep per round.

        Names leave the queue one at a time. If a propagation raises, the
        rest stay queued and go out with the next flush.
        """
        while self._pending:
            sweep = self.new_sweep()
            for name in list(self._pending):
                if name not in self._pending:
                    continue  # flushed by a nested write
                del self._pending[name]
                self.update_dependants(name, sweep)

    # --- Observers ---

    def observe(self, name: str, callback: Callable[[object], None]) -> Disposer:
        """Call callback with the new value whenever name's value changes."""
        callbacks = self._observers.setdefault(name, [])
        callbacks.append(callback)

        def _dispose() -> None:
            try:
                callbacks.remove(callback)
            except ValueError:
                pass  # already removed

        return _dispose

    def _notify(self, name: str, value: object) -> None:
        for callback in list(self._observers.get(name, ())):
            callback(value)

    def __repr__(self) -> str:
        return f"UpdateEngine(mark={self.mark!r}, propagation={self.propagation!r})"
