"""Resources — the object a host owns to get dependency-aware cached values.

A host keeps a Resources instance as a field and defines its resources in
__init__. Computations are plain closures over the host:

    class Fruits:
        def __init__(self):
            self.resources = Resources()
            r = self.resources
            r.define("apples", lambda: r.peek("apples", 0), accessor="both")
            r.define("oranges", lambda: r.peek("oranges", 0), accessor="both")
            r.define("total", lambda: r.peek("apples") + r.peek("oranges"),
                     depends={"apples": "fail", "oranges": "fail"})

    f = Fruits()
    f.resources.fields.apples += 1
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterable, Iterator

from resgraph.accessors import Accessor, ResourceView, build_accessor
from resgraph.engine import Disposer, UpdateEngine
from resgraph.errors import UnknownResource
from resgraph.graph import ResourceDefinition, ResourceGraph
from resgraph.policy import AccessorMode
from resgraph.storage import Storage


class Resources:
    """A resource graph plus its update engine and accessors."""

    def __init__(self, *, mark: str = "eager", propagation: str = "eager") -> None:
        self.graph = ResourceGraph()
        self.engine = UpdateEngine(self.graph, mark=mark, propagation=propagation)
        self._accessors: dict[str, Accessor] = {}
        self.fields = ResourceView(self._accessors)

    # --- Definition ---

    def register_trigger(self, *tags: str) -> None:
        self.graph.register_trigger(*tags)

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
        """Define a resource and build its accessor.

        See ResourceGraph.define for the arguments.
        """
        existing = self.graph.definition(name) if isinstance(name, str) and name in self.graph else None
        definition = self.graph.define(
            name,
            compute,
            depends=depends,
            triggers=triggers,
            overwrite=overwrite,
            share=share,
            accessor=accessor,
        )
        if definition is not existing:
            handle = build_accessor(self, definition)
            if handle is None:
                self._accessors.pop(name, None)
            else:
                self._accessors[name] = handle
        return definition

    def resource(self, **options: object) -> Callable[[Callable[[], object]], Callable[[], object]]:
        """Decorator: define a resource named after the decorated function.

        Usage:
            @resources.resource(depends={"apples": "keep"})
            def doubled():
                return resources.peek("apples") * 2
        """

        def decorate(fn: Callable[[], object]) -> Callable[[], object]:
            self.define(fn.__name__, fn, **options)
            return fn

        return decorate

    def accessor(self, name: str) -> Accessor:
        try:
            return self._accessors[name]
        except KeyError:
            raise UnknownResource(name) from None

    # --- Values ---

    def get(self, name: str, default: object = None) -> object:
        return self.engine.read(name, default)

    def set(self, name: str, value: object) -> None:
        self.engine.write(name, value)

    def peek(self, name: str, default: object = None) -> object:
        return self.graph.peek(name, default)

    def is_populated(self, name: str) -> bool:
        return self.graph.is_populated(name)

    def roots(self) -> list[str]:
        return self.graph.roots()

    # --- Updates ---

    def update(self, name: str) -> None:
        self.engine.update(name)

    def update_all(self, *, force: bool = False) -> None:
        self.engine.update_all(force=force)

    def fire_trigger(self, tag: str) -> None:
        self.engine.fire_trigger(tag)

    def observe(self, name: str, callback: Callable[[object], None]) -> Disposer:
        return self.engine.observe(name, callback)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Batch writes: dependents update once, when the outermost block exits.

        Usage:
            with fruits.resources.transaction():
                fruits.resources.set("apples", 1)
                fruits.resources.set("oranges", 2)
                # total recomputes here, once
        """
        self.engine.begin_batch()
        try:
            yield
        finally:
            self.engine.end_batch()

    def __repr__(self) -> str:
        return f"Resources({list(self.graph)!r})"
