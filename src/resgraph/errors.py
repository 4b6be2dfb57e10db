"""Errors raised by resgraph.

Configuration mistakes (bad definitions, unknown names or triggers) are hard
errors surfaced to the caller. An unmet ``fail`` prerequisite is not an error:
the affected resource simply keeps its previous value.
"""


class ResourceError(Exception):
    """Base class for all resgraph errors."""


class InvalidArgument(ResourceError, ValueError):
    """A resource definition or option was malformed."""


class UnknownResource(ResourceError, LookupError):
    """A resource name has no definition in the graph."""

    def __init__(self, name: str) -> None:
        super().__init__(f"no such resource {name!r}")
        self.name = name


class UnknownTrigger(ResourceError, LookupError):
    """A trigger tag was never registered."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"no such trigger {tag!r}")
        self.tag = tag


class CyclicDependency(ResourceError, RuntimeError):
    """A resource was re-entered while it was still being computed."""

    def __init__(self, path: list[str]) -> None:
        super().__init__("cyclic dependency: " + " -> ".join(path))
        self.path = path
