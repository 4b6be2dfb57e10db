"""Dependency policies and accessor modes.

A dependency policy says what happens to a prerequisite before the dependent
resource is computed:

- ``update``: always recompute the prerequisite first.
- ``keep``: compute it only if it has no value yet (the default).
- ``fail``: never compute it; abort the dependent if it has no value.

A policy may also be a zero-argument predicate. A true result behaves like
``update``, a false one leaves the prerequisite alone.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterable, Mapping, Union

from resgraph.errors import InvalidArgument


class DependencyPolicy(Enum):
    UPDATE = "update"
    KEEP = "keep"
    FAIL = "fail"


Policy = Union[DependencyPolicy, Callable[[], bool]]


class AccessorMode(Enum):
    """Which entry points the accessor builder exposes for a resource."""

    READ = "read"
    WRITE = "write"
    BOTH = "both"
    NONE = "none"

    @property
    def readable(self) -> bool:
        return self in (AccessorMode.READ, AccessorMode.BOTH)

    @property
    def writable(self) -> bool:
        return self in (AccessorMode.WRITE, AccessorMode.BOTH)


_ACCESSOR_ALIASES = {
    "read": AccessorMode.READ,
    "r": AccessorMode.READ,
    "write": AccessorMode.WRITE,
    "w": AccessorMode.WRITE,
    "both": AccessorMode.BOTH,
    "rw": AccessorMode.BOTH,
    "none": AccessorMode.NONE,
}


def check_name(name: object, what: str = "resource name") -> str:
    """Return name if it is a well-formed identifier, else raise InvalidArgument."""
    if not isinstance(name, str) or not name.isidentifier():
        raise InvalidArgument(f"invalid {what} {name!r}")
    return name


def parse_policy(policy: object, dep: str = "?") -> Policy:
    if isinstance(policy, DependencyPolicy):
        return policy
    if isinstance(policy, str):
        try:
            return DependencyPolicy(policy)
        except ValueError:
            raise InvalidArgument(f"policy {policy!r} not understood for {dep!r}") from None
    if callable(policy):
        return policy
    raise InvalidArgument(f"policy {policy!r} not understood for {dep!r}")


def parse_accessor(mode: object) -> AccessorMode:
    if mode is None:
        return AccessorMode.NONE
    if isinstance(mode, AccessorMode):
        return mode
    if isinstance(mode, str) and mode in _ACCESSOR_ALIASES:
        return _ACCESSOR_ALIASES[mode]
    raise InvalidArgument(f"invalid accessor mode {mode!r}")


def normalize_dependencies(depends: object) -> dict[str, Policy]:
    """Normalize a dependency declaration to an ordered name -> policy dict.

    Accepts a mapping, a single bare name, or an iterable of bare names.
    Bare names get the ``keep`` policy.
    """
    if depends is None:
        return {}
    if isinstance(depends, str):
        return {check_name(depends, "dependency name"): DependencyPolicy.KEEP}
    if isinstance(depends, Mapping):
        return {
            check_name(dep, "dependency name"): parse_policy(policy, dep)
            for dep, policy in depends.items()
        }
    if isinstance(depends, Iterable) and not isinstance(depends, (bytes, bytearray)):
        return {check_name(dep, "dependency name"): DependencyPolicy.KEEP for dep in depends}
    raise InvalidArgument(f"dependencies must be a mapping of name to policy, got {depends!r}")
