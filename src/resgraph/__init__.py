"""resgraph: lazily computed, dependency-aware resource cache."""

from importlib.metadata import version as _version

__version__ = _version("resgraph")

from resgraph.errors import (
    ResourceError,
    InvalidArgument,
    UnknownResource,
    UnknownTrigger,
    CyclicDependency,
)
from resgraph.policy import DependencyPolicy, AccessorMode
from resgraph.storage import Storage, SlotStore
from resgraph.graph import ResourceDefinition, ResourceState, ResourceGraph
from resgraph.engine import UpdateEngine
from resgraph.accessors import Accessor, ResourceView
from resgraph.resources import Resources
# textual NOT auto-imported: opt-in only

__all__ = [
    "ResourceError",
    "InvalidArgument",
    "UnknownResource",
    "UnknownTrigger",
    "CyclicDependency",
    "DependencyPolicy",
    "AccessorMode",
    "Storage",
    "SlotStore",
    "ResourceDefinition",
    "ResourceState",
    "ResourceGraph",
    "UpdateEngine",
    "Accessor",
    "ResourceView",
    "Resources",
]
