"""Active-sweep tracking.

Uses a contextvar to remember which sweep is running while a resource's
computation executes. A computation that reads another resource of the same
engine joins that sweep instead of starting a fresh one, so everything it
pulls in is deduplicated with the rest of the pass.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from resgraph.engine import UpdateEngine

# (engine, sweep id) of the computation currently running, if any.
current_sweep: contextvars.ContextVar[tuple[UpdateEngine, int] | None] = contextvars.ContextVar(
    "current_sweep", default=None
)


@contextmanager
def sweep_scope(engine: UpdateEngine, sweep: int) -> Iterator[None]:
    """Run the body as part of the given sweep of engine."""
    token = current_sweep.set((engine, sweep))
    try:
        yield
    finally:
        current_sweep.reset(token)


def active_sweep(engine: UpdateEngine) -> int | None:
    """Sweep id engine is currently computing under, or None."""
    active = current_sweep.get()
    if active is not None and active[0] is engine:
        return active[1]
    return None
