"""Textual integration for resgraph. Opt-in — requires textual.

bind() pushes a resource's value into widgets whenever it changes. The guard,
NoMatches handling and thread marshaling all live here so callers never
repeat them.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend bound effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def bind(app, resources, name, effect_fn, *, fire_immediately=False):
    """Call effect_fn(value) each time resource name changes, if the app is safe.

    Changes made from a background thread are marshaled through
    app.call_from_thread. NoMatches from widget queries is swallowed; any
    other error propagates to whoever changed the resource.

    Returns a disposer that unbinds the effect.
    """
    _main = threading.get_ident()

    def _guarded(value):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    def _safe(value):
        try:
            effect_fn(value)
        except NoMatches:
            pass

    dispose = resources.observe(name, _guarded)
    if fire_immediately:
        _guarded(resources.get(name))
    return dispose
