"""Textual integration for dirtycheck. Opt-in, requires textual.

Widgets update from scope listeners; the guard, the NoMatches handling and
the thread hop all live here instead of at every call site. Pause state is
keyed by id(app) so several apps can coexist in tests.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded listeners while widgets are being replaced."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def scheduler(app):
    """Scheduler for Scope(scheduler=...) that runs auto-digests on the app's loop.

    Calls from the app thread use app.call_later; calls from elsewhere are
    marshaled with app.call_from_thread.
    """
    _main = threading.get_ident()

    def _schedule(fn):
        if threading.get_ident() != _main:
            app.call_from_thread(fn)
        else:
            app.call_later(fn)

    return _schedule


def _guard(app, fn):
    def _guarded(*args):
        if not is_safe(app):
            return
        try:
            fn(*args)
        except NoMatches:
            pass

    return _guarded


def watch(app, scope, watch_fn, listener_fn, value_eq=False):
    """scope.watch() whose listener only touches widgets when it is safe to.

    The listener is skipped while the app is not running or paused, and
    NoMatches from widget queries is swallowed.
    """
    return scope.watch(watch_fn, _guard(app, listener_fn), value_eq)


def on(app, scope, name, listener):
    """scope.on() with the same guard as watch()."""
    return scope.on(name, _guard(app, listener))
