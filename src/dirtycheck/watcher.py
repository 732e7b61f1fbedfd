"""Watch records kept in each scope's watcher list."""

from __future__ import annotations

from typing import Any, Callable

WatchFn = Callable[[Any], Any]
ListenerFn = Callable[[Any, Any, Any], None]


class _Initial:
    """Sentinel for a watcher that has never been evaluated."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "INITIAL"


INITIAL = _Initial()


def _noop(new_value, old_value, scope) -> None:
    pass


class Watcher:
    """One registration: what to watch, what to call, how to compare."""

    __slots__ = ("watch_fn", "listener_fn", "value_eq", "last")

    def __init__(
        self,
        watch_fn: WatchFn,
        listener_fn: ListenerFn | None = None,
        value_eq: bool = False,
    ) -> None:
        self.watch_fn = watch_fn
        self.listener_fn = listener_fn or _noop
        self.value_eq = bool(value_eq)
        self.last: Any = INITIAL

    def __repr__(self) -> str:
        name = getattr(self.watch_fn, "__name__", repr(self.watch_fn))
        mode = "value" if self.value_eq else "ref"
        return f"Watcher({name}, {mode}, last={self.last!r})"
