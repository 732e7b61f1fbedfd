"""Shallow collection watching.

A by-value watch deep-copies and deep-compares the whole structure on every
pass. watch_collection() only looks one level down: it keeps a shadow copy
of the sequence or mapping and counts changes (type switch, length, item
replaced, key added or removed). The change counter is what the underlying
reference watch actually observes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from dirtycheck.equality import is_sequence, same
from dirtycheck.watcher import INITIAL, ListenerFn, WatchFn


def _snapshot(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    if is_sequence(value):
        return list(value)
    return value


class CollectionWatch:
    """Watch and listener pair handed to Scope.watch()."""

    __slots__ = ("_watch_fn", "_listener_fn", "_new", "_shadow", "_very_old", "_changes", "_first")

    def __init__(self, watch_fn: WatchFn, listener_fn: ListenerFn | None = None) -> None:
        self._watch_fn = watch_fn
        self._listener_fn = listener_fn
        self._new: Any = None
        self._shadow: Any = INITIAL
        self._very_old: Any = None
        self._changes = 0
        self._first = True

    def watch(self, scope) -> int:
        new = self._watch_fn(scope)
        self._new = new
        if isinstance(new, Mapping):
            self._diff_mapping(new)
        elif is_sequence(new):
            self._diff_sequence(new)
        else:
            if not same(new, self._shadow):
                self._changes += 1
            self._shadow = new
        return self._changes

    def _diff_sequence(self, new) -> None:
        shadow = self._shadow
        if not isinstance(shadow, list):
            self._changes += 1
            shadow = self._shadow = []
        if len(new) != len(shadow):
            self._changes += 1
            del shadow[len(new):]
        for i, item in enumerate(new):
            if i >= len(shadow):
                shadow.append(item)
            elif not same(item, shadow[i]):
                self._changes += 1
                shadow[i] = item

    def _diff_mapping(self, new) -> None:
        shadow = self._shadow
        if not isinstance(shadow, dict):
            self._changes += 1
            shadow = self._shadow = {}
        for key, value in new.items():
            if key not in shadow:
                self._changes += 1
                shadow[key] = value
            elif not same(value, shadow[key]):
                self._changes += 1
                shadow[key] = value
        removed = [key for key in shadow if key not in new]
        if removed:
            self._changes += 1
            for key in removed:
                del shadow[key]

    def listener(self, new_value, old_value, scope) -> None:
        if self._listener_fn is not None:
            if self._first:
                self._listener_fn(self._new, self._new, scope)
            else:
                self._listener_fn(self._new, self._very_old, scope)
        self._first = False
        self._very_old = _snapshot(self._new)
