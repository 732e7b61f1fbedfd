"""Scope events: emit travels up the tree, broadcast travels down.

Listeners live on the scope they were registered on. Deregistering leaves a
None tombstone in the slot instead of shrinking the list, so a listener that
removes itself (or a neighbour) mid-dispatch never makes the loop skip the
next one. Tombstones are compacted by the next dispatch that reaches them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from dirtycheck.scope import Scope

logger = logging.getLogger("dirtycheck.events")

EventListener = Callable[..., Any]


class Event:
    """Shared by every listener called for a single emit/broadcast."""

    __slots__ = (
        "name",
        "target_scope",
        "current_scope",
        "propagation_stopped",
        "default_prevented",
        "_stoppable",
    )

    def __init__(self, name: str, target_scope: Scope, *, stoppable: bool = False) -> None:
        self.name = name
        self.target_scope = target_scope
        self.current_scope: Scope | None = None
        self.propagation_stopped = False
        self.default_prevented = False
        self._stoppable = stoppable

    def stop_propagation(self) -> None:
        """Stop an emitted event at the current scope. Broadcasts ignore it."""
        if self._stoppable:
            self.propagation_stopped = True

    def prevent_default(self) -> None:
        self.default_prevented = True

    def __repr__(self) -> str:
        return f"Event({self.name!r})"


def add_listener(listeners: dict[str, list], name: str, listener: EventListener) -> Callable[[], None]:
    """Append listener under name. Returns a function that tombstones it."""
    slots = listeners.setdefault(name, [])
    slots.append(listener)

    def _deregister() -> None:
        # destroy() clears the dict, so the name may be gone already.
        current = listeners.get(name)
        if current is None:
            return
        for i, slot in enumerate(current):
            if slot is listener:
                current[i] = None
                return

    return _deregister


def fire(scope: Scope, event: Event, args: tuple) -> None:
    """Call scope's listeners for event.name, in registration order."""
    event.current_scope = scope
    slots = scope._listeners.get(event.name)
    if not slots:
        return
    i = 0
    # len() is re-read each pass: listeners added mid-dispatch run too.
    while i < len(slots):
        listener = slots[i]
        if listener is None:
            del slots[i]
            continue
        try:
            listener(event, *args)
        except Exception:
            logger.exception("Listener for %r raised on %r", event.name, scope)
        i += 1
