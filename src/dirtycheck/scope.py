"""Scopes: the tree that watchers, queues and events hang off.

A Scope is an attribute bag with behaviour attached. Anything assigned to it
(`scope.value = 1`) is watched state. A non-isolated child reads through to
its parent when it has no attribute of its own, so live changes on the
parent are visible below; writes always land on the child.

digest() is the convergence loop: drain the async queue, run one dirty-check
pass over the whole subtree, repeat until a pass is clean and the queue is
empty. The pass remembers the last watcher that turned out dirty; coming
back round to it unchanged means nothing else can have changed either, so the
pass stops right there.

Usage:
    root = Scope()
    child = root.new()
    root.value = 1

    seen = []
    child.watch(lambda scope: scope.value, lambda new, old, scope: seen.append((new, old)))
    root.digest()      # seen == [(1, 1)]

    root.apply(lambda scope: setattr(scope, "value", 2))
    # seen == [(1, 1), (2, 1)]
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable

from dirtycheck._context import APPLY, DIGEST, DIGEST_TTL, Scheduler, TreeContext
from dirtycheck.collection import CollectionWatch
from dirtycheck.equality import are_equal, copy_value
from dirtycheck.events import Event, EventListener, add_listener, fire
from dirtycheck.errors import DigestLimitError
from dirtycheck.watcher import INITIAL, ListenerFn, Watcher, WatchFn

logger = logging.getLogger("dirtycheck.scope")

DESTROY_EVENT = "$destroy"

Deregister = Callable[[], None]

_ids = itertools.count(1)


class Scope:
    """A node in a scope tree. Create roots with Scope(), children with new()."""

    __slots__ = (
        "_id",
        "_locals",
        "_delegate",
        "_context",
        "_watchers",
        "_children",
        "_parent",
        "_root",
        "_listeners",
        "_destroyed",
    )

    def __init__(self, *, scheduler: Scheduler | None = None, ttl: int = DIGEST_TTL) -> None:
        self._setup(parent=None, delegate=None, context=TreeContext(scheduler, ttl))

    def _setup(self, parent: Scope | None, delegate: Scope | None, context: TreeContext) -> None:
        set_ = object.__setattr__
        set_(self, "_id", next(_ids))
        set_(self, "_locals", {})
        set_(self, "_delegate", delegate)
        set_(self, "_context", context)
        set_(self, "_watchers", [])
        set_(self, "_children", [])
        set_(self, "_parent", parent)
        set_(self, "_root", parent._root if parent is not None else self)
        set_(self, "_listeners", {})
        set_(self, "_destroyed", False)

    # --- Attribute namespace ---

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup failed, i.e. for user attributes.
        if name.startswith("__") or name in _INTERNAL:
            raise AttributeError(name)
        scope: Scope | None = self
        while scope is not None:
            namespace = scope._locals
            if name in namespace:
                return namespace[name]
            scope = scope._delegate
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _INTERNAL or hasattr(type(self), name):
            raise AttributeError(f"{name!r} is reserved on Scope")
        self._locals[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._locals[name]
        except KeyError:
            raise AttributeError(name) from None

    @property
    def phase(self) -> str | None:
        """'digest', 'apply' or None, shared by the whole tree."""
        return self._context.phase

    @property
    def isolated(self) -> bool:
        return self._parent is not None and self._delegate is None

    # --- Tree ---

    def new(self, isolated: bool = False) -> Scope:
        """Create a child scope. Isolated children do not read through to self."""
        child = type(self).__new__(type(self))
        child._setup(parent=self, delegate=None if isolated else self, context=self._context)
        self._children.append(child)
        return child

    def destroy(self) -> None:
        """Detach from the parent so no later digest reaches this subtree.

        Listeners for "$destroy" on this scope and its descendants run first.
        Destroying the root does nothing.
        """
        if self is self._root or self._destroyed:
            return
        object.__setattr__(self, "_destroyed", True)
        self.broadcast(DESTROY_EVENT)
        siblings = self._parent._children
        for i, child in enumerate(siblings):
            if child is self:
                del siblings[i]
                break
        self._watchers.clear()
        self._listeners.clear()

    # --- Watchers ---

    def watch(
        self,
        watch_fn: WatchFn,
        listener_fn: ListenerFn | None = None,
        value_eq: bool = False,
    ) -> Deregister:
        """Register watch_fn; listener_fn(new, old, scope) runs when its result changes.

        value_eq=True compares (and snapshots) structurally instead of by
        reference. Returns a function that removes the watcher again.
        """
        watcher = Watcher(watch_fn, listener_fn, value_eq)
        watchers = self._watchers
        context = self._context

        def _deregister() -> None:
            for i, candidate in enumerate(watchers):
                if candidate is watcher:
                    # A pass may be walking this list; leave a hole it skips.
                    if context.phase == DIGEST:
                        watchers[i] = None
                    else:
                        del watchers[i]
                    context.last_dirty_watch = None
                    return

        if getattr(watch_fn, "constant", False):
            listener = watcher.listener_fn

            def _once(new_value, old_value, scope) -> None:
                _deregister()
                listener(new_value, old_value, scope)

            watcher.listener_fn = _once

        watchers.append(watcher)
        context.last_dirty_watch = None
        return _deregister

    def watch_collection(self, watch_fn: WatchFn, listener_fn: ListenerFn | None = None) -> Deregister:
        """Watch a list or dict one level deep: items replaced, added or removed."""
        tracker = CollectionWatch(watch_fn, listener_fn)
        return self.watch(tracker.watch, tracker.listener)

    # --- Evaluation ---

    def eval(self, expr: Callable[..., Any], locals: Any = None) -> Any:
        if locals is None:
            return expr(self)
        return expr(self, locals)

    def eval_async(self, expr: Callable[..., Any]) -> None:
        """Run expr against this scope later in the current (or next) digest.

        Outside a digest, the first queued task also asks the tree's
        scheduler to start one from the root.
        """
        context = self._context
        was_empty = not context.async_queue
        context.async_queue.append((self, expr))
        if context.phase is None and was_empty:
            context.scheduler(self._root._scheduled_digest)

    def _scheduled_digest(self) -> None:
        context = self._context
        with context.lock:
            if context.async_queue and context.phase is None:
                logger.debug("Running scheduled digest for %d queued task(s)", len(context.async_queue))
                self.digest()

    def apply(self, expr: Callable[..., Any] | None = None, locals: Any = None) -> Any:
        """Evaluate expr in the apply phase, then digest from the root.

        The digest runs even when expr raises; the exception still propagates.
        """
        context = self._context
        with context.lock:
            context.begin_phase(APPLY)
            try:
                if expr is None:
                    return None
                return self.eval(expr, locals)
            finally:
                context.clear_phase()
                self._root.digest()

    def post_digest(self, fn: Callable[[], Any]) -> None:
        """Run fn once after the next digest has converged."""
        self._context.post_digest_queue.append(fn)

    # --- Digest ---

    def digest(self) -> None:
        """Run watchers in this scope and its descendants until nothing changes.

        Raises PhaseError if the tree is already digesting or applying, and
        DigestLimitError if watchers are still dirty after the tree's ttl.
        A digest started on another thread is waited for, not interleaved.
        """
        context = self._context
        ttl = context.ttl
        with context.lock:
            context.begin_phase(DIGEST)
            ticks = 0
            try:
                context.last_dirty_watch = None
                while True:
                    self._drain_async()
                    dirty = self._digest_once()
                    ticks += 1
                    if not dirty and not context.async_queue:
                        break
                    if ticks > ttl:
                        raise DigestLimitError(ttl)
            finally:
                context.clear_phase()
            logger.debug("Digest of %r converged after %d tick(s)", self, ticks)
            self._drain_post_digest()

    def _drain_async(self) -> None:
        queue = self._context.async_queue
        while queue:
            scope, expr = queue.popleft()
            try:
                scope.eval(expr)
            except Exception:
                logger.exception("Async task raised on %r", scope)

    def _drain_post_digest(self) -> None:
        queue = self._context.post_digest_queue
        # Only what was queued before the drain started.
        for _ in range(len(queue)):
            fn = queue.popleft()
            try:
                fn()
            except Exception:
                logger.exception("Post-digest task raised")

    def _digest_once(self) -> bool:
        """One pass over every watcher under self. True if anything was dirty."""
        context = self._context
        dirty = False
        stack = [self]
        while stack:
            scope = stack.pop()
            # Destroyed after being pushed, earlier in this pass.
            if scope._destroyed and scope is not self:
                continue
            watchers = scope._watchers
            i = 0
            while i < len(watchers):
                watcher = watchers[i]
                if watcher is None:
                    del watchers[i]
                    continue
                i += 1
                try:
                    new_value = watcher.watch_fn(scope)
                    old_value = watcher.last
                    if not are_equal(new_value, old_value, watcher.value_eq):
                        context.last_dirty_watch = watcher
                        watcher.last = copy_value(new_value) if watcher.value_eq else new_value
                        watcher.listener_fn(
                            new_value,
                            new_value if old_value is INITIAL else old_value,
                            scope,
                        )
                        dirty = True
                    elif context.last_dirty_watch is watcher:
                        return False
                except Exception:
                    logger.exception("Watcher %r raised on %r", watcher, scope)
            stack.extend(reversed(scope._children))
        return dirty

    # --- Events ---

    def on(self, name: str, listener: EventListener) -> Deregister:
        """Call listener(event, *args) whenever name is emitted or broadcast here."""
        return add_listener(self._listeners, name, listener)

    def emit(self, name: str, *args: Any) -> Event:
        """Dispatch on this scope, then each ancestor, until stop_propagation()."""
        event = Event(name, self, stoppable=True)
        scope: Scope | None = self
        while scope is not None:
            fire(scope, event, args)
            if event.propagation_stopped:
                break
            scope = scope._parent
        event.current_scope = None
        return event

    def broadcast(self, name: str, *args: Any) -> Event:
        """Dispatch on this scope and every descendant, isolated ones included."""
        event = Event(name, self)
        stack = [self]
        while stack:
            scope = stack.pop()
            if scope._destroyed and scope is not self:
                continue
            fire(scope, event, args)
            stack.extend(reversed(scope._children))
        event.current_scope = None
        return event

    def __repr__(self) -> str:
        return f"Scope(id={self._id}, watchers={len(self._watchers)}, children={len(self._children)})"


_INTERNAL = frozenset(Scope.__slots__)
