"""Actions: run mutations in the apply phase and digest once afterwards.

Wrapping mutations in an @action(scope) or `with applying(scope)` marks the
tree as applying while the body runs, then digests from the root exactly
once, even if the body raised. Watchers see all of the changes in one go.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, ParamSpec, TypeVar

from dirtycheck._context import APPLY

if TYPE_CHECKING:
    from dirtycheck.scope import Scope

P = ParamSpec("P")
R = TypeVar("R")


def action(scope: Scope) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator factory: every call of the wrapped function goes through scope.apply().

    Usage:
        root = Scope()

        @action(root)
        def rename(name):
            root.name = name

        rename("Bob")   # watchers on root have already seen "Bob"
    """

    def decorate(fn: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return scope.apply(lambda _scope: fn(*args, **kwargs))

        return wrapper

    return decorate


@contextmanager
def applying(scope: Scope) -> Iterator[Scope]:
    """Context manager form of apply().

    Usage:
        with applying(root):
            root.first = "Ada"
            root.last = "Lovelace"
        # digest has run here
    """
    context = scope._context
    with context.lock:
        context.begin_phase(APPLY)
        try:
            yield scope
        finally:
            context.clear_phase()
            scope._root.digest()
