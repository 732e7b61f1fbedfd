"""Tree context: the state every scope in one tree shares by reference.

A root scope creates one TreeContext; children, isolated or not, hold the
same instance. Queues, the phase flag and the last-dirty marker therefore
behave as one object per tree, and separate trees never see each other.

Scheduling: eval_async() outside a digest needs a way to run a digest
"soon". Hosts with their own loop should install a scheduler once, so the
digest and every listener run on that loop's thread:

    dirtycheck.set_scheduler(loop.call_soon)

Without one, the default posts to the asyncio loop running in the calling
thread if there is one, and otherwise starts a zero-delay daemon
threading.Timer. A timer digest runs on the timer's thread; the tree's lock
makes it wait for (and never interleave with) a digest or apply already
running elsewhere.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import TYPE_CHECKING, Any, Callable

from dirtycheck.errors import PhaseError

if TYPE_CHECKING:
    from dirtycheck.watcher import Watcher

Scheduler = Callable[[Callable[[], None]], Any]

# Ticks allowed after the first before a digest gives up.
DIGEST_TTL = 10

DIGEST = "digest"
APPLY = "apply"


def _timer_scheduler(fn: Callable[[], None]) -> None:
    t = threading.Timer(0, fn)
    t.daemon = True
    t.start()


def _default_scheduler(fn: Callable[[], None]) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        _timer_scheduler(fn)
    else:
        loop.call_soon(fn)


_scheduler: Scheduler = _default_scheduler


def set_scheduler(scheduler: Scheduler | None) -> None:
    """Set the scheduler used by root scopes created from now on.

    Pass None to restore the built-in default.
    """
    global _scheduler
    _scheduler = scheduler if scheduler is not None else _default_scheduler


def get_scheduler() -> Scheduler:
    return _scheduler


class TreeContext:
    """Queues, phase and short-circuit marker for one scope tree."""

    __slots__ = (
        "async_queue",
        "post_digest_queue",
        "last_dirty_watch",
        "phase",
        "scheduler",
        "ttl",
        "lock",
    )

    def __init__(self, scheduler: Scheduler | None = None, ttl: int = DIGEST_TTL) -> None:
        self.async_queue: deque = deque()
        self.post_digest_queue: deque = deque()
        self.last_dirty_watch: Watcher | None = None
        self.phase: str | None = None
        self.scheduler = scheduler if scheduler is not None else _scheduler
        self.ttl = ttl
        # Reentrant: a nested digest on the same thread still reaches PhaseError.
        self.lock = threading.RLock()

    def begin_phase(self, phase: str) -> None:
        if self.phase is not None:
            raise PhaseError(self.phase)
        self.phase = phase

    def clear_phase(self) -> None:
        self.phase = None

    def __repr__(self) -> str:
        return (
            f"TreeContext(phase={self.phase!r}, async={len(self.async_queue)}, "
            f"post_digest={len(self.post_digest_queue)})"
        )
