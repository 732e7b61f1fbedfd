"""Errors raised by the digest engine.

Only misuse and runaway convergence surface to callers. Failures inside
watch functions, listeners and queued tasks are logged where they happen
and never reach the caller of digest()/apply().
"""

from __future__ import annotations


class DirtyCheckError(Exception):
    """Base class for dirtycheck errors."""


class PhaseError(DirtyCheckError):
    """A digest or apply was started while the tree was already busy."""

    def __init__(self, phase: str) -> None:
        super().__init__(f"{phase} already in progress")
        self.phase = phase


class DigestLimitError(DirtyCheckError):
    """The digest kept finding dirty watchers past the iteration ceiling."""

    def __init__(self, ttl: int) -> None:
        super().__init__(f"{ttl} digest iterations reached")
        self.ttl = ttl
