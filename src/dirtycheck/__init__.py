"""dirtycheck: scope trees with dirty-checking watchers for Python."""

from importlib.metadata import version as _version

__version__ = _version("dirtycheck")

from dirtycheck._context import DIGEST_TTL, set_scheduler
from dirtycheck.errors import DirtyCheckError, PhaseError, DigestLimitError
from dirtycheck.equality import are_equal
from dirtycheck.events import Event
from dirtycheck.scope import Scope, DESTROY_EVENT
from dirtycheck.action import action, applying
# textual NOT auto-imported, opt-in only

__all__ = [
    "Scope",
    "Event",
    "DESTROY_EVENT",
    "DIGEST_TTL",
    "set_scheduler",
    "are_equal",
    "action",
    "applying",
    "DirtyCheckError",
    "PhaseError",
    "DigestLimitError",
]
