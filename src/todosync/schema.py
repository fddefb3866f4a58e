"""
TODOSYNC - Todo Schema Definition
=================================
The single entity held by the client, plus the small value types the
reconciliation engine passes around.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Container, List, Optional

from pydantic import BaseModel, Field


MAX_TITLE_LENGTH = 22
MIN_PRIORITY = 1
MAX_PRIORITY = 10
FALLBACK_PRIORITY = 0  # Only reachable when creation never reached the server


class CommandOutcome(str, Enum):
    """How a single command invocation ended"""
    CONFIRMED = "confirmed"       # Remote call succeeded, local state adopted
    ROLLED_BACK = "rolled_back"   # Remote call failed, inverse applied
    KEPT_LOCAL = "kept_local"     # Remote call failed, optimistic state kept
    PARTIAL = "partial"           # Some remote calls of a batch failed
    FAILED = "failed"             # Read-only fetch failed, nothing changed
    REJECTED = "rejected"         # Validation refused the input before dispatch
    NOOP = "noop"                 # Nothing to do (missing item, bound reached)


class Todo(BaseModel):
    """
    Individual todo item.

    Title and priority limits are enforced on user input before dispatch
    (see validate_title and the reprioritize bounds), not here: rows written
    by other clients may exceed them and must still load.
    """
    id: int
    title: str
    priority: int = Field(ge=FALLBACK_PRIORITY)
    completed: bool = False


class Snapshot(BaseModel):
    """Best-effort copy of the active set written between CLI runs"""
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    todos: List[Todo] = Field(default_factory=list)


def validate_title(raw: Optional[str]) -> Optional[str]:
    """Return the cleaned title, or None when it must be rejected"""
    if raw is None:
        return None
    title = raw.strip()
    if not title or len(title) > MAX_TITLE_LENGTH:
        return None
    return title


class ProvisionalIdGenerator:
    """
    Hands out ids for todos the server has not confirmed yet.

    Values are seeded from a millisecond clock so they sort after server
    ids, but each one is strictly greater than the last and skips ids that
    are already taken, so a burst of offline adds never collides.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns):
        self._clock = clock
        self._last = 0

    def next_id(self, taken: Container[int] = ()) -> int:
        candidate = max(self._clock() // 1_000_000, self._last + 1)
        while candidate in taken:
            candidate += 1
        self._last = candidate
        return candidate
