"""
Cancellation Registry — Per-session stop flags.

WHAT THIS DOES:
Remembers which sessions the observer has asked to stop. The stop
request arrives on a different code path (HTTP route, WebSocket message,
disconnect) than the debate loop that reads it, so the flags live here
rather than inside the loop.

LIFECYCLE:
- request(session_id)     → stop requested (idempotent)
- is_requested(session_id) → pure lookup, polled by the loop
- clear(session_id)        → entry removed when the run ends, whatever the outcome

The session manager owns one registry and injects it where needed;
there is no module-level singleton.
"""

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class CancellationRegistry:
    """Thread-safe map from session id to a cancellation flag."""

    def __init__(self):
        self._flags: set[str] = set()
        self._lock = threading.Lock()

    def request(self, session_id: str) -> None:
        """Mark a session as cancelled. Calling it twice is the same as once."""
        if not isinstance(session_id, str) or not session_id:
            logger.warning(f"Ignoring stop request with invalid session id: {session_id!r}")
            return
        with self._lock:
            already = session_id in self._flags
            self._flags.add(session_id)
        if not already:
            logger.info(f"Stop requested for session {session_id}")

    def is_requested(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._flags

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._flags.discard(session_id)

    def checker(self, session_id: str) -> Callable[[], bool]:
        """Zero-argument should_cancel callable bound to one session."""
        return lambda: self.is_requested(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._flags)
