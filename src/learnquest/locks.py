"""Per-session re-entrant locks serializing engine operations."""

import threading

SessionLock = type(threading.RLock())


class SessionLocks:
    """Registry handing out one ``RLock`` per session id.

    Every component of a session takes the same lock, so a read-compute-
    persist cycle never interleaves with another operation on that session.
    Different sessions never contend.
    """

    def __init__(self) -> None:
        self._locks: dict[str, SessionLock] = {}
        self._guard = threading.Lock()

    def for_session(self, session_id: str) -> SessionLock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[session_id] = lock
            return lock
