import threading
from contextlib import contextmanager


class DocumentLocks:
    """One lock per document id, created on demand and dropped when unused.

    Callers on different documents never contend.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}
        self._users: dict[int, int] = {}

    @contextmanager
    def hold(self, document_id: int):
        with self._guard:
            lock = self._locks.setdefault(document_id, threading.Lock())
            self._users[document_id] = self._users.get(document_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[document_id] -= 1
                if not self._users[document_id]:
                    del self._users[document_id]
                    del self._locks[document_id]

    def __len__(self):
        with self._guard:
            return len(self._locks)


document_locks = DocumentLocks()
