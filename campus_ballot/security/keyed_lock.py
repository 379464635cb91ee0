# campus_ballot/security/keyed_lock.py

import threading
from contextlib import contextmanager

# Per-key mutual exclusion for check-then-act sequences (one voter, one student id).
# Locks are reference counted and dropped once no thread holds or waits on them.


class KeyedLock:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)
