# campus_ballot/voting/window.py

import logging
import threading
import time
from collections import namedtuple

from campus_ballot.errors import ValidationFailed

# Voting window: casting is allowed iff start <= now <= end (epoch milliseconds).
# Reads use an immutable snapshot and never block; changes are admin-initiated,
# persisted first, and only then published to readers.

logger = logging.getLogger(__name__)

Window = namedtuple('Window', ['start', 'end'])

# 9999-12-31T23:59:59.999Z
OPEN_ENDED_MS = 253402300799999
CLOSE_MARGIN_MS = 1000


def now_ms():
    return int(time.time() * 1000)


class VotingWindowController:
    def __init__(self, store, default_start, default_end, clock=now_ms):
        self.store = store
        self.clock = clock
        self._write_lock = threading.Lock()
        persisted = store.load()
        if persisted is None:
            store.save(default_start, default_end)
            persisted = (default_start, default_end)
            logger.info("Seeded voting window from configuration")
        self._window = Window(*persisted)

    @property
    def window(self):
        return self._window

    def is_open(self, now=None):
        window = self._window
        if now is None:
            now = self.clock()
        return window.start <= now <= window.end

    def status(self):
        window = self._window
        return {
            'isOpen': self.is_open(),
            'start': window.start,
            'end': window.end,
        }

    def _publish(self, start, end):
        self.store.save(start, end)
        self._window = Window(start, end)
        logger.info("Voting window set to %s -> %s", start, end)
        return self._window

    def set_period(self, start, end):
        if start > end:
            raise ValidationFailed("Voting start must not be after voting end")
        with self._write_lock:
            return self._publish(start, end)

    def open_now(self):
        with self._write_lock:
            return self._publish(self.clock() - CLOSE_MARGIN_MS, OPEN_ENDED_MS)

    def close_now(self):
        with self._write_lock:
            return self._publish(self._window.start, self.clock() - CLOSE_MARGIN_MS)
