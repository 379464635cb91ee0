import pytest

from campus_ballot.errors import StorageError, ValidationFailed
from campus_ballot.voting.window import CLOSE_MARGIN_MS, OPEN_ENDED_MS, VotingWindowController

START = 1767686400000  # 2026-01-06T08:00:00Z
END = 1768089599000    # 2026-01-10T23:59:59Z


class MemoryWindowStore:
    def __init__(self, persisted=None):
        self.persisted = persisted
        self.fail = False

    def load(self):
        return self.persisted

    def save(self, start, end):
        if self.fail:
            raise StorageError("window_save failed")
        self.persisted = (start, end)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock(START)


@pytest.fixture
def store():
    return MemoryWindowStore()


@pytest.fixture
def window(store, clock):
    return VotingWindowController(store, START, END, clock=clock)


def test_seeds_defaults_when_nothing_persisted(window, store):
    assert store.persisted == (START, END)
    assert window.window == (START, END)


def test_persisted_window_wins_over_defaults(clock):
    store = MemoryWindowStore(persisted=(10, 20))
    assert VotingWindowController(store, START, END, clock=clock).window == (10, 20)


@pytest.mark.parametrize("now,expected", [
    (START - 1, False),
    (START, True),
    (START + 1, True),
    (END, True),
    (END + 1, False),
])
def test_window_is_inclusive_at_both_ends(window, now, expected):
    assert window.is_open(now) is expected


def test_status_uses_clock(window, clock):
    clock.now = END + 1
    assert window.status() == {'isOpen': False, 'start': START, 'end': END}


def test_set_period_takes_effect_immediately(window, store, clock):
    window.set_period(START + 1000, START + 2000)
    assert store.persisted == (START + 1000, START + 2000)
    assert window.is_open() is False
    clock.now = START + 1500
    assert window.is_open() is True


def test_set_period_rejects_inverted_window(window):
    with pytest.raises(ValidationFailed):
        window.set_period(END, START)
    assert window.window == (START, END)


def test_open_now(window, clock):
    clock.now = END + 10_000
    window.open_now()
    assert window.window == (END + 10_000 - CLOSE_MARGIN_MS, OPEN_ENDED_MS)
    assert window.is_open() is True


def test_close_now_keeps_start(window, clock):
    clock.now = START + 5000
    window.close_now()
    assert window.window == (START, START + 5000 - CLOSE_MARGIN_MS)
    assert window.is_open() is False


def test_storage_failure_leaves_window_untouched(window, store):
    store.fail = True
    with pytest.raises(StorageError):
        window.open_now()
    assert window.window == (START, END)
    assert window.is_open() is True
