from contextlib import contextmanager
from threading import Lock
from typing import Iterator
from weakref import WeakValueDictionary


class KeyedLocks:
    """One mutex per entity key (account id, report id).

    An entry lives only while some caller holds a reference to its lock,
    so keys that are never touched again do not accumulate.
    """

    def __init__(self):
        self._guard = Lock()
        self._locks: "WeakValueDictionary[str, Lock]" = WeakValueDictionary()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
