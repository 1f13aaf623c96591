"""Per-process-id locks serializing evaluations of the same process."""

import threading
from contextlib import contextmanager
from typing import Iterator


class ProcessLockRegistry:
    """
    Hands out one lock per process id.

    Locks are reference counted and dropped once no thread holds or waits
    for them, so the registry does not grow with every process ever seen.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # process_id -> [lock, refcount]

    @contextmanager
    def hold(self, process_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(process_id, [threading.Lock(), 0])
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
                    del self._locks[process_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
