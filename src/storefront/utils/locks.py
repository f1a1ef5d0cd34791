"""Keyed in-process locks serializing work on a single aggregate row.

The in-memory and SQL providers give us atomic single-aggregate writes but no
row lock across a read-check-write sequence. Command handlers take the locks
for every row they will check and mutate, in sorted key order, before loading
the aggregates.

Registry entries are reference counted and dropped when the last holder or
waiter leaves, so the registry only holds keys that are in use.
"""

import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


_registry_lock = threading.Lock()
_entries: dict[str, _Entry] = {}


@contextmanager
def _held(key: str) -> Iterator[None]:
    with _registry_lock:
        entry = _entries.get(key)
        if entry is None:
            entry = _entries[key] = _Entry()
        entry.users += 1

    entry.lock.acquire()
    try:
        yield
    finally:
        entry.lock.release()
        with _registry_lock:
            entry.users -= 1
            if entry.users == 0:
                del _entries[key]


def row_key(kind: str, identifier) -> str:
    return f"{kind}:{identifier}"


def registered_keys() -> set[str]:
    """Keys currently held or waited on."""
    with _registry_lock:
        return set(_entries)


@contextmanager
def row_locks(*keys: str) -> Iterator[None]:
    """Hold the locks for ``keys`` for the duration of the block.

    Re-entrant per thread, so a handler that already holds a warehouse lock
    can call into code that locks it again.
    """
    with ExitStack() as stack:
        for key in sorted(set(keys)):
            stack.enter_context(_held(key))
        yield
