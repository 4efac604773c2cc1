"""
Keyed Lock — one mutex per asset id.

Backup-then-overwrite is not atomic, so two operations on the same asset
must never interleave. Locks are reference-counted and dropped once no
caller holds or waits on them.

    locks = KeyedLock()
    with locks.hold(42):
        ...  # exclusive for asset 42
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Hashable, Iterator, List, Optional

from ..errors import AssetBusy


class _Slot:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = Lock()
        self.refs = 0


class KeyedLock:
    """Map of key → mutex with at-most-one holder per key."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._slots: Dict[Hashable, _Slot] = {}

    def acquire(self, key: Hashable, timeout: Optional[float] = None) -> bool:
        """
        Acquire the lock for ``key``.

        ``timeout`` None blocks forever, ``<= 0`` never blocks, anything
        else waits up to that many seconds.
        """
        with self._guard:
            slot = self._slots.setdefault(key, _Slot())
            slot.refs += 1

        if timeout is None:
            acquired = slot.lock.acquire()
        elif timeout <= 0:
            acquired = slot.lock.acquire(blocking=False)
        else:
            acquired = slot.lock.acquire(timeout=timeout)

        if not acquired:
            self._release_ref(key, slot)
        return acquired

    def release(self, key: Hashable) -> None:
        with self._guard:
            slot = self._slots.get(key)
        if slot is None:
            raise RuntimeError(f"Lock for {key!r} is not held")
        slot.lock.release()
        self._release_ref(key, slot)

    def _release_ref(self, key: Hashable, slot: _Slot) -> None:
        with self._guard:
            slot.refs -= 1
            if slot.refs == 0 and self._slots.get(key) is slot:
                del self._slots[key]

    def is_locked(self, key: Hashable) -> bool:
        with self._guard:
            slot = self._slots.get(key)
        return slot is not None and slot.lock.locked()

    def active_keys(self) -> List[Hashable]:
        with self._guard:
            return list(self._slots)

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Context manager around acquire/release.

        Raises:
            AssetBusy: The lock could not be acquired within ``timeout``.
        """
        if not self.acquire(key, timeout=timeout):
            raise AssetBusy(f"Another operation is already in progress for asset {key}")
        try:
            yield
        finally:
            self.release(key)
