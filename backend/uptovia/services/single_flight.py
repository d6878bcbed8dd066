"""Per-monitor single-flight guard.

At most one check per monitor id may be in progress. The scheduler claims a
slot before dispatching and the worker releases it once the check, result
recording and notification are all done. Both happen on the event loop
thread, so claims and releases never interleave and need no lock.
"""
from typing import Hashable, Set


class SingleFlightGuard:
    """Non-blocking claim table keyed by monitor id.

    A claim that finds the slot taken fails immediately instead of waiting:
    the caller skips that monitor until the next tick.
    """

    def __init__(self):
        self._held: Set[Hashable] = set()

    def try_acquire(self, key: Hashable) -> bool:
        """Claim the slot for ``key``; False if a check is already in flight."""
        if key in self._held:
            return False
        self._held.add(key)
        return True

    def release(self, key: Hashable) -> None:
        self._held.discard(key)

    def is_held(self, key: Hashable) -> bool:
        return key in self._held

    def held(self) -> Set[Hashable]:
        """Snapshot of keys currently in flight."""
        return set(self._held)

    def __len__(self) -> int:
        return len(self._held)
