from __future__ import annotations

import threading


class JobBudget:
    """
    Counts emitted jobs against a target.

    Emission is two-phase: try_reserve() claims a slot (refused once
    scraped + reserved reaches target), then commit() or release() settles it.
    This keeps scraped <= target no matter how many workers emit at once.
    """

    def __init__(self, target: int) -> None:
        if target < 0:
            raise ValueError("target must be >= 0")
        self.target = int(target)
        self._scraped = 0
        self._reserved = 0
        self._lock = threading.Lock()

    @property
    def scraped(self) -> int:
        with self._lock:
            return self._scraped

    @property
    def remaining(self) -> int:
        """Slots not yet scraped or reserved; advisory for enqueue decisions."""
        with self._lock:
            return max(0, self.target - self._scraped - self._reserved)

    @property
    def exhausted(self) -> bool:
        with self._lock:
            return self._scraped >= self.target

    def try_reserve(self) -> bool:
        with self._lock:
            if self._scraped + self._reserved >= self.target:
                return False
            self._reserved += 1
            return True

    def commit(self) -> None:
        with self._lock:
            if self._reserved <= 0:
                raise RuntimeError("commit() without a reservation")
            self._reserved -= 1
            self._scraped += 1

    def release(self) -> None:
        with self._lock:
            if self._reserved <= 0:
                raise RuntimeError("release() without a reservation")
            self._reserved -= 1

    def __repr__(self) -> str:
        return f"JobBudget(target={self.target}, scraped={self._scraped}, reserved={self._reserved})"
