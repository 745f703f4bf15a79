import time
from typing import Callable, Optional


class SyncState:
    """
    Single-flight guard plus cooldown for a recurring sync pass.

    Only one pass may hold the guard at a time, and a new pass is refused
    while `cooldown_seconds` have not elapsed since the previous pass ended.
    The completion time is recorded whether or not the pass succeeded.

    All methods are synchronous, so check-and-set cannot interleave with
    other tasks on the same event loop.
    """

    def __init__(
        self,
        cooldown_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.in_progress = False
        self.last_completed_at: Optional[float] = None

    def is_cooldown_active(self, now: Optional[float] = None) -> bool:
        if self.last_completed_at is None:
            return False
        now = self.clock() if now is None else now
        return now - self.last_completed_at < self.cooldown_seconds

    def try_acquire(self) -> bool:
        if self.in_progress or self.is_cooldown_active():
            return False
        self.in_progress = True
        return True

    def release(self) -> None:
        self.in_progress = False
        self.last_completed_at = self.clock()
