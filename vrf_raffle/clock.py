"""
Time sources for the raffle

The raffle reads "now" as whole seconds, like a block timestamp.
ManualClock lets development chains and tests move time forward.
"""

import threading
import time


class SystemClock:
    """Wall clock in whole seconds"""

    def now(self):
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to"""

    def __init__(self, start=None):
        self._now = int(time.time()) if start is None else int(start)
        self._lock = threading.Lock()

    def now(self):
        with self._lock:
            return self._now

    def advance(self, seconds):
        """Move time forward (equivalent of evm_increaseTime + evm_mine)"""
        if seconds < 0:
            raise ValueError("cannot move time backwards")
        with self._lock:
            self._now += int(seconds)
            return self._now

    def set(self, timestamp):
        with self._lock:
            if timestamp < self._now:
                raise ValueError("cannot move time backwards")
            self._now = int(timestamp)
            return self._now
