"""Token bucket rate limiter shared by worker threads hitting the same API."""
import time
import threading


class RateLimiter:
    """Allows calls_per_minute calls, with bursts of up to burst calls."""

    def __init__(self, calls_per_minute, burst=None):
        if calls_per_minute <= 0:
            raise ValueError("calls_per_minute must be positive")
        self.rate = calls_per_minute / 60.0
        self.capacity = float(burst if burst is not None else calls_per_minute)
        self.tokens = self.capacity
        self.updated = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self):
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.updated) * self.rate)
        self.updated = now

    def try_acquire(self):
        """Take a token if one is available right now."""
        with self._lock:
            self._refill()
            if self.tokens >= 1:
                self.tokens -= 1
                return True
            return False

    def wait(self):
        """Block until a token is available. Returns seconds spent waiting."""
        with self._lock:
            self._refill()
            if self.tokens >= 1:
                self.tokens -= 1
                return 0.0
            delay = (1 - self.tokens) / self.rate
            time.sleep(delay)
            self.tokens = 0.0
            self.updated = time.monotonic()
            return delay
