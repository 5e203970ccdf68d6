import time
from typing import Optional


class HighPrecisionTimer:
    """Monotonic wall-clock timer for one method-pass."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.elapsed: Optional[float] = None

    def start(self):
        """Start timing."""
        self.start_time = time.perf_counter()
        self.elapsed = None

    def stop(self) -> float:
        """Stop timing and return elapsed time in seconds."""
        if self.start_time is None:
            raise RuntimeError("Timer not started")
        self.elapsed = time.perf_counter() - self.start_time
        return self.elapsed

    @property
    def elapsed_ms(self) -> float:
        """Elapsed milliseconds of the last start/stop cycle."""
        if self.elapsed is None:
            raise RuntimeError("Timer not stopped")
        return self.elapsed * 1000.0
