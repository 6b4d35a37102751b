# lambdas/log_shipper/stream_sharding.py
import math
import random
import time
from typing import Callable

# Throughput one shard of the push endpoint is expected to sustain, in bytes/second.
BYTES_PER_SHARD = 1048576


class DataRateTracker:
    """
    Tracks the bytes/second written over a sliding window.

    The published rate only changes when a full window has elapsed, so between
    two windows get_rate() returns the previous value (0 before the first one).
    Not safe for concurrent use; each batch owns its own tracker.
    """

    def __init__(self, window_size: float, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            window_size: Length of the window in seconds.
            clock: Monotonic clock returning seconds, injectable for tests.
        """
        self.window_size = window_size
        self._clock = clock
        self.start_time = clock()
        self.total_data = 0
        self.rate = 0.0

    def update(self, data_size: int):
        self.total_data += data_size
        now = self._clock()
        elapsed = now - self.start_time
        if elapsed >= self.window_size and elapsed > 0:
            self.rate = self.total_data / elapsed
            self.start_time = now
            self.total_data = 0

    def get_rate(self) -> float:
        return self.rate


class StreamSharding:
    """
    Turns the tracked write rate into a number of shards and picks one at random.
    """

    def __init__(self, stream_desired_rate: float, window_size: float,
                 clock: Callable[[], float] = time.monotonic, rng: random.Random = None,
                 debug: bool = False):
        """
        Args:
            stream_desired_rate: Target MB/s per shard, e.g. 0.5 adds a shard
                once a shard is half used.
            window_size: Rate tracker window in seconds.
            debug: Print the rate and shard count on every update.
        """
        if stream_desired_rate <= 0:
            raise ValueError(f"stream_desired_rate must be positive, got {stream_desired_rate}")
        self.data_rate_tracker = DataRateTracker(window_size, clock=clock)
        self.stream_desired_rate = stream_desired_rate
        self.shards = 1
        self._rng = rng or random.Random()
        self.debug = debug

    def update(self, data_size: int):
        """Feeds the tracker and recomputes the shard count (never below 1)."""
        self.data_rate_tracker.update(data_size)
        rate = self.data_rate_tracker.get_rate()
        self.shards = max(1, math.ceil(rate / BYTES_PER_SHARD / self.stream_desired_rate))

        if self.debug:
            window_ms = int(self.data_rate_tracker.window_size * 1000)
            print(f"Updated transmission rate ({window_ms}ms window): {rate:.0f}B/s ({self.stream_desired_rate:.2f}MB/s desired)")
            print(f"Updated stream shards: {self.shards}")

    def get_random_shard(self) -> int:
        """Returns a shard number in [1, shards]."""
        return self._rng.randint(1, max(1, self.shards))
