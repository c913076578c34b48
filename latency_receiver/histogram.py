"""
Latency Histogram
=================

Fixed-shape logarithmic histogram: four decades of 100 buckets each.

    order 0:      0 -     99 ms, 1 ms per bucket
    order 1:    100 -    999 ms, 10 ms per bucket
    order 2:   1000 -   9999 ms, 100 ms per bucket
    order 3:  10000 -  99999 ms, 1000 ms per bucket
    >= 100000 ms is counted as overflow
"""

from typing import Iterator

MAX_ORDER = 4
BUCKETS_PER_ORDER = 100


class Histogram:
    """Bucket store for latency samples in milliseconds."""

    def __init__(self):
        self._buckets: list[list[int]] = [[0] * BUCKETS_PER_ORDER for _ in range(MAX_ORDER)]
        self.overflow: int = 0

    @staticmethod
    def locate(sample_ms: int) -> tuple[int, int]:
        """Return (order, index) for a sample, or (-1, -1) for overflow."""
        if sample_ms < 0:
            raise ValueError(f"Negative latency sample: {sample_ms}")
        power = 1
        for order in range(MAX_ORDER):
            if sample_ms < power * BUCKETS_PER_ORDER:
                return order, int(sample_ms // power)
            power *= 10
        return -1, -1

    def add(self, sample_ms: int):
        order, index = self.locate(sample_ms)
        if order < 0:
            self.overflow += 1
        else:
            self._buckets[order][index] += 1

    def count(self, order: int, index: int) -> int:
        return self._buckets[order][index]

    @property
    def total(self) -> int:
        """All samples recorded, overflow included."""
        return sum(sum(row) for row in self._buckets) + self.overflow

    def nonzero(self) -> Iterator[tuple[int, int, int, int]]:
        """Yield (order, index, bucket_value_ms, count) for non-empty buckets.

        bucket_value_ms is the lower bound of the bucket.
        """
        power = 1
        for order, row in enumerate(self._buckets):
            for index, count in enumerate(row):
                if count > 0:
                    yield order, index, power * index, count
            power *= 10

    def copy(self) -> 'Histogram':
        other = Histogram()
        other._buckets = [list(row) for row in self._buckets]
        other.overflow = self.overflow
        return other

    def __str__(self) -> str:
        return f"Histogram(samples={self.total}, overflow={self.overflow})"
