"""
Latency Recorder
================

Turns (creation, receive) timestamp pairs into latency samples and keeps
running min/max/sum alongside the bucket histogram.
"""

import logging
from typing import Optional

from .histogram import Histogram

logger = logging.getLogger(__name__)


def latency_sample(creation_ms: int, receive_ms: int, start_ms: Optional[int]) -> Optional[int]:
    """Latency of one message in ms, or None if the sample is not usable.

    A sample is usable only when the producer stamped a creation time, the
    message was created after the link became active, and the clocks do not
    put receipt before creation.
    """
    if not creation_ms or start_ms is None:
        return None
    if creation_ms < start_ms or receive_ms < creation_ms:
        return None
    return receive_ms - creation_ms


class LatencyRecorder:
    """Running latency aggregates for the process lifetime."""

    def __init__(self):
        self.histogram = Histogram()
        self.minimum: Optional[int] = None
        self.maximum: int = 0
        self.total: int = 0
        self.samples: int = 0

    def record(self, sample_ms: int):
        """Record a single valid latency sample (ms)."""
        logger.debug(f"latency {sample_ms}")
        self.histogram.add(sample_ms)
        if self.minimum is None or sample_ms < self.minimum:
            self.minimum = sample_ms
        if sample_ms > self.maximum:
            self.maximum = sample_ms
        self.total += sample_ms
        self.samples += 1

    def observe(self, creation_ms: int, receive_ms: int, start_ms: Optional[int]) -> Optional[int]:
        """Compute and record a sample. Invalid samples are dropped silently."""
        sample = latency_sample(creation_ms, receive_ms, start_ms)
        if sample is not None:
            self.record(sample)
        return sample

    @property
    def average(self) -> float:
        return self.total / self.samples if self.samples else 0.0
