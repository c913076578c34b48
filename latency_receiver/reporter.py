"""
Statistics Reporter
===================

Immutable snapshots of the accumulated statistics and their rendering as a
human-readable summary or as CSV.
"""

import io
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from .formatting import Column, ColumnKind, CsvFormatter, make_formatter
from .histogram import Histogram
from .latency import LatencyRecorder
from .session import SessionState

CSV_COLUMNS = [
    Column("Messages", ColumnKind.INT),
    Column("Latency (msec)", ColumnKind.INT),
]

TRACE_COLUMNS = [
    Column("THEN DATE", ColumnKind.CLOCK),
    Column("NOW DATE", ColumnKind.CLOCK),
    Column("COUNT", ColumnKind.INT),
    Column("THEN", ColumnKind.TIME),
    Column("NOW", ColumnKind.TIME),
    Column("PAUSE_TIME", ColumnKind.TIME),
    Column("LATENCY", ColumnKind.TIME),
]


@dataclass(frozen=True)
class StatsSnapshot:
    received: int
    dropped: int
    duplicate: int
    samples: int
    min_latency: float
    max_latency: float
    avg_latency: float
    histogram: Histogram
    overflow: int


class Reporter:
    """Renders periodic and final statistics.

    Args:
        state:       Session counters.
        recorder:    Latency aggregates.
        stream:      Output stream (stdout by default).
        csv_output:  Emit CSV instead of the human-readable summary.
        interval_s:  Periodic report interval, used for the msgs/sec rate.
    """

    def __init__(
        self,
        state: SessionState,
        recorder: LatencyRecorder,
        stream: Optional[TextIO] = None,
        csv_output: bool = False,
        interval_s: int = 0,
    ):
        self.state = state
        self.recorder = recorder
        self.stream = stream if stream is not None else sys.stdout
        self.csv_output = csv_output
        self.interval_s = interval_s
        self._last_count = 0

    def snapshot(self) -> StatsSnapshot:
        rec = self.recorder
        return StatsSnapshot(
            received=self.state.received_count,
            dropped=self.state.dropped_count,
            duplicate=self.state.duplicate_count,
            samples=rec.samples,
            min_latency=float(rec.minimum or 0),
            max_latency=float(rec.maximum),
            avg_latency=rec.average,
            histogram=rec.histogram.copy(),
            overflow=rec.histogram.overflow,
        )

    @staticmethod
    def render(snapshot: StatsSnapshot, csv_output: bool = False, rate: Optional[int] = None) -> str:
        """Render a snapshot. Returns an empty string if nothing was received."""
        if snapshot.received == 0:
            return ""

        out = io.StringIO()
        if csv_output:
            table = CsvFormatter(CSV_COLUMNS, out)
            for _, _, value, count in snapshot.histogram.nonzero():
                table.write([count, value])
            return out.getvalue()

        out.write(f"\n\nLatency:   ({snapshot.received} msgs received")
        if rate is not None:
            out.write(f", {rate} msgs/sec)\n")
        else:
            out.write(")\n")
        out.write(
            f"  Average: {snapshot.avg_latency:f} msec\n"
            f"  Minimum: {snapshot.min_latency:f} msec\n"
            f"  Maximum: {snapshot.max_latency:f} msec\n"
        )
        out.write("  Distribution:\n")
        if snapshot.dropped:
            out.write(f"  Dropped: {snapshot.dropped}\n")
        if snapshot.duplicate:
            out.write(f"  Duplicate: {snapshot.duplicate}\n")
        for _, _, value, count in snapshot.histogram.nonzero():
            out.write(f"    msecs: {value}  messages: {count}\n")
        if snapshot.overflow > 0:
            out.write(f"> 100 sec: {snapshot.overflow}\n")
        return out.getvalue()

    def report(self) -> StatsSnapshot:
        """Write a snapshot to the stream and return it."""
        snapshot = self.snapshot()
        rate = None
        if self.interval_s and snapshot.received > self._last_count:
            rate = (snapshot.received - self._last_count) // self.interval_s
        text = self.render(snapshot, self.csv_output, rate)
        if text:
            self.stream.write(text)
            self.stream.flush()
        self._last_count = snapshot.received
        return snapshot


class SampleTrace:
    """Per-message latency rows: creation/receipt dates, pause since the
    previous creation time, and latency."""

    def __init__(self, stream: Optional[TextIO] = None, csv_output: bool = False):
        self._formatter = make_formatter(
            TRACE_COLUMNS, stream if stream is not None else sys.stdout, csv_output
        )
        self._last_then = 0

    def write(self, latency_ms: int, then_ms: int, now_ms: int):
        pause = then_ms - self._last_then if self._last_then else 0
        self._last_then = then_ms
        # rows are numbered from 1
        count = self._formatter.rows_written + 1
        self._formatter.write([then_ms, now_ms, count, then_ms, now_ms, pause, latency_ms])
