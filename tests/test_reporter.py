import dataclasses
import io

import pytest

from latency_receiver.latency import LatencyRecorder
from latency_receiver.reporter import Reporter, SampleTrace
from latency_receiver.session import SessionState


@pytest.fixture
def session() -> SessionState:
    return SessionState(
        target_address="topic",
        credit_window=100,
        received_count=3,
        dropped_count=3,
        duplicate_count=1,
    )


@pytest.fixture
def recorder() -> LatencyRecorder:
    recorder = LatencyRecorder()
    recorder.record(5)
    recorder.record(150)
    return recorder


class TestSnapshot:
    def test_snapshot_values(self, session, recorder):
        snapshot = Reporter(session, recorder).snapshot()

        assert snapshot.received == 3
        assert snapshot.dropped == 3
        assert snapshot.duplicate == 1
        assert snapshot.samples == 2
        assert snapshot.min_latency == 5.0
        assert snapshot.max_latency == 150.0
        assert snapshot.avg_latency == 77.5
        assert snapshot.overflow == 0

    def test_snapshot_is_frozen_and_detached(self, session, recorder):
        snapshot = Reporter(session, recorder).snapshot()

        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.received = 10

        recorder.record(5)
        session.received_count += 1
        assert snapshot.histogram.count(0, 5) == 1
        assert snapshot.received == 3

    def test_snapshot_has_no_side_effects(self, session, recorder):
        reporter = Reporter(session, recorder)
        first = reporter.snapshot()
        second = reporter.snapshot()

        assert first.received == second.received
        assert list(first.histogram.nonzero()) == list(second.histogram.nonzero())
        assert recorder.samples == 2

    def test_min_latency_zero_without_samples(self, session):
        snapshot = Reporter(session, LatencyRecorder()).snapshot()

        assert snapshot.min_latency == 0.0
        assert snapshot.avg_latency == 0.0


class TestRender:
    def test_summary(self, session, recorder):
        text = Reporter.render(Reporter(session, recorder).snapshot())

        assert text == (
            "\n\nLatency:   (3 msgs received)\n"
            "  Average: 77.500000 msec\n"
            "  Minimum: 5.000000 msec\n"
            "  Maximum: 150.000000 msec\n"
            "  Distribution:\n"
            "  Dropped: 3\n"
            "  Duplicate: 1\n"
            "    msecs: 5  messages: 1\n"
            "    msecs: 150  messages: 1\n"
        )

    def test_summary_with_rate_and_overflow(self, session, recorder):
        recorder.record(250000)
        text = Reporter.render(Reporter(session, recorder).snapshot(), rate=12)

        assert "(3 msgs received, 12 msgs/sec)\n" in text
        assert text.endswith("> 100 sec: 1\n")

    def test_counts_omitted_when_zero(self, recorder):
        session = SessionState(target_address="topic", credit_window=100, received_count=2)
        text = Reporter.render(Reporter(session, recorder).snapshot())

        assert "Dropped" not in text
        assert "Duplicate" not in text

    def test_csv(self, session, recorder):
        recorder.record(250000)
        text = Reporter.render(Reporter(session, recorder).snapshot(), csv_output=True)

        assert text == "Messages,Latency (msec)\n1,5\n1,150\n"

    def test_nothing_rendered_before_first_message(self, recorder):
        session = SessionState(target_address="topic", credit_window=100)

        assert Reporter.render(Reporter(session, recorder).snapshot()) == ""


class TestReport:
    def test_writes_to_stream(self, session, recorder):
        out = io.StringIO()
        Reporter(session, recorder, out).report()

        assert "Latency:   (3 msgs received)" in out.getvalue()

    def test_rate_since_last_report(self, session, recorder):
        out = io.StringIO()
        reporter = Reporter(session, recorder, out, interval_s=2)
        session.received_count = 10

        reporter.report()
        assert "(10 msgs received, 5 msgs/sec)" in out.getvalue()

        reporter.report()
        assert "(10 msgs received)\n" in out.getvalue()

        session.received_count = 16
        reporter.report()
        assert "(16 msgs received, 3 msgs/sec)" in out.getvalue()

    def test_repeated_reports_leave_stats_untouched(self, session, recorder):
        reporter = Reporter(session, recorder, io.StringIO())
        reporter.report()
        reporter.report()

        assert session.received_count == 3
        assert recorder.samples == 2


class TestSampleTrace:
    def test_rows_with_pause_time(self):
        out = io.StringIO()
        trace = SampleTrace(out, csv_output=True)

        trace.write(15, 1_700_000_000_000, 1_700_000_000_015)
        trace.write(20, 1_700_000_000_100, 1_700_000_000_120)

        lines = out.getvalue().splitlines()
        assert lines[0] == "THEN DATE,NOW DATE,COUNT,THEN,NOW,PAUSE_TIME,LATENCY"
        assert lines[1].endswith(",1,1700000000000,1700000000015,0,15")
        assert lines[2].endswith(",2,1700000000100,1700000000120,100,20")
