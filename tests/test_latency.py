import pytest

from latency_receiver.latency import LatencyRecorder, latency_sample

START = 1_000_000


class TestLatencySample:
    def test_valid_sample(self):
        assert latency_sample(START + 10, START + 25, START) == 15

    def test_zero_latency_is_valid(self):
        assert latency_sample(START, START, START) == 0

    @pytest.mark.parametrize(
        "creation,receive,start",
        [
            (0, START + 5, START),              # no creation time
            (START - 1, START + 5, START),      # created before link was active
            (START + 10, START + 5, START),     # receipt before creation
            (START + 10, START + 20, None),     # link not active yet
        ],
    )
    def test_invalid_samples_discarded(self, creation, receive, start):
        assert latency_sample(creation, receive, start) is None


class TestLatencyRecorder:
    def test_running_aggregates(self):
        recorder = LatencyRecorder()
        for sample in [30, 10, 20]:
            recorder.record(sample)

        assert recorder.minimum == 10
        assert recorder.maximum == 30
        assert recorder.total == 60
        assert recorder.samples == 3
        assert recorder.average == 20.0
        assert recorder.histogram.total == 3

    def test_minimum_unset_until_first_sample(self):
        recorder = LatencyRecorder()
        assert recorder.minimum is None
        assert recorder.average == 0.0

        recorder.record(0)
        assert recorder.minimum == 0

    def test_observe_drops_invalid_samples_silently(self):
        recorder = LatencyRecorder()

        assert recorder.observe(0, START + 5, START) is None
        assert recorder.observe(START + 2, START + 7, START) == 5

        assert recorder.samples == 1
        assert recorder.histogram.total == 1
        assert recorder.minimum == recorder.maximum == 5
