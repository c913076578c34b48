import pytest

from latency_receiver.histogram import BUCKETS_PER_ORDER, MAX_ORDER, Histogram


class TestBucketRouting:
    def test_one_sample_per_order_and_overflow(self):
        histogram = Histogram()
        for sample in [5, 150, 2500, 45000, 150000]:
            histogram.add(sample)

        assert histogram.count(0, 5) == 1
        assert histogram.count(1, 15) == 1
        assert histogram.count(2, 25) == 1
        assert histogram.count(3, 45) == 1
        assert histogram.overflow == 1
        assert histogram.total == 5

    @pytest.mark.parametrize(
        "sample,expected",
        [
            (0, (0, 0)),
            (99, (0, 99)),
            (100, (1, 10)),
            (999, (1, 99)),
            (1000, (2, 10)),
            (9999, (2, 99)),
            (10000, (3, 10)),
            (99999, (3, 99)),
            (100000, (-1, -1)),
        ],
    )
    def test_order_boundaries(self, sample, expected):
        assert Histogram.locate(sample) == expected

    def test_fourth_order_is_reachable(self):
        histogram = Histogram()
        histogram.add(12345)

        assert histogram.count(3, 12) == 1
        assert histogram.overflow == 0

    def test_negative_sample_rejected(self):
        with pytest.raises(ValueError, match="Negative"):
            Histogram().add(-1)


class TestTotals:
    def test_bucket_sum_plus_overflow_matches_samples(self):
        histogram = Histogram()
        samples = [0, 7, 7, 99, 100, 512, 4096, 70000, 100000, 250000, 10 ** 9]
        for sample in samples:
            histogram.add(sample)

        bucket_sum = sum(
            histogram.count(order, index)
            for order in range(MAX_ORDER)
            for index in range(BUCKETS_PER_ORDER)
        )
        assert bucket_sum + histogram.overflow == len(samples)
        assert histogram.total == len(samples)
        assert histogram.overflow == 3

    def test_nonzero_reports_bucket_lower_bounds_in_order(self):
        histogram = Histogram()
        for sample in [45000, 5, 5, 2500, 155]:
            histogram.add(sample)

        assert list(histogram.nonzero()) == [
            (0, 5, 5, 2),
            (1, 15, 150, 1),
            (2, 25, 2500, 1),
            (3, 45, 45000, 1),
        ]

    def test_copy_is_independent(self):
        histogram = Histogram()
        histogram.add(10)
        snapshot = histogram.copy()

        histogram.add(10)
        histogram.add(10 ** 6)

        assert snapshot.count(0, 10) == 1
        assert snapshot.overflow == 0
        assert histogram.count(0, 10) == 2
