"""Tests for the aggregation engine."""

import random

import pytest

from exchangerisk.core.aggregation import (
    average_risk,
    date_label,
    liquidity_trend,
    risk_bucket,
    risk_distribution,
    summarize,
)
from exchangerisk.core.models import RecordStatus


class TestSummaries:
    def test_empty_set(self):
        summary = summarize([])
        assert summary.total_count == 0
        assert summary.average_risk == 0
        assert summary.high_risk_count == 0
        assert summary.verified_count == 0
        assert summary.distribution.model_dump() == {"low": 0, "medium": 0, "high": 0}
        assert summary.trend == []

    def test_three_bucket_example(self, make_record):
        records = [make_record(risk_score=s) for s in (2, 5, 9)]
        summary = summarize(records)

        assert summary.distribution.model_dump() == {"low": 1, "medium": 1, "high": 1}
        assert summary.average_risk == pytest.approx(16 / 3)
        assert round(summary.average_risk, 2) == 5.33

    @pytest.mark.parametrize(
        "score,bucket",
        [(1, "low"), (3, "low"), (4, "medium"), (6, "medium"), (7, "high"), (10, "high")],
    )
    def test_bucket_boundaries(self, score, bucket):
        assert risk_bucket(score) == bucket

    @pytest.mark.parametrize("seed", range(5))
    def test_buckets_partition_the_set(self, make_record, seed):
        rng = random.Random(seed)
        records = [make_record(risk_score=rng.randint(1, 10)) for _ in range(rng.randint(1, 40))]
        summary = summarize(records)

        dist = summary.distribution
        assert dist.low + dist.medium + dist.high == summary.total_count
        assert summary.high_risk_count == dist.high
        assert 0 <= summary.average_risk <= 10

    def test_verified_count(self, make_record):
        records = [
            make_record(status=RecordStatus.VERIFIED),
            make_record(status=RecordStatus.REJECTED),
            make_record(status=RecordStatus.VERIFIED),
            make_record(),
        ]
        assert summarize(records).verified_count == 2

    def test_average_of_empty_sequence(self):
        assert average_risk([]) == 0.0

    def test_distribution_shares(self, make_record):
        dist = risk_distribution([make_record(risk_score=s) for s in (1, 2, 8, 5)])
        assert dist.share("low") == 0.5
        assert dist.share("medium") == 0.25
        assert dist.share("high") == 0.25
        assert risk_distribution([]).share("high") == 0.0


class TestLiquidityTrend:
    def test_sorted_oldest_first(self, make_record):
        records = [
            make_record(created_at=3_000_000, liquidity=30.0),
            make_record(created_at=1_000_000, liquidity=10.0),
            make_record(created_at=2_000_000, liquidity=20.0),
        ]
        assert [p.liquidity for p in liquidity_trend(records)] == [10.0, 20.0, 30.0]

    def test_heights_are_relative_to_peak(self, make_record):
        records = [make_record(liquidity=v) for v in (25.0, 100.0, 50.0)]
        heights = [p.relative_height for p in liquidity_trend(records)]
        assert heights == [0.25, 1.0, 0.5]

    def test_all_zero_liquidity(self, make_record):
        records = [make_record(liquidity=0.0) for _ in range(3)]
        assert all(p.relative_height == 0.0 for p in liquidity_trend(records))

    def test_empty_trend(self):
        assert liquidity_trend([]) == []

    def test_label_is_utc_date(self, make_record):
        record = make_record(created_at=1_700_000_000)
        assert liquidity_trend([record])[0].label == "2023-11-14"
        assert date_label(0) == "1970-01-01"

    def test_trend_does_not_reorder_input(self, make_record):
        records = [make_record(created_at=t) for t in (3, 1, 2)]
        liquidity_trend(records)
        assert [r.created_at for r in records] == [3, 1, 2]

    def test_unrepresentable_date_gets_placeholder_label(self, make_record):
        records = [make_record(created_at=10**15), make_record(created_at=1_700_000_000)]

        summary = summarize(records)

        assert summary.total_count == 2
        assert [p.label for p in summary.trend] == ["2023-11-14", "unknown"]
