"""Summary statistics over a record set.

Everything here is a pure function of the records passed in and is
recomputed on each call.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Sequence

from pydantic import BaseModel, Field

from .models import ExchangeRecord, RecordStatus

HIGH_RISK_THRESHOLD = 7
MEDIUM_RISK_THRESHOLD = 4


class RiskDistribution(BaseModel):
    """Record counts per risk bucket."""

    low: int = 0
    medium: int = 0
    high: int = 0

    @property
    def total(self) -> int:
        return self.low + self.medium + self.high

    def share(self, bucket: str) -> float:
        """Fraction of all records in a bucket, 0 when there are none."""
        total = self.total
        return getattr(self, bucket) / total if total > 0 else 0.0


class TrendPoint(BaseModel):
    """One bar of the liquidity trend chart."""

    label: str
    liquidity: float
    relative_height: float = 0.0


class RiskSummary(BaseModel):
    """Aggregates shown on the dashboard."""

    total_count: int = 0
    average_risk: float = 0.0
    high_risk_count: int = 0
    verified_count: int = 0
    distribution: RiskDistribution = Field(default_factory=RiskDistribution)
    trend: List[TrendPoint] = Field(default_factory=list)


def risk_bucket(risk_score: int) -> str:
    if risk_score < MEDIUM_RISK_THRESHOLD:
        return "low"
    if risk_score < HIGH_RISK_THRESHOLD:
        return "medium"
    return "high"


def risk_distribution(records: Iterable[ExchangeRecord]) -> RiskDistribution:
    counts = {"low": 0, "medium": 0, "high": 0}
    for record in records:
        counts[risk_bucket(record.risk_score)] += 1
    return RiskDistribution(**counts)


def average_risk(records: Sequence[ExchangeRecord]) -> float:
    if not records:
        return 0.0
    return sum(r.risk_score for r in records) / len(records)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
UNKNOWN_DATE_LABEL = "unknown"


def date_label(created_at: int) -> str:
    """UTC calendar date of an epoch-seconds timestamp.

    Timestamps outside the range a datetime can hold get
    ``UNKNOWN_DATE_LABEL`` instead of an error.
    """
    try:
        return (_EPOCH + timedelta(seconds=created_at)).strftime("%Y-%m-%d")
    except OverflowError:
        return UNKNOWN_DATE_LABEL


def liquidity_trend(records: Iterable[ExchangeRecord]) -> List[TrendPoint]:
    """Liquidity per record, oldest first, with bar heights scaled to the max.

    An empty record set gives an empty trend.
    """
    ordered = sorted(records, key=lambda r: r.created_at)
    peak = max((r.liquidity for r in ordered), default=0.0)
    return [
        TrendPoint(
            label=date_label(r.created_at),
            liquidity=r.liquidity,
            relative_height=r.liquidity / peak if peak > 0 else 0.0,
        )
        for r in ordered
    ]


def summarize(records: Iterable[ExchangeRecord]) -> RiskSummary:
    """Compute every dashboard aggregate for a record set."""
    records = list(records)
    distribution = risk_distribution(records)
    return RiskSummary(
        total_count=len(records),
        average_risk=average_risk(records),
        high_risk_count=distribution.high,
        verified_count=sum(1 for r in records if r.status is RecordStatus.VERIFIED),
        distribution=distribution,
        trend=liquidity_trend(records),
    )
