"""
Metric Models
Data classes shared by the CloudWatch client wrapper and the SLI calculator
"""

from datetime import datetime, timedelta
from typing import List, Optional
from dataclasses import dataclass, field
from enum import Enum


class StatisticType(Enum):
    AVERAGE = "Average"
    SAMPLE_COUNT = "SampleCount"
    SUM = "Sum"
    MINIMUM = "Minimum"
    MAXIMUM = "Maximum"


class SLIType(Enum):
    AVAILABILITY = "availability"
    LATENCY = "latency"


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class MetricDimension:
    name: str
    value: str


@dataclass
class Metric:
    """A metric returned by CloudWatch list_metrics"""
    namespace: str
    name: str
    dimensions: List[MetricDimension] = field(default_factory=list)

    def dimension_value(self, name: str) -> Optional[str]:
        for dim in self.dimensions:
            if dim.name == name:
                return dim.value
        return None


@dataclass(frozen=True)
class MetricStatistic:
    """One aggregated datapoint"""
    timestamp: datetime
    value: float


@dataclass
class ListMetricsRequest:
    namespace: str
    dimension_names: List[str]
    metric_names: List[str] = field(default_factory=list)


@dataclass
class MetricStatisticsRequest:
    namespace: str
    metric_name: str
    dimensions: List[MetricDimension]
    period: timedelta
    start: Optional[datetime]
    end: Optional[datetime]
    statistic: StatisticType


@dataclass
class ListMetricsResult:
    """Listing outcome; error is set when the backend call failed"""
    metrics: List[Metric] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AvailabilityRow:
    """Request sum and 5XX count for one bucket"""
    timestamp: datetime
    total_value: float
    error_count: int

    @property
    def total_count(self) -> int:
        return int(self.total_value)

    @property
    def availability(self) -> float:
        if self.total_value == 0:
            return 1.0
        return (self.total_value - self.error_count) / self.total_value


@dataclass
class TargetGroupAvailability:
    name: str
    request_counts: List[MetricStatistic] = field(default_factory=list)
    error_counts: List[MetricStatistic] = field(default_factory=list)


@dataclass
class TargetGroupLatency:
    name: str
    latencies: List[MetricStatistic] = field(default_factory=list)
