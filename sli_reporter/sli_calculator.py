"""
SLI Calculator
Compute availability and latency SLIs per ALB target group from
CloudWatch request, 5XX and response time metrics
"""

import os
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Any, Optional, Union

import numpy as np
import pandas as pd

from sli_reporter.cloudwatch_metrics import CloudWatchMetricsService
from sli_reporter.config import SLIConfig
from sli_reporter.exceptions import MetricsInputError, MetricsListingError, StatisticsFetchError
from sli_reporter.models import (
    AvailabilityRow,
    ListMetricsRequest,
    Metric,
    MetricStatistic,
    MetricStatisticsRequest,
    SLIType,
    StatisticType,
    TargetGroupAvailability,
    TargetGroupLatency,
)

logger = logging.getLogger(__name__)

ReportBlocks = Union[List[TargetGroupAvailability], List[TargetGroupLatency]]


def format_timestamp(ts: datetime) -> str:
    """RFC 3339 with second precision, UTC written as Z"""
    if ts.tzinfo is None or ts.utcoffset() == timedelta(0):
        return ts.strftime('%Y-%m-%dT%H:%M:%SZ')
    return ts.isoformat(timespec='seconds')


def align_error_counts(total_series: List[MetricStatistic],
                       error_series: List[MetricStatistic]) -> List[AvailabilityRow]:
    """Pair each total bucket with the error bucket of the same timestamp.

    Error buckets may be coarser than total buckets, so most total buckets
    have no match and get an error count of zero. error_series is sorted,
    so the scan stops at the first error timestamp past the total one.
    """
    rows = []
    for total in total_series:
        error_count = 0
        for err in error_series:
            if err.timestamp == total.timestamp:
                error_count = int(err.value)
            elif err.timestamp > total.timestamp:
                break
        rows.append(AvailabilityRow(
            timestamp=total.timestamp,
            total_value=total.value,
            error_count=error_count
        ))
    return rows


def format_availability(row: AvailabilityRow) -> str:
    if row.total_value == 0:
        return "1.0"
    return f"{row.availability:.3f}"


class SLICalculator:
    """Build availability and latency reports from CloudWatch"""

    def __init__(self, metrics_service: CloudWatchMetricsService, config: SLIConfig):
        self.metrics_service = metrics_service
        self.config = config

    def _list_metrics(self, metric_name: str, dimension_names: List[str]) -> List[Metric]:
        result = self.metrics_service.list_metrics(ListMetricsRequest(
            namespace=self.config.namespace,
            metric_names=[metric_name],
            dimension_names=dimension_names
        ))
        if result.ok:
            return result.metrics
        if not self.config.suppress_listing_errors:
            raise MetricsListingError(f"Failed to list {metric_name}: {str(result.error)}") from result.error
        logger.warning(f"Ignoring listing failure for {metric_name}, continuing with no metrics")
        return []

    def _fetch(self, metric: Metric, period: timedelta, start: datetime, end: datetime,
               statistic: StatisticType) -> Optional[List[MetricStatistic]]:
        """Fetch one metric's series; failures are logged and yield None"""
        try:
            return self.metrics_service.get_metric_statistics(MetricStatisticsRequest(
                namespace=metric.namespace,
                metric_name=metric.name,
                dimensions=metric.dimensions,
                period=period,
                start=start,
                end=end,
                statistic=statistic
            ))
        except (MetricsInputError, StatisticsFetchError) as e:
            logger.error(f"Skipping {metric.name} {metric.dimensions}: {str(e)}")
            return None

    def calculate_availability(self, start: datetime, end: datetime,
                               period: timedelta) -> List[TargetGroupAvailability]:
        """Request counts per report period and 5XX counts per error period, by target group"""
        tg_dim = self.config.target_group_dimension
        request_metrics = self._list_metrics(self.config.request_count_metric, [tg_dim])
        error_metrics = self._list_metrics(
            self.config.error_count_metric,
            [tg_dim, self.config.load_balancer_dimension]
        )

        groups: Dict[str, TargetGroupAvailability] = {}

        for metric in request_metrics:
            stats = self._fetch(metric, period, start, end, StatisticType.SUM)
            if stats is None:
                continue
            name = metric.dimension_value(tg_dim)
            if name is not None:
                groups[name] = TargetGroupAvailability(name=name, request_counts=stats)

        error_period = timedelta(minutes=self.config.error_period_minutes)
        for metric in error_metrics:
            stats = self._fetch(metric, error_period, start, end, StatisticType.SUM)
            if stats is None:
                continue
            name = metric.dimension_value(tg_dim)
            if name is None:
                continue
            if name in groups:
                groups[name].error_counts = stats
            else:
                groups[name] = TargetGroupAvailability(name=name, error_counts=stats)

        logger.info(f"Calculated availability for {len(groups)} target groups")
        return list(groups.values())

    def calculate_latency(self, start: datetime, end: datetime,
                          period: timedelta) -> List[TargetGroupLatency]:
        """Average target response time per report period, by target group"""
        tg_dim = self.config.target_group_dimension
        metrics = self._list_metrics(
            self.config.response_time_metric,
            [tg_dim, self.config.load_balancer_dimension]
        )

        blocks = []
        for metric in metrics:
            stats = self._fetch(metric, period, start, end, StatisticType.AVERAGE)
            if stats is None:
                continue
            name = metric.dimension_value(tg_dim)
            if name is not None:
                blocks.append(TargetGroupLatency(name=name, latencies=stats))

        logger.info(f"Calculated latency for {len(blocks)} target groups")
        return blocks

    def render_availability(self, blocks: List[TargetGroupAvailability]) -> str:
        lines = []
        for block in blocks:
            rows = align_error_counts(block.request_counts, block.error_counts)
            lines.append(block.name + "\n")
            lines.append(",".join(format_timestamp(r.timestamp) for r in rows) + "\n")
            lines.append(",".join(str(r.total_count) for r in rows) + "\n")
            lines.append(",".join(str(r.error_count) for r in rows) + "\n")
            lines.append(",".join(format_availability(r) for r in rows) + "\n")
            lines.append("\n\n")
        return "".join(lines)

    def render_latency(self, blocks: List[TargetGroupLatency]) -> str:
        lines = []
        for block in blocks:
            lines.append(block.name + "\n")
            lines.append(",".join(format_timestamp(s.timestamp) for s in block.latencies) + "\n")
            lines.append(",".join(f"{s.value:.3f}" for s in block.latencies) + "\n")
            lines.append("\n\n")
        return "".join(lines)

    def summarize_availability(self, blocks: List[TargetGroupAvailability]) -> List[Dict[str, Any]]:
        """Overall availability per target group across the whole range"""
        summary = []
        for block in blocks:
            rows = align_error_counts(block.request_counts, block.error_counts)
            total = sum(r.total_value for r in rows)
            errors = sum(r.error_count for r in rows)
            summary.append({
                "target_group": block.name,
                "buckets": len(rows),
                "total_requests": total,
                "error_requests": errors,
                "availability": 1.0 if total == 0 else (total - errors) / total,
                "min_bucket_availability": min((r.availability for r in rows), default=None)
            })
        return summary

    def summarize_latency(self, blocks: List[TargetGroupLatency]) -> List[Dict[str, Any]]:
        """Mean and percentiles of the per-bucket average latency"""
        summary = []
        for block in blocks:
            values = [s.value for s in block.latencies]
            entry = {"target_group": block.name, "buckets": len(values)}
            if values:
                entry.update({
                    "mean_latency": float(np.mean(values)),
                    "p50_latency": float(np.percentile(values, 50)),
                    "p95_latency": float(np.percentile(values, 95)),
                    "p99_latency": float(np.percentile(values, 99)),
                    "max_latency": float(np.max(values))
                })
            summary.append(entry)
        return summary

    def _report_rows(self, sli_type: SLIType, blocks: ReportBlocks) -> List[Dict[str, Any]]:
        rows = []
        if sli_type == SLIType.AVAILABILITY:
            for block in blocks:
                for r in align_error_counts(block.request_counts, block.error_counts):
                    rows.append({
                        "target_group": block.name,
                        "timestamp": format_timestamp(r.timestamp),
                        "request_count": r.total_count,
                        "error_count": r.error_count,
                        "availability": round(r.availability, 3)
                    })
        else:
            for block in blocks:
                for s in block.latencies:
                    rows.append({
                        "target_group": block.name,
                        "timestamp": format_timestamp(s.timestamp),
                        "latency": round(s.value, 3)
                    })
        return rows

    def generate_report(self, sli_type: SLIType, blocks: ReportBlocks,
                        start: datetime, end: datetime, period: timedelta) -> Dict[str, Any]:
        if sli_type == SLIType.AVAILABILITY:
            summary = self.summarize_availability(blocks)
        else:
            summary = self.summarize_latency(blocks)

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "sli": sli_type.value,
            "reporting_period": {
                "start": format_timestamp(start),
                "end": format_timestamp(end),
                "period_seconds": int(period.total_seconds())
            },
            "summary": summary,
            "datapoints": self._report_rows(sli_type, blocks)
        }

    def save_report(self, report: Dict[str, Any], output_formats: List[str],
                    output_dir: str = ".") -> List[str]:
        """Save report in specified formats"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        base = os.path.join(output_dir, f"sli_{report['sli']}_report_{timestamp}")
        saved = []

        if 'json' in output_formats:
            json_file = f"{base}.json"
            with open(json_file, 'w') as f:
                json.dump(report, f, indent=2, default=str)
            logger.info(f"JSON report saved to: {json_file}")
            saved.append(json_file)

        if 'csv' in output_formats:
            csv_file = f"{base}.csv"
            df = pd.DataFrame(report["datapoints"])
            df.to_csv(csv_file, index=False)
            logger.info(f"CSV report saved to: {csv_file}")
            saved.append(csv_file)

        return saved
