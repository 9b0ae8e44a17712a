"""
CloudWatch Metrics Service
List CloudWatch metrics by dimension set and fetch statistics
over arbitrarily long time ranges
"""

import logging
from typing import Dict, List, Any

from botocore.exceptions import BotoCoreError, ClientError

from sli_reporter.exceptions import MetricsInputError, StatisticsFetchError
from sli_reporter.models import (
    ListMetricsRequest,
    ListMetricsResult,
    Metric,
    MetricDimension,
    MetricStatistic,
    MetricStatisticsRequest,
    StatisticType,
)
from sli_reporter.window_splitter import DEFAULT_PAGE_LIMIT, split_window

logger = logging.getLogger(__name__)


def validate_list_request(request: ListMetricsRequest):
    if not request.namespace:
        raise MetricsInputError("ListMetricsRequest.namespace is empty")
    if not request.dimension_names:
        raise MetricsInputError("ListMetricsRequest.dimension_names is empty")


def validate_statistics_request(request: MetricStatisticsRequest):
    if not request.namespace:
        raise MetricsInputError("MetricStatisticsRequest.namespace is empty")
    if not request.metric_name:
        raise MetricsInputError("MetricStatisticsRequest.metric_name is empty")
    if not request.dimensions:
        raise MetricsInputError("MetricStatisticsRequest.dimensions is empty")
    if not request.period:
        raise MetricsInputError("MetricStatisticsRequest.period is empty")
    if request.start is None:
        raise MetricsInputError("MetricStatisticsRequest.start is empty")
    if request.end is None:
        raise MetricsInputError("MetricStatisticsRequest.end is empty")
    if not isinstance(request.statistic, StatisticType):
        raise MetricsInputError(f"invalid statistic {request.statistic}")


def matches_dimensions(dimension_names: List[str], dimensions: List[Dict[str, Any]]) -> bool:
    """True when the metric carries exactly the requested dimension names"""
    if len(dimension_names) != len(dimensions):
        return False
    match_count = sum(1 for dim in dimensions if dim['Name'] in dimension_names)
    return match_count == len(dimension_names)


class CloudWatchMetricsService:
    """Read-only access to CloudWatch metrics"""

    def __init__(self, cloudwatch_client, page_limit: int = DEFAULT_PAGE_LIMIT):
        self.cloudwatch = cloudwatch_client
        self.page_limit = page_limit

    def list_metrics(self, request: ListMetricsRequest) -> ListMetricsResult:
        """List metrics in a namespace whose dimension names match the request.

        Backend failures are not raised; they come back in
        ListMetricsResult.error with an empty metric list so the caller can
        decide whether to continue.
        """
        validate_list_request(request)

        metrics = []
        try:
            if request.metric_names:
                for metric_name in request.metric_names:
                    metrics.extend(self._list_pages(request, MetricName=metric_name))
            else:
                metrics.extend(self._list_pages(request))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list metrics in {request.namespace}: {str(e)}")
            return ListMetricsResult(metrics=[], error=e)

        logger.info(f"Found {len(metrics)} metrics in {request.namespace} "
                    f"with dimensions {request.dimension_names}")
        return ListMetricsResult(metrics=metrics)

    def _list_pages(self, request: ListMetricsRequest, **filters) -> List[Metric]:
        metrics = []
        paginator = self.cloudwatch.get_paginator('list_metrics')

        for page in paginator.paginate(Namespace=request.namespace, **filters):
            for met in page.get('Metrics', []):
                dims = met.get('Dimensions', [])
                if not matches_dimensions(request.dimension_names, dims):
                    continue
                metrics.append(Metric(
                    namespace=request.namespace,
                    name=met['MetricName'],
                    dimensions=[MetricDimension(name=d['Name'], value=d['Value']) for d in dims]
                ))

        return metrics

    def get_metric_statistics(self, request: MetricStatisticsRequest) -> List[MetricStatistic]:
        """Fetch one statistic over the whole request range, sorted by timestamp.

        The range is split so every call stays under the CloudWatch datapoint
        limit. Calls run one after another; the first failure raises
        StatisticsFetchError carrying the datapoints collected so far.
        """
        validate_statistics_request(request)

        result = []
        windows = split_window(request.start, request.end, request.period, self.page_limit)
        dimensions = [{'Name': dim.name, 'Value': dim.value} for dim in request.dimensions]
        statistic = request.statistic.value

        for window in windows:
            logger.debug(f"Fetching {statistic} of {request.metric_name} "
                         f"from {window.start.isoformat()} to {window.end.isoformat()}")
            try:
                response = self.cloudwatch.get_metric_statistics(
                    Namespace=request.namespace,
                    MetricName=request.metric_name,
                    Dimensions=dimensions,
                    StartTime=window.start,
                    EndTime=window.end,
                    Period=int(request.period.total_seconds()),
                    Statistics=[statistic]
                )
            except (ClientError, BotoCoreError) as e:
                raise StatisticsFetchError(
                    f"Failed to get {statistic} of {request.metric_name} for "
                    f"{window.start.isoformat()} - {window.end.isoformat()}: {str(e)}",
                    partial=result
                ) from e

            for point in response.get('Datapoints', []):
                result.append(MetricStatistic(
                    timestamp=point['Timestamp'],
                    value=float(point.get(statistic, 0.0))
                ))

        result.sort(key=lambda s: s.timestamp)
        return result
