"""
Pytest configuration and shared fixtures for SLI reporter tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
from botocore.exceptions import ClientError

from sli_reporter.config import SLIConfig


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def client_error(operation: str = "GetMetricStatistics", code: str = "Throttling") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "Rate exceeded"}}, operation)


class FakePaginator:
    def __init__(self, cloudwatch):
        self.cloudwatch = cloudwatch

    def paginate(self, **kwargs):
        self.cloudwatch.list_calls.append(kwargs)
        if self.cloudwatch.list_error is not None:
            raise self.cloudwatch.list_error
        metrics = [
            m for m in self.cloudwatch.metrics
            if m["Namespace"] == kwargs["Namespace"]
            and ("MetricName" not in kwargs or m["MetricName"] == kwargs["MetricName"])
        ]
        # two entries per page to exercise pagination
        for i in range(0, len(metrics), 2):
            yield {"Metrics": metrics[i:i + 2]}


class FakeCloudWatch:
    """In-memory stand-in for the boto3 CloudWatch client"""

    def __init__(self):
        self.metrics = []
        self.datapoints = {}
        self.list_calls = []
        self.stat_calls = []
        self.list_error = None
        self.stat_errors = {}

    def add_metric(self, name, dimensions, namespace="AWS/ApplicationELB"):
        self.metrics.append({
            "Namespace": namespace,
            "MetricName": name,
            "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
        })

    def add_datapoints(self, name, target_group, statistic, points):
        self.datapoints.setdefault((name, target_group), []).extend(
            {"Timestamp": ts, statistic: value, "Unit": "Count"} for ts, value in points
        )

    def get_paginator(self, operation):
        assert operation == "list_metrics"
        return FakePaginator(self)

    def get_metric_statistics(self, **kwargs):
        self.stat_calls.append(kwargs)
        target_group = next(d["Value"] for d in kwargs["Dimensions"] if d["Name"] == "TargetGroup")
        key = (kwargs["MetricName"], target_group)
        if key in self.stat_errors:
            raise self.stat_errors[key]
        points = [
            p for p in self.datapoints.get(key, [])
            if kwargs["StartTime"] <= p["Timestamp"] <= kwargs["EndTime"]
        ]
        # CloudWatch does not order datapoints
        return {"Label": kwargs["MetricName"], "Datapoints": list(reversed(points))}


@pytest.fixture
def fake_cloudwatch():
    return FakeCloudWatch()


@pytest.fixture
def sli_config():
    return SLIConfig(region="us-east-1")


@pytest.fixture
def day_start():
    return utc(2000, 1, 1)


@pytest.fixture
def hourly():
    return timedelta(hours=1)
