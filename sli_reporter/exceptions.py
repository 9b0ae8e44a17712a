"""Exceptions raised by the SLI reporter"""

from typing import List, Optional


class SLIReporterError(Exception):
    """Base class for SLI reporter errors"""


class ConfigurationError(SLIReporterError):
    """Missing or invalid runtime configuration"""


class MetricsInputError(SLIReporterError, ValueError):
    """A listing or statistics request is missing a required field"""


class MetricsListingError(SLIReporterError):
    """CloudWatch list_metrics failed and the listing policy is strict"""


class StatisticsFetchError(SLIReporterError):
    """A sub-window get_metric_statistics call failed.

    partial holds the datapoints collected before the failure. They are
    unsorted and must not be treated as a complete series.
    """

    def __init__(self, message: str, partial: Optional[List] = None):
        super().__init__(message)
        self.partial = partial if partial is not None else []
