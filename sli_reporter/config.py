"""
SLI Reporter Configuration
Resolve the AWS region and report settings once at startup
"""

import os
import json
import logging
from typing import Any, Dict, Mapping, Optional
from dataclasses import dataclass, fields

import boto3

from sli_reporter.exceptions import ConfigurationError
from sli_reporter.window_splitter import DEFAULT_PAGE_LIMIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SLIConfig:
    """Settings for one report run"""
    region: str
    namespace: str = "AWS/ApplicationELB"
    request_count_metric: str = "RequestCountPerTarget"
    error_count_metric: str = "HTTPCode_Target_5XX_Count"
    response_time_metric: str = "TargetResponseTime"
    target_group_dimension: str = "TargetGroup"
    load_balancer_dimension: str = "LoadBalancer"
    error_period_minutes: int = 30
    page_limit: int = DEFAULT_PAGE_LIMIT
    suppress_listing_errors: bool = True


def resolve_region(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return AWS_REGION, falling back to AWS_DEFAULT_REGION"""
    if environ is None:
        environ = os.environ
    region = environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION")
    if not region:
        raise ConfigurationError("env AWS_REGION or AWS_DEFAULT_REGION required")
    return region


def _load_config_file(config_file: str) -> Dict[str, Any]:
    """Load report settings from a JSON file"""
    try:
        with open(config_file, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning(f"Config file {config_file} not found. Using defaults.")
        return {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_file}: {str(e)}") from e
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in config file {config_file}")
        raise


def load_config(config_file: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None,
                **overrides) -> SLIConfig:
    """Build the SLIConfig from environment, optional JSON file and overrides"""
    settings = _load_config_file(config_file) if config_file else {}
    if not isinstance(settings, dict):
        raise ConfigurationError(f"Config file {config_file} must contain a JSON object")

    known = {f.name for f in fields(SLIConfig)} - {"region"}
    unknown = set(settings) - known
    if unknown:
        raise ConfigurationError(f"Unknown config keys in {config_file}: {', '.join(sorted(unknown))}")

    settings.update({k: v for k, v in overrides.items() if v is not None})

    page_limit = settings.get("page_limit", DEFAULT_PAGE_LIMIT)
    if not isinstance(page_limit, int) or page_limit < 2:
        raise ConfigurationError(f"page_limit must be an integer >= 2, got {page_limit!r}")
    error_period = settings.get("error_period_minutes", 30)
    if not isinstance(error_period, int) or error_period <= 0:
        raise ConfigurationError(f"error_period_minutes must be a positive integer, got {error_period!r}")

    return SLIConfig(region=resolve_region(environ), **settings)


def create_cloudwatch_client(config: SLIConfig):
    """Create the boto3 CloudWatch client for the configured region"""
    logger.info(f"Creating CloudWatch client for region {config.region}")
    return boto3.client('cloudwatch', region_name=config.region)
