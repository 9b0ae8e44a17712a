#!/usr/bin/env python3
"""
ALB SLI Reporter
Print availability or latency SLIs per ALB target group from CloudWatch
"""

import re
import sys
import logging
import argparse
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sli_reporter.cloudwatch_metrics import CloudWatchMetricsService
from sli_reporter.config import create_cloudwatch_client, load_config
from sli_reporter.exceptions import SLIReporterError
from sli_reporter.models import SLIType
from sli_reporter.sli_calculator import SLICalculator

logger = logging.getLogger(__name__)

PERIOD_PATTERN = re.compile(r'^(\d+)(m|h|d)$')
PERIOD_UNITS = {'m': 'minutes', 'h': 'hours', 'd': 'days'}


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; values without an offset are read as UTC"""
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        ts = datetime.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid ISO-8601 timestamp: {value!r}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def parse_period(value: str) -> timedelta:
    """Parse a period such as 5m, 5h or 5d"""
    match = PERIOD_PATTERN.match(value)
    if not match:
        raise argparse.ArgumentTypeError(f"invalid period format: {value!r}, valid formats: 5m,5h,5d")
    amount, unit = match.groups()
    try:
        return timedelta(**{PERIOD_UNITS[unit]: int(amount)})
    except OverflowError:
        raise argparse.ArgumentTypeError(f"period out of range: {value!r}")


def setup_logging(level: str, log_file: Optional[str] = None):
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Calculate ALB target group SLIs from CloudWatch')
    parser.add_argument('--start', required=True, type=parse_timestamp,
                        help='Start time, ISO-8601 (RFC 3339)')
    parser.add_argument('--end', type=parse_timestamp,
                        help='End time, ISO-8601 (RFC 3339), default is now')
    parser.add_argument('--sli', required=True, choices=[t.value for t in SLIType],
                        help='SLI type')
    parser.add_argument('--period', type=parse_period, default=parse_period('1h'),
                        help='Period, valid formats: 5m,5h,5d (default: 1h)')
    parser.add_argument('--config', type=str,
                        help='JSON file overriding report settings')
    parser.add_argument('--strict-listing', action='store_true',
                        help='Fail when CloudWatch metric listing fails instead of reporting nothing')
    parser.add_argument('--output-format', nargs='+', default=[], choices=['json', 'csv'],
                        help='Also save the report in these formats')
    parser.add_argument('--output-dir', default='.', help='Directory for saved reports')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--log-file', help='Also write logs to this file')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    end = args.end or datetime.now(timezone.utc).replace(microsecond=0)
    if end <= args.start:
        parser.error("--end must be after --start")
    sli_type = SLIType(args.sli)

    try:
        config = load_config(
            args.config,
            suppress_listing_errors=False if args.strict_listing else None
        )
    except (SLIReporterError, ValueError) as e:
        logger.critical(str(e))
        return 1

    metrics_service = CloudWatchMetricsService(create_cloudwatch_client(config), config.page_limit)
    calculator = SLICalculator(metrics_service, config)

    try:
        if sli_type == SLIType.AVAILABILITY:
            blocks = calculator.calculate_availability(args.start, end, args.period)
            sys.stdout.write(calculator.render_availability(blocks))
        else:
            blocks = calculator.calculate_latency(args.start, end, args.period)
            sys.stdout.write(calculator.render_latency(blocks))
    except SLIReporterError as e:
        logger.critical(f"Error during SLI calculation: {str(e)}")
        return 1

    if args.output_format:
        report = calculator.generate_report(sli_type, blocks, args.start, end, args.period)
        calculator.save_report(report, args.output_format, args.output_dir)

    return 0


if __name__ == "__main__":
    sys.exit(main())
