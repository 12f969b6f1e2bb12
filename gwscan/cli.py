"""
Command line entry point.

    gwscan 192.168.1.1..192.168.1.20 -c 256 -vv

Prints the detected gateways as a JSON array on stdout.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .core.config import settings
from .core.exceptions import ScanConfigError
from .core.logging_config import setup_logging
from .scanner.gateway_scanner import GatewayScanner, resolve_range

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gwscan",
        description="Discover G1 and MG3 gateways on the local network"
    )
    parser.add_argument(
        "range", nargs="?", default=None,
        help="Ip range to scan (e.g. 192.168.1.1..192.168.1.20). "
             "Default will be chosen based on local ip."
    )
    parser.add_argument(
        "-c", "--concurrency", type=positive_int, default=settings.SCAN_CONCURRENCY,
        help=f"Addresses probed at the same time (default: {settings.SCAN_CONCURRENCY})"
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v info, -vv debug, -vvv trace)"
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        address_range = resolve_range(args.range)
    except ScanConfigError as e:
        logger.error(str(e))
        return 1

    scanner = GatewayScanner(concurrency=args.concurrency)
    detections = asyncio.run(scanner.scan(address_range))

    print(json.dumps([d.to_dict() for d in detections], indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
