"""
SNMP Counter Rate Check - Main Entry Point.

Polls one SNMP counter, compares it with the sample stored by the
previous run and reports the per-second rate as a monitoring status:
one line on stdout and an exit code of 0, 1, 2 or 3.
"""

import argparse
import logging
import sys
from typing import Callable, List, Optional

from .core.config import CheckConfig, ConfigError
from .core.cache_store import CacheStore, CacheWriteError
from .core.models import CheckResult, Sample, Status, utc_now
from .core.rate_classifier import classify
from .collectors.snmp_collector import SNMPCollector, FetchError, FetchTimeout


logger = logging.getLogger(__name__)


class RateCheck:
    """
    Runs a single counter rate check.

    - Loads the previous sample from the cache
    - Fetches the current counter value
    - Classifies the rate and stores the new sample
    """

    def __init__(
        self,
        config: CheckConfig,
        cache_store: Optional[CacheStore] = None,
        collector: Optional[SNMPCollector] = None,
        clock: Callable = utc_now,
    ):
        self.config = config
        self.cache_store = cache_store or CacheStore(config.cache.directory)
        self.collector = collector or SNMPCollector(
            community=config.snmp.community,
            port=config.snmp.port,
            timeout=config.snmp.timeout_seconds,
        )
        self.clock = clock

    def run(self) -> CheckResult:
        """Run the check; every failure is mapped to a status."""
        host = self.config.snmp.host
        oid = self.config.snmp.oid
        thresholds = self.config.thresholds

        previous = self.cache_store.load(host, oid)
        logger.debug(f"Previous sample for {host} {oid}: {previous}")

        try:
            value = self.collector.fetch_counter_sync(host, oid)
        except FetchTimeout as e:
            logger.debug(f"Fetch timed out: {e}")
            return CheckResult(Status.UNKNOWN, f"timeout: {e}", thresholds=thresholds)
        except FetchError as e:
            logger.debug(f"Fetch failed: {e}")
            return CheckResult(
                Status.UNKNOWN, f"SNMP fetch failed: {e}", thresholds=thresholds
            )

        current = Sample(timestamp=self.clock(), counter_value=value)
        result = classify(previous, current, thresholds)
        logger.debug(f"Classified {current} as {result.status.name}")

        try:
            self.cache_store.save(host, oid, current)
        except CacheWriteError as e:
            logger.error(str(e))
            return CheckResult(
                Status.UNKNOWN,
                f"{e} (check result was {result.status.name}: {result.message})",
                rate=result.rate,
                thresholds=thresholds,
            )

        return result


class CheckArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports errors as ConfigError instead of exiting."""

    def error(self, message):
        raise ConfigError(message)


class HelpAction(argparse.Action):
    """Print help and exit UNKNOWN, so a scheduler never reads help as OK."""

    def __init__(
        self,
        option_strings,
        dest=argparse.SUPPRESS,
        default=argparse.SUPPRESS,
        help=None,
    ):
        super().__init__(
            option_strings=option_strings,
            dest=dest,
            default=default,
            nargs=0,
            help=help,
        )

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit(int(Status.UNKNOWN))


def build_parser() -> CheckArgumentParser:
    """Build the command line parser."""
    parser = CheckArgumentParser(
        prog="check_snmp_rate",
        description="Check the per-second rate of an SNMP counter",
        add_help=False,
    )

    parser.add_argument(
        "-h", "--help",
        action=HelpAction,
        help="Show this help message and exit UNKNOWN"
    )

    parser.add_argument(
        "-H", "--host",
        required=True,
        help="Target address of the SNMP agent"
    )

    parser.add_argument(
        "-o", "--oid",
        required=True,
        help="Numeric OID of an integer counter"
    )

    parser.add_argument(
        "-C", "--community",
        default=None,
        help="SNMP community string (default: public)"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="SNMP port (default: 161)"
    )

    parser.add_argument(
        "-w", "--warning",
        type=float,
        default=None,
        help="Warning rate threshold per second (default: 0)"
    )

    parser.add_argument(
        "-c", "--critical",
        type=float,
        default=None,
        help="Critical rate threshold per second (default: 0)"
    )

    parser.add_argument(
        "-t", "--timeout",
        type=float,
        default=None,
        help="Fetch timeout in seconds (default: 10)"
    )

    parser.add_argument(
        "--cache-dir",
        default=None,
        help="Directory for cached samples (default: system temp dir)"
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file (YAML)"
    )

    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Enable debug logging on stderr"
    )

    return parser


def build_config(args: argparse.Namespace) -> CheckConfig:
    """Load configuration and apply command line overrides."""
    config = CheckConfig.from_yaml(args.config)

    config.snmp.host = args.host
    config.snmp.oid = args.oid
    if args.community is not None:
        config.snmp.community = args.community
    if args.port is not None:
        config.snmp.port = args.port
    if args.timeout is not None:
        config.snmp.timeout_seconds = args.timeout
    if args.warning is not None:
        config.thresholds.warning_rate = args.warning
    if args.critical is not None:
        config.thresholds.critical_rate = args.critical
    if args.cache_dir is not None:
        config.cache.directory = args.cache_dir
    if args.debug:
        config.logging.level = "DEBUG"

    config.validate()
    return config


def setup_logging(config: CheckConfig):
    """Configure logging; stdout is reserved for the status line."""
    # Level name is checked by CheckConfig.validate
    level = logging.getLevelName(config.logging.level)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.logging.file_path:
        handlers.append(logging.FileHandler(config.logging.file_path))

    logging.basicConfig(
        level=level,
        format=config.logging.format,
        handlers=handlers,
    )
    logging.getLogger().setLevel(level)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the exit code."""
    parser = build_parser()

    try:
        args = parser.parse_args(argv)
        config = build_config(args)
    except ConfigError as e:
        # Usage is folded onto the single status line
        usage = " ".join(parser.format_usage().split())
        print(f"UNKNOWN - {e}; {usage}")
        return int(Status.UNKNOWN)

    try:
        setup_logging(config)
    except (OSError, ValueError) as e:
        # Bad log file path or log format string
        print(f"UNKNOWN - cannot set up logging: {e}")
        return int(Status.UNKNOWN)

    try:
        result = RateCheck(config).run()
    except Exception as e:
        logger.exception("Unexpected error during check")
        result = CheckResult(Status.UNKNOWN, f"unexpected error: {e}")

    print(result.render())
    return result.exit_code


def run():
    """Entry point for the application."""
    sys.exit(main())


if __name__ == "__main__":
    run()
