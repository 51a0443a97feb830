"""dns-promoter - Main Entry Point.

Keeps NS delegation records and ACM validation records of subordinate
accounts published in the root hosted zone.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from . import __version__
from .core.aws_client import AWSClientManager
from .core.config import Configuration, ConfigurationError
from .core.logging_setup import configure_logging
from .reconciler import Reconciler


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Route53 delegation and ACM validation sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -d example.com --discover-role dns-promoter        # organization mode
  %(prog)s -d example.com -s arn:aws:iam::111111111111:role/dns  # explicit roles
  %(prog)s config.yaml --dry-run --once                        # one dry pass
        """,
    )

    parser.add_argument(
        "config_file",
        nargs="?",
        help="Path to configuration file (default: auto-detect dns-promoter.yaml)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Run without performing any modifications",
    )
    parser.add_argument(
        "-o", "--once",
        action="store_true",
        default=None,
        help="Run a single reconciliation pass and exit",
    )
    parser.add_argument("-d", "--root-domain", help="Root domain for the controller")
    parser.add_argument(
        "-r", "--root-role",
        help="Role to assume for the root domain (not needed inside the root account)",
    )
    parser.add_argument(
        "-s", "--sub-role",
        action="append",
        dest="sub_roles",
        help="Role to assume for a subdomain account (repeatable)",
    )
    parser.add_argument(
        "--discover-role",
        help="Role name assumed in every account discovered from the organization",
    )
    parser.add_argument(
        "--region",
        action="append",
        dest="regions",
        help="Region to inspect for certificates (repeatable, default: current region)",
    )
    parser.add_argument("--profile", help="AWS profile name to use for credentials")
    parser.add_argument("--log-level", help="Log level (default: INFO)")
    parser.add_argument(
        "--version",
        action="version",
        version=f"dns-promoter v{__version__}",
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map command line arguments onto configuration key paths."""
    return {
        "dry_run": args.dry_run,
        "once": args.once,
        "root_domain": args.root_domain,
        "root_role": args.root_role,
        "sub_roles": args.sub_roles,
        "discover_role": args.discover_role,
        "regions": args.regions,
        "log_level": args.log_level,
        "aws.profile_name": args.profile,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = parse_arguments(argv)

    try:
        config = Configuration(args.config_file, overrides=build_overrides(args))
    except ConfigurationError as e:
        configure_logging("INFO")
        logging.getLogger(__name__).error("Configuration error: %s", e)
        return 1

    log = configure_logging(config.get_log_level())
    if config.config_path is not None:
        log.info("Using configuration file %s", config.config_path)
    log.debug("Loaded configuration: %s", config.to_dict())

    try:
        aws_client = AWSClientManager(profile_name=config.get_profile_name())
    except (BotoCoreError, ClientError) as e:
        log.error("AWS client initialization failed: %s", e)
        return 1

    try:
        return Reconciler(config, aws_client, log=log).run()
    except ConfigurationError as e:
        log.error("Fatal configuration error: %s", e)
        return 1
    except KeyboardInterrupt:
        log.info("Interrupted, exiting")
        return 130


if __name__ == "__main__":
    sys.exit(main())
