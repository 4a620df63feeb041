#!/usr/bin/env python3
"""
rebootguard - Entry Point

Run once per scheduler tick (cron, systemd timer, Task Scheduler):

Usage:
    rebootguard                          # One evaluation with default config
    rebootguard --config my.yaml         # Use custom config file
    rebootguard --dry-run                # Decide and log, change nothing
    rebootguard --status                 # Print current state and decision as JSON
    rebootguard --reset-state            # Forget notifications and schedule
    rebootguard --loop                   # Keep running, evaluate every poll interval

Exit codes:
    0   success / nothing to do
    1   failure (reboot command failed, or invalid configuration)
    10  reboot initiated
"""

import argparse
import asyncio
import json
import sys

from rebootguard import __version__
from rebootguard.common.config import (
    EnforcerConfig,
    apply_env_overrides,
    find_config_path,
    load_config,
    load_config_file,
)
from rebootguard.common.exceptions import ConfigError, StateStoreError
from rebootguard.common.logging_setup import configure_all, get_service_logger
from rebootguard.common.state import JsonStateStore
from rebootguard.services.orchestrator import ExitStatus, Orchestrator
from rebootguard.services.service import EnforcerService

logger = get_service_logger("main")


def build_config(args: argparse.Namespace) -> EnforcerConfig:
    """
    File -> environment -> command line.

    Raises:
        ConfigError: If any layer is invalid
    """
    path = args.config or find_config_path()
    data = load_config_file(path) if path else {}

    config = apply_env_overrides(load_config(data))

    if args.skip_exemption_check:
        config.exemption.skip_check = True
    if args.state_file:
        config.state_file = args.state_file
    if args.verbose:
        config.logging.level = "DEBUG"
        config.logging.format = "text"

    config.validate()
    return config


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rebootguard",
        description="Uptime-driven reboot reminders and enforcement",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    rebootguard                          # Evaluate once
    rebootguard -c /etc/rebootguard/config.yaml
    rebootguard --status --uptime-days 8 # Preview decision for an 8-day uptime
    rebootguard --dry-run -v             # Debug logging, no side effects
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file (default: /etc/rebootguard/config.yaml if present)"
    )

    parser.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="Override the persisted state file path"
    )

    parser.add_argument(
        "--skip-exemption-check",
        action="store_true",
        help="Do not query exemption group membership"
    )

    parser.add_argument(
        "--uptime-days",
        type=float,
        default=None,
        help="Use this uptime instead of the real one (testing)"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--dry-run",
        action="store_true",
        help="Decide and log, but never notify, reboot or write state"
    )
    mode.add_argument(
        "--status",
        action="store_true",
        help="Print uptime, deadline, state and pending decision as JSON"
    )
    mode.add_argument(
        "--reset-state",
        action="store_true",
        help="Delete the persisted state record"
    )
    mode.add_argument(
        "--loop",
        action="store_true",
        help="Run continuously, evaluating every poll_interval_seconds"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"rebootguard v{__version__}"
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as e:
        logger.error(str(e))
        return ExitStatus.FAILURE

    configure_all(config.logging.level, config.logging.format == "json")

    if args.reset_state:
        try:
            removed = JsonStateStore(config.state_file).clear()
        except StateStoreError as e:
            logger.error(str(e))
            return ExitStatus.FAILURE
        logger.info(
            "State reset" if removed else "No state to reset",
            extra={"state_file": config.state_file},
        )
        return ExitStatus.SUCCESS

    orchestrator = Orchestrator.from_config(
        config,
        dry_run=args.dry_run or args.status,
        uptime_days_override=args.uptime_days,
    )

    if args.status:
        print(json.dumps(orchestrator.evaluate(), indent=2))
        return ExitStatus.SUCCESS

    if args.loop:
        service = EnforcerService(orchestrator, config.poll_interval_seconds)
        try:
            asyncio.run(service.run_forever())
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        return service.last_status if service.last_status is not None else ExitStatus.SUCCESS

    return orchestrator.run()


def run() -> None:
    """Console script wrapper"""
    sys.exit(int(main()))


if __name__ == "__main__":
    run()
