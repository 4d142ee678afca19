#!/usr/bin/env python3
"""
BDPI Tester - batch connectivity benchmark for ciadpi configurations.

Starts one ciadpi proxy per configuration, probes every domain through it
and writes a ranked report of which configurations reach which domains.

Usage:
    python -m bdpi_tester [--settings settings.toml] [--configs configs.txt]
                          [--domains domains.txt] [--yes]
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from bdpi_tester import __version__
from bdpi_tester.core.config import InputError, TesterConfig, TesterError
from bdpi_tester.core.models import Settings
from bdpi_tester.core.utils import format_percent, read_lines, setup_logging
from bdpi_tester.orchestrator import GroupScheduler, RunSummary
from bdpi_tester.results.aggregator import ResultsAggregator
from bdpi_tester.testing.probe import DomainProbe
from bdpi_tester.testing.runner import ConfigRunner
from bdpi_tester.ui.console import (
    confirm_start, print_section, print_status, print_table, show_welcome_message,
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bdpi-tester", description="Batch connectivity benchmark for ciadpi configurations.")
    parser.add_argument("--settings", default=None, help="settings file (TOML or YAML), default settings.toml")
    parser.add_argument("--configs", default="configs.txt", help="file with one ciadpi configuration per line")
    parser.add_argument("--domains", default="domains.txt", help="file with one domain per line")
    parser.add_argument("-y", "--yes", action="store_true", help="start without waiting for Enter")
    parser.add_argument("-v", "--version", action="version", version=f"BDPI Tester v{__version__}")
    return parser.parse_args(argv)


def load_inputs(args: argparse.Namespace):
    """Load settings, configurations and domains; raises TesterError."""
    print_status("[+]", "Loading settings...")
    settings = TesterConfig(args.settings).to_settings()

    print_status("[+]", "Reading configuration and domain files...")
    configs = read_lines(args.configs)
    domains = read_lines(args.domains)
    if not configs:
        raise InputError(f"No configurations found in {args.configs}")
    if not domains:
        logger.warning(f"No domains found in {args.domains}, every config will score 0%")
    return settings, configs, domains


def print_inputs(settings: Settings, configs: List[str], domains: List[str]):
    print_section("LOADED INPUTS")
    print_table([
        ("Configurations loaded:", str(len(configs))),
        ("Domains to check:", str(len(domains))),
    ])

    print_section("SETTINGS")
    print_table([
        ("Group size:", str(settings.group_size)),
        ("Start port:", str(settings.start_port)),
        ("Delay between groups:", f"{settings.group_delay_ms} ms"),
        ("Request timeout:", f"{settings.request_timeout_sec} s"),
        ("Proxy start delay:", f"{settings.ciadpi_start_delay_ms} ms"),
        ("Log directory:", settings.log_dir),
        ("Results file:", settings.results_file),
    ])


def show_final_results(summary: RunSummary):
    combined = summary.combined

    print_section("TESTING FINISHED")
    print("   Overall statistics:")
    print_table([
        ("Total probes:", str(combined.total)),
        ("Successful:", str(combined.successful)),
        ("Success rate:", format_percent(combined.success_rate)),
    ])

    print("   Results saved:")
    print_table([
        ("Results file:", summary.results_file),
        ("Log directory:", str(summary.session_dir)),
    ])


async def run_tester(settings: Settings, configs: List[str], domains: List[str],
                     session_dir: Path) -> RunSummary:
    aggregator = ResultsAggregator()
    with DomainProbe(settings.request_timeout_sec, settings.probe_workers) as probe:
        runner = ConfigRunner(settings, probe, aggregator)
        scheduler = GroupScheduler(settings, runner, aggregator, session_dir)
        return await scheduler.run(configs, domains)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tester"""
    args = parse_args(argv)

    show_welcome_message()
    setup_logging()

    try:
        settings, configs, domains = load_inputs(args)
    except TesterError as e:
        logger.error(str(e))
        return 1

    print_inputs(settings, configs, domains)

    if not args.yes and sys.stdin.isatty() and not confirm_start():
        print_status("[~]", "Cancelled.")
        return 0

    session_dir = Path(settings.log_dir) / datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    try:
        session_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create log directory {session_dir}: {e}")
        return 1
    setup_logging(session_dir / "tester.log")
    logger.info(f"Session logs: {session_dir}")

    try:
        summary = asyncio.run(run_tester(settings, configs, domains, session_dir))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130

    show_final_results(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
