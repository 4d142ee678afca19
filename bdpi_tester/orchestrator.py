"""
Group scheduler - the batch workflow of a tester run.

Configurations are processed in consecutive groups. Every group reuses the
same port range, so a group's runners must all finish (and stop their
proxies) before the next group starts. Results are checkpointed to the
results file after each group and once more at the end.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Tuple

from tqdm import tqdm

from bdpi_tester.core.models import GroupStats, RunnerOutcome, RunnerStatus, Settings
from bdpi_tester.core.utils import format_percent, memory_percent
from bdpi_tester.results.aggregator import ResultsAggregator
from bdpi_tester.testing.runner import ConfigRunner
from bdpi_tester.ui.console import print_section, print_status


def partition(configs: Sequence[str], group_size: int) -> List[List[str]]:
    """Split into consecutive groups of at most `group_size`."""
    if group_size < 1:
        raise ValueError("group_size must be positive")
    return [list(configs[i:i + group_size]) for i in range(0, len(configs), group_size)]


def assign_ports(group: Sequence[str], start_port: int) -> List[Tuple[str, int]]:
    """Pair each configuration with `start_port + index within the group`."""
    return [(config, start_port + i) for i, config in enumerate(group)]


def status_label(rate: float) -> str:
    percent = int(rate * 100)
    if percent > 80:
        return "[OK]"
    if percent > 50:
        return "[WARN]"
    return "[FAIL]"


@dataclass
class RunSummary:
    """What a finished run produced."""
    group_stats: List[GroupStats] = field(default_factory=list)
    results_file: str = ""
    session_dir: Path = Path(".")

    @property
    def combined(self) -> GroupStats:
        return sum(self.group_stats, GroupStats())


class GroupScheduler:
    """Runs configurations group by group through config runners."""

    def __init__(self, settings: Settings, runner: ConfigRunner, aggregator: ResultsAggregator,
                 session_dir: Path):
        self.settings = settings
        self.runner = runner
        self.aggregator = aggregator
        self.session_dir = Path(session_dir)
        self.logger = logging.getLogger(__name__)

    def report_outcome(self, outcome: RunnerOutcome):
        """Single place where runner outcomes are turned into log lines."""
        if outcome.status is RunnerStatus.COMPLETED:
            result = outcome.result
            self.logger.info(
                f"{status_label(result.success_rate)} Config {outcome.identity} (port {outcome.port}): "
                f"{result.successful_count}/{result.total} successful ({format_percent(result.success_rate)})"
            )
        elif outcome.status is RunnerStatus.SETUP_FAILED:
            self.logger.error(f"[FAIL] Config '{outcome.config}' could not start: {outcome.error}")
        else:
            self.logger.error(f"[ERROR] Config '{outcome.config}' task failed: {outcome.error}")

    async def _run_tracked(self, config: str, port: int, domains: Sequence[str],
                           group_dir: Path, pbar: tqdm) -> RunnerOutcome:
        try:
            return await self.runner.run(config, port, domains, group_dir)
        finally:
            pbar.update(1)

    async def run_group(self, number: int, total: int, group: Sequence[str],
                        domains: Sequence[str]) -> GroupStats:
        """Run one group to completion; returns only after every runner has stopped."""
        assignments = assign_ports(group, self.settings.start_port)

        print_section(f"GROUP {number}/{total}")
        print_status("[~]", f"Configs in group: {len(group)}, ports "
                            f"{assignments[0][1]}-{assignments[-1][1]}")

        group_dir = self.session_dir / f"group_{number}"
        try:
            group_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Cannot create group log dir {group_dir}: {e}")

        with tqdm(total=len(assignments), desc=f"Group {number}/{total}", unit="config",
                  leave=False, disable=None) as pbar:
            results = await asyncio.gather(
                *(self._run_tracked(config, port, domains, group_dir, pbar) for config, port in assignments),
                return_exceptions=True
            )

        stats = GroupStats()
        for (config, port), res in zip(assignments, results):
            if isinstance(res, RunnerOutcome):
                outcome = res
            else:
                outcome = RunnerOutcome(RunnerStatus.TASK_FAILED, config, port, error=repr(res))
            self.report_outcome(outcome)
            stats += outcome.stats
        return stats

    def checkpoint(self) -> bool:
        """Rewrite the results file; failures are logged, never raised."""
        try:
            count = self.aggregator.write_report(self.settings.results_file, self.settings.top_n)
        except OSError as e:
            self.logger.error(f"Failed to write results file {self.settings.results_file}: {e}")
            return False
        print_status("[+]", f"{count} results saved to {self.settings.results_file}")
        return True

    async def run(self, configs: Sequence[str], domains: Sequence[str]) -> RunSummary:
        groups = partition(configs, self.settings.group_size)
        summary = RunSummary(results_file=self.settings.results_file, session_dir=self.session_dir)

        for number, group in enumerate(groups, start=1):
            stats = await self.run_group(number, len(groups), group, domains)
            summary.group_stats.append(stats)

            self.logger.info(
                f"Group {number} finished: {stats.successful}/{stats.total} successful "
                f"({format_percent(stats.success_rate)}), memory {memory_percent():.1f}%"
            )
            self.checkpoint()

            if number < len(groups):
                print_status("[~]", f"Waiting {self.settings.group_delay_ms} ms before the next group...")
                await asyncio.sleep(self.settings.group_delay_ms / 1000)

        self.checkpoint()
        return summary
