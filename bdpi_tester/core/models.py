"""
Core data models and structures for the tester.

This module contains the fundamental data structures passed between the
scheduler, the config runners, the domain probes and the results store.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional


def config_identity(config: str) -> str:
    """Short name of a configuration used in logs and console output."""
    parts = config.split()
    return parts[0] if parts else "unknown"


def _rate(successful: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return successful / total


@dataclass(frozen=True)
class Settings:
    """Typed run settings."""
    group_size: int
    start_port: int
    group_delay_ms: int
    request_timeout_sec: int
    log_dir: str
    results_file: str
    ciadpi_start_delay_ms: int
    executable: str = ""
    top_n: int = 10
    probe_workers: int = 64


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of probing one domain through one proxy."""
    domain: str
    success: bool


@dataclass(frozen=True)
class TestResult:
    """Outcome of one configuration across every probed domain."""
    config: str
    port: int
    successful_domains: FrozenSet[str] = field(default_factory=frozenset)
    failed_domains: FrozenSet[str] = field(default_factory=frozenset)

    __test__ = False  # not a pytest class

    @classmethod
    def from_outcomes(cls, config: str, port: int, outcomes: Iterable[ProbeOutcome]) -> "TestResult":
        successful = set()
        failed = set()
        for outcome in outcomes:
            (successful if outcome.success else failed).add(outcome.domain)
        return cls(config, port, frozenset(successful), frozenset(failed))

    @property
    def identity(self) -> str:
        return config_identity(self.config)

    @property
    def successful_count(self) -> int:
        return len(self.successful_domains)

    @property
    def failed_count(self) -> int:
        return len(self.failed_domains)

    @property
    def total(self) -> int:
        return self.successful_count + self.failed_count

    @property
    def success_rate(self) -> float:
        """Fraction of successful domains, 0.0 when nothing was probed."""
        return _rate(self.successful_count, self.total)


@dataclass(frozen=True)
class GroupStats:
    """Successful/total domain counts over the runners of one group."""
    successful: int = 0
    total: int = 0

    def __add__(self, other: "GroupStats") -> "GroupStats":
        return GroupStats(self.successful + other.successful, self.total + other.total)

    @property
    def success_rate(self) -> float:
        return _rate(self.successful, self.total)


class RunnerStatus(Enum):
    """How a config runner finished."""
    COMPLETED = "completed"
    SETUP_FAILED = "setup_failed"
    TASK_FAILED = "task_failed"


@dataclass(frozen=True)
class RunnerOutcome:
    """Typed outcome of one config runner, consumed by the scheduler."""
    status: RunnerStatus
    config: str
    port: int
    result: Optional[TestResult] = None
    error: Optional[str] = None

    @property
    def identity(self) -> str:
        return config_identity(self.config)

    @property
    def stats(self) -> GroupStats:
        if self.result is None:
            return GroupStats()
        return GroupStats(self.result.successful_count, self.result.total)


class ProxyState(Enum):
    """Lifecycle of one external proxy process."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    PROBING = "probing"
    STOPPED = "stopped"
