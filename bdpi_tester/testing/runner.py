"""
Per-configuration proxy lifecycle and domain fan-out.

A ConfigRunner starts one external proxy process for one configuration,
waits a fixed delay for it to bind, probes every domain through it
concurrently, stops it and records the TestResult.
"""

import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import psutil

from bdpi_tester.core.models import (
    ProbeOutcome, ProxyState, RunnerOutcome, RunnerStatus, Settings, TestResult, config_identity,
)
from bdpi_tester.core.utils import default_executable, resolve_executable_path, sanitize_log_name
from bdpi_tester.results.aggregator import ResultsAggregator
from bdpi_tester.testing.probe import DomainProbe

BIND_ADDRESS = "0.0.0.0"
TERMINATE_GRACE_SECONDS = 2.0


class ProxyStartError(Exception):
    """The log file could not be opened or the proxy could not be spawned."""


class ProxyProcess:
    """One external proxy process, used as an async context manager.

    Leaving the context always terminates and reaps the process, whatever
    happened while probing.
    """

    def __init__(self, executable: str, config: str, port: int, log_path: Path,
                 popen: Callable[..., subprocess.Popen] = subprocess.Popen):
        self.executable = executable
        self.config = config
        self.port = port
        self.log_path = log_path
        self.state = ProxyState.NOT_STARTED
        self.process: Optional[subprocess.Popen] = None
        self._popen = popen
        self.logger = logging.getLogger(__name__)

    def command(self) -> List[str]:
        return [
            self.executable, *self.config.split(),
            "--ip", BIND_ADDRESS,
            "--port", str(self.port),
            "-Y",
        ]

    def start(self):
        try:
            log_file = open(self.log_path, "ab")
        except OSError as e:
            raise ProxyStartError(f"cannot open log file {self.log_path}: {e}") from e

        try:
            self.process = self._popen(
                self.command(),
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=log_file,
                creationflags=subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0
            )
        except OSError as e:
            raise ProxyStartError(
                f"failed to spawn {self.executable}: {e}, check if the binary exists and is executable"
            ) from e
        finally:
            # the child holds its own handle
            log_file.close()

        self.state = ProxyState.RUNNING
        self.logger.debug(f"Started pid {self.process.pid} on port {self.port}: {' '.join(self.command())}")

    def mark_probing(self):
        self.state = ProxyState.PROBING

    def exit_code(self) -> Optional[int]:
        if self.process is None:
            return None
        return self.process.poll()

    def _child_processes(self) -> List[psutil.Process]:
        try:
            return psutil.Process(self.process.pid).children(recursive=True)
        except psutil.Error:
            return []

    def stop(self):
        """Terminate and reap the process. Never raises."""
        if self.process is None or self.state == ProxyState.STOPPED:
            self.state = ProxyState.STOPPED
            return

        children = self._child_processes()
        try:
            self.process.terminate()
            try:
                self.process.wait(timeout=TERMINATE_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait(timeout=TERMINATE_GRACE_SECONDS)
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.warning(f"Failed to stop proxy on port {self.port}: {e}")

        for child in children:
            try:
                child.kill()
            except psutil.Error:
                pass

        self.state = ProxyState.STOPPED

    async def __aenter__(self) -> "ProxyProcess":
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.start)
        try:
            await asyncio.shield(future)
        except asyncio.CancelledError:
            # start() keeps running in its thread; reap whatever it spawns
            await asyncio.wait([future])
            if not future.cancelled() and future.exception() is not None:
                self.logger.debug(f"Start on port {self.port} failed after cancellation: {future.exception()}")
            await loop.run_in_executor(None, self.stop)
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.stop)
        return False


class ConfigRunner:
    """Runs every domain probe for one configuration through its own proxy."""

    def __init__(self, settings: Settings, probe: DomainProbe, aggregator: ResultsAggregator,
                 process_factory: Callable[..., ProxyProcess] = ProxyProcess):
        self.settings = settings
        self.probe = probe
        self.aggregator = aggregator
        self.process_factory = process_factory
        self.logger = logging.getLogger(__name__)

    def executable(self) -> str:
        configured = self.settings.executable or default_executable()
        return resolve_executable_path(configured, []) or configured

    async def _probe_all(self, domains: Sequence[str], port: int) -> List[ProbeOutcome]:
        results = await asyncio.gather(
            *(self.probe.probe(domain, port) for domain in domains),
            return_exceptions=True
        )

        outcomes = []
        for domain, res in zip(domains, results):
            if isinstance(res, BaseException):
                self.logger.error(f"Probe of {domain} on port {port} crashed: {res!r}")
                outcomes.append(ProbeOutcome(domain, False))
            else:
                outcomes.append(res)
        return outcomes

    async def run(self, config: str, port: int, domains: Sequence[str], log_dir: Path) -> RunnerOutcome:
        log_path = Path(log_dir) / f"ciadpi_{sanitize_log_name(config, port)}.log"
        proxy = self.process_factory(self.executable(), config, port, log_path)

        try:
            async with proxy:
                await asyncio.sleep(self.settings.ciadpi_start_delay_ms / 1000)

                code = proxy.exit_code()
                if code is not None:
                    self.logger.warning(
                        f"Proxy for {config_identity(config)} on port {port} exited during startup "
                        f"(code {code}), see {log_path}"
                    )

                proxy.mark_probing()
                outcomes = await self._probe_all(domains, port)
        except ProxyStartError as e:
            return RunnerOutcome(RunnerStatus.SETUP_FAILED, config, port, error=str(e))

        result = TestResult.from_outcomes(config, port, outcomes)
        self.aggregator.add(result)
        return RunnerOutcome(RunnerStatus.COMPLETED, config, port, result=result)
