"""
Shared fixtures and fakes for the tester test-suite.

The fakes stand in for the two external boundaries: the ciadpi process
(FakeProxy) and the network (FakeSession / FakeProbe).
"""

from __future__ import annotations

import asyncio
import time
from typing import Dict, List, Optional, Set, Union

import pytest
import requests

from bdpi_tester.core.models import ProbeOutcome, ProxyState, Settings
from bdpi_tester.testing.runner import ProxyStartError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep BDPI_* variables of the host environment out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("BDPI_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        group_size=2,
        start_port=20000,
        group_delay_ms=0,
        request_timeout_sec=1,
        log_dir=str(tmp_path / "logs"),
        results_file=str(tmp_path / "results.txt"),
        ciadpi_start_delay_ms=0,
    )


# ---------------------------------------------------------------------------
# Network fakes
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """requests.Session stand-in answering from a url -> status/exception map."""

    def __init__(self, behaviour: Dict[str, Union[int, Exception]], delay: float = 0.0):
        self.behaviour = behaviour
        self.delay = delay
        self.closed = False
        self.calls: List[str] = []
        self.proxies: dict = {}
        self.trust_env = True

    def get(self, url, **kwargs):
        self.calls.append(url)
        if self.delay:
            time.sleep(self.delay)
        outcome = self.behaviour.get(url, requests.ConnectionError("unreachable"))
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    def __enter__(self):
        return self

    def close(self):
        self.closed = True

    def __exit__(self, *exc):
        return False


class FakeProbe:
    """DomainProbe stand-in: fixed set of reachable domains, optional crashes."""

    def __init__(self, reachable: Set[str], crash: Optional[Set[str]] = None):
        self.reachable = reachable
        self.crash = crash or set()
        self.calls: List[tuple] = []

    async def probe(self, domain: str, port: int) -> ProbeOutcome:
        self.calls.append((domain, port))
        await asyncio.sleep(0)
        if domain in self.crash:
            raise RuntimeError(f"probe of {domain} blew up")
        return ProbeOutcome(domain, domain in self.reachable)


# ---------------------------------------------------------------------------
# Process fakes
# ---------------------------------------------------------------------------


class ProxyRegistry:
    """Tracks fake proxies so tests can check port usage and teardown."""

    def __init__(self, failing: Optional[Set[str]] = None):
        self.failing = failing or set()
        self.live_ports: Set[int] = set()
        self.max_live = 0
        self.port_conflicts: List[int] = []
        self.created: List["FakeProxy"] = []
        self.events: List[tuple] = []

    def factory(self, executable, config, port, log_path):
        proxy = FakeProxy(self, executable, config, port, log_path)
        self.created.append(proxy)
        return proxy


class FakeProxy:
    def __init__(self, registry: ProxyRegistry, executable, config, port, log_path):
        self.registry = registry
        self.executable = executable
        self.config = config
        self.port = port
        self.log_path = log_path
        self.state = ProxyState.NOT_STARTED

    async def __aenter__(self):
        await asyncio.sleep(0)
        if self.config in self.registry.failing:
            raise ProxyStartError(f"failed to spawn {self.executable}")
        if self.port in self.registry.live_ports:
            self.registry.port_conflicts.append(self.port)
        self.registry.live_ports.add(self.port)
        self.registry.max_live = max(self.registry.max_live, len(self.registry.live_ports))
        self.registry.events.append(("start", self.config))
        self.state = ProxyState.RUNNING
        return self

    async def __aexit__(self, *exc):
        await asyncio.sleep(0)
        self.registry.live_ports.discard(self.port)
        self.registry.events.append(("stop", self.config))
        self.state = ProxyState.STOPPED
        return False

    def mark_probing(self):
        self.state = ProxyState.PROBING

    def exit_code(self):
        return None
