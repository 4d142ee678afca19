"""
BDPI Tester - Batch connectivity benchmark for ciadpi configurations

Starts one local ciadpi proxy per configuration, probes a list of domains
through each of them and ranks the configurations by reachability.
"""

__version__ = "1.0.0"

from .core.config import TesterConfig
from .core.models import Settings, TestResult, GroupStats
from .orchestrator import GroupScheduler
from .results.aggregator import ResultsAggregator

__all__ = [
    "TesterConfig",
    "Settings",
    "TestResult",
    "GroupStats",
    "GroupScheduler",
    "ResultsAggregator",
]
