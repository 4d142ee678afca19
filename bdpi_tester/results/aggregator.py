"""
Shared, append-only store of per-configuration results.

Config runners append concurrently; the scheduler ranks, totals and
snapshots the collection to the results file between groups.
"""

import logging
import os
import tempfile
import threading
from datetime import datetime
from typing import List, Optional, Tuple

from bdpi_tester.core.models import TestResult
from bdpi_tester.results.report import rank_results, render_report


class ResultsAggregator:
    """Lock-guarded collection of TestResult."""

    def __init__(self):
        self._results: List[TestResult] = []
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def add(self, result: TestResult):
        with self._lock:
            self._results.append(result)

    def snapshot(self) -> List[TestResult]:
        """Copy of all results in append order."""
        with self._lock:
            return list(self._results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def ranked(self, limit: Optional[int] = None) -> List[TestResult]:
        ranked = rank_results(self.snapshot())
        return ranked if limit is None else ranked[:limit]

    def totals(self) -> Tuple[int, int]:
        """Successful and failed domain counts over every result."""
        results = self.snapshot()
        return (
            sum(r.successful_count for r in results),
            sum(r.failed_count for r in results),
        )

    def write_report(self, path: str, top_n: int = 10, generated_at: Optional[datetime] = None) -> int:
        """Atomically replace `path` with a full report; returns the number of results written."""
        results = self.snapshot()
        text = render_report(results, generated_at or datetime.now(), top_n)

        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(prefix=".results_", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            os.replace(temp_path, path)
        except BaseException:
            try:
                os.remove(temp_path)
            except OSError:
                pass
            raise

        self.logger.debug(f"Wrote {len(results)} results to {path}")
        return len(results)
