"""
Plain-text results report.

Renders the header, the top-N ranking and the per-configuration details,
and reads the domain totals back out of a rendered report.
"""

from datetime import datetime
from typing import List, Sequence, Tuple

from bdpi_tester.core.models import TestResult
from bdpi_tester.core.utils import format_percent

TITLE = "=== BDPI Tester Results ==="
DETAILS_HEADER = "=== DETAILED RESULTS ==="
SEPARATOR = "=" * 60
SUCCESS_MARK = "  + "
FAILURE_MARK = "  - "


def rank_results(results: Sequence[TestResult]) -> List[TestResult]:
    """Order by success rate, then successful domain count, both descending."""
    return sorted(results, key=lambda r: (r.success_rate, r.successful_count), reverse=True)


def render_report(results: Sequence[TestResult], generated_at: datetime, top_n: int = 10) -> str:
    lines = [
        TITLE,
        f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
        f"Total configs tested: {len(results)}",
        "",
        f"=== TOP {top_n} CONFIGS ===",
    ]

    for i, r in enumerate(rank_results(results)[:top_n], start=1):
        lines.append(
            f"{i}. {r.config} (port {r.port}) - Success: {r.successful_count}/{r.total} "
            f"({format_percent(r.success_rate)})"
        )

    lines.append("")
    lines.append(DETAILS_HEADER)
    for r in results:
        lines.append("")
        lines.append(f"Config: {r.config} (port {r.port})")
        lines.append(f"Success Rate: {format_percent(r.success_rate)} ({r.successful_count}/{r.total})")
        lines.append("Successful domains:")
        lines.extend(SUCCESS_MARK + d for d in sorted(r.successful_domains))
        if r.failed_domains:
            lines.append("Failed domains:")
            lines.extend(FAILURE_MARK + d for d in sorted(r.failed_domains))
        lines.append(SEPARATOR)

    return "\n".join(lines) + "\n"


def parse_report_totals(text: str) -> Tuple[int, int]:
    """Count successful and failed domain lines in the detailed section."""
    successful = failed = 0
    in_details = False
    for line in text.splitlines():
        if line == DETAILS_HEADER:
            in_details = True
        elif not in_details:
            continue
        elif line.startswith(SUCCESS_MARK):
            successful += 1
        elif line.startswith(FAILURE_MARK):
            failed += 1
    return successful, failed


def read_report_totals(path: str) -> Tuple[int, int]:
    with open(path, "r", encoding="utf-8") as f:
        return parse_report_totals(f.read())
