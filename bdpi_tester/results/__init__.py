"""
Results store and plain-text report.
"""

from .aggregator import ResultsAggregator
from .report import parse_report_totals, rank_results, read_report_totals, render_report

__all__ = [
    "ResultsAggregator",
    "parse_report_totals",
    "rank_results",
    "read_report_totals",
    "render_report",
]
