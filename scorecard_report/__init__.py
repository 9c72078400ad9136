"""
Scorecard Report

Credit scorecard modeling report: WoE binning, binomial regression, point
scaling, performance, stability and gains tables in one Excel workbook.
"""

__version__ = "1.0.0"
__author__ = "Credit Scoring Team"

from scorecard_report.pipeline import ScorecardReportPipeline, report

__all__ = ["ScorecardReportPipeline", "report", "__version__"]
