"""
Data Module

Dataset preparation (splitting, label normalisation) and sample data.
"""

from scorecard_report.data.preparer import (
    Dataset,
    DatasetPreparer,
    check_label,
    parse_positive,
    split_table,
    REFERENCE,
    VALIDATION,
)
from scorecard_report.data.sample import FEATURES, TARGET, make_credit_sample, make_named_samples

__all__ = [
    "Dataset",
    "DatasetPreparer",
    "check_label",
    "parse_positive",
    "split_table",
    "REFERENCE",
    "VALIDATION",
    "FEATURES",
    "TARGET",
    "make_credit_sample",
    "make_named_samples",
]
