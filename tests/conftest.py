"""
Pytest Configuration and Shared Fixtures

Provides common fixtures for all test modules including:
- Report configurations writing into a temporary directory
- A synthetic credit table with a known risk structure
- Prepared datasets and the frozen bins / model fitted on them
"""

import sys
from pathlib import Path
from typing import Dict

import pandas as pd
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from scorecard_report.binning.coordinator import BinningCoordinator
from scorecard_report.config.schema import ReportConfig
from scorecard_report.data.preparer import DatasetPreparer
from scorecard_report.data.sample import FEATURES, TARGET, make_credit_sample
from scorecard_report.model.scorecard import ScoreScaler
from scorecard_report.model.trainer import ModelTrainer


# ===================================================================
# CONFIGURATION FIXTURES
# ===================================================================

@pytest.fixture
def report_config(tmp_path) -> ReportConfig:
    """Default configuration with the report written under tmp_path."""
    return ReportConfig(output={"dir": str(tmp_path)})


# ===================================================================
# DATA FIXTURES
# ===================================================================

@pytest.fixture(scope="session")
def credit_df() -> pd.DataFrame:
    """1000 rows, 'good'/'bad' label, four numeric and three categorical features."""
    return make_credit_sample(n=1000, seed=42)


@pytest.fixture
def datasets(report_config, credit_df) -> Dict:
    """train/test split of credit_df with seed 618."""
    return DatasetPreparer(report_config).prepare(credit_df, TARGET, seed=618)


@pytest.fixture
def fitted(report_config, datasets) -> Dict:
    """Bins, model and scorecard fitted on the train dataset."""
    coordinator = BinningCoordinator(report_config)
    binning = coordinator.fit(datasets["train"], TARGET, FEATURES)
    encoded = {name: coordinator.apply(ds) for name, ds in datasets.items()}

    trainer = ModelTrainer(report_config)
    model = trainer.fit(encoded["train"], TARGET, FEATURES)

    scaler = ScoreScaler(report_config)
    card = scaler.fit(binning, model)

    return {
        "coordinator": coordinator,
        "binning": binning,
        "encoded": encoded,
        "trainer": trainer,
        "model": model,
        "scaler": scaler,
        "card": card,
    }
