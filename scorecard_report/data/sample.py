"""
Synthetic German-credit-like sample for tests and the command line demo.
"""

from typing import Optional
import numpy as np
import pandas as pd


TARGET = "creditability"

NUMERIC_FEATURES = [
    "duration_in_month",
    "credit_amount",
    "age_in_years",
    "installment_rate",
]

CATEGORICAL_FEATURES = [
    "purpose",
    "housing",
    "status_of_existing_checking_account",
]

FEATURES = NUMERIC_FEATURES + CATEGORICAL_FEATURES

_PURPOSES = ["car (new)", "car (used)", "furniture", "radio/television", "education", "business"]
_HOUSING = ["rent", "own", "for free"]
_CHECKING = ["no checking account", "... < 0 DM", "0 <= ... < 200 DM", "... >= 200 DM"]


def make_credit_sample(
    n: int = 1000,
    seed: int = 42,
    missing_rate: float = 0.0,
    bad_label: str = "bad",
    good_label: str = "good",
) -> pd.DataFrame:
    """
    Generate a labeled credit table.

    Risk rises with duration, credit amount and installment rate and falls
    with age; the categorical columns shift the log-odds by a fixed amount
    per level.

    Args:
        n: Number of rows
        seed: Random seed
        missing_rate: Share of ``credit_amount`` set to NaN
        bad_label: Label text of the positive (bad) class
        good_label: Label text of the negative class

    Returns:
        DataFrame with the feature columns and ``creditability``
    """
    rng = np.random.RandomState(seed)

    duration = rng.choice(np.arange(4, 73), size=n)
    amount = np.round(rng.lognormal(mean=7.8, sigma=0.7, size=n)).astype(float)
    age = rng.randint(19, 76, size=n)
    installment = rng.randint(1, 5, size=n)
    purpose = rng.choice(_PURPOSES, size=n)
    housing = rng.choice(_HOUSING, size=n, p=[0.2, 0.7, 0.1])
    checking = rng.choice(_CHECKING, size=n, p=[0.4, 0.27, 0.27, 0.06])

    purpose_shift = {p: s for p, s in zip(_PURPOSES, [0.3, -0.6, 0.0, -0.3, 0.4, 0.2])}
    housing_shift = {"rent": 0.3, "own": -0.2, "for free": 0.4}
    checking_shift = {_CHECKING[0]: -1.0, _CHECKING[1]: 0.7, _CHECKING[2]: 0.3, _CHECKING[3]: -0.4}

    logit = (
        -1.4
        + 0.035 * (duration - 20)
        + 0.00012 * (amount - 3000)
        - 0.025 * (age - 35)
        + 0.15 * (installment - 3)
        + np.array([purpose_shift[p] for p in purpose])
        + np.array([housing_shift[h] for h in housing])
        + np.array([checking_shift[c] for c in checking])
    )
    prob_bad = 1.0 / (1.0 + np.exp(-logit))
    is_bad = rng.uniform(size=n) < prob_bad

    df = pd.DataFrame({
        "duration_in_month": duration,
        "credit_amount": amount,
        "age_in_years": age,
        "installment_rate": installment,
        "purpose": purpose,
        "housing": housing,
        "status_of_existing_checking_account": checking,
        TARGET: np.where(is_bad, bad_label, good_label),
    })

    if missing_rate > 0:
        mask = rng.uniform(size=n) < missing_rate
        df.loc[mask, "credit_amount"] = np.nan

    return df


def make_named_samples(
    sizes: Optional[dict] = None,
    seed: int = 42,
) -> dict:
    """Independent samples keyed by name, e.g. ``{"train": 600, "test": 300}``."""
    sizes = sizes or {"train": 600, "test": 300, "oot": 300}
    return {
        name: make_credit_sample(size, seed=seed + offset)
        for offset, (name, size) in enumerate(sizes.items())
    }
