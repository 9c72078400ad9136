"""
Model Module

Binomial regression on WoE columns and the point-based scorecard.
"""

from scorecard_report.model.trainer import Model, ModelTrainer, INTERCEPT
from scorecard_report.model.scorecard import CardBin, ScoreCard, ScoreScaler, BASEPOINTS, SCORE

__all__ = [
    "Model",
    "ModelTrainer",
    "INTERCEPT",
    "CardBin",
    "ScoreCard",
    "ScoreScaler",
    "BASEPOINTS",
    "SCORE",
]
