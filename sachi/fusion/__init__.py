"""Fusion module for combining and smoothing classification decisions."""

from .decision_fusion import DecisionFusion, PredictionCandidate, CandidateSource
from .smoothing import TemporalSmoother, SmoothedPrediction

__all__ = [
    "DecisionFusion",
    "PredictionCandidate",
    "CandidateSource",
    "TemporalSmoother",
    "SmoothedPrediction"
]
