"""Scoring profiles and rank fusion."""
from .scoring import (
    HYBRID_SCORING_PROFILE,
    FreshnessFunction,
    ScoringProfile,
    reciprocal_rank_fusion,
)

__all__ = [
    "HYBRID_SCORING_PROFILE",
    "FreshnessFunction",
    "ScoringProfile",
    "reciprocal_rank_fusion",
]
