"""
SRS (Spaced Repetition System) Module
SM-2 scheduling and the review engine that applies grades exactly once
"""

from .review_engine import QueueStats, ReviewEngine, ReviewQueue
from .srs_algorithm import (
    DEFAULT_POLICY,
    SM2Policy,
    calculate_next_review,
    compute_next,
    validate_grade,
)

__all__ = [
    "DEFAULT_POLICY",
    "SM2Policy",
    "calculate_next_review",
    "compute_next",
    "validate_grade",
    "QueueStats",
    "ReviewEngine",
    "ReviewQueue",
]
