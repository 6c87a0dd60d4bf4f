"""
Analysis components over the fragment collection.

Provides pattern recognition, recommendation ranking, and trend utilities.
"""

from fragment_mirror.analysis.patterns import PatternEngine
from fragment_mirror.analysis.recommendations import (
    CONTRAST_TABLE,
    RecommendationEngine,
    RecommendationFeedback,
    analyze_effectiveness,
)
from fragment_mirror.analysis.trend import Trend, calculate_trend

__all__ = [
    # Engines
    "PatternEngine",
    "RecommendationEngine",
    # Recommendation utilities
    "CONTRAST_TABLE",
    "RecommendationFeedback",
    "analyze_effectiveness",
    # Trend utilities
    "Trend",
    "calculate_trend",
]
