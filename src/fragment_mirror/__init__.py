"""
fragment-mirror: Durable storage and pattern analysis for self-reflection video fragments.

Core components:
- storage: Fragment store protocols and backends (in-memory, SQLAlchemy, Redis payloads)
- analysis: Pattern recognition and mood-based recommendations
- models: Core data models (Fragment, EmotionTag, PatternInsight, etc.)
- reflection_service: Orchestration of store and engines for a presentation layer
"""

__version__ = "0.1.0"

from fragment_mirror.models import (
    EmotionTag,
    Fragment,
    FragmentMetadata,
    FragmentRating,
    FragmentVariation,
    PatternInsight,
    RecommendationMatch,
    ReflectionSession,
    ResponseFragment,
)
from fragment_mirror.errors import (
    FragmentMirrorError,
    NotFoundError,
    NotInitializedError,
    PayloadMissingError,
    ValidationError,
)
from fragment_mirror.analysis import PatternEngine, RecommendationEngine
from fragment_mirror.reflection_service import ReflectionService

__all__ = [
    "__version__",
    # Models
    "Fragment",
    "EmotionTag",
    "FragmentRating",
    "FragmentVariation",
    "ResponseFragment",
    "FragmentMetadata",
    "ReflectionSession",
    "PatternInsight",
    "RecommendationMatch",
    # Errors
    "FragmentMirrorError",
    "NotInitializedError",
    "NotFoundError",
    "PayloadMissingError",
    "ValidationError",
    # Engines
    "PatternEngine",
    "RecommendationEngine",
    "ReflectionService",
]
