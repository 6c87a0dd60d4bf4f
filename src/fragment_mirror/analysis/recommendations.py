"""
Fragment recommendations for a stated current mood.

Four independent strategies propose candidates, which are pooled, sorted
once by score and truncated:
- mood_match: same mood, previously helpful
- pattern_completion: members of confident emotional cycles
- contrast_learning: helpful fragments carrying an "opposite" emotion
- growth_opportunity: helpful high-clarity / high-energy fragments
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from fragment_mirror.models import Fragment, PatternInsight, RecommendationMatch, utc_now

logger = logging.getLogger(__name__)

# Configuration constants
DEFAULT_LIMIT = 10
RECENCY_WINDOW = timedelta(days=30)

MOOD_RESONANCE_WEIGHT = 0.4
MOOD_HELPFUL_WEIGHT = 0.4
MOOD_RECENCY_WEIGHT = 0.2

PATTERN_MIN_CONFIDENCE = 0.6
PATTERN_SCORE_FACTOR = 0.8

CONTRAST_MIN_INTENSITY = 6
CONTRAST_MIN_RESONANCE = 4
CONTRAST_SCORE = 0.7

GROWTH_MIN_LEVEL = 8
GROWTH_MAX_MATCHES = 3
GROWTH_SCORE = 0.6

# Mood -> emotions that offer a contrasting perspective.
CONTRAST_TABLE: Dict[str, List[str]] = {
    "anxious": ["calm", "peaceful"],
    "sad": ["happy", "hopeful"],
    "angry": ["calm", "peaceful"],
    "confused": ["confident", "clear"],
    "overwhelmed": ["calm", "focused"],
    "frustrated": ["patient", "understanding"],
    "lonely": ["connected", "grateful"],
}


@dataclass
class RecommendationFeedback:
    """User feedback on a fragment that was recommended to them."""

    fragment_id: str
    helpful: bool
    resonance: int


class RecommendationEngine:
    """
    Ranks fragments for a mood using fragments and the latest insights.

    Read-only over its inputs. Duplicates across strategies are kept: the
    same fragment may appear once per strategy that proposed it.
    """

    def __init__(self, limit: int = DEFAULT_LIMIT, contrast_table: Optional[Dict[str, List[str]]] = None):
        """
        Args:
            limit: Maximum number of recommendations returned
            contrast_table: Mood -> opposite emotions lookup (default: CONTRAST_TABLE)
        """
        self.limit = limit
        self.contrast_table = contrast_table if contrast_table is not None else CONTRAST_TABLE

        logger.info(f"RecommendationEngine initialized (limit={limit})")

    def generate(
        self,
        mood: str,
        fragments: Sequence[Fragment],
        patterns: Sequence[PatternInsight],
        now: Optional[datetime] = None,
    ) -> List[RecommendationMatch]:
        """
        Produce ranked recommendations for a mood.

        Args:
            mood: The user's current mood
            fragments: The full fragment collection
            patterns: The latest pattern insights
            now: Reference time for recency decay (default: current UTC time)

        Returns:
            At most ``limit`` matches, sorted by non-increasing score
        """
        now = now or utc_now()

        candidates: List[RecommendationMatch] = []
        candidates.extend(self.mood_matches(mood, fragments, now))
        candidates.extend(self.pattern_completions(fragments, patterns))
        candidates.extend(self.contrast_matches(mood, fragments))
        candidates.extend(self.growth_opportunities(fragments))

        # Stable sort keeps strategy order among equal scores
        ranked = sorted(candidates, key=lambda m: m.score, reverse=True)[: self.limit]

        logger.info(
            f"Generated {len(ranked)} recommendations for mood '{mood}' "
            f"from {len(candidates)} candidates"
        )
        return ranked

    def mood_score(self, fragment: Fragment, now: datetime) -> float:
        ratings = fragment.ratings
        helpful_share = sum(1 for r in ratings if r.helpful) / max(len(ratings), 1)
        age = now - fragment.created_at
        recency = max(0.0, 1 - age / RECENCY_WINDOW)

        return (
            MOOD_RESONANCE_WEIGHT * (fragment.mean_resonance() / 5)
            + MOOD_HELPFUL_WEIGHT * helpful_share
            + MOOD_RECENCY_WEIGHT * recency
        )

    def mood_matches(
        self, mood: str, fragments: Sequence[Fragment], now: datetime
    ) -> List[RecommendationMatch]:
        return [
            RecommendationMatch(
                fragment_id=f.id,
                score=self.mood_score(f, now),
                reason=f"Matches your current {mood} mood and has been helpful before",
                type="mood_match",
            )
            for f in fragments
            if f.metadata.mood == mood and f.has_helpful_rating()
        ]

    def pattern_completions(
        self, fragments: Sequence[Fragment], patterns: Sequence[PatternInsight]
    ) -> List[RecommendationMatch]:
        matches = []
        for pattern in patterns:
            if pattern.type != "emotional_cycle" or pattern.confidence <= PATTERN_MIN_CONFIDENCE:
                continue

            related = set(pattern.related_fragments)
            for fragment in fragments:
                if fragment.id in related and fragment.has_helpful_rating():
                    matches.append(
                        RecommendationMatch(
                            fragment_id=fragment.id,
                            score=pattern.confidence * PATTERN_SCORE_FACTOR,
                            reason=f"Part of a recognized emotional pattern: {pattern.description}",
                            type="pattern_completion",
                        )
                    )
        return matches

    def contrast_matches(self, mood: str, fragments: Sequence[Fragment]) -> List[RecommendationMatch]:
        opposites = self.contrast_table.get(mood)
        if not opposites:
            return []

        matches = []
        for fragment in fragments:
            has_opposite = any(
                tag.emotion in opposites and tag.intensity >= CONTRAST_MIN_INTENSITY
                for tag in fragment.tags
            )
            resonated = any(
                r.helpful and r.resonance >= CONTRAST_MIN_RESONANCE for r in fragment.ratings
            )
            if has_opposite and resonated:
                matches.append(
                    RecommendationMatch(
                        fragment_id=fragment.id,
                        score=CONTRAST_SCORE,
                        reason="Offers a contrasting perspective that has been helpful in the past",
                        type="contrast_learning",
                    )
                )
        return matches

    def growth_opportunities(self, fragments: Sequence[Fragment]) -> List[RecommendationMatch]:
        inspiring = [
            f
            for f in fragments
            if (f.metadata.clarity >= GROWTH_MIN_LEVEL or f.metadata.energy >= GROWTH_MIN_LEVEL)
            and f.has_helpful_rating()
        ]
        inspiring.sort(key=lambda f: f.metadata.clarity + f.metadata.energy, reverse=True)

        return [
            RecommendationMatch(
                fragment_id=f.id,
                score=GROWTH_SCORE,
                reason="High clarity/energy fragment that could inspire growth",
                type="growth_opportunity",
            )
            for f in inspiring[:GROWTH_MAX_MATCHES]
        ]


def analyze_effectiveness(
    recommendations: Sequence[RecommendationMatch],
    feedback: Sequence[RecommendationFeedback],
) -> Dict[str, Dict[str, int]]:
    """
    Tally how often each recommendation type turned out to be helpful.

    Feedback for a fragment is attributed to the first recommendation that
    proposed it; feedback for fragments that were never recommended is ignored.

    Returns:
        {recommendation type: {"helpful": n, "total": m}}
    """
    first_by_fragment: Dict[str, RecommendationMatch] = {}
    for match in recommendations:
        first_by_fragment.setdefault(match.fragment_id, match)

    effectiveness: Dict[str, Dict[str, int]] = {}
    for entry in feedback:
        match = first_by_fragment.get(entry.fragment_id)
        if match is None:
            continue

        counts = effectiveness.setdefault(match.type, {"helpful": 0, "total": 0})
        counts["total"] += 1
        if entry.helpful:
            counts["helpful"] += 1

    logger.info(f"Recommendation effectiveness: {effectiveness}")
    return effectiveness
