"""
Pattern recognition over a fragment collection.

Runs four independent detectors and concatenates their insights:
- Emotional cycles: repeated windows of dominant emotions
- Trigger patterns: repeated transitions between dominant emotions
- Growth trends: rising clarity or energy over time
- Resonance clusters: emotions and moods shared by highly rated fragments

The engine is a pure function of its input. The only clock input is
``now``, used as each insight's generation timestamp.
"""

import logging
import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from fragment_mirror.analysis.trend import calculate_trend
from fragment_mirror.models import Fragment, PatternInsight, utc_now

logger = logging.getLogger(__name__)

# Configuration constants
CYCLE_WINDOW = 3
CYCLE_MIN_OCCURRENCES = 2
CYCLE_MAX_CONFIDENCE = 0.9

TRIGGER_MIN_OCCURRENCES = 2
TRIGGER_CONFIDENCE_DIVISOR = 5
TRIGGER_MAX_CONFIDENCE = 0.8

GROWTH_MIN_FRAGMENTS = 5
GROWTH_MIN_SLOPE = 0.1

RESONANCE_MIN_MEAN = 4.0
RESONANCE_MIN_FRAGMENTS = 3
RESONANCE_EMOTION_SHARE = 0.6
RESONANCE_MOOD_SHARE = 0.5
RESONANCE_EMOTION_CONFIDENCE = 0.8
RESONANCE_MOOD_CONFIDENCE = 0.7

_GROWTH_METRICS = (
    ("clarity", "Increasing self-clarity over time"),
    ("energy", "Increasing energy levels over time"),
)


def _share_threshold(total: int, share: float) -> int:
    # round() guards against float noise such as 3 * 0.6 = 1.7999999999999998
    return math.ceil(round(total * share, 9))


def _unique(ids: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(ids))


class PatternEngine:
    """
    Derives PatternInsights from the full fragment collection.

    Insights are recomputed wholesale on every call; nothing is merged with
    earlier runs. Confidence values are informational only and are never
    used to filter the output.
    """

    def __init__(
        self,
        cycle_window: int = CYCLE_WINDOW,
        cycle_min_occurrences: int = CYCLE_MIN_OCCURRENCES,
        trigger_min_occurrences: int = TRIGGER_MIN_OCCURRENCES,
        growth_min_fragments: int = GROWTH_MIN_FRAGMENTS,
        growth_min_slope: float = GROWTH_MIN_SLOPE,
        resonance_min_fragments: int = RESONANCE_MIN_FRAGMENTS,
    ):
        self.cycle_window = cycle_window
        self.cycle_min_occurrences = cycle_min_occurrences
        self.trigger_min_occurrences = trigger_min_occurrences
        self.growth_min_fragments = growth_min_fragments
        self.growth_min_slope = growth_min_slope
        self.resonance_min_fragments = resonance_min_fragments

        logger.info(
            f"PatternEngine initialized (cycle_window={cycle_window}, "
            f"cycle_min={cycle_min_occurrences}, trigger_min={trigger_min_occurrences}, "
            f"growth_min_fragments={growth_min_fragments})"
        )

    def analyze(
        self, fragments: Sequence[Fragment], now: Optional[datetime] = None
    ) -> List[PatternInsight]:
        """
        Analyze a fragment collection.

        Args:
            fragments: Every fragment to consider, in any order
            now: Generation timestamp for the insights (default: current UTC time)

        Returns:
            Cycle, trigger, growth and resonance insights, in that order
        """
        now = now or utc_now()
        ordered = sorted(fragments, key=lambda f: f.created_at)

        insights: List[PatternInsight] = []
        insights.extend(self.detect_emotional_cycles(ordered, now))
        insights.extend(self.detect_trigger_patterns(ordered, now))
        insights.extend(self.detect_growth_trends(ordered, now))
        insights.extend(self.detect_resonance_clusters(ordered, now))

        logger.info(
            f"Analyzed {len(ordered)} fragments: {len(insights)} insights "
            f"({', '.join(sorted({i.type for i in insights})) or 'none'})"
        )
        return insights

    def _dominant_sequence(self, ordered: Sequence[Fragment]) -> List[Tuple[str, str]]:
        """(dominant emotion, fragment id) for every tagged fragment, in time order."""
        sequence = []
        for fragment in ordered:
            tag = fragment.dominant_tag()
            if tag is not None:
                sequence.append((tag.emotion, fragment.id))
        return sequence

    def detect_emotional_cycles(
        self, ordered: Sequence[Fragment], now: datetime
    ) -> List[PatternInsight]:
        """Find dominant-emotion windows that repeat across the timeline."""
        sequence = self._dominant_sequence(ordered)
        emotions = [emotion for emotion, _ in sequence]

        window_counts: Dict[Tuple[str, ...], int] = {}
        for start in range(len(emotions) - self.cycle_window + 1):
            window = tuple(emotions[start : start + self.cycle_window])
            window_counts[window] = window_counts.get(window, 0) + 1

        insights = []
        for window, count in window_counts.items():
            if count < self.cycle_min_occurrences:
                continue

            related = _unique([fid for emotion, fid in sequence if emotion in window])
            insights.append(
                PatternInsight(
                    type="emotional_cycle",
                    description=f"Recurring emotional pattern: {' → '.join(window)}",
                    confidence=min(count / len(ordered), CYCLE_MAX_CONFIDENCE),
                    related_fragments=related,
                    timestamp=now,
                )
            )
            logger.debug(f"Cycle {window} seen {count} times")

        return insights

    def detect_trigger_patterns(
        self, ordered: Sequence[Fragment], now: datetime
    ) -> List[PatternInsight]:
        """Find repeated shifts from one dominant emotion to another."""
        groups: Dict[Tuple[str, str], List[Tuple[float, str, str]]] = {}

        for current, following in zip(ordered, ordered[1:]):
            current_tag = current.dominant_tag()
            next_tag = following.dominant_tag()
            if current_tag is None or next_tag is None:
                continue
            if current_tag.emotion == next_tag.emotion:
                continue

            elapsed = (following.created_at - current.created_at).total_seconds()
            groups.setdefault((current_tag.emotion, next_tag.emotion), []).append(
                (elapsed, current.id, following.id)
            )

        insights = []
        for (source, target), transitions in groups.items():
            if len(transitions) < self.trigger_min_occurrences:
                continue

            mean_seconds = sum(elapsed for elapsed, _, _ in transitions) / len(transitions)
            mean_minutes = math.floor(mean_seconds / 60 + 0.5)
            related = _unique([fid for _, a, b in transitions for fid in (a, b)])

            insights.append(
                PatternInsight(
                    type="trigger_pattern",
                    description=(
                        f"Frequent emotional shift: {source}->{target} "
                        f"(avg {mean_minutes} minutes apart)"
                    ),
                    confidence=min(
                        len(transitions) / TRIGGER_CONFIDENCE_DIVISOR, TRIGGER_MAX_CONFIDENCE
                    ),
                    related_fragments=related,
                    timestamp=now,
                )
            )
            logger.debug(f"Trigger {source}->{target} seen {len(transitions)} times")

        return insights

    def detect_growth_trends(
        self, ordered: Sequence[Fragment], now: datetime
    ) -> List[PatternInsight]:
        """Report clarity or energy that rises across the timeline."""
        if len(ordered) < self.growth_min_fragments:
            return []

        insights = []
        for metric, label in _GROWTH_METRICS:
            trend = calculate_trend([getattr(f.metadata, metric) for f in ordered])
            if trend.slope <= self.growth_min_slope:
                continue

            insights.append(
                PatternInsight(
                    type="growth_trend",
                    description=f"{label} ({trend.slope:.2f} improvement rate)",
                    confidence=trend.correlation,
                    related_fragments=[f.id for f in ordered],
                    timestamp=now,
                )
            )

        return insights

    def detect_resonance_clusters(
        self, ordered: Sequence[Fragment], now: datetime
    ) -> List[PatternInsight]:
        """Find emotions and moods shared by fragments the user rated highly."""
        high_rated = [f for f in ordered if f.mean_resonance() >= RESONANCE_MIN_MEAN]
        if len(high_rated) < self.resonance_min_fragments:
            return []

        emotion_counts: Dict[str, int] = {}
        mood_counts: Dict[str, int] = {}
        for fragment in high_rated:
            for emotion in _unique([tag.emotion for tag in fragment.tags]):
                emotion_counts[emotion] = emotion_counts.get(emotion, 0) + 1
            mood = fragment.metadata.mood
            mood_counts[mood] = mood_counts.get(mood, 0) + 1

        emotion_threshold = _share_threshold(len(high_rated), RESONANCE_EMOTION_SHARE)
        mood_threshold = _share_threshold(len(high_rated), RESONANCE_MOOD_SHARE)
        common_emotions = [e for e, count in emotion_counts.items() if count >= emotion_threshold]
        common_moods = [m for m, count in mood_counts.items() if count >= mood_threshold]

        related = [f.id for f in high_rated]
        insights = []
        if common_emotions:
            insights.append(
                PatternInsight(
                    type="resonance_cluster",
                    description=(
                        f"Strong resonance with {', '.join(common_emotions)} emotional states"
                    ),
                    confidence=RESONANCE_EMOTION_CONFIDENCE,
                    related_fragments=related,
                    timestamp=now,
                )
            )
        if common_moods:
            insights.append(
                PatternInsight(
                    type="resonance_cluster",
                    description=f"Consistent positive response to {', '.join(common_moods)} moods",
                    confidence=RESONANCE_MOOD_CONFIDENCE,
                    related_fragments=related,
                    timestamp=now,
                )
            )

        return insights
