from fragment_mirror.analysis import PatternEngine, RecommendationEngine
from fragment_mirror.errors import NotFoundError, ValidationError
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
    utc_now,
)
from fragment_mirror.storage import FragmentStore
from fragment_mirror.validation import build_model, copy_model, validate_payload, validate_range
from typing import Callable, List, Optional, Protocol
import logging

logger = logging.getLogger(__name__)

DEFAULT_AUTO_ANALYZE_THRESHOLD = 3


class EffectRenderer(Protocol):
    """Renders a named visual/audio effect onto a payload, returning a new payload."""

    def render(self, payload: bytes, effect: str) -> bytes:
        ...


class ReflectionService:
    """
    Orchestrates the fragment store and the analysis engines.

    Holds the caller-visible state (fragments, patterns, recommendations,
    selection, active session). Every fragment edit is load, copy-with-append,
    save; in-memory state only changes after the save succeeds. Failures are
    logged and re-raised; retrying is up to the caller.
    """

    def __init__(
        self,
        store: FragmentStore,
        pattern_engine: Optional[PatternEngine] = None,
        recommendation_engine: Optional[RecommendationEngine] = None,
        auto_analyze_threshold: int = DEFAULT_AUTO_ANALYZE_THRESHOLD,
    ):
        self.store = store
        self.pattern_engine = pattern_engine or PatternEngine()
        self.recommendation_engine = recommendation_engine or RecommendationEngine()
        self.auto_analyze_threshold = auto_analyze_threshold

        self.fragments: List[Fragment] = []
        self.patterns: List[PatternInsight] = []
        self.recommendations: List[RecommendationMatch] = []
        self.selected_fragment: Optional[Fragment] = None
        self.current_session: Optional[ReflectionSession] = None
        self.current_mood: Optional[str] = None

    def initialize(self) -> List[Fragment]:
        """Initialize the store and load every fragment."""
        try:
            self.store.initialize()
            fragments = self.store.get_all()
        except Exception as e:
            logger.error(f"Failed to load fragments: {e}")
            raise

        self.fragments = sorted(fragments, key=lambda f: f.created_at)
        logger.info(f"ReflectionService initialized with {len(self.fragments)} fragments")

        self._maybe_analyze()
        return self.fragments

    # Fragment lifecycle

    def capture(self, payload: bytes, duration_ms: int) -> Fragment:
        """
        Wrap a finished recording into a new, unsaved fragment.

        Args:
            payload: Recorded video/audio bytes from the capture device
            duration_ms: Length of the recording

        Returns:
            Fragment with a fresh id, creation time and default metadata
        """
        validate_range("duration_ms", duration_ms, 0, float("inf"))
        return build_model(Fragment, payload=validate_payload(payload), duration_ms=duration_ms)

    def save_fragment(self, fragment: Fragment) -> Fragment:
        """Persist a fragment and add it to the active session, if any."""
        try:
            self.store.save(fragment)
        except Exception as e:
            logger.error(f"Failed to save fragment {fragment.id}: {e}")
            raise

        self._replace_in_state(fragment)

        if self.current_session is not None and fragment.id not in self.current_session.fragment_ids:
            session = self.current_session.model_copy(
                update={"fragment_ids": [*self.current_session.fragment_ids, fragment.id]}
            )
            try:
                self.store.save_session(session)
            except Exception as e:
                logger.error(f"Failed to add fragment {fragment.id} to session {session.id}: {e}")
                raise
            self.current_session = session

        self._maybe_analyze()
        return fragment

    def delete_fragment(self, fragment_id: str) -> bool:
        """Delete a fragment and all of its payloads, then refresh patterns."""
        try:
            deleted = self.store.delete(fragment_id)
        except Exception as e:
            logger.error(f"Failed to delete fragment {fragment_id}: {e}")
            raise

        self.fragments = [f for f in self.fragments if f.id != fragment_id]
        if self.selected_fragment is not None and self.selected_fragment.id == fragment_id:
            self.selected_fragment = None

        if deleted:
            self._maybe_analyze()
        return deleted

    def select_fragment(self, fragment_id: Optional[str]) -> Optional[Fragment]:
        """Select a fragment for viewing, or clear the selection with None."""
        if fragment_id is None:
            self.selected_fragment = None
            return None

        self.selected_fragment = self._find(fragment_id)
        return self.selected_fragment

    # Fragment edits

    def tag_fragment(
        self, fragment_id: str, emotion: str, intensity: int, confidence: float = 1.0
    ) -> Fragment:
        validate_range("intensity", intensity, 1, 10)
        validate_range("confidence", confidence, 0, 1)
        tag = build_model(EmotionTag, emotion=emotion, intensity=intensity, confidence=confidence)

        return self._update(fragment_id, lambda f: {"tags": [*f.tags, tag]})

    def rate_fragment(
        self, fragment_id: str, helpful: bool, resonance: int, context: Optional[str] = None
    ) -> Fragment:
        validate_range("resonance", resonance, 1, 5)
        rating = build_model(
            FragmentRating,
            fragment_id=fragment_id,
            helpful=helpful,
            resonance=resonance,
            context=context,
        )

        return self._update(fragment_id, lambda f: {"ratings": [*f.ratings, rating]})

    def add_variation(
        self, fragment_id: str, effect: str, payload: bytes, settings: Optional[dict] = None
    ) -> Fragment:
        """Attach a rendered variation of a fragment."""
        variation = build_model(
            FragmentVariation,
            parent_id=fragment_id,
            effect=effect,
            effect_settings=settings or {},
            payload=validate_payload(payload),
        )

        return self._update(fragment_id, lambda f: {"variations": [*f.variations, variation]})

    def apply_effect(self, fragment_id: str, effect: str, renderer: EffectRenderer) -> Fragment:
        """Render an effect onto a fragment's payload and store the result as a variation."""
        fragment = self._load(fragment_id)
        rendered = renderer.render(fragment.payload, effect)
        logger.debug(f"Rendered effect '{effect}' for fragment {fragment_id}")

        return self.add_variation(fragment_id, effect, rendered)

    def add_response(
        self,
        fragment_id: str,
        payload: bytes,
        response_type: str,
        notes: Optional[str] = None,
    ) -> Fragment:
        """Attach a response recording (answer, continuation or challenge)."""
        response = build_model(
            ResponseFragment,
            parent_id=fragment_id,
            payload=validate_payload(payload),
            response_type=response_type,
            notes=notes,
        )

        return self._update(fragment_id, lambda f: {"responses": [*f.responses, response]})

    def update_metadata(self, fragment_id: str, **changes) -> Fragment:
        """Change mood, energy, clarity or keywords of a fragment."""
        unknown = set(changes) - set(FragmentMetadata.model_fields)
        if unknown:
            raise ValidationError(f"Unknown metadata fields: {', '.join(sorted(unknown))}")
        for name in ("energy", "clarity"):
            if name in changes:
                validate_range(name, changes[name], 1, 10)

        return self._update(
            fragment_id, lambda f: {"metadata": copy_model(f.metadata, **changes)}
        )

    # Sessions

    def start_session(self, theme: Optional[str] = None) -> ReflectionSession:
        self.current_session = ReflectionSession(theme=theme)
        logger.info(f"Started session {self.current_session.id}")
        return self.current_session

    def end_session(self, insights: List[str]) -> Optional[ReflectionSession]:
        """Close and persist the active session. No-op without one."""
        if self.current_session is None:
            return None

        completed = self.current_session.model_copy(
            update={"end_time": utc_now(), "insights": list(insights)}
        )
        try:
            self.store.save_session(completed)
        except Exception as e:
            logger.error(f"Failed to end session {completed.id}: {e}")
            raise

        self.current_session = None
        logger.info(f"Ended session {completed.id} ({len(completed.fragment_ids)} fragments)")
        return completed

    # Analysis

    def analyze_patterns(self) -> List[PatternInsight]:
        """Run pattern analysis over the current fragments and persist the insights."""
        snapshot = list(self.fragments)
        insights = self.pattern_engine.analyze(snapshot)

        try:
            for insight in insights:
                self.store.save_pattern(insight)
        except Exception as e:
            logger.error(f"Failed to save pattern insights: {e}")
            raise

        self.patterns = insights
        return insights

    def generate_recommendations(self, mood: str) -> List[RecommendationMatch]:
        self.recommendations = self.recommendation_engine.generate(
            mood, list(self.fragments), list(self.patterns)
        )
        return self.recommendations

    def set_mood(self, mood: Optional[str]) -> List[RecommendationMatch]:
        """Record the user's current mood; recommendations refresh when fragments exist."""
        self.current_mood = mood
        if mood and self.fragments:
            return self.generate_recommendations(mood)
        return self.recommendations

    # Internals

    def _maybe_analyze(self) -> None:
        if len(self.fragments) >= self.auto_analyze_threshold:
            logger.debug(f"{len(self.fragments)} fragments, running automatic analysis")
            self.analyze_patterns()

    def _find(self, fragment_id: str) -> Fragment:
        for fragment in self.fragments:
            if fragment.id == fragment_id:
                return fragment
        raise NotFoundError("Fragment", fragment_id)

    def _load(self, fragment_id: str) -> Fragment:
        try:
            return self.store.get(fragment_id)
        except NotFoundError:
            logger.warning(f"Fragment {fragment_id} not found")
            raise

    def _update(self, fragment_id: str, changes: Callable[[Fragment], dict]) -> Fragment:
        fragment = self._load(fragment_id)
        updated = fragment.model_copy(update=changes(fragment))

        try:
            self.store.save(updated)
        except Exception as e:
            logger.error(f"Failed to update fragment {fragment_id}: {e}")
            raise

        self._replace_in_state(updated)
        return updated

    def _replace_in_state(self, fragment: Fragment) -> None:
        for i, existing in enumerate(self.fragments):
            if existing.id == fragment.id:
                self.fragments[i] = fragment
                break
        else:
            self.fragments.append(fragment)

        if self.selected_fragment is not None and self.selected_fragment.id == fragment.id:
            self.selected_fragment = fragment
