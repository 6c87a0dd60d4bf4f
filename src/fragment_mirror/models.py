import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator

EmotionType = Literal[
    "calm",
    "anxious",
    "happy",
    "sad",
    "angry",
    "confused",
    "motivated",
    "tired",
    "hopeful",
    "frustrated",
    "peaceful",
    "overwhelmed",
    "confident",
    "uncertain",
    "grateful",
    "lonely",
]

MoodType = Literal[
    "reflective",
    "questioning",
    "affirmative",
    "exploratory",
    "supportive",
    "challenging",
    "nurturing",
    "analytical",
]

ResponseType = Literal["answer", "continuation", "challenge"]

PatternType = Literal["emotional_cycle", "trigger_pattern", "growth_trend", "resonance_cluster"]

RecommendationType = Literal[
    "mood_match", "pattern_completion", "contrast_learning", "growth_opportunity"
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(kind: str) -> str:
    """Generate a never-reused identifier such as ``fragment-3f2a...``."""
    return f"{kind}-{uuid.uuid4().hex}"


class _Record(BaseModel):
    # Edits go through model_copy(update=...) and a whole-record re-save.
    model_config = ConfigDict(frozen=True)


class EmotionTag(_Record):
    emotion: EmotionType
    intensity: int = Field(..., ge=1, le=10, description="How strongly the emotion was felt")
    confidence: float = Field(
        default=1.0, ge=0.0, le=1.0, description="How sure the tagger is about the emotion"
    )
    timestamp: AwareDatetime = Field(default_factory=utc_now)


class FragmentRating(_Record):
    id: str = Field(default_factory=lambda: new_id("rating"))
    fragment_id: str
    helpful: bool
    resonance: int = Field(..., ge=1, le=5, description="Self-reported resonance (1-5)")
    timestamp: AwareDatetime = Field(default_factory=utc_now)
    context: Optional[str] = None


class FragmentVariation(_Record):
    """A rendered copy of a fragment's payload with a named visual effect applied."""

    id: str = Field(default_factory=lambda: new_id("variation"))
    parent_id: str
    effect: str
    effect_settings: dict = Field(default_factory=dict)
    payload: bytes
    timestamp: AwareDatetime = Field(default_factory=utc_now)


class ResponseFragment(_Record):
    """A follow-up recording made in reply to an earlier fragment."""

    id: str = Field(default_factory=lambda: new_id("response"))
    parent_id: str
    payload: bytes
    timestamp: AwareDatetime = Field(default_factory=utc_now)
    response_type: ResponseType
    notes: Optional[str] = None


class FragmentMetadata(_Record):
    mood: MoodType = "reflective"
    energy: int = Field(default=5, ge=1, le=10)
    clarity: int = Field(default=5, ge=1, le=10)
    keywords: List[str] = Field(default_factory=list)

    @field_validator("keywords")
    @classmethod
    def _unique_keywords(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))


class Fragment(_Record):
    """
    One recorded reflection unit.

    The payload (and every nested variation/response payload) is opaque
    binary data supplied by the capture collaborator. Tags, ratings,
    variations and responses keep their insertion order.
    """

    id: str = Field(default_factory=lambda: new_id("fragment"))
    created_at: AwareDatetime = Field(default_factory=utc_now)
    duration_ms: int = Field(..., ge=0, description="Length of the recorded content")
    payload: bytes
    title: Optional[str] = None
    notes: Optional[str] = None
    tags: List[EmotionTag] = Field(default_factory=list)
    ratings: List[FragmentRating] = Field(default_factory=list)
    variations: List[FragmentVariation] = Field(default_factory=list)
    responses: List[ResponseFragment] = Field(default_factory=list)
    metadata: FragmentMetadata = Field(default_factory=FragmentMetadata)

    def dominant_tag(self) -> Optional[EmotionTag]:
        """Highest-intensity tag; the first one added wins a tie."""
        dominant = None
        for tag in self.tags:
            if dominant is None or tag.intensity > dominant.intensity:
                dominant = tag
        return dominant

    def mean_resonance(self) -> float:
        """Mean resonance over all ratings, 0 when the fragment is unrated."""
        if not self.ratings:
            return 0.0
        return sum(r.resonance for r in self.ratings) / len(self.ratings)

    def has_helpful_rating(self) -> bool:
        return any(r.helpful for r in self.ratings)


class ReflectionSession(_Record):
    """Fragments recorded during one sitting, plus the insights noted at the end."""

    id: str = Field(default_factory=lambda: new_id("session"))
    start_time: AwareDatetime = Field(default_factory=utc_now)
    end_time: Optional[AwareDatetime] = None
    fragment_ids: List[str] = Field(default_factory=list)
    theme: Optional[str] = None
    insights: List[str] = Field(default_factory=list)


class PatternInsight(_Record):
    """Engine-derived statement about recurring structure across fragments."""

    id: str = Field(default_factory=lambda: new_id("insight"))
    type: PatternType
    description: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    related_fragments: List[str] = Field(default_factory=list)
    timestamp: AwareDatetime = Field(default_factory=utc_now)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return max(0.0, min(1.0, float(value)))


@dataclass
class RecommendationMatch:
    """
    A scored suggestion of a fragment relevant to the user's current mood.

    Transient: recomputed on every request and never persisted. The same
    fragment may appear more than once with different types/reasons.

    Attributes:
        fragment_id: ID of the recommended fragment
        score: Ranking score (typically 0.0-1.0, not guaranteed bounded)
        reason: Human-readable explanation shown to the user
        type: Strategy that produced the match
    """

    fragment_id: str
    score: float
    reason: str
    type: RecommendationType
