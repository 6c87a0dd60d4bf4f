"""Shared fixtures for building fragments in tests."""

from datetime import datetime, timedelta, timezone

import pytest

from fragment_mirror.models import EmotionTag, Fragment, FragmentMetadata, FragmentRating

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def make_fragment():
    """
    Factory for fragments.

    emotions: list of (emotion, intensity) tags
    ratings: list of (helpful, resonance) ratings
    """

    def _make(
        fragment_id=None,
        created_at=None,
        emotions=(),
        ratings=(),
        mood="reflective",
        energy=5,
        clarity=5,
        payload=b"video-bytes",
        **kwargs,
    ):
        extra = {"id": fragment_id} if fragment_id else {}
        fragment = Fragment(
            created_at=created_at or BASE_TIME,
            duration_ms=1500,
            payload=payload,
            tags=[EmotionTag(emotion=e, intensity=i) for e, i in emotions],
            metadata=FragmentMetadata(mood=mood, energy=energy, clarity=clarity),
            **extra,
            **kwargs,
        )
        return fragment.model_copy(
            update={
                "ratings": [
                    FragmentRating(fragment_id=fragment.id, helpful=h, resonance=r)
                    for h, r in ratings
                ]
            }
        )

    return _make


@pytest.fixture
def daily(base_time):
    """created_at for day N (1-based) of the test timeline."""

    def _at(day, minutes=0):
        return base_time + timedelta(days=day - 1, minutes=minutes)

    return _at
