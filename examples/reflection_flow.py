"""
Reflection Flow Example

Demonstrates a week of fragments going through the ReflectionService:
capture, tagging, rating, automatic pattern analysis and mood-based
recommendations, persisted in a SQLite database.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine

from fragment_mirror import ReflectionService
from fragment_mirror.storage import SQLAlchemyFragmentStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

WEEK = [
    # (emotion, intensity, clarity, energy, helpful, resonance)
    ("anxious", 7, 3, 4, False, 2),
    ("calm", 6, 4, 5, True, 4),
    ("anxious", 8, 5, 4, True, 3),
    ("calm", 7, 6, 6, True, 5),
    ("anxious", 6, 7, 6, True, 4),
    ("calm", 8, 8, 7, True, 5),
    ("hopeful", 7, 9, 8, True, 5),
]


def main():
    engine = create_engine("sqlite:///:memory:")
    store = SQLAlchemyFragmentStore(engine)
    service = ReflectionService(store)
    service.initialize()

    session = service.start_session(theme="First week")
    start = datetime(2024, 1, 1, 21, 0, tzinfo=timezone.utc)

    for day, (emotion, intensity, clarity, energy, helpful, resonance) in enumerate(WEEK):
        # Stand-in for bytes delivered by a camera
        fragment = service.capture(f"clip-{day}".encode(), duration_ms=45_000)
        fragment = fragment.model_copy(update={"created_at": start + timedelta(days=day)})
        service.save_fragment(fragment)

        service.tag_fragment(fragment.id, emotion, intensity)
        service.update_metadata(fragment.id, clarity=clarity, energy=energy)
        service.rate_fragment(fragment.id, helpful=helpful, resonance=resonance)

    service.end_session(["Evenings get easier after a walk"])

    print("\nPatterns:")
    for insight in service.analyze_patterns():
        print(f"  [{insight.type}] {insight.description} (confidence {insight.confidence:.2f})")

    print("\nRecommendations while anxious:")
    for match in service.set_mood("anxious"):
        print(f"  {match.fragment_id[:17]}  {match.score:.2f}  {match.type}: {match.reason}")

    print(f"\nStored sessions: {len(store.get_sessions())}, stored insights: {len(store.get_patterns())}")


if __name__ == "__main__":
    main()
