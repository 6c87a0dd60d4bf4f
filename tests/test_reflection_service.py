"""
Unit tests for ReflectionService.

Runs the service against the in-memory store so every operation goes
through a real save/load cycle.
"""

from unittest.mock import Mock

import pytest

from fragment_mirror.errors import NotFoundError, NotInitializedError, ValidationError
from fragment_mirror.reflection_service import ReflectionService
from fragment_mirror.storage import InMemoryFragmentStore


class FlakyFragmentStore(InMemoryFragmentStore):
    """In-memory store whose saves can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_saves = False
        self.fail_session_saves = False

    def save(self, fragment):
        if self.fail_saves:
            raise IOError("disk full")
        return super().save(fragment)

    def save_session(self, session):
        if self.fail_session_saves:
            raise IOError("disk full")
        return super().save_session(session)


@pytest.fixture
def store():
    return FlakyFragmentStore()


@pytest.fixture
def service(store):
    service = ReflectionService(store)
    service.initialize()
    return service


@pytest.fixture
def saved(service, make_fragment):
    """A fragment already persisted through the service."""
    return service.save_fragment(make_fragment(fragment_id="fragment-1"))


def _resonant(make_fragment, daily, day):
    return make_fragment(
        fragment_id=f"fragment-{day}",
        created_at=daily(day),
        emotions=[("calm", 5)],
        ratings=[(True, 5)],
    )


def test_operations_before_initialize_fail(store, make_fragment):
    service = ReflectionService(store)

    with pytest.raises(NotInitializedError):
        service.save_fragment(make_fragment())


def test_initialize_loads_sorted_fragments(store, make_fragment, daily):
    store.initialize()
    store.save(make_fragment(fragment_id="later", created_at=daily(2)))
    store.save(make_fragment(fragment_id="earlier", created_at=daily(1)))

    service = ReflectionService(store)
    fragments = service.initialize()

    assert [f.id for f in fragments] == ["earlier", "later"]
    assert service.patterns == []


def test_initialize_runs_analysis_at_threshold(store, make_fragment, daily):
    store.initialize()
    for day in (1, 2, 3):
        store.save(_resonant(make_fragment, daily, day))

    service = ReflectionService(store)
    service.initialize()

    assert {p.type for p in service.patterns} == {"resonance_cluster"}
    assert len(store.get_patterns()) == len(service.patterns)


def test_capture_defaults(service):
    fragment = service.capture(b"raw", duration_ms=2000)

    assert fragment.id.startswith("fragment-")
    assert fragment.payload == b"raw"
    assert fragment.duration_ms == 2000
    assert fragment.tags == []
    assert fragment.metadata.mood == "reflective"
    assert fragment.metadata.energy == 5
    assert fragment.metadata.clarity == 5
    # Capturing does not persist
    assert service.fragments == []


@pytest.mark.parametrize("payload, duration", [("text", 100), (b"raw", -1)])
def test_capture_rejects_bad_input(service, payload, duration):
    with pytest.raises(ValidationError):
        service.capture(payload, duration_ms=duration)


def test_auto_analysis_after_third_save(service, store, make_fragment, daily):
    service.save_fragment(_resonant(make_fragment, daily, 1))
    service.save_fragment(_resonant(make_fragment, daily, 2))
    assert service.patterns == []
    assert store.get_patterns() == []

    service.save_fragment(_resonant(make_fragment, daily, 3))

    descriptions = [p.description for p in service.patterns]
    assert descriptions == [
        "Strong resonance with calm emotional states",
        "Consistent positive response to reflective moods",
    ]
    assert [p.id for p in store.get_patterns()] == [p.id for p in service.patterns]


def test_custom_auto_analyze_threshold(store, make_fragment):
    engine = Mock()
    engine.analyze = Mock(return_value=[])
    service = ReflectionService(store, pattern_engine=engine, auto_analyze_threshold=1)
    service.initialize()
    engine.analyze.assert_not_called()

    service.save_fragment(make_fragment())

    engine.analyze.assert_called_once()


def test_save_replaces_existing_fragment(service, saved):
    updated = saved.model_copy(update={"title": "Morning walk"})

    service.save_fragment(updated)

    assert len(service.fragments) == 1
    assert service.fragments[0].title == "Morning walk"


def test_tag_fragment(service, saved, store):
    result = service.tag_fragment(saved.id, "anxious", 7, confidence=0.5)

    assert [t.emotion for t in result.tags] == ["anxious"]
    assert result.tags[0].intensity == 7
    assert result.tags[0].confidence == 0.5
    assert store.get(saved.id).tags == result.tags
    assert service.fragments[0] == result


def test_tags_keep_insertion_order(service, saved):
    service.tag_fragment(saved.id, "calm", 3)
    result = service.tag_fragment(saved.id, "hopeful", 6)

    assert [t.emotion for t in result.tags] == ["calm", "hopeful"]


@pytest.mark.parametrize(
    "emotion, intensity, confidence",
    [
        ("calm", 0, 1.0),
        ("calm", 11, 1.0),
        ("calm", 5, 1.5),
        ("calm", "5", 1.0),
        ("bored", 5, 1.0),
    ],
)
def test_tag_fragment_rejects_invalid_values(service, saved, store, emotion, intensity, confidence):
    with pytest.raises(ValidationError):
        service.tag_fragment(saved.id, emotion, intensity, confidence=confidence)

    assert store.get(saved.id).tags == []


def test_rate_fragment(service, saved, store):
    result = service.rate_fragment(saved.id, helpful=True, resonance=4, context="after work")

    rating = result.ratings[0]
    assert rating.fragment_id == saved.id
    assert rating.helpful is True
    assert rating.resonance == 4
    assert rating.context == "after work"
    assert store.get(saved.id).ratings == result.ratings


@pytest.mark.parametrize("resonance", [0, 6])
def test_rate_fragment_rejects_out_of_range(service, saved, resonance):
    with pytest.raises(ValidationError):
        service.rate_fragment(saved.id, helpful=True, resonance=resonance)


def test_edits_of_unknown_fragment_raise_not_found(service):
    with pytest.raises(NotFoundError) as exc_info:
        service.tag_fragment("missing", "calm", 5)
    assert exc_info.value.record_id == "missing"

    with pytest.raises(NotFoundError):
        service.rate_fragment("missing", helpful=True, resonance=3)

    with pytest.raises(NotFoundError):
        service.update_metadata("missing", mood="analytical")


def test_add_variation(service, saved, store):
    result = service.add_variation(saved.id, "sepia", b"sepia-bytes", settings={"strength": 0.4})

    variation = result.variations[0]
    assert variation.parent_id == saved.id
    assert variation.effect == "sepia"
    assert variation.effect_settings == {"strength": 0.4}
    assert store.get(saved.id).variations[0].payload == b"sepia-bytes"


def test_apply_effect_renders_original_payload(service, saved):
    renderer = Mock()
    renderer.render = Mock(return_value=b"blurred")

    result = service.apply_effect(saved.id, "blur", renderer)

    renderer.render.assert_called_once_with(b"video-bytes", "blur")
    assert result.variations[0].effect == "blur"
    assert result.variations[0].payload == b"blurred"
    assert result.payload == b"video-bytes"


def test_add_response(service, saved, store):
    result = service.add_response(saved.id, b"reply", "challenge", notes="push back")

    response = result.responses[0]
    assert response.parent_id == saved.id
    assert response.response_type == "challenge"
    assert response.notes == "push back"
    assert store.get(saved.id).responses[0].payload == b"reply"


def test_add_response_rejects_unknown_type(service, saved):
    with pytest.raises(ValidationError):
        service.add_response(saved.id, b"reply", "rant")


def test_update_metadata(service, saved):
    result = service.update_metadata(
        saved.id, mood="analytical", clarity=9, keywords=["work", "sleep", "work"]
    )

    assert result.metadata.mood == "analytical"
    assert result.metadata.clarity == 9
    assert result.metadata.energy == 5
    assert result.metadata.keywords == ["work", "sleep"]


@pytest.mark.parametrize(
    "changes",
    [{"energy": 0}, {"clarity": 11}, {"mood": "grumpy"}, {"colour": "blue"}],
)
def test_update_metadata_rejects_invalid_changes(service, saved, store, changes):
    with pytest.raises(ValidationError):
        service.update_metadata(saved.id, **changes)

    assert store.get(saved.id).metadata == saved.metadata


def test_failed_save_leaves_state_unchanged(service, saved, store):
    store.fail_saves = True

    with pytest.raises(IOError):
        service.tag_fragment(saved.id, "calm", 5)

    assert service.fragments == [saved]
    store.fail_saves = False
    assert store.get(saved.id).tags == []


def test_failed_new_save_is_not_added(service, store, make_fragment):
    store.fail_saves = True

    with pytest.raises(IOError):
        service.save_fragment(make_fragment())

    assert service.fragments == []


def test_select_fragment(service, saved):
    assert service.select_fragment(saved.id) == saved
    assert service.selected_fragment == saved

    tagged = service.tag_fragment(saved.id, "calm", 4)
    assert service.selected_fragment == tagged

    assert service.select_fragment(None) is None
    assert service.selected_fragment is None


def test_select_unknown_fragment(service):
    with pytest.raises(NotFoundError):
        service.select_fragment("missing")


def test_delete_fragment_clears_selection(service, saved, store):
    service.select_fragment(saved.id)

    assert service.delete_fragment(saved.id) is True

    assert service.fragments == []
    assert service.selected_fragment is None
    assert store.count() == 0


def test_delete_refreshes_patterns(service, store, make_fragment, daily):
    for day in (1, 2, 3, 4):
        service.save_fragment(_resonant(make_fragment, daily, day))
    assert all("fragment-4" in p.related_fragments for p in service.patterns)

    service.delete_fragment("fragment-4")

    assert service.patterns
    assert all("fragment-4" not in p.related_fragments for p in service.patterns)
    assert [p.related_fragments for p in service.patterns] == [
        ["fragment-1", "fragment-2", "fragment-3"]
    ] * 2


def test_delete_unknown_fragment(service, saved):
    service.select_fragment(saved.id)

    assert service.delete_fragment("missing") is False
    assert service.selected_fragment == saved


def test_session_collects_saved_fragments(service, store, make_fragment):
    session = service.start_session(theme="work stress")
    first = service.save_fragment(make_fragment())
    service.save_fragment(first)
    second = service.save_fragment(make_fragment())

    completed = service.end_session(["breathing helps"])

    assert completed.id == session.id
    assert completed.theme == "work stress"
    assert completed.fragment_ids == [first.id, second.id]
    assert completed.insights == ["breathing helps"]
    assert completed.end_time is not None
    assert service.current_session is None
    assert store.get_session(session.id) == completed


def test_failed_session_save_is_logged_and_raised(service, store, make_fragment, caplog):
    session = service.start_session()
    store.fail_session_saves = True
    fragment = make_fragment()

    with pytest.raises(IOError):
        service.save_fragment(fragment)

    assert f"Failed to add fragment {fragment.id} to session {session.id}" in caplog.text
    assert service.current_session == session
    assert service.fragments == [fragment]
    assert store.get(fragment.id) == fragment


def test_end_session_without_active_session(service):
    assert service.end_session(["nothing"]) is None


def test_analyze_patterns_keeps_history(service, store, make_fragment, daily):
    for day in (1, 2, 3):
        service.save_fragment(_resonant(make_fragment, daily, day))
    first_run = list(service.patterns)

    second_run = service.analyze_patterns()

    assert len(second_run) == len(first_run)
    assert len(store.get_patterns()) == len(first_run) + len(second_run)


def test_set_mood_generates_recommendations(service, make_fragment):
    service.save_fragment(make_fragment(mood="questioning", ratings=[(True, 5)]))

    recommendations = service.set_mood("questioning")

    assert service.current_mood == "questioning"
    assert [r.type for r in recommendations] == ["mood_match"]
    assert service.recommendations == recommendations


def test_set_mood_without_fragments(service):
    assert service.set_mood("questioning") == []
    assert service.current_mood == "questioning"


def test_clearing_mood_keeps_recommendations(service, make_fragment):
    service.save_fragment(make_fragment(mood="questioning", ratings=[(True, 5)]))
    recommendations = service.set_mood("questioning")

    assert service.set_mood(None) == recommendations
    assert service.current_mood is None
