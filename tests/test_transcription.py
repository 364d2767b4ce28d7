"""
Tests for the ordered conversation item store.
"""

import random

import pytest

from realtime_client.domain.conversation.items import ContentPart, ConversationItem
from realtime_client.domain.conversation.transcription import Transcription


def message(item_id, role="user", content=None):
    """Build a message item record."""
    return {
        "id": item_id,
        "type": "message",
        "role": role,
        "content": content if content is not None else [{"type": "input_text", "text": item_id}],
    }


def ids(store):
    """Ids of the stored items in order."""
    return [item.id for item in store.get_ordered_items()]


@pytest.fixture
def store():
    """An empty item store."""
    return Transcription()


def test_empty_store(store):
    """Test an empty store."""
    assert store.get_ordered_items() == []
    assert len(store) == 0
    assert store.last_item_id is None
    assert store.get_item("missing") is None


def test_items_follow_previous_item_chain(store):
    """Test that items are ordered by their previous_item_id chain."""
    store.add_item(message("a"), None)
    store.add_item(message("b"), "a")
    store.add_item(message("c"), "b")

    assert ids(store) == ["a", "b", "c"]
    assert store.last_item_id == "c"
    assert len(store) == 3
    assert "b" in store


def test_insert_between_existing_items(store):
    """Test inserting an item between two others."""
    store.add_item(message("a"))
    store.add_item(message("c"), "a")
    store.add_item(message("b"), "a")

    assert ids(store) == ["a", "b", "c"]


def test_missing_previous_id_inserts_at_head(store):
    """Test that no previous id inserts at the head."""
    store.add_item(message("b"))
    store.add_item(message("a"), None)
    store.add_item(message("z"), "")

    assert ids(store) == ["z", "a", "b"]


def test_unknown_previous_id_appends_at_tail(store):
    """Test that an unknown previous id appends at the tail."""
    store.add_item(message("a"))
    store.add_item(message("b"), "a")
    store.add_item(message("c"), "not-in-store")

    assert ids(store) == ["a", "b", "c"]


def test_remove_relinks_neighbours(store):
    """Test that removing an item links its neighbours."""
    store.add_item(message("a"))
    store.add_item(message("b"), "a")
    store.add_item(message("c"), "b")

    store.remove_item("b")

    assert ids(store) == ["a", "c"]
    assert store.get_item("b") is None

    store.add_item(message("d"), "a")
    assert ids(store) == ["a", "d", "c"]


def test_remove_head_and_tail(store):
    """Test removing the first and last items."""
    for previous, item_id in [(None, "a"), ("a", "b"), ("b", "c")]:
        store.add_item(message(item_id), previous)

    store.remove_item("a")
    store.remove_item("c")

    assert ids(store) == ["b"]
    assert store.last_item_id == "b"


def test_remove_unknown_item_is_noop(store):
    store.add_item(message("a"))
    store.remove_item("zzz")
    assert ids(store) == ["a"]


def test_readding_an_item_replaces_and_moves_it(store):
    """Test that re-adding an id replaces and moves it."""
    store.add_item(message("a"))
    store.add_item(message("b"), "a")
    store.add_item(message("c"), "b")

    store.add_item(message("a", role="assistant"), "c")

    assert ids(store) == ["b", "c", "a"]
    assert store.get_item("a").role == "assistant"
    assert len(store) == 3


def test_readding_after_itself_only_replaces_payload(store):
    store.add_item(message("a"))
    store.add_item(message("b"), "a")

    store.add_item(message("b", role="assistant"), "b")

    assert ids(store) == ["a", "b"]
    assert store.get_item("b").role == "assistant"


def test_update_item_replaces_fields_in_place(store):
    """Test updating an item without moving it."""
    store.add_item(message("a"))
    store.add_item({"id": "b", "type": "message", "role": "assistant", "status": "in_progress"}, "a")
    store.add_item(message("c"), "b")

    store.update_item("b", {
        "id": "b",
        "type": "message",
        "role": "assistant",
        "status": "completed",
        "content": [{"type": "text", "text": "done"}],
    })

    item = store.get_item("b")
    assert item.status == "completed"
    assert item.content[0].text == "done"
    assert ids(store) == ["a", "b", "c"]


def test_update_item_keeps_identity(store):
    store.add_item(message("a"))
    store.update_item("a", {"id": "other", "type": "message", "role": "user"})

    assert ids(store) == ["a"]
    assert store.get_item("other") is None


def test_update_unknown_item_is_noop(store):
    """Test that updating an unknown id changes nothing."""
    store.add_item(message("a"))
    store.update_item("missing", message("missing"))

    assert ids(store) == ["a"]
    assert "missing" not in store


def test_transcript_attaches_to_first_empty_audio_part(store):
    """Test that a transcript fills the first empty audio part."""
    store.add_item(message("a", content=[
        {"type": "input_text", "text": "hello"},
        {"type": "input_audio"},
        {"type": "input_audio"},
    ]))

    store.add_transcript_to_item("a", "spoken words")

    content = store.get_item("a").content
    assert content[0].text == "hello"
    assert content[1].transcript == "spoken words"
    assert content[1].text is None
    assert content[2].transcript is None


def test_transcript_on_text_part_sets_text(store):
    """Test that a transcript on a text part sets its text."""
    store.add_item(message("a", content=[{"type": "input_text"}]))

    store.add_transcript_to_item("a", "typed")

    assert store.get_item("a").content[0].text == "typed"


def test_transcript_for_unknown_item_is_noop(store):
    store.add_transcript_to_item("ghost", "nobody hears this")
    assert len(store) == 0


def test_transcript_without_empty_part_is_noop(store):
    """Test that a transcript with no empty part changes nothing."""
    store.add_item(message("a", content=[{"type": "input_audio", "transcript": "first"}]))

    store.add_transcript_to_item("a", "second")

    assert store.get_item("a").content[0].transcript == "first"


def test_returned_items_are_copies(store):
    """Test that returned items are copies."""
    store.add_item(message("a"))

    item = store.get_item("a")
    item.role = "assistant"
    item.content.append(ContentPart(type="input_text", text="extra"))

    listed = store.get_ordered_items()[0]
    listed.content[0].text = "changed"

    stored = store.get_item("a")
    assert stored.role == "user"
    assert len(stored.content) == 1
    assert stored.content[0].text == "a"


def test_stored_item_is_isolated_from_input(store):
    """Test that the store copies the item it is given."""
    item = ConversationItem.from_dict(message("a"))
    store.add_item(item)

    item.content[0].text = "mutated"

    assert store.get_item("a").content[0].text == "a"


def test_clear(store):
    store.add_item(message("a"))
    store.add_item(message("b"), "a")

    store.clear()

    assert ids(store) == []
    store.add_item(message("c"))
    assert ids(store) == ["c"]


def test_item_without_id_is_rejected(store):
    """Test that an item without an id is rejected."""
    with pytest.raises(ValueError):
        store.add_item({"type": "message", "role": "user"})


def test_random_insert_remove_sequences_match_reference_order():
    """Test random insert and remove sequences against a plain list."""
    rng = random.Random(1234)

    for _ in range(50):
        store = Transcription()
        expected = []
        next_id = 0

        for _ in range(40):
            if expected and rng.random() < 0.3:
                victim = rng.choice(expected)
                expected.remove(victim)
                store.remove_item(victim)
                continue

            item_id = f"item_{next_id}"
            next_id += 1
            previous = rng.choice(expected + [None])
            position = 0 if previous is None else expected.index(previous) + 1
            expected.insert(position, item_id)
            store.add_item(message(item_id), previous)

        assert ids(store) == expected
        assert len(store) == len(expected)


def test_non_object_content_parts_are_skipped(store):
    """Test that content entries that are not objects are dropped."""
    store.add_item(message("a", content=[None, "text", {"type": "input_text", "text": "hi"}]))

    item = store.get_item("a")
    assert len(item.content) == 1
    assert item.content[0].text == "hi"
