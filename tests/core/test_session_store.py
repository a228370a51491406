"""Tests for conversation bookkeeping in the session store."""

from datetime import datetime, timedelta, timezone

import pytest

from hedron.core.errors import ConversationNotFoundError
from hedron.core.session_store import DEFAULT_TITLE, SessionStore, title_from_message
from hedron.types.chat import Author, Turn


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def store():
    return SessionStore(clock=FakeClock())


class TestTitles:
    def test_short_message_is_title(self):
        assert title_from_message("  What is my HBAR balance?  ") == "What is my HBAR balance?"

    def test_long_message_is_truncated(self):
        text = "x" * 60

        assert title_from_message(text) == "x" * 50 + "..."


class TestConversations:
    """Create, select, rename and delete."""

    def test_new_conversations_are_listed_first_and_selected(self, store):
        first = store.create_conversation()
        second = store.create_conversation("Swaps")

        assert [c.id for c in store.conversations] == [second.id, first.id]
        assert store.current is second
        assert first.title == DEFAULT_TITLE

    def test_select_unknown_raises(self, store):
        with pytest.raises(ConversationNotFoundError):
            store.select_conversation("missing")

    def test_rename(self, store):
        conversation = store.create_conversation()

        store.rename_conversation(conversation.id, "  Tokens ")

        assert conversation.title == "Tokens"
        with pytest.raises(ConversationNotFoundError):
            store.rename_conversation("missing", "x")

    def test_delete_current_clears_selection(self, store):
        conversation = store.create_conversation()

        assert store.delete_conversation(conversation.id)
        assert store.current is None
        assert store.conversations == []
        assert not store.delete_conversation(conversation.id)

    def test_delete_other_keeps_selection(self, store):
        first = store.create_conversation()
        second = store.create_conversation()

        store.delete_conversation(first.id)

        assert store.current is second


class TestTurns:
    """Appending turns and change notification."""

    def test_first_user_turn_creates_titled_conversation(self, store):
        turn = store.add_user_turn("What is my HBAR balance?")

        assert store.current is not None
        assert store.current.title == "What is my HBAR balance?"
        assert store.current.turns == [turn]
        assert turn.author is Author.USER

    def test_empty_conversation_takes_title_from_first_message(self, store):
        conversation = store.create_conversation()

        store.add_user_turn("Create a new consensus topic for messages")
        store.add_user_turn("Thanks")

        assert conversation.title == "Create a new consensus topic for messages"
        assert len(conversation.turns) == 2

    def test_append_updates_timestamp(self, store):
        conversation = store.create_conversation()
        created = conversation.updated_at

        store.append_turn(conversation.id, Turn(author=Author.AGENT, text="Hi"))

        assert conversation.updated_at > created

    def test_duplicate_turn_id_rejected(self, store):
        conversation = store.create_conversation()
        turn = Turn(author=Author.AGENT, text="Hi")
        store.append_turn(conversation.id, turn)

        with pytest.raises(ValueError):
            store.append_turn(conversation.id, turn)
        assert len(conversation.turns) == 1

    def test_append_to_unknown_conversation(self, store):
        with pytest.raises(ConversationNotFoundError):
            store.append_turn("missing", Turn(author=Author.AGENT, text="Hi"))

    def test_find_turn(self, store):
        turn = store.add_user_turn("hello")

        assert store.find_turn(store.current_id, turn.id) is turn
        assert store.find_turn(store.current_id, "nope") is None
        assert store.find_turn("missing", turn.id) is None

    def test_listeners_notified_and_unsubscribed(self, store):
        calls = []
        unsubscribe = store.subscribe(lambda s: calls.append(s.loading))

        store.set_loading(True)
        store.set_loading(True)
        unsubscribe()
        store.set_loading(False)

        assert calls == [True]

    def test_failing_listener_does_not_break_others(self, store):
        calls = []

        def broken(_):
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(lambda s: calls.append(True))

        store.create_conversation()

        assert calls == [True]
