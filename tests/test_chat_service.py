"""Tests for the user directory, conversations and messages."""

import asyncio
from datetime import datetime, timedelta

import pytest

from app.core.exceptions import ConversationNotFoundError, UserNotFoundError
from app.models.chat import Conversation, UserMessage
from app.models.user import User
from app.services.change_feed import conversations_topic, messages_topic
from app.services.chat_service import ChatService, conversation_id_for


class TestConversationId:
    """Tests for conversation_id_for()."""

    def test_order_independent(self):
        assert conversation_id_for("zed", "amy") == conversation_id_for("amy", "zed") == "amy_zed"


class TestUserDirectory:
    """Tests for sync_user() and search_users_by_email()."""

    def test_sync_creates_then_refreshes(self, db):
        service = ChatService(db)
        service.sync_user("u1", "old@example.com", "Old")
        user = service.sync_user("u1", "new@example.com", "New")

        assert db.query(User).count() == 1
        assert user.email == "new@example.com"
        assert user.name == "New"

    def test_search_is_case_insensitive_and_excludes_caller(self, db, alice, bob):
        service = ChatService(db)

        assert [u.uid for u in service.search_users_by_email("bob@example.COM", alice.uid)] == [bob.uid]
        assert service.search_users_by_email("alice@example.com", alice.uid) == []

    def test_search_requires_exact_match(self, db, alice, bob):
        assert ChatService(db).search_users_by_email("bob@", alice.uid) == []


class TestConversations:
    """Tests for conversation lifecycle."""

    def test_get_or_create_is_idempotent_from_either_side(self, db, alice, bob, feed):
        service = ChatService(db, feed)

        first = service.get_or_create_conversation(alice, bob.uid)
        second = service.get_or_create_conversation(bob, alice.uid)

        assert first.id == second.id == conversation_id_for(alice.uid, bob.uid)
        assert db.query(Conversation).count() == 1
        assert set(second.participants) == {alice.uid, bob.uid}
        assert second.participant_details[bob.uid]["name"] == "Bob"

    def test_unknown_user(self, db, alice, feed):
        with pytest.raises(UserNotFoundError):
            ChatService(db, feed).get_or_create_conversation(alice, "nobody")

    def test_non_participant_cannot_access(self, db, alice, bob, feed):
        service = ChatService(db, feed)
        conversation = service.get_or_create_conversation(alice, bob.uid)

        with pytest.raises(ConversationNotFoundError):
            service.get_conversation(conversation.id, "mallory")
        with pytest.raises(ConversationNotFoundError):
            service.send_message(conversation.id, "mallory", "hi")

    def test_list_sorted_by_latest_activity(self, db, alice, bob, feed):
        carol = User(uid="carol-uid", email="carol@example.com", name="Carol")
        db.add(carol)
        db.commit()
        service = ChatService(db, feed)

        with_bob = service.get_or_create_conversation(alice, bob.uid)
        with_carol = service.get_or_create_conversation(alice, carol.uid)
        service.send_message(with_bob.id, alice.uid, "ping")

        assert [c.id for c in service.list_conversations(alice.uid)] == [with_bob.id, with_carol.id]
        assert [c.id for c in service.list_conversations(bob.uid)] == [with_bob.id]


class TestMessages:
    """Tests for send_message() and list_messages()."""

    def test_send_updates_conversation_summary(self, db, alice, bob, feed):
        service = ChatService(db, feed)
        conversation = service.get_or_create_conversation(alice, bob.uid)

        message = service.send_message(conversation.id, alice.uid, "hello")

        db.refresh(conversation)
        assert conversation.last_message == "hello"
        assert conversation.last_message_date == message.timestamp
        assert [m.text for m in service.list_messages(conversation.id)] == ["hello"]

    def test_window_is_most_recent_messages_oldest_first(self, db, alice, bob, feed):
        service = ChatService(db, feed)
        conversation = service.get_or_create_conversation(alice, bob.uid)
        start = datetime(2024, 5, 1, 12, 0, 0)
        for i in range(150):
            db.add(UserMessage(
                conversation_id=conversation.id,
                sender_id=alice.uid,
                text=f"m{i}",
                timestamp=start + timedelta(seconds=i),
            ))
        db.commit()

        window = service.list_messages(conversation.id)

        assert len(window) == 100
        assert window[0].text == "m50"
        assert window[-1].text == "m149"

    @pytest.mark.asyncio
    async def test_send_publishes_to_both_participants(self, db, alice, bob, feed):
        service = ChatService(db, feed)
        conversation = service.get_or_create_conversation(alice, bob.uid)
        bob_feed = feed.subscribe(conversations_topic(bob.uid))
        thread_feed = feed.subscribe(messages_topic(conversation.id))

        service.send_message(conversation.id, alice.uid, "hi bob")

        _, conversations = await asyncio.wait_for(bob_feed.next(), timeout=1)
        _, messages = await asyncio.wait_for(thread_feed.next(), timeout=1)
        assert conversations[0].last_message == "hi bob"
        assert [m.text for m in messages] == ["hi bob"]

        bob_feed.close()
        thread_feed.close()
