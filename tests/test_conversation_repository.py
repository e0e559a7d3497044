"""
Tests for conversation persistence
"""

import json

import pytest

from infrastructure.storage import InMemoryKeyValueStore
from services.chat_service.conversation_repository import ConversationRepository
from services.chat_service.models import Conversation, ImagePayload, Message, MessageKind, MessageRole


IMAGE_URI = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


def legacy_record(role, text):
    return {"role": role, "parts": [{"text": text}]}


class TestConversationRepository:
    """Test conversation and preference storage"""

    def setup_method(self):
        self.store = InMemoryKeyValueStore()
        self.repository = ConversationRepository(self.store)

    def test_empty_store(self):
        assert self.repository.load_conversations() == []
        assert self.repository.load_active_conversation_id() is None

    def test_round_trip(self):
        first = Conversation(conversation_id="c1", title="Cats")
        first.messages.append(Message.text_message(MessageRole.USER, "a cat"))
        first.messages.append(
            Message.image_message(ImagePayload(image_ref=IMAGE_URI, alt_text="a cat", source="FLUX.1 AI"))
        )
        second = Conversation(conversation_id="c2", title="Dogs")

        self.repository.save_conversations([first, second])
        self.repository.save_active_conversation_id("c2")

        reloaded = ConversationRepository(InMemoryKeyValueStore(self.store.snapshot()))
        assert reloaded.load_conversations() == [first, second]
        assert reloaded.load_active_conversation_id() == "c2"

    def test_stored_values_are_json(self):
        self.repository.save_conversations([Conversation(conversation_id="c1", title="Cats")])
        self.repository.save_active_conversation_id("c1")

        stored = json.loads(self.store.get("conversations"))
        assert stored[0]["id"] == "c1"
        assert json.loads(self.store.get("activeConversationId")) == "c1"

    def test_clearing_active_id_removes_key(self):
        self.repository.save_active_conversation_id("c1")
        self.repository.save_active_conversation_id(None)

        assert "activeConversationId" not in self.store

    def test_unreadable_entries_are_skipped(self):
        good = Conversation(conversation_id="c1", title="Cats").to_dict()
        self.store.set("conversations", json.dumps([good, {"title": "no id"}]))

        conversations = self.repository.load_conversations()
        assert [c.conversation_id for c in conversations] == ["c1"]

    def test_corrupt_json_loads_as_empty(self):
        self.store.set("conversations", "{not json")
        assert self.repository.load_conversations() == []

    def test_theme(self):
        assert self.repository.load_theme() == "light"

        self.repository.save_theme("dark")
        assert self.repository.load_theme() == "dark"

    def test_unknown_theme(self):
        with pytest.raises(ValueError):
            self.repository.save_theme("sepia")

        self.store.set("theme", json.dumps("sepia"))
        assert self.repository.load_theme(default="dark") == "dark"


class TestLegacyTranscript:
    """Test reading the old flat transcript"""

    def setup_method(self):
        self.store = InMemoryKeyValueStore()
        self.repository = ConversationRepository(self.store)

    def store_legacy(self, records):
        self.store.set("imageChatHistory", json.dumps(records))

    def test_seed_prompt_is_skipped(self):
        self.store_legacy([
            legacy_record("model", "You are FRIDAY AI, a helpful assistant."),
            legacy_record("user", "a lighthouse at dusk"),
        ])

        messages = self.repository.load_legacy_transcript("FRIDAY AI")

        assert len(messages) == 1
        assert messages[0].role is MessageRole.USER
        assert messages[0].text == "a lighthouse at dusk"

    def test_embedded_image_becomes_image_message(self):
        self.store_legacy([
            legacy_record(
                "model",
                f'<img src="{IMAGE_URI}" alt="a lighthouse &amp; a boat"><p>Generated by FLUX.1 AI</p>'
            ),
        ])

        message = self.repository.load_legacy_transcript("FRIDAY AI")[0]

        assert message.kind is MessageKind.IMAGE
        assert message.image.image_ref == IMAGE_URI
        assert message.image.alt_text == "a lighthouse & a boat"
        assert message.image.source == "FLUX.1 AI"

    def test_blob_image_becomes_placeholder_text(self):
        self.store_legacy([
            legacy_record("model", '<img src="blob:https://app/1" alt="x"><p>Generated by FLUX.1 AI</p>'),
        ])

        message = self.repository.load_legacy_transcript("FRIDAY AI")[0]

        assert message.kind is MessageKind.TEXT
        assert message.text.startswith("[Image no longer available]")
        assert "Generated by FLUX.1 AI" in message.text

    def test_malformed_records_are_skipped(self):
        self.store_legacy([{"role": "user"}, legacy_record("robot", "hi"), legacy_record("user", "ok")])

        messages = self.repository.load_legacy_transcript("FRIDAY AI")
        assert [m.text for m in messages] == ["ok"]

    def test_presence_and_clear(self):
        assert not self.repository.has_legacy_transcript()

        self.store_legacy([legacy_record("user", "hi")])
        assert self.repository.has_legacy_transcript()

        self.repository.clear_legacy_transcript()
        assert not self.repository.has_legacy_transcript()
