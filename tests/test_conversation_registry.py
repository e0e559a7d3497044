"""
Tests for the conversation registry
"""

from unittest.mock import Mock

from infrastructure.storage import InMemoryKeyValueStore
from services.chat_service.conversation_registry import ConversationRegistry
from services.chat_service.conversation_repository import ConversationRepository
from services.ui_service.rendering_surface import RenderingSurface


class TestConversationRegistry:
    """Test conversation creation, switching, renaming and deletion"""

    def setup_method(self):
        self.store = InMemoryKeyValueStore()
        self.repository = ConversationRepository(self.store)
        self.renderer = Mock(spec=RenderingSurface)
        self.registry = ConversationRegistry(self.repository, self.renderer)

    def reloaded(self) -> ConversationRegistry:
        registry = ConversationRegistry(ConversationRepository(InMemoryKeyValueStore(self.store.snapshot())))
        registry.load()
        return registry

    def test_create_prepends_and_activates(self):
        first = self.registry.create("First")
        second = self.registry.create("Second")

        assert [c.conversation_id for c in self.registry.conversations] == [
            second.conversation_id, first.conversation_id
        ]
        assert self.registry.active_conversation_id == second.conversation_id
        assert first.conversation_id != second.conversation_id

    def test_create_uses_default_title(self):
        conversation = self.registry.create("   ")
        assert conversation.title == "New Chat"

    def test_create_persists_and_renders(self):
        conversation = self.registry.create()

        reloaded = self.reloaded()
        assert reloaded.active_conversation_id == conversation.conversation_id
        self.renderer.render_conversation_list.assert_called()
        self.renderer.render_transcript.assert_called_with(conversation)

    def test_delete_active_promotes_first_remaining(self):
        oldest = self.registry.create("Oldest")
        middle = self.registry.create("Middle")
        newest = self.registry.create("Newest")

        assert self.registry.delete(newest.conversation_id)

        assert self.registry.active_conversation_id == middle.conversation_id
        assert self.registry.get(newest.conversation_id) is None
        assert len(self.registry) == 2
        assert self.registry.get(oldest.conversation_id) is oldest

    def test_delete_inactive_keeps_active(self):
        other = self.registry.create("Other")
        active = self.registry.create("Active")

        self.registry.delete(other.conversation_id)

        assert self.registry.active_conversation_id == active.conversation_id

    def test_delete_last_leaves_pointer_empty(self):
        only = self.registry.create()

        self.registry.delete(only.conversation_id)

        assert len(self.registry) == 0
        assert self.registry.active_conversation_id is None
        assert self.reloaded().active_conversation_id is None

    def test_delete_unknown_id(self):
        self.registry.create()
        assert self.registry.delete("missing") is False
        assert len(self.registry) == 1

    def test_active_pointer_always_valid_after_delete(self):
        created = [self.registry.create(f"Chat {i}") for i in range(4)]

        for conversation in created:
            self.registry.delete(conversation.conversation_id)
            active_id = self.registry.active_conversation_id
            assert active_id is None or self.registry.get(active_id) is not None

    def test_delete_all(self):
        self.registry.create()
        self.registry.create()

        self.registry.delete_all()

        assert len(self.registry) == 0
        assert self.registry.active_conversation_id is None
        assert self.reloaded().conversations == []

    def test_rename_trims_and_persists(self):
        conversation = self.registry.create()

        assert self.registry.rename(conversation.conversation_id, "  Mountains  ")

        assert conversation.title == "Mountains"
        assert self.reloaded().get(conversation.conversation_id).title == "Mountains"

    def test_rename_blank_is_noop(self):
        conversation = self.registry.create("Keep me")
        updated_at = conversation.updated_at

        assert self.registry.rename(conversation.conversation_id, "   ") is False
        assert conversation.title == "Keep me"
        assert conversation.updated_at == updated_at

    def test_rename_is_idempotent(self):
        conversation = self.registry.create()

        self.registry.rename(conversation.conversation_id, "Same")
        first = [(c.conversation_id, c.title) for c in self.registry.conversations]
        self.registry.rename(conversation.conversation_id, "Same")
        second = [(c.conversation_id, c.title) for c in self.registry.conversations]

        assert first == second

    def test_switch_active(self):
        first = self.registry.create("First")
        self.registry.create("Second")
        self.renderer.reset_mock()

        assert self.registry.switch_active(first.conversation_id) is first

        assert self.registry.active_conversation_id == first.conversation_id
        assert self.reloaded().active_conversation_id == first.conversation_id
        self.renderer.render_transcript.assert_called_once_with(first)

    def test_switch_to_unknown_changes_nothing(self):
        current = self.registry.create()
        self.renderer.reset_mock()

        assert self.registry.switch_active("missing") is None

        assert self.registry.active_conversation_id == current.conversation_id
        self.renderer.render_transcript.assert_not_called()

    def test_search_is_case_insensitive(self):
        self.registry.create("Red Fox")
        self.registry.create("Blue whale")
        self.registry.create("fox cub")

        titles = [c.title for c in self.registry.search("FOX")]

        assert titles == ["fox cub", "Red Fox"]

    def test_empty_search_yields_all_in_storage_order(self):
        self.registry.create("A")
        self.registry.create("B")

        assert [c.title for c in self.registry.search("  ")] == ["B", "A"]

    def test_search_is_restartable(self):
        self.registry.create("Fox one")
        search = self.registry.search("fox")

        assert len(list(search)) == 1
        assert len(list(search)) == 1

        self.registry.create("Fox two")
        assert len(list(search)) == 2

    def test_load_repairs_stale_active_pointer(self):
        first = self.registry.create("First")
        self.registry.create("Second")
        self.store.set("activeConversationId", '"deleted-elsewhere"')

        registry = ConversationRegistry(self.repository)
        registry.load()

        assert registry.active_conversation_id == registry.conversations[0].conversation_id
        assert registry.get(first.conversation_id) is not None
