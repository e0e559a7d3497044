"""
Conversation registry - owns the conversation set and the active conversation pointer.
Every mutation is written through to the repository before returning.
"""

from datetime import datetime
from typing import Iterator, List, Optional

from services.chat_service.conversation_repository import ConversationRepository
from services.chat_service.models import Conversation, new_conversation_id
from services.ui_service.rendering_surface import RenderingSurface
from utils.logging_config import get_logger, log_conversation_event


class ConversationSearch:
    """
    Title filter over the registry.
    Iterating re-reads the registry, so the same object can be iterated again after changes.
    """

    def __init__(self, registry: 'ConversationRegistry', filter_text: str = ""):
        self.registry = registry
        self.filter_text = (filter_text or "").strip().lower()

    def __iter__(self) -> Iterator[Conversation]:
        for conversation in self.registry.conversations:
            if not self.filter_text or self.filter_text in conversation.title.lower():
                yield conversation


class ConversationRegistry:
    """
    Service for managing conversation state and operations.
    Handles conversation creation, switching, renaming and deletion.
    """

    def __init__(
        self,
        repository: ConversationRepository,
        renderer: Optional[RenderingSurface] = None,
        default_title: str = "New Chat"
    ):
        self.logger = get_logger(__name__)
        self.repository = repository
        self.renderer = renderer or RenderingSurface()
        self.default_title = default_title
        self._conversations: List[Conversation] = []
        self._active_conversation_id: Optional[str] = None

    @property
    def conversations(self) -> List[Conversation]:
        """Conversations in storage order (newest first)"""
        return list(self._conversations)

    @property
    def active_conversation_id(self) -> Optional[str]:
        return self._active_conversation_id

    @property
    def active_conversation(self) -> Optional[Conversation]:
        return self.get(self._active_conversation_id)

    def __len__(self) -> int:
        return len(self._conversations)

    def get(self, conversation_id: Optional[str]) -> Optional[Conversation]:
        """Look up a conversation by id"""
        if conversation_id is None:
            return None
        for conversation in self._conversations:
            if conversation.conversation_id == conversation_id:
                return conversation
        return None

    def load(self):
        """Restore conversations and the active pointer from the repository"""
        self._conversations = self.repository.load_conversations()
        active_id = self.repository.load_active_conversation_id()

        if self.get(active_id) is None:
            if active_id is not None:
                self.logger.warning(f"Stored active conversation {active_id} no longer exists")
            active_id = self._conversations[0].conversation_id if self._conversations else None
            self._active_conversation_id = active_id
            self.repository.save_active_conversation_id(active_id)
        else:
            self._active_conversation_id = active_id

        self.logger.info(f"Loaded {len(self._conversations)} conversations")
        self._render_list()

    def persist(self):
        """Write the whole registry to the repository"""
        self.repository.save_conversations(self._conversations)
        self.repository.save_active_conversation_id(self._active_conversation_id)

    def create(self, title: Optional[str] = None) -> Conversation:
        """
        Create a new conversation and make it active

        Args:
            title: Display title, defaults to the configured title

        Returns:
            The new conversation
        """
        title = (title or "").strip() or self.default_title
        conversation = Conversation(conversation_id=new_conversation_id(), title=title)

        self._conversations.insert(0, conversation)
        self._active_conversation_id = conversation.conversation_id
        self.persist()

        log_conversation_event(self.logger, "created", conversation.conversation_id, title=title)
        self._render_list()
        self.renderer.render_transcript(conversation)
        return conversation

    def delete(self, conversation_id: str) -> bool:
        """
        Delete a conversation.

        If it was active, the first remaining conversation becomes active. When
        none remain the active pointer is None and the caller must create one.

        Returns:
            True if a conversation was removed
        """
        conversation = self.get(conversation_id)
        if conversation is None:
            self.logger.warning(f"Conversation not found for deletion: {conversation_id}")
            return False

        self._conversations.remove(conversation)
        was_active = conversation_id == self._active_conversation_id

        if was_active:
            self._active_conversation_id = (
                self._conversations[0].conversation_id if self._conversations else None
            )
        self.persist()

        log_conversation_event(self.logger, "deleted", conversation_id, was_active=was_active)
        self._render_list()
        if was_active and self.active_conversation is not None:
            self.renderer.render_transcript(self.active_conversation)
        return True

    def delete_all(self):
        """Delete every conversation; the caller must create a replacement"""
        count = len(self._conversations)
        self._conversations = []
        self._active_conversation_id = None
        self.persist()

        self.logger.info(f"Deleted all conversations ({count})")
        self._render_list()

    def rename(self, conversation_id: str, new_title: str) -> bool:
        """Rename a conversation; blank titles are ignored"""
        title = (new_title or "").strip()
        if not title:
            return False

        conversation = self.get(conversation_id)
        if conversation is None:
            self.logger.warning(f"Conversation not found for rename: {conversation_id}")
            return False

        conversation.title = title
        conversation.updated_at = datetime.now()
        self.persist()

        log_conversation_event(self.logger, "renamed", conversation_id, title=title)
        self._render_list()
        return True

    def switch_active(self, conversation_id: str) -> Optional[Conversation]:
        """
        Make a conversation active and display its transcript.
        Unknown ids leave everything unchanged.
        """
        conversation = self.get(conversation_id)
        if conversation is None:
            self.logger.warning(f"Conversation not found: {conversation_id}")
            return None

        self._active_conversation_id = conversation_id
        self.repository.save_active_conversation_id(conversation_id)

        self.logger.info(f"Switched to conversation: {conversation_id}")
        self._render_list()
        self.renderer.render_transcript(conversation)
        return conversation

    def search(self, filter_text: str = "") -> ConversationSearch:
        """Case-insensitive title filter; blank filters match everything"""
        return ConversationSearch(self, filter_text)

    def _render_list(self):
        self.renderer.render_conversation_list(self.conversations, self._active_conversation_id)
