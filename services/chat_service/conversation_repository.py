"""
Conversation repository - maps conversations, the active pointer and preferences onto the key/value store.
Values are JSON documents that round-trip exactly.
"""

import html
import json
import re
from typing import Any, List, Optional

from config.app_config import StorageConfig
from infrastructure.storage import KeyValueStore
from services.chat_service.models import Conversation, ImagePayload, Message, MessageRole
from utils.logging_config import get_logger


THEMES = ("light", "dark")

_IMG_SRC_PATTERN = re.compile(r'<img[^>]*\bsrc="([^"]*)"', re.IGNORECASE)
_IMG_ALT_PATTERN = re.compile(r'<img[^>]*\balt="([^"]*)"', re.IGNORECASE)
_GENERATED_BY_PATTERN = re.compile(r'Generated by\s+([^<]+)</p>', re.IGNORECASE)
_TAG_PATTERN = re.compile(r'<[^>]+>')


class ConversationRepository:
    """
    Repository for conversation persistence.
    Serializes the whole conversation set on every save (write-through).
    """

    def __init__(self, store: KeyValueStore, storage_config: Optional[StorageConfig] = None):
        self.logger = get_logger(__name__)
        self.store = store
        self.keys = storage_config or StorageConfig()

    def _read_json(self, key: str) -> Any:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            self.logger.error(f"Stored value for '{key}' is not valid JSON: {e}")
            return None

    def _write_json(self, key: str, value: Any):
        self.store.set(key, json.dumps(value, ensure_ascii=False))

    # Conversations

    def load_conversations(self) -> List[Conversation]:
        """Load every stored conversation, in storage order"""
        data = self._read_json(self.keys.conversations_key) or []
        conversations = []
        for item in data:
            try:
                conversations.append(Conversation.from_dict(item))
            except (KeyError, ValueError, TypeError) as e:
                self.logger.warning(f"Skipping unreadable stored conversation: {e}")
        return conversations

    def save_conversations(self, conversations: List[Conversation]):
        """Replace the stored conversation set"""
        self._write_json(self.keys.conversations_key, [c.to_dict() for c in conversations])

    def load_active_conversation_id(self) -> Optional[str]:
        return self._read_json(self.keys.active_conversation_key)

    def save_active_conversation_id(self, conversation_id: Optional[str]):
        if conversation_id is None:
            self.store.delete(self.keys.active_conversation_key)
        else:
            self._write_json(self.keys.active_conversation_key, conversation_id)

    # Preferences

    def load_theme(self, default: str = "light") -> str:
        theme = self._read_json(self.keys.theme_key)
        return theme if theme in THEMES else default

    def save_theme(self, theme: str):
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self._write_json(self.keys.theme_key, theme)

    # Legacy flat transcript

    def has_legacy_transcript(self) -> bool:
        return self.keys.legacy_transcript_key in self.store

    def load_legacy_transcript(self, assistant_name: str) -> List[Message]:
        """
        Read the old single-transcript format ({role, parts: [{text}]} records).

        The seed system prompt is skipped and image markup is turned back into
        image messages. Images stored as blob references did not survive the
        original page session and come back as a text placeholder.

        Args:
            assistant_name: Name used in the seed prompt ("You are <name>")

        Returns:
            Messages in transcript order
        """
        records = self._read_json(self.keys.legacy_transcript_key)
        if not isinstance(records, list):
            return []

        seed_marker = f"You are {assistant_name}"
        messages = []
        for record in records:
            try:
                role = MessageRole(record["role"])
                text = record["parts"][0]["text"]
            except (KeyError, IndexError, TypeError, ValueError):
                self.logger.warning("Skipping unreadable legacy transcript record")
                continue

            if role is MessageRole.MODEL and seed_marker in text:
                continue

            if role is MessageRole.MODEL and "<img" in text:
                messages.append(self._legacy_image_message(text))
            else:
                messages.append(Message.text_message(role, text))

        return messages

    def _legacy_image_message(self, markup: str) -> Message:
        src_match = _IMG_SRC_PATTERN.search(markup)
        alt_match = _IMG_ALT_PATTERN.search(markup)
        source_match = _GENERATED_BY_PATTERN.search(markup)

        src = src_match.group(1) if src_match else ""
        alt_text = html.unescape(alt_match.group(1)) if alt_match else ""
        source = source_match.group(1).strip() if source_match else ""

        if src.startswith("data:"):
            return Message.image_message(ImagePayload(image_ref=src, alt_text=alt_text, source=source))

        caption = _TAG_PATTERN.sub(" ", markup)
        caption = " ".join(caption.split())
        return Message.text_message(
            MessageRole.MODEL,
            f"[Image no longer available] {caption}".strip()
        )

    def clear_legacy_transcript(self):
        self.store.delete(self.keys.legacy_transcript_key)
