"""
Message log - append-only message lists of the registry's conversations.
"""

from typing import List, Optional, Union

from services.chat_service.conversation_registry import ConversationRegistry
from services.chat_service.models import ImagePayload, Message, MessageRole
from utils.logging_config import get_logger


class MessageLog:
    """Appends messages to conversations and persists the registry after each append"""

    def __init__(self, registry: ConversationRegistry):
        self.logger = get_logger(__name__)
        self.registry = registry

    def append(
        self,
        conversation_id: str,
        role: MessageRole,
        content: Union[str, ImagePayload]
    ) -> Optional[Message]:
        """
        Append a message to a conversation

        Args:
            conversation_id: Target conversation
            role: Message author
            content: Text, or an image payload for model image messages

        Returns:
            The stored message, or None if the conversation does not exist
        """
        conversation = self.registry.get(conversation_id)
        if conversation is None:
            self.logger.warning(f"Cannot append to missing conversation: {conversation_id}")
            return None

        if isinstance(content, ImagePayload):
            if role is not MessageRole.MODEL:
                raise ValueError("Only model messages can carry images")
            message = Message.image_message(content)
        else:
            message = Message.text_message(role, content)

        conversation.messages.append(message)
        conversation.touch()
        self.registry.persist()

        self.logger.debug(f"Added {role.value} {message.kind.value} message to conversation {conversation_id}")
        return message

    def import_messages(self, conversation_id: str, messages: List[Message]) -> int:
        """Append already-built messages, e.g. from the legacy transcript; returns the count added"""
        conversation = self.registry.get(conversation_id)
        if conversation is None or not messages:
            return 0

        conversation.messages.extend(messages)
        conversation.touch()
        self.registry.persist()

        self.logger.info(f"Imported {len(messages)} messages into conversation {conversation_id}")
        return len(messages)

    def messages(self, conversation_id: str) -> List[Message]:
        """Messages of a conversation in chronological order"""
        conversation = self.registry.get(conversation_id)
        return list(conversation.messages) if conversation else []
