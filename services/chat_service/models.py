"""
Chat service data models for conversations and messages.
"""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Optional, Any, Tuple
import uuid


class MessageRole(str, Enum):
    """Author of a message"""
    USER = "user"
    MODEL = "model"


class MessageKind(str, Enum):
    """Payload discriminator of a message"""
    TEXT = "text"
    IMAGE = "image"


@dataclass
class ImagePayload:
    """Generated picture attached to a model message"""
    image_ref: str  # embeddable data URI
    alt_text: str
    source: str

    def to_dict(self) -> Dict[str, str]:
        return {"image_ref": self.image_ref, "alt_text": self.alt_text, "source": self.source}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImagePayload':
        return cls(
            image_ref=data["image_ref"],
            alt_text=data.get("alt_text", ""),
            source=data.get("source", "")
        )

    def decode(self) -> Tuple[str, bytes]:
        """
        Split the data URI into its MIME type and raw bytes

        Raises:
            ValueError: The reference is not a base64 data URI
        """
        header, sep, encoded = self.image_ref.partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise ValueError("Image reference is not a base64 data URI")
        mime_type = header[len("data:"):-len(";base64")] or "application/octet-stream"
        try:
            return mime_type, base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid image data: {e}") from e


@dataclass
class Message:
    """Individual message in a conversation"""
    role: MessageRole
    kind: MessageKind = MessageKind.TEXT
    text: str = ""
    image: Optional[ImagePayload] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.kind is MessageKind.IMAGE and self.image is None:
            raise ValueError("Image messages need an image payload")

    @classmethod
    def text_message(cls, role: MessageRole, text: str) -> 'Message':
        return cls(role=role, kind=MessageKind.TEXT, text=text)

    @classmethod
    def image_message(cls, image: ImagePayload) -> 'Message':
        return cls(role=MessageRole.MODEL, kind=MessageKind.IMAGE, image=image)

    @property
    def is_image(self) -> bool:
        return self.kind is MessageKind.IMAGE

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "role": self.role.value,
            "kind": self.kind.value,
            "created_at": self.created_at.isoformat(),
        }
        if self.is_image:
            data["image"] = self.image.to_dict()
        else:
            data["text"] = self.text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        kind = MessageKind(data.get("kind", MessageKind.TEXT.value))
        return cls(
            role=MessageRole(data["role"]),
            kind=kind,
            text=data.get("text", ""),
            image=ImagePayload.from_dict(data["image"]) if kind is MessageKind.IMAGE else None,
            created_at=datetime.fromisoformat(data["created_at"])
        )


def new_conversation_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Conversation:
    """Conversation containing messages and metadata"""
    conversation_id: str
    title: str
    messages: List[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def touch(self):
        self.updated_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.conversation_id,
            "title": self.title,
            "messages": [message.to_dict() for message in self.messages],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Conversation':
        return cls(
            conversation_id=data["id"],
            title=data["title"],
            messages=[Message.from_dict(item) for item in data.get("messages", [])],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"])
        )


@dataclass
class ConversationSummary:
    """Summary of conversation for listing/navigation"""
    conversation_id: str
    title: str
    message_count: int
    last_activity: datetime
    created_at: datetime
    preview_text: Optional[str] = None

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> 'ConversationSummary':
        preview = None
        for message in reversed(conversation.messages):
            if message.role is MessageRole.USER:
                preview = message.text[:60]
                break
        return cls(
            conversation_id=conversation.conversation_id,
            title=conversation.title,
            message_count=len(conversation.messages),
            last_activity=conversation.updated_at,
            created_at=conversation.created_at,
            preview_text=preview
        )
