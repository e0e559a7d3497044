"""
Rendering surface contract - what the chat core needs from a display.
"""

from enum import Enum
from typing import Any, List, Optional

from services.chat_service.models import Conversation, Message


class RenderMode(str, Enum):
    """How a message appears on screen"""
    INSTANT = "instant"
    TYPED = "typed"


class RenderingSurface:
    """
    Display collaborator of the chat core.
    The base class renders nothing, so headless sessions can use it directly.
    """

    def render_message(self, message: Message, mode: RenderMode = RenderMode.INSTANT):
        """Append one message to the visible thread"""

    def render_transcript(self, conversation: Conversation):
        """Replace the visible thread with a conversation's messages"""

    def render_conversation_list(self, conversations: List[Conversation], active_conversation_id: Optional[str]):
        """Redraw the conversation list"""

    def show_pending(self) -> Any:
        """Show a typing indicator and return a handle for removing it"""
        return None

    def remove_pending(self, handle: Any):
        """Remove a typing indicator; must tolerate handles already removed"""

    def show_notice(self, text: str):
        """Show a transient notice outside the transcript"""

    def apply_theme(self, theme: str):
        """Switch between light and dark styling"""
