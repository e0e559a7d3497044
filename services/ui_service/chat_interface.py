"""
Chat interface service - Streamlit rendering surface for the chat session.
Handles the conversation sidebar, message rendering and the typing animation.
"""

import re
import time
from typing import Any, List, Optional

import streamlit as st

from config.app_config import AppConfig, get_config
from services.chat_service.models import Conversation, ConversationSummary, Message, MessageRole
from services.ui_service.rendering_surface import RenderingSurface, RenderMode
from utils.logging_config import get_logger


_MARKDOWN_SPECIAL = re.compile(r"([\\`*_{}\[\]()#+\-.!|>~<])")

DARK_THEME_CSS = """
<style>
.stApp, [data-testid="stSidebar"] {
    background-color: #1e1f22;
    color: #e8eaed;
}
.stChatMessage {
    background-color: #2b2d31;
}
</style>
"""


def escape_markdown(text: str) -> str:
    """Render user text literally"""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def _avatar(role: MessageRole) -> str:
    return "user" if role is MessageRole.USER else "assistant"


class ChatInterface(RenderingSurface):
    """
    Service for chat interface components and interactions.
    The page calls bind_thread() once per script run before anything is rendered.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self._thread_placeholder = None
        self._thread = None
        self._render_seq = 0
        # ids of messages already drawn in this script run
        self._shown = set()

    def bind_thread(self):
        """Reserve the page area holding the transcript for this script run"""
        self._thread_placeholder = st.empty()
        self._thread = self._thread_placeholder.container()
        self._shown = set()

    # RenderingSurface

    def render_message(self, message: Message, mode: RenderMode = RenderMode.INSTANT):
        if self._thread is None:
            self.bind_thread()
        if id(message) in self._shown:
            return
        self._shown.add(id(message))
        with self._thread:
            with st.chat_message(_avatar(message.role)):
                if message.is_image:
                    self._render_image(message)
                elif message.role is MessageRole.USER:
                    st.markdown(escape_markdown(message.text))
                elif mode is RenderMode.TYPED:
                    self._render_typed(message.text)
                else:
                    st.markdown(message.text)

    def render_transcript(self, conversation: Conversation):
        if self._thread_placeholder is None:
            self.bind_thread()
        self._thread = self._thread_placeholder.container()
        self._shown = set()

        if not conversation.messages:
            with self._thread:
                self.render_welcome_message()
            return

        for message in conversation.messages:
            self.render_message(message, RenderMode.INSTANT)

    def render_conversation_list(self, conversations: List[Conversation], active_conversation_id: Optional[str]):
        # The sidebar is redrawn on every script run by render_conversation_sidebar
        self.logger.debug(f"Conversation list changed ({len(conversations)} conversations)")

    def show_pending(self) -> Any:
        if self._thread is None:
            self.bind_thread()
        with self._thread:
            placeholder = st.empty()
        with placeholder.container():
            with st.chat_message("assistant"):
                st.markdown(f"_{self.config.ui.assistant_name} is working on it..._")
        return placeholder

    def remove_pending(self, handle: Any):
        if handle is not None:
            handle.empty()

    def show_notice(self, text: str):
        st.toast(text)

    def apply_theme(self, theme: str):
        if theme == "dark":
            st.markdown(DARK_THEME_CSS, unsafe_allow_html=True)

    # Message parts

    def _render_typed(self, text: str):
        placeholder = st.empty()
        words = text.split(" ")
        update_every = max(1, self.config.streaming.update_every)

        shown = ""
        for i, word in enumerate(words, start=1):
            shown = f"{shown} {word}" if shown else word
            if i % update_every == 0:
                placeholder.markdown(shown + "▌")
                time.sleep(self.config.streaming.delay)
        placeholder.markdown(text)

    def _render_image(self, message: Message):
        image = message.image
        self._render_seq += 1

        try:
            mime_type, data = image.decode()
        except ValueError as e:
            self.logger.warning(f"Stored image could not be decoded: {e}")
            st.markdown(f"_[Image unavailable] {escape_markdown(image.alt_text)}_")
            return

        st.image(data, caption=image.alt_text or None)
        st.caption(f"Generated by {image.source}")

        extension = mime_type.split("/")[-1] if "/" in mime_type else "png"
        st.download_button(
            "⬇️ Download",
            data=data,
            file_name=f"friday-{message.created_at.strftime('%Y%m%d-%H%M%S')}.{extension}",
            mime=mime_type,
            key=f"download_{self._render_seq}_{message.created_at.timestamp()}"
        )

    def render_welcome_message(self):
        """Render the welcome message for an empty conversation"""
        st.markdown(self.config.ui.welcome_message)

    # Sidebar

    def render_conversation_sidebar(self, session):
        """Render the conversation sidebar; actions rerun the script"""
        with st.sidebar:
            st.markdown("## 💬 Conversations")

            if st.button("➕ New Chat", use_container_width=True, type="primary"):
                session.new_chat()
                st.rerun()

            filter_text = st.text_input("Search", key="conversation_filter", placeholder="Search chats...")
            matches = list(session.search_conversations(filter_text))
            st.caption(f"📊 {len(matches)} conversation{'s' if len(matches) != 1 else ''}")

            active = session.active_conversation
            active_id = active.conversation_id if active else None

            for conversation in matches:
                is_active = conversation.conversation_id == active_id
                label = f"✅ {conversation.title}" if is_active else f"💬 {conversation.title}"
                summary = ConversationSummary.from_conversation(conversation)
                if st.button(
                    label,
                    key=f"select_{conversation.conversation_id}",
                    help=f"{summary.message_count} messages" + (f" · {summary.preview_text}" if summary.preview_text else ""),
                    use_container_width=True,
                    disabled=is_active
                ):
                    session.switch_conversation(conversation.conversation_id)
                    st.rerun()

            if active is not None:
                self._render_active_actions(session, active)

            st.divider()
            theme_label = "🌙 Dark mode" if session.theme == "light" else "☀️ Light mode"
            if st.button(theme_label, use_container_width=True):
                session.toggle_theme()
                st.rerun()

            if st.button("🗑️ Delete all chats", use_container_width=True):
                session.delete_all_conversations()
                st.rerun()

            if self.config.debug:
                st.divider()
                st.subheader("🔧 Debug Tools")
                if st.button("Reload session", type="secondary"):
                    session.reset()
                    st.rerun()

    def _render_active_actions(self, session, active: Conversation):
        st.divider()
        st.markdown("### ✏️ Current chat")

        new_title = st.text_input(
            "Title",
            value=active.title,
            key=f"rename_{active.conversation_id}"
        )
        if new_title.strip() and new_title.strip() != active.title:
            session.rename_conversation(active.conversation_id, new_title)
            st.rerun()

        if st.button("Delete this chat", key=f"delete_{active.conversation_id}", use_container_width=True):
            session.delete_conversation(active.conversation_id)
            st.rerun()

    def render_stop_button(self, session):
        """Stop control shown while a request runs"""
        st.button("⏹️ Stop", key="stop_request", on_click=session.stop)


def get_chat_interface() -> ChatInterface:
    """Get the chat interface of the current browser session"""
    if "chat_interface" not in st.session_state:
        st.session_state.chat_interface = ChatInterface()
    return st.session_state.chat_interface
