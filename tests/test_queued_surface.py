"""
Tests for replaying rendering calls on the script thread
"""

import threading
from unittest.mock import Mock

from services.chat_service.models import Conversation, Message, MessageRole
from services.ui_service.queued_surface import QueuedRenderingSurface
from services.ui_service.rendering_surface import RenderingSurface, RenderMode


class TestQueuedRenderingSurface:
    """Test queuing, replay order and typing indicator handles"""

    def setup_method(self):
        self.target = Mock(spec=RenderingSurface)
        self.target.show_pending.side_effect = lambda: object()
        self.surface = QueuedRenderingSurface(self.target)

    def test_calls_wait_for_drain(self):
        message = Message.text_message(MessageRole.USER, "a red fox")

        self.surface.render_message(message, RenderMode.INSTANT)
        self.surface.show_notice("Saved")

        self.target.render_message.assert_not_called()
        assert self.surface.drain() == 2
        self.target.render_message.assert_called_once_with(message, RenderMode.INSTANT)
        self.target.show_notice.assert_called_once_with("Saved")
        assert self.surface.drain() == 0

    def test_calls_from_another_thread_replay_in_order(self):
        conversation = Conversation(conversation_id="c1", title="Foxes")
        order = []
        self.target.render_transcript.side_effect = lambda c: order.append("transcript")
        self.target.apply_theme.side_effect = lambda t: order.append(t)

        def request_thread():
            self.surface.render_transcript(conversation)
            self.surface.apply_theme("dark")

        thread = threading.Thread(target=request_thread)
        thread.start()
        thread.join()

        self.surface.drain()
        assert order == ["transcript", "dark"]

    def test_pending_indicator_round_trip(self):
        pending_id = self.surface.show_pending()
        self.surface.drain()
        handle = self.surface._pending[pending_id]
        assert self.surface.has_pending

        self.surface.remove_pending(pending_id)
        self.surface.drain()

        self.target.remove_pending.assert_called_once_with(handle)
        assert not self.surface.has_pending

    def test_indicator_redrawn_after_rebind(self):
        pending_id = self.surface.show_pending()
        self.surface.drain()
        old_handle = self.surface._pending[pending_id]

        self.surface.rebind()
        self.surface.remove_pending(pending_id)
        self.surface.drain()

        # The earlier run's element is never touched
        self.target.remove_pending.assert_not_called()
        assert not self.surface.has_pending
        assert old_handle is not None

    def test_open_indicator_shown_again_in_new_run(self):
        self.surface.show_pending()
        self.surface.drain()
        assert self.target.show_pending.call_count == 1

        self.surface.rebind()
        self.surface.drain()

        assert self.target.show_pending.call_count == 2
        assert self.surface.has_pending

    def test_indicator_removed_before_drain_is_never_shown_twice(self):
        pending_id = self.surface.show_pending()
        self.surface.remove_pending(pending_id)

        self.surface.drain()

        assert self.target.show_pending.call_count == 1
        self.target.remove_pending.assert_called_once()
        assert not self.surface.has_pending

    def test_typed_messages_render_on_the_draining_thread(self):
        message = Message.text_message(MessageRole.MODEL, "My name is FRIDAY AI")
        rendered_on = []
        self.target.render_message.side_effect = lambda m, mode: rendered_on.append(threading.current_thread())

        thread = threading.Thread(target=self.surface.render_message, args=(message, RenderMode.TYPED))
        thread.start()
        thread.join()
        assert rendered_on == []

        self.surface.drain()

        assert rendered_on == [threading.current_thread()]
