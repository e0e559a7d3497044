"""
Queued rendering surface - lets the request loop thread drive a Streamlit display.

Streamlit elements may only be drawn from the script thread. Requests run on the
background event loop, so their rendering calls are queued here and replayed by
the script thread with drain().
"""

import itertools
import queue
from typing import Any, Dict, List, Optional

from services.chat_service.models import Conversation, Message
from services.ui_service.rendering_surface import RenderingSurface, RenderMode
from utils.logging_config import get_logger


class QueuedRenderingSurface(RenderingSurface):
    """
    Thread-safe front for a script-thread rendering surface.

    Typing indicators are tracked by id; the target's own handles belong to a
    single script run and are recreated after rebind().
    """

    def __init__(self, target: RenderingSurface):
        self.logger = get_logger(__name__)
        self.target = target
        self._calls: "queue.Queue[tuple]" = queue.Queue()
        self._pending_ids = itertools.count(1)
        # pending id -> target handle, None until shown in the current run
        self._pending: Dict[int, Any] = {}

    # RenderingSurface, callable from any thread

    def render_message(self, message: Message, mode: RenderMode = RenderMode.INSTANT):
        self._calls.put(("render_message", (message, mode)))

    def render_transcript(self, conversation: Conversation):
        self._calls.put(("render_transcript", (conversation,)))

    def render_conversation_list(self, conversations: List[Conversation], active_conversation_id: Optional[str]):
        self._calls.put(("render_conversation_list", (conversations, active_conversation_id)))

    def show_pending(self) -> Any:
        pending_id = next(self._pending_ids)
        self._calls.put(("show_pending", (pending_id,)))
        return pending_id

    def remove_pending(self, handle: Any):
        self._calls.put(("remove_pending", (handle,)))

    def show_notice(self, text: str):
        self._calls.put(("show_notice", (text,)))

    def apply_theme(self, theme: str):
        self._calls.put(("apply_theme", (theme,)))

    # Script thread

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def rebind(self):
        """Forget target handles drawn by an earlier script run"""
        for pending_id in self._pending:
            self._pending[pending_id] = None

    def drain(self) -> int:
        """
        Replay queued calls on the target

        Returns:
            Number of calls replayed
        """
        replayed = 0
        while True:
            try:
                name, args = self._calls.get_nowait()
            except queue.Empty:
                break

            if name == "show_pending":
                self._pending[args[0]] = self.target.show_pending()
            elif name == "remove_pending":
                handle = self._pending.pop(args[0], None)
                if handle is not None:
                    self.target.remove_pending(handle)
            else:
                getattr(self.target, name)(*args)
            replayed += 1

        # Indicators still open from an earlier run are drawn again at the bottom
        for pending_id, handle in self._pending.items():
            if handle is None:
                self._pending[pending_id] = self.target.show_pending()

        if replayed:
            self.logger.debug(f"Replayed {replayed} rendering calls")
        return replayed
