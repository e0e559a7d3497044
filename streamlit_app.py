import hashlib
import time

import streamlit as st

from config.app_config import get_config
from services.chat_service.request_pipeline import RequestOutcome
from services.chat_session import ChatSession
from services.ui_service.chat_interface import get_chat_interface
from services.ui_service.queued_surface import QueuedRenderingSurface
from utils.background_loop import BackgroundEventLoop
from utils.logging_config import initialize_logging, get_logger, log_user_interaction

# Initialize logging and error tracking
error_tracker = initialize_logging()
logger = get_logger(__name__)

# Get configuration
config = get_config()

st.set_page_config(page_title=config.ui.app_title, page_icon="🖼️")

# Seconds between checks on a running request
POLL_INTERVAL = 0.2


@st.cache_resource
def get_request_loop() -> BackgroundEventLoop:
    """Event loop shared by every browser tab; async clients stay bound to it"""
    request_loop = BackgroundEventLoop()
    request_loop.start()
    return request_loop


def get_session(interface) -> ChatSession:
    """Chat session of the current browser tab"""
    if "chat_session" not in st.session_state:
        surface = QueuedRenderingSurface(interface)
        session = ChatSession.create(config=config, renderer=surface, error_tracker=error_tracker)
        st.session_state.render_queue = surface
        st.session_state.chat_session = session
        logger.info("Created chat session")
    return st.session_state.chat_session


def take_new_recording(recording) -> bool:
    """audio_input keeps returning the last recording on every rerun"""
    digest = hashlib.sha256(recording.getvalue()).hexdigest()
    if st.session_state.get("last_recording") == digest:
        return False
    st.session_state.last_recording = digest
    return True


def start_request(kind: str, coro):
    st.session_state.active_request = (kind, get_request_loop().submit(coro))


def wait_for_request(interface, surface: QueuedRenderingSurface, session: ChatSession):
    """
    Draw the running request until it finishes.

    The status line is redrawn on every poll, which lets Streamlit interrupt
    this run when the Stop button is pressed; the next run calls session.stop
    and picks up the same request again.
    """
    kind, future = st.session_state.active_request
    interface.render_stop_button(session)
    status = st.empty()

    started = time.monotonic()
    while not future.done():
        surface.drain()
        status.caption(f"⏳ {time.monotonic() - started:.0f}s")
        time.sleep(POLL_INTERVAL)
    surface.drain()
    status.empty()
    del st.session_state.active_request

    try:
        result = future.result()
    except Exception as e:
        error_tracker.track_error(e, "request")
        st.error("Something went wrong while showing the response. Please try again.")
        return

    logger.info(f"{kind.capitalize()} request finished: {result.outcome.value}")
    if kind == "voice" and result.outcome is RequestOutcome.REJECTED:
        # Keep the notice toast on screen
        return
    st.rerun()


def main_app():
    """Main application content"""
    st.markdown(
        f'<div style="text-align:center"><h1>{config.ui.app_title}</h1>'
        f'<p>Describe it, and I will draw it.</p></div>',
        unsafe_allow_html=True
    )

    interface = get_chat_interface()
    session = get_session(interface)
    surface = st.session_state.render_queue

    interface.bind_thread()
    surface.rebind()

    try:
        if not session.started:
            session.start()
        else:
            interface.apply_theme(session.theme)
            interface.render_transcript(session.active_conversation)
        surface.drain()
    except Exception as e:
        error_tracker.track_error(e, "session_start")
        st.error("Failed to load your conversations. Please refresh the page.")
        return

    interface.render_conversation_sidebar(session)

    busy = "active_request" in st.session_state or session.is_busy
    prompt = st.chat_input(config.ui.chat_input_placeholder, disabled=busy)
    recording = st.audio_input("🎤 Speak your prompt", key="voice_prompt", disabled=busy)

    if prompt:
        start_request("text", session.submit(prompt))
    elif recording is not None and take_new_recording(recording):
        log_user_interaction(logger, "recording_received", audio_bytes=recording.size)
        start_request("voice", session.submit_audio(recording.getvalue(), recording.name or "recording.wav"))

    if "active_request" in st.session_state:
        wait_for_request(interface, surface, session)


main_app()
