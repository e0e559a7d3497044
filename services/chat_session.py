"""
Chat session - one user's chat state: conversations, the request pipeline and preferences.
Holds everything the app needs for a browser session; nothing lives in module globals.
"""

from typing import List, Optional

from config.app_config import AppConfig, get_config
from infrastructure.storage import KeyValueStore, SQLiteKeyValueStore
from services.ai_service import (
    ImageGenerator,
    PromptEnhancer,
    RuleTable,
    SpeechTranscriber,
    TranscriptionError,
    build_default_rule_table,
)
from services.chat_service.conversation_registry import ConversationRegistry, ConversationSearch
from services.chat_service.conversation_repository import ConversationRepository
from services.chat_service.message_log import MessageLog
from services.chat_service.models import Conversation, MessageRole
from services.chat_service.request_pipeline import RequestOutcome, RequestPipeline, RequestResult
from services.ui_service.rendering_surface import RenderingSurface
from utils.logging_config import ErrorTracker, get_logger, log_user_interaction


class ChatSession:
    """
    Facade over the registry, message log and request pipeline.
    Keeps the registry invariant: after every public operation there is an active conversation.
    """

    def __init__(
        self,
        config: AppConfig,
        repository: ConversationRepository,
        registry: ConversationRegistry,
        message_log: MessageLog,
        pipeline: RequestPipeline,
        renderer: RenderingSurface,
        transcriber: Optional[SpeechTranscriber] = None
    ):
        self.logger = get_logger(__name__)
        self.config = config
        self.repository = repository
        self.registry = registry
        self.message_log = message_log
        self.pipeline = pipeline
        self.renderer = renderer
        self.transcriber = transcriber
        self._theme = config.ui.default_theme
        self._started = False

    @classmethod
    def create(
        cls,
        config: Optional[AppConfig] = None,
        store: Optional[KeyValueStore] = None,
        renderer: Optional[RenderingSurface] = None,
        enhancer: Optional[PromptEnhancer] = None,
        image_generator: Optional[ImageGenerator] = None,
        transcriber: Optional[SpeechTranscriber] = None,
        rule_table: Optional[RuleTable] = None,
        error_tracker: Optional[ErrorTracker] = None
    ) -> 'ChatSession':
        """
        Wire a session from configuration; any collaborator can be injected

        Args:
            config: Application configuration, defaults to the global one
            store: Key/value store, defaults to SQLite at the configured path

        Returns:
            An unstarted session
        """
        config = config or get_config()
        renderer = renderer or RenderingSurface()
        store = store if store is not None else SQLiteKeyValueStore(config.storage.db_path)

        repository = ConversationRepository(store, config.storage)
        registry = ConversationRegistry(repository, renderer, config.ui.default_conversation_title)
        message_log = MessageLog(registry)

        pipeline = RequestPipeline(
            registry=registry,
            message_log=message_log,
            rule_table=rule_table or build_default_rule_table(config.ui, powered_by=config.powered_by),
            enhancer=enhancer or PromptEnhancer(settings=config.enhancement),
            image_generator=image_generator or ImageGenerator.from_config(
                config.api.huggingface_api_key, config.image_generation
            ),
            renderer=renderer,
            error_tracker=error_tracker
        )

        return cls(
            config=config,
            repository=repository,
            registry=registry,
            message_log=message_log,
            pipeline=pipeline,
            renderer=renderer,
            transcriber=transcriber or SpeechTranscriber(settings=config.speech)
        )

    # Lifecycle

    def start(self):
        """Load stored state, migrate the legacy transcript and make sure a conversation is active"""
        self._theme = self.repository.load_theme(self.config.ui.default_theme)
        self.renderer.apply_theme(self._theme)

        self.registry.load()

        if (
            len(self.registry) == 0
            and self.config.storage.migrate_legacy_transcript
            and self.repository.has_legacy_transcript()
        ):
            self._migrate_legacy_transcript()

        active = self.registry.active_conversation
        if active is None:
            self.registry.create()
        else:
            self.renderer.render_transcript(active)

        self._started = True
        self.logger.info(f"Chat session started with {len(self.registry)} conversations")

    @property
    def started(self) -> bool:
        return self._started

    def reset(self):
        """Drop in-memory state and reload it from the store"""
        self.stop()
        self._started = False
        self.start()
        self.logger.info("Chat session reset")

    def _migrate_legacy_transcript(self):
        messages = self.repository.load_legacy_transcript(self.config.ui.assistant_name)
        if messages:
            conversation = self.registry.create(self._title_from(messages))
            self.message_log.import_messages(conversation.conversation_id, messages)
            self.renderer.render_transcript(conversation)
        self.repository.clear_legacy_transcript()
        self.logger.info(f"Migrated legacy transcript ({len(messages)} messages)")

    def _title_from(self, messages) -> str:
        for message in messages:
            if message.role is MessageRole.USER and message.text.strip():
                title = " ".join(message.text.split())
                return title if len(title) <= 40 else title[:37] + "..."
        return self.config.ui.default_conversation_title

    # Conversations

    @property
    def conversations(self) -> List[Conversation]:
        return self.registry.conversations

    @property
    def active_conversation(self) -> Optional[Conversation]:
        return self.registry.active_conversation

    def new_chat(self, title: Optional[str] = None) -> Conversation:
        log_user_interaction(self.logger, "new_chat")
        return self.registry.create(title)

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete one conversation, creating a fresh one if it was the last"""
        deleted = self.registry.delete(conversation_id)
        if deleted and self.registry.active_conversation is None:
            self.registry.create()
        return deleted

    def delete_all_conversations(self):
        """Delete every conversation and start over with a fresh one"""
        self.registry.delete_all()
        self.registry.create()

    def rename_conversation(self, conversation_id: str, title: str) -> bool:
        return self.registry.rename(conversation_id, title)

    def switch_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.registry.switch_active(conversation_id)

    def search_conversations(self, filter_text: str = "") -> ConversationSearch:
        return self.registry.search(filter_text)

    # Requests

    @property
    def is_busy(self) -> bool:
        return self.pipeline.is_busy

    async def submit(self, text: str) -> RequestResult:
        """Send user text through the request pipeline for the active conversation"""
        return await self.pipeline.submit(text)

    async def submit_audio(self, audio: bytes, filename: str = "recording.wav") -> RequestResult:
        """
        Transcribe a recording and submit the transcript like typed text.
        Transcription problems are shown as a notice and nothing is submitted.
        """
        if self.transcriber is None:
            self.renderer.show_notice("Speech input is not available.")
            return RequestResult(RequestOutcome.REJECTED)

        try:
            transcript = await self.transcriber.transcribe(audio, filename)
        except TranscriptionError as e:
            self.logger.warning(f"Speech input failed: {e}")
            self.renderer.show_notice(str(e))
            return RequestResult(RequestOutcome.REJECTED)

        log_user_interaction(self.logger, "speech_submitted", transcript_length=len(transcript))
        return await self.submit(transcript)

    def stop(self) -> bool:
        """Cancel the in-flight request, if any; callable from any thread"""
        return self.pipeline.stop()

    # Preferences

    @property
    def theme(self) -> str:
        return self._theme

    def toggle_theme(self) -> str:
        """Switch between light and dark, persist and apply the choice"""
        self._theme = "dark" if self._theme == "light" else "light"
        self.repository.save_theme(self._theme)
        self.renderer.apply_theme(self._theme)
        log_user_interaction(self.logger, "theme_toggled", theme=self._theme)
        return self._theme
