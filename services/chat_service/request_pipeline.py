"""
Request pipeline - runs one generation request from user text to rendered answer.

RULE_CHECK -> ENHANCING -> GENERATING -> RENDERING, with ABORTED when the
request's token is signalled and FAILED when image generation gives nothing
usable. At most one request is in flight; a new submission cancels the
previous one, which then only cleans up after itself.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from services.ai_service.error_messages import EmptyImageResult, format_generation_error
from services.ai_service.image_generator import ImageGenerator
from services.ai_service.prompt_enhancer import PromptEnhancer
from services.ai_service.rule_table import RuleTable
from services.chat_service.cancellation import CancellationToken, RequestCancelled
from services.chat_service.conversation_registry import ConversationRegistry
from services.chat_service.message_log import MessageLog
from services.chat_service.models import Message, MessageRole
from services.ui_service.rendering_surface import RenderingSurface, RenderMode
from utils.logging_config import ErrorTracker, get_logger, log_user_interaction


class PipelineState(str, Enum):
    IDLE = "idle"
    RULE_CHECK = "rule_check"
    ENHANCING = "enhancing"
    GENERATING = "generating"
    RENDERING = "rendering"
    ABORTED = "aborted"
    FAILED = "failed"


class RequestOutcome(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass
class RequestResult:
    """What happened to one submission"""
    outcome: RequestOutcome
    prompt: Optional[str] = None
    message: Optional[Message] = None


class RequestPipeline:
    """
    Orchestrates rule matching, prompt enhancement and image generation for the active conversation.
    Service errors end here: they become transcript text or a silent fallback.
    """

    def __init__(
        self,
        registry: ConversationRegistry,
        message_log: MessageLog,
        rule_table: RuleTable,
        enhancer: PromptEnhancer,
        image_generator: ImageGenerator,
        renderer: Optional[RenderingSurface] = None,
        error_tracker: Optional[ErrorTracker] = None
    ):
        self.logger = get_logger(__name__)
        self.registry = registry
        self.message_log = message_log
        self.rule_table = rule_table
        self.enhancer = enhancer
        self.image_generator = image_generator
        self.renderer = renderer or RenderingSurface()
        self.error_tracker = error_tracker or ErrorTracker(get_logger("friday.errors"))

        self._state = PipelineState.IDLE
        self._token: Optional[CancellationToken] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_busy(self) -> bool:
        """True while a request is in flight; submission should be disabled"""
        return self._token is not None

    def stop(self) -> bool:
        """
        Cancel the in-flight request

        Returns:
            True if there was a request to cancel
        """
        if self._token is None:
            return False
        log_user_interaction(self.logger, "stop_requested", state=self._state.value)
        self._token.cancel("stopped by user")
        return True

    async def submit(self, text: str) -> RequestResult:
        """
        Run one request for the active conversation

        Args:
            text: Raw user input

        Returns:
            Outcome of the request; blank input is rejected without side effects
        """
        user_text = (text or "").strip()
        if not user_text:
            return RequestResult(RequestOutcome.REJECTED)

        conversation_id = self.registry.active_conversation_id
        if conversation_id is None:
            raise RuntimeError("No active conversation to submit to")

        if self._token is not None:
            self.logger.info("New request supersedes the one in flight")
            self._token.cancel("superseded")

        token = CancellationToken()
        self._token = token
        pending = None

        log_user_interaction(
            self.logger,
            "prompt_submitted",
            prompt_length=len(user_text),
            conversation_id=conversation_id
        )

        try:
            user_message = self.message_log.append(conversation_id, MessageRole.USER, user_text)
            self.renderer.render_message(user_message, RenderMode.INSTANT)
            pending = self.renderer.show_pending()

            return await self._run(token, conversation_id, user_text)
        except RequestCancelled:
            self._set_state(token, PipelineState.ABORTED)
            self.logger.info(f"Request aborted ({token.reason})")
            return RequestResult(RequestOutcome.ABORTED)
        finally:
            try:
                if pending is not None:
                    self.renderer.remove_pending(pending)
            finally:
                self._finish(token)

    async def _run(self, token: CancellationToken, conversation_id: str, user_text: str) -> RequestResult:
        self._set_state(token, PipelineState.RULE_CHECK)
        canned = self.rule_table.match(user_text)
        if canned is not None:
            self.logger.info("Answered from rule table")
            message = self._deliver(token, conversation_id, canned, RenderMode.TYPED)
            return RequestResult(RequestOutcome.COMPLETED, message=message)

        self._set_state(token, PipelineState.ENHANCING)
        prompt = await self._enhance(token, user_text)
        token.raise_if_cancelled()

        self._set_state(token, PipelineState.GENERATING)
        try:
            image = await token.guard(self.image_generator.generate(prompt, token))
            if image is None:
                raise EmptyImageResult()
        except RequestCancelled:
            raise
        except Exception as e:
            return self._fail(token, conversation_id, e, prompt)

        message = self._deliver(token, conversation_id, image.to_payload(alt_text=user_text), RenderMode.INSTANT)
        return RequestResult(RequestOutcome.COMPLETED, prompt=prompt, message=message)

    async def _enhance(self, token: CancellationToken, user_text: str) -> str:
        """Enhanced prompt, or the user's own text if enhancement fails"""
        try:
            return await token.guard(self.enhancer.enhance(user_text, token))
        except RequestCancelled:
            raise
        except Exception as e:
            self.logger.warning(f"Prompt enhancement failed, using original text: {e.__class__.__name__}: {e}")
            return user_text

    def _deliver(self, token: CancellationToken, conversation_id: str, content, mode: RenderMode) -> Optional[Message]:
        token.raise_if_cancelled()
        self._set_state(token, PipelineState.RENDERING)

        message = self.message_log.append(conversation_id, MessageRole.MODEL, content)
        if message is not None and conversation_id == self.registry.active_conversation_id:
            self.renderer.render_message(message, mode)
        return message

    def _fail(self, token: CancellationToken, conversation_id: str, error: Exception, prompt: str) -> RequestResult:
        self._set_state(token, PipelineState.FAILED)
        self.error_tracker.track_error(error, "image_generation", prompt_length=len(prompt))

        message = self.message_log.append(conversation_id, MessageRole.MODEL, format_generation_error(error))
        if message is not None and conversation_id == self.registry.active_conversation_id:
            self.renderer.render_message(message, RenderMode.INSTANT)
        return RequestResult(RequestOutcome.FAILED, prompt=prompt, message=message)

    def _set_state(self, token: CancellationToken, state: PipelineState):
        # A superseded request no longer owns the observable state
        if token is self._token:
            self.logger.debug(f"Pipeline state: {self._state.value} -> {state.value}")
            self._state = state

    def _finish(self, token: CancellationToken):
        if token is self._token:
            self._token = None
            self._state = PipelineState.IDLE
