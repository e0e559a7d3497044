"""
Prompt enhancer - turns a short user request into a detailed image prompt with the chat model.
"""

from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from config.app_config import EnhancementConfig
from services.chat_service.cancellation import CancellationToken
from utils.logging_config import get_logger, log_execution_time, log_model_usage


class EnhancementError(Exception):
    """The chat model gave no usable prompt"""
    pass


class PromptEnhancer:
    """
    Client for the text-enhancement step.
    Failures raise; deciding what to do about them is up to the caller.
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        settings: Optional[EnhancementConfig] = None
    ):
        self.logger = get_logger(__name__)
        self.settings = settings or EnhancementConfig()
        self._llm = llm

    def get_llm(self) -> BaseChatModel:
        if self._llm is None:
            from infrastructure.external.openai_client import get_openai_client
            self._llm = get_openai_client().get_chat_client()
        return self._llm

    async def enhance(self, user_text: str, token: Optional[CancellationToken] = None) -> str:
        """
        Ask the chat model for a richer image prompt

        Args:
            user_text: Raw user request
            token: Cancellation token of the calling request

        Returns:
            The enhanced prompt

        Raises:
            EnhancementError: Model returned nothing usable
            Any client error raised by the chat model
        """
        if token is not None:
            token.raise_if_cancelled()

        llm = self.get_llm()
        messages = [
            SystemMessage(content=self.settings.system_prompt),
            HumanMessage(content=user_text),
        ]

        with log_execution_time(self.logger, "prompt_enhancement", prompt_length=len(user_text)):
            response = await llm.ainvoke(messages)

        content = response.content if isinstance(response.content, str) else ""
        enhanced = content.strip()
        if not enhanced:
            raise EnhancementError("Chat model returned an empty prompt")

        usage = getattr(response, "usage_metadata", None)
        if usage:
            log_model_usage(
                self.logger,
                self.settings.model_name,
                usage.get("total_tokens", 0),
                operation="prompt_enhancement"
            )

        self.logger.debug(f"Enhanced prompt: {enhanced}")
        return enhanced
