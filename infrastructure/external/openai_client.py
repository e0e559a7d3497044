"""
OpenAI client adapter for the application.
Handles OpenAI API interactions and configuration.
"""

from langchain_openai import ChatOpenAI
from typing import Optional
import openai

from config.app_config import AppConfig, get_config
from utils.logging_config import get_logger


class OpenAIClient:
    """
    Adapter for OpenAI services: the chat model used for prompt enhancement
    and the raw async client used for audio transcription.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self._chat_client = None
        self._async_client = None

    def _api_key(self) -> str:
        api_key = self.config.api.openai_api_key
        if not api_key:
            raise ValueError("OpenAI API key not configured")
        return api_key

    def get_chat_client(self) -> ChatOpenAI:
        """
        Get configured ChatOpenAI client

        Returns:
            ChatOpenAI: Configured chat client
        """
        if self._chat_client is None:
            settings = self.config.enhancement
            try:
                self._chat_client = ChatOpenAI(
                    model=settings.model_name,
                    temperature=settings.temperature,
                    max_tokens=settings.max_tokens,
                    timeout=settings.request_timeout,
                    max_retries=settings.max_retries,
                    api_key=self._api_key()
                )

                self.logger.info(f"OpenAI chat client initialized: {settings.model_name}")

            except Exception as e:
                self.logger.error(f"Error initializing OpenAI chat client: {e}")
                raise

        return self._chat_client

    def get_async_client(self) -> openai.AsyncOpenAI:
        """
        Get the raw async OpenAI client

        Returns:
            openai.AsyncOpenAI: Configured client
        """
        if self._async_client is None:
            self._async_client = openai.AsyncOpenAI(api_key=self._api_key())
            self.logger.info("OpenAI async client initialized")
        return self._async_client


# Global client instance
_openai_client: Optional[OpenAIClient] = None


def get_openai_client() -> OpenAIClient:
    """Get the global OpenAI client instance"""
    global _openai_client
    if _openai_client is None:
        _openai_client = OpenAIClient()
    return _openai_client
