"""
Speech transcriber - turns one voice recording into submitted text.
"""

from typing import Optional

import openai

from config.app_config import SpeechConfig
from utils.logging_config import get_logger, log_execution_time


class TranscriptionError(Exception):
    """The recording could not be turned into text"""
    pass


class SpeechTranscriber:
    """Client for OpenAI audio transcription"""

    def __init__(self, client: Optional[openai.AsyncOpenAI] = None, settings: Optional[SpeechConfig] = None):
        self.logger = get_logger(__name__)
        self.settings = settings or SpeechConfig()
        self._client = client

    def get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            from infrastructure.external.openai_client import get_openai_client
            self._client = get_openai_client().get_async_client()
        return self._client

    async def transcribe(self, audio: bytes, filename: str = "recording.wav") -> str:
        """
        Transcribe a finished recording

        Args:
            audio: Encoded audio bytes
            filename: Name hinting the audio format to the API

        Returns:
            The final transcript

        Raises:
            TranscriptionError: Empty recording, service failure or empty transcript
        """
        if not audio:
            raise TranscriptionError("The recording is empty")

        try:
            with log_execution_time(self.logger, "speech_transcription", audio_bytes=len(audio)):
                result = await self.get_client().audio.transcriptions.create(
                    model=self.settings.model_name,
                    file=(filename, audio),
                    language=self.settings.language
                )
        except (openai.OpenAIError, ValueError) as e:
            raise TranscriptionError(f"Speech recognition failed: {e}") from e

        transcript = (getattr(result, "text", "") or "").strip()
        if not transcript:
            raise TranscriptionError("No speech was recognized")
        return transcript
