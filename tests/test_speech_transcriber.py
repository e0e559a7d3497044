"""
Tests for speech input
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import httpx
import openai
import pytest

from config.app_config import SpeechConfig
from services.ai_service.speech_transcriber import SpeechTranscriber, TranscriptionError


class TestSpeechTranscriber:
    """Test transcription through the OpenAI audio API"""

    def setup_method(self):
        self.client = Mock()
        self.client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text="  a castle in the clouds "))
        self.transcriber = SpeechTranscriber(client=self.client, settings=SpeechConfig(model_name="whisper-1", language="en"))

    @pytest.mark.asyncio
    async def test_returns_trimmed_transcript(self):
        transcript = await self.transcriber.transcribe(b"RIFF....WAVE", "clip.wav")

        assert transcript == "a castle in the clouds"
        kwargs = self.client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["language"] == "en"
        assert kwargs["file"] == ("clip.wav", b"RIFF....WAVE")

    @pytest.mark.asyncio
    async def test_empty_recording(self):
        with pytest.raises(TranscriptionError):
            await self.transcriber.transcribe(b"")
        self.client.audio.transcriptions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_speech(self):
        self.client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text="   "))

        with pytest.raises(TranscriptionError):
            await self.transcriber.transcribe(b"RIFF....WAVE")

    @pytest.mark.asyncio
    async def test_service_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")
        self.client.audio.transcriptions.create = AsyncMock(side_effect=openai.APIConnectionError(request=request))

        with pytest.raises(TranscriptionError) as exc_info:
            await self.transcriber.transcribe(b"RIFF....WAVE")
        assert isinstance(exc_info.value.__cause__, openai.APIConnectionError)
