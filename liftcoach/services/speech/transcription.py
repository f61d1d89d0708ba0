"""Speech-to-text boundary."""

from typing import Protocol

from loguru import logger
from openai import AsyncOpenAI

from liftcoach.config.settings import settings

AUDIO_MIME_TYPES: dict[str, str] = {
    "webm": "audio/webm",
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "ogg": "audio/ogg",
}


class SpeechToText(Protocol):
    async def transcribe(self, audio: bytes, audio_format: str) -> str: ...


class OpenAISpeechToText:
    """SpeechToText backed by the OpenAI audio transcription endpoint.

    The client is created on first use so importing this module never
    needs an API key.
    """

    def __init__(self, model: str | None = None) -> None:
        self.model = model or settings.transcription_model
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.openai_api_key:
                raise RuntimeError("OPENAI_API_KEY not set. Transcription requires an OpenAI API key.")
            self._client = AsyncOpenAI(api_key=settings.openai_api_key)
        return self._client

    async def transcribe(self, audio: bytes, audio_format: str) -> str:
        mime_type = AUDIO_MIME_TYPES.get(audio_format, f"audio/{audio_format}")
        logger.debug(f"Submitting {len(audio)} bytes of {mime_type} for transcription")
        response = await self._get_client().audio.transcriptions.create(
            model=self.model,
            file=(f"audio.{audio_format}", audio, mime_type),
        )
        return response.text
