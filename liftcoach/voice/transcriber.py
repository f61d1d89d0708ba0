"""Voice-to-structured-set transcription.

Two stages: speech-to-text, then a strict extraction prompt that turns the
transcript into weight/reps/RIR. Either every field resolves (each one
independently nullable) or the whole call fails with TranscriptionError.
"""

import base64
import binascii

from loguru import logger
from pydantic import BaseModel, ValidationError

from liftcoach.config.settings import settings
from liftcoach.core.tracking import LoggerTrackingSink, TrackingSink
from liftcoach.errors import TranscriptionError, TranscriptionServiceUnavailable
from liftcoach.services.llm.json_output import extract_json_object
from liftcoach.services.llm.text import TextGenerationRequest, TextGenerator
from liftcoach.services.speech.transcription import SpeechToText

PARSE_MAX_TOKENS = 100
PARSE_TEMPERATURE = 0.1

SET_PARSER_PROMPT = """You are a workout data parser. Extract weight, reps, and RIR (reps in reserve) from user speech about their workout set.

RIR is how many more reps they could have done (0 = to failure, 1 = could do 1 more, etc.).

Return ONLY valid JSON in this exact format:
{
  "weight": number_or_null,
  "reps": number_or_null,
  "rir": number_or_null
}

Examples:
"I did 225 pounds for 8 reps with 2 in reserve" -> {"weight": 225, "reps": 8, "rir": 2}
"185 for 10, could have done 1 more" -> {"weight": 185, "reps": 10, "rir": 1}
"Just did 12 reps bodyweight to failure" -> {"weight": null, "reps": 12, "rir": 0}
"135 pounds, 6 reps" -> {"weight": 135, "reps": 6, "rir": null}

If you can't extract a value, use null. Only return the JSON object."""


class VoiceWorkoutData(BaseModel):
    """Extracted set data. Every key must be present; null means not mentioned."""

    weight: float | None
    reps: int | None
    rir: int | None


class TranscriptionResult(BaseModel):
    transcription: str
    workout_data: VoiceWorkoutData


def decode_audio(encoded: str) -> bytes:
    """Decode base64 audio as sent by the browser recorder.

    Raises:
        TranscriptionError: If the payload is empty or not valid base64
    """
    if not encoded:
        raise TranscriptionError("No audio data provided")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TranscriptionError("Audio payload is unreadable (invalid base64)") from e


def parse_set_data(raw: str) -> VoiceWorkoutData:
    """Parse the extraction stage's output.

    Raises:
        TranscriptionError: If the output is not a JSON object with the three fields' types
    """
    try:
        payload = extract_json_object(raw)
        return VoiceWorkoutData.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.error("Failed to parse workout data JSON", raw_content=raw[:500])
        raise TranscriptionError("Failed to parse workout data from speech") from e


class VoiceTranscriber:
    """Turns a recorded set description into structured workout data."""

    def __init__(
        self,
        speech_to_text: SpeechToText,
        text_generator: TextGenerator,
        tracker: TrackingSink | None = None,
        model: str | None = None,
    ) -> None:
        self.speech_to_text = speech_to_text
        self.text_generator = text_generator
        self.tracker = tracker or LoggerTrackingSink()
        self.model = model or settings.voice_parse_model

    async def transcribe(self, audio: bytes, audio_format: str = "webm") -> TranscriptionResult:
        """Transcribe ``audio`` and extract weight, reps and RIR.

        Raises:
            TranscriptionServiceUnavailable: If the speech or text-generation service fails
            TranscriptionError: On empty audio, a blank transcript, or unparseable extraction
        """
        if not audio:
            raise TranscriptionError("No audio data provided")

        logger.info(f"Processing {len(audio)} bytes of audio for transcription")
        try:
            transcript = await self.speech_to_text.transcribe(audio, audio_format)
        except Exception as e:
            logger.error(f"Speech-to-text failed: {type(e).__name__}: {e}")
            self.tracker.track("voice_transcription_failed", stage="speech")
            raise TranscriptionServiceUnavailable(f"Speech-to-text service error: {e}") from e

        transcript = (transcript or "").strip()
        if not transcript:
            self.tracker.track("voice_transcription_failed", stage="speech")
            raise TranscriptionError("Audio could not be transcribed")
        logger.debug(f"Transcribed text: {transcript}")

        request = TextGenerationRequest(
            model=self.model,
            system_prompt=SET_PARSER_PROMPT,
            user_prompt=transcript,
            max_tokens=PARSE_MAX_TOKENS,
            temperature=PARSE_TEMPERATURE,
        )
        try:
            raw = await self.text_generator.complete(request)
        except Exception as e:
            logger.error(f"Set extraction failed: {type(e).__name__}: {e}")
            self.tracker.track("voice_transcription_failed", stage="parse")
            raise TranscriptionServiceUnavailable(f"Text generation service error: {e}") from e

        try:
            workout_data = parse_set_data(raw or "")
        except TranscriptionError:
            self.tracker.track("voice_transcription_failed", stage="parse")
            raise

        self.tracker.track(
            "voice_transcription_completed",
            has_weight=workout_data.weight is not None,
            has_reps=workout_data.reps is not None,
            has_rir=workout_data.rir is not None,
        )
        return TranscriptionResult(transcription=transcript, workout_data=workout_data)
