"""Voice transcription API endpoint."""

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from pydantic import BaseModel, Field

from liftcoach.api.dependencies import get_voice_transcriber
from liftcoach.errors import TranscriptionError, TranscriptionServiceUnavailable
from liftcoach.voice.transcriber import TranscriptionResult, VoiceTranscriber, decode_audio

router = APIRouter(prefix="/voice", tags=["voice"])


class TranscribeRequest(BaseModel):
    audio: str = Field(description="Base64-encoded audio")
    format: str = "webm"


@router.post("/transcribe", response_model=TranscriptionResult)
async def transcribe(
    request: TranscribeRequest,
    transcriber: VoiceTranscriber = Depends(get_voice_transcriber),
) -> TranscriptionResult:
    """Transcribe a spoken set description into weight, reps and RIR.

    Raises:
        HTTPException: 502 if the speech or text-generation service fails,
            422 if the audio cannot be decoded, transcribed or parsed
    """
    try:
        audio = decode_audio(request.audio)
        return await transcriber.transcribe(audio, request.format)
    except TranscriptionServiceUnavailable as e:
        logger.error(f"Voice transcription upstream failure: {e.message}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e
    except TranscriptionError as e:
        logger.warning(f"Voice transcription rejected: {e.message}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message) from e
