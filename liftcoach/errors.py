"""Error types for LiftCoach.

Generation and transcription errors surface to the caller unretried;
retry and backoff belong to the caller. AssessmentDegraded never leaves
the quality assessor.
"""


class LiftCoachError(Exception):
    """Base error carrying a human-readable message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class GenerationError(LiftCoachError):
    """Raised when a text-generation call fails or its output cannot be parsed."""


class InsightGenerationError(GenerationError):
    """Raised when an insight call returns no usable JSON object.

    Attributes:
        insight_type: The insight type that failed
    """

    def __init__(self, insight_type: str, message: str):
        self.insight_type = insight_type
        super().__init__(f"{insight_type}: {message}")


class ValidationRepairExhausted(LiftCoachError):
    """Raised when an exercise needs repair but the catalog is empty.

    An empty catalog is a caller precondition violation.
    """

    def __init__(self, exercise_name: str | None = None):
        self.exercise_name = exercise_name
        super().__init__(
            f"Cannot repair exercise {exercise_name!r}: exercise library is empty"
        )


class TranscriptionError(LiftCoachError):
    """Raised when audio cannot be turned into structured set data."""


class TranscriptionServiceUnavailable(TranscriptionError):
    """Raised when the speech or text-generation service fails mid-transcription.

    Transient, unlike a bad payload; callers may retry the same audio.
    """


class AssessmentDegraded(LiftCoachError):
    """Raised inside the quality assessor when the model output is unusable.

    Always caught and replaced with the neutral default assessment.
    """
