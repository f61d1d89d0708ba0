"""Text-generation boundary.

Every model call in LiftCoach goes through a TextGenerator. Callers build a
TextGenerationRequest and get raw text back; they extract and validate any
JSON themselves, since the model may wrap it in prose.
"""

from typing import Protocol

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.settings import ModelSettings

from liftcoach.services.llm.model import get_model


class TextGenerationRequest(BaseModel):
    """A single system+user chat completion request."""

    model: str
    system_prompt: str
    user_prompt: str
    max_tokens: int = Field(gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)


class TextGenerator(Protocol):
    async def complete(self, request: TextGenerationRequest) -> str: ...


class PydanticAITextGenerator:
    """TextGenerator backed by a pydantic_ai Agent with plain string output."""

    def __init__(self, provider: str = "openai") -> None:
        self.provider = provider

    async def complete(self, request: TextGenerationRequest) -> str:
        agent = Agent(
            model=get_model(self.provider, request.model),
            system_prompt=request.system_prompt,
            output_type=str,
        )
        model_settings = ModelSettings(max_tokens=request.max_tokens)
        if request.temperature is not None:
            model_settings["temperature"] = request.temperature

        logger.debug(
            f"LLM Prompt: {request.model}",
            system_prompt=request.system_prompt,
            user_prompt=request.user_prompt,
        )
        result = await agent.run(request.user_prompt, model_settings=model_settings)
        return result.output
