"""Model lookup for the text-generation boundary."""

import os
from functools import lru_cache

from pydantic_ai.models.openai import OpenAIModel

from liftcoach.config.settings import settings


@lru_cache(maxsize=16)
def _openai_model(model_name: str) -> OpenAIModel:
    return OpenAIModel(model_name)


def get_model(provider: str, model_name: str) -> OpenAIModel:
    """Return the pydantic_ai model for a provider and model name.

    Models are cached per name, so repeated calls within a process share one
    client.

    Raises:
        ValueError: If the provider is not supported
        RuntimeError: If the provider's API key is not configured
    """
    if provider != "openai":
        raise ValueError(f"Unsupported LLM provider: {provider}")

    if not os.getenv("OPENAI_API_KEY"):
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY not set. Model-backed features require an OpenAI API key.")
        # pydantic_ai reads the key from the environment
        os.environ["OPENAI_API_KEY"] = settings.openai_api_key
    return _openai_model(model_name)
