"""Text generation backends for market narratives."""

from cryptodp.llm.client import (
    OllamaClient,
    OpenAICompatibleClient,
    TextGenerator,
    create_text_generator,
)

__all__ = [
    "OllamaClient",
    "OpenAICompatibleClient",
    "TextGenerator",
    "create_text_generator",
]
