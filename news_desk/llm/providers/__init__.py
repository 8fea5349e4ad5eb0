"""Text-completion providers."""

from .base import Completion, CompletionProvider
from .factory import available_providers, create_provider, provider_for_identity
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider

__all__ = [
    "Completion",
    "CompletionProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "available_providers",
    "create_provider",
    "provider_for_identity",
]
