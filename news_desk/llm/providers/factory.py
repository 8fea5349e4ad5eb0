"""Provider factory and registry for hot-swappable LLM backends."""

from __future__ import annotations

import logging

from ...auth import IdentityProvider, ProfileStore
from ...config import LoggingConfig, ProviderConfig
from ...errors import MissingApiKeyError
from .base import CompletionProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider


ProviderBuilder = type[CompletionProvider]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "openai-compatible": OpenAICompatibleProvider,
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_provider(
    provider_cfg: ProviderConfig,
    api_key: str | None,
    log_cfg: LoggingConfig | None = None,
    llm_logger: logging.Logger | None = None,
) -> CompletionProvider:
    """Build a provider instance from runtime config.

    Raises:
        ValueError: Unknown provider name
        MissingApiKeyError: No API key was supplied
    """
    name = provider_cfg.name.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {provider_cfg.name}. Supported: {supported}")
    if not api_key:
        raise MissingApiKeyError("LLM API key not configured. Please set it in your profile.")
    return builder(provider_cfg, api_key, log_cfg, llm_logger)


async def provider_for_identity(
    provider_cfg: ProviderConfig,
    profiles: ProfileStore,
    identity: IdentityProvider,
    log_cfg: LoggingConfig | None = None,
    llm_logger: logging.Logger | None = None,
) -> CompletionProvider:
    """Build a provider using the API key stored in the current user's profile."""
    user = await identity.current_user()
    api_key = await profiles.llm_api_key(user)
    return create_provider(provider_cfg, api_key, log_cfg, llm_logger)
