"""LLM access and observability."""

from .json_extract import extract_json_array, extract_quoted_strings
from .providers import (
    Completion,
    CompletionProvider,
    GeminiProvider,
    OpenAICompatibleProvider,
    available_providers,
    create_provider,
    provider_for_identity,
)
from .tracing import flush, record_span_error, set_span_output, setup_langfuse, start_span

__all__ = [
    "Completion",
    "CompletionProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "available_providers",
    "create_provider",
    "provider_for_identity",
    "extract_json_array",
    "extract_quoted_strings",
    "setup_langfuse",
    "flush",
    "start_span",
    "set_span_output",
    "record_span_error",
]
